from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from tasksync.core.logging import get_logger

T = TypeVar("T")

logger = get_logger("tasksync.orchestration.optimistic")

SuccessCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]
RollbackCallback = Callable[[], None]


@dataclass(frozen=True, slots=True)
class OptimisticCallbacks:
    on_success: SuccessCallback | None = None
    on_error: ErrorCallback | None = None
    on_rollback: RollbackCallback | None = None

    def override(
        self,
        *,
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_rollback: RollbackCallback | None = None,
    ) -> OptimisticCallbacks:
        return OptimisticCallbacks(
            on_success=on_success or self.on_success,
            on_error=on_error or self.on_error,
            on_rollback=on_rollback or self.on_rollback,
        )

    def succeed(self, result: Any) -> None:
        if self.on_success is not None:
            self.on_success(result)

    def fail(self, error: Exception) -> None:
        # Rollback runs first so on_error observes the restored state.
        if self.on_rollback is not None:
            self.on_rollback()
        if self.on_error is not None:
            self.on_error(error)


@dataclass(slots=True)
class OptimisticRequest:
    sequence: int
    operation: Awaitable[Any]
    is_loading: bool = True


class OptimisticUpdateCoordinator(Generic[T]):
    """Runs one logical slot of optimistic calls.

    Each ``execute`` takes the next sequence number. When a call resolves it
    may only touch state if its number is still the slot's latest; anything
    older is dropped, whatever order the calls resolve in.

    Example::

        coordinator = OptimisticUpdateCoordinator(on_rollback=restore_snapshot)
        store.apply_task_change(task_id, changes)
        await coordinator.execute(api.update_task(task_id, changes))
    """

    def __init__(
        self,
        *,
        name: str = "default",
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_rollback: RollbackCallback | None = None,
    ) -> None:
        self._name = name
        self._callbacks = OptimisticCallbacks(
            on_success=on_success,
            on_error=on_error,
            on_rollback=on_rollback,
        )
        self._sequence = 0
        self._pending: OptimisticRequest | None = None
        self._is_loading = False
        self._error: Exception | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> Exception | None:
        return self._error

    def is_pending(self) -> bool:
        return self._pending is not None

    async def execute(
        self,
        operation: Awaitable[T],
        *,
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_rollback: RollbackCallback | None = None,
    ) -> T | None:
        self._sequence += 1
        request = OptimisticRequest(sequence=self._sequence, operation=operation)
        self._pending = request
        self._is_loading = True
        self._error = None
        callbacks = self._callbacks.override(
            on_success=on_success,
            on_error=on_error,
            on_rollback=on_rollback,
        )

        try:
            result = await operation
        except Exception as exc:
            request.is_loading = False
            if request.sequence != self._sequence:
                self._log_stale(request, outcome="error")
                return None
            self._is_loading = False
            self._error = exc
            self._pending = None
            logger.warning(
                "optimistic.failed",
                slot=self._name,
                sequence=request.sequence,
                error=str(exc),
            )
            callbacks.fail(exc)
            return None

        request.is_loading = False
        if request.sequence != self._sequence:
            self._log_stale(request, outcome="success")
            return None
        self._is_loading = False
        self._error = None
        self._pending = None
        callbacks.succeed(result)
        return result

    def reset(self) -> None:
        """Forget the tracked call; its eventual resolution will be stale."""
        self._sequence += 1
        self._pending = None
        self._is_loading = False
        self._error = None

    def _log_stale(self, request: OptimisticRequest, *, outcome: str) -> None:
        logger.debug(
            "optimistic.stale_result",
            slot=self._name,
            sequence=request.sequence,
            current_sequence=self._sequence,
            outcome=outcome,
        )


class KeyedOptimisticCoordinator(Generic[T]):
    """Optimistic slots keyed by item id, e.g. several cards mid-drag at once."""

    def __init__(
        self,
        *,
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_rollback: RollbackCallback | None = None,
    ) -> None:
        self._callbacks = OptimisticCallbacks(
            on_success=on_success,
            on_error=on_error,
            on_rollback=on_rollback,
        )
        self._sequences: dict[str, int] = {}
        self._loading: set[str] = set()
        self._errors: dict[str, Exception] = {}

    @property
    def loading_items(self) -> frozenset[str]:
        return frozenset(self._loading)

    @property
    def errors(self) -> Mapping[str, Exception]:
        return dict(self._errors)

    def sequence_for(self, key: str) -> int:
        return self._sequences.get(key, 0)

    def is_loading(self, key: str) -> bool:
        return key in self._loading

    def get_error(self, key: str) -> Exception | None:
        return self._errors.get(key)

    def start_loading(self, key: str) -> None:
        self._loading.add(key)
        self._errors.pop(key, None)

    def stop_loading(self, key: str) -> None:
        self._loading.discard(key)

    def set_error(self, key: str, error: Exception) -> None:
        self._errors[key] = error
        self.stop_loading(key)

    def clear_error(self, key: str) -> None:
        self._errors.pop(key, None)

    def reset(self, key: str) -> None:
        self._sequences[key] = self.sequence_for(key) + 1
        self.stop_loading(key)
        self.clear_error(key)

    async def execute(
        self,
        key: str,
        operation: Awaitable[T],
        *,
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_rollback: RollbackCallback | None = None,
    ) -> T | None:
        sequence = self.sequence_for(key) + 1
        self._sequences[key] = sequence
        self.start_loading(key)
        callbacks = self._callbacks.override(
            on_success=on_success,
            on_error=on_error,
            on_rollback=on_rollback,
        )

        try:
            result = await operation
        except Exception as exc:
            if sequence != self.sequence_for(key):
                self._log_stale(key, sequence, outcome="error")
                return None
            self.set_error(key, exc)
            logger.warning("optimistic.failed", slot=key, sequence=sequence, error=str(exc))
            callbacks.fail(exc)
            return None

        if sequence != self.sequence_for(key):
            self._log_stale(key, sequence, outcome="success")
            return None
        self.stop_loading(key)
        callbacks.succeed(result)
        return result

    def _log_stale(self, key: str, sequence: int, *, outcome: str) -> None:
        logger.debug(
            "optimistic.stale_result",
            slot=key,
            sequence=sequence,
            current_sequence=self.sequence_for(key),
            outcome=outcome,
        )
