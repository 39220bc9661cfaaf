from __future__ import annotations

import asyncio

import pytest

from tasksync.orchestration.optimistic import (
    KeyedOptimisticCoordinator,
    OptimisticUpdateCoordinator,
)


async def _resolve_after(event: asyncio.Event, value: str) -> str:
    await event.wait()
    return value


async def _fail_after(event: asyncio.Event, message: str) -> str:
    await event.wait()
    raise RuntimeError(message)


def test_latest_call_wins_when_older_call_resolves_last() -> None:
    applied: list[str] = []

    async def _run() -> tuple[str | None, str | None]:
        coordinator: OptimisticUpdateCoordinator[str] = OptimisticUpdateCoordinator(
            on_success=applied.append,
        )
        slow_gate = asyncio.Event()
        fast_gate = asyncio.Event()
        slow = asyncio.create_task(coordinator.execute(_resolve_after(slow_gate, "first")))
        await asyncio.sleep(0)
        fast = asyncio.create_task(coordinator.execute(_resolve_after(fast_gate, "second")))
        await asyncio.sleep(0)

        fast_gate.set()
        fast_result = await fast
        assert coordinator.is_loading is False
        slow_gate.set()
        slow_result = await slow
        return slow_result, fast_result

    slow_result, fast_result = asyncio.run(_run())

    assert fast_result == "second"
    assert slow_result is None
    assert applied == ["second"]


def test_failure_rolls_back_before_reporting_error() -> None:
    calls: list[str] = []
    coordinator: OptimisticUpdateCoordinator[str] = OptimisticUpdateCoordinator()

    async def _boom() -> str:
        raise RuntimeError("rejected")

    result = asyncio.run(
        coordinator.execute(
            _boom(),
            on_rollback=lambda: calls.append("rollback"),
            on_error=lambda exc: calls.append(f"error:{exc}"),
            on_success=lambda _: calls.append("success"),
        )
    )

    assert result is None
    assert calls == ["rollback", "error:rejected"]
    assert isinstance(coordinator.error, RuntimeError)
    assert coordinator.is_loading is False
    assert coordinator.is_pending() is False


def test_stale_failure_is_ignored() -> None:
    calls: list[str] = []

    async def _run() -> None:
        coordinator: OptimisticUpdateCoordinator[str] = OptimisticUpdateCoordinator(
            on_rollback=lambda: calls.append("rollback"),
            on_success=lambda value: calls.append(f"success:{value}"),
        )
        old_gate = asyncio.Event()
        new_gate = asyncio.Event()
        old = asyncio.create_task(coordinator.execute(_fail_after(old_gate, "late")))
        await asyncio.sleep(0)
        new = asyncio.create_task(coordinator.execute(_resolve_after(new_gate, "fresh")))
        await asyncio.sleep(0)
        old_gate.set()
        await old
        assert coordinator.is_loading is True
        new_gate.set()
        await new
        assert coordinator.error is None

    asyncio.run(_run())

    assert calls == ["success:fresh"]


def test_reset_makes_in_flight_call_stale() -> None:
    applied: list[str] = []

    async def _run() -> str | None:
        coordinator: OptimisticUpdateCoordinator[str] = OptimisticUpdateCoordinator(
            on_success=applied.append,
        )
        gate = asyncio.Event()
        pending = asyncio.create_task(coordinator.execute(_resolve_after(gate, "value")))
        await asyncio.sleep(0)
        assert coordinator.is_loading is True
        coordinator.reset()
        assert coordinator.is_loading is False
        gate.set()
        return await pending

    assert asyncio.run(_run()) is None
    assert applied == []


def test_keyed_coordinator_tracks_items_independently() -> None:
    rolled_back: list[str] = []

    async def _run(coordinator: KeyedOptimisticCoordinator[str]) -> None:
        gate_a = asyncio.Event()
        gate_b = asyncio.Event()
        call_a = asyncio.create_task(coordinator.execute("a", _resolve_after(gate_a, "ok")))
        call_b = asyncio.create_task(
            coordinator.execute(
                "b",
                _fail_after(gate_b, "nope"),
                on_rollback=lambda: rolled_back.append("b"),
            )
        )
        await asyncio.sleep(0)
        assert coordinator.loading_items == frozenset({"a", "b"})

        gate_b.set()
        await call_b
        assert coordinator.is_loading("a") is True
        assert coordinator.is_loading("b") is False
        assert isinstance(coordinator.get_error("b"), RuntimeError)

        gate_a.set()
        assert await call_a == "ok"

    coordinator: KeyedOptimisticCoordinator[str] = KeyedOptimisticCoordinator()
    asyncio.run(_run(coordinator))

    assert rolled_back == ["b"]
    assert coordinator.loading_items == frozenset()
    assert coordinator.get_error("a") is None
    coordinator.clear_error("b")
    assert coordinator.errors == {}


def test_keyed_coordinator_discards_superseded_call_for_same_key() -> None:
    applied: list[str] = []

    async def _run() -> None:
        coordinator: KeyedOptimisticCoordinator[str] = KeyedOptimisticCoordinator(
            on_success=applied.append,
        )
        first_gate = asyncio.Event()
        second_gate = asyncio.Event()
        first = asyncio.create_task(coordinator.execute("a", _resolve_after(first_gate, "one")))
        await asyncio.sleep(0)
        second = asyncio.create_task(coordinator.execute("a", _resolve_after(second_gate, "two")))
        await asyncio.sleep(0)
        assert coordinator.sequence_for("a") == 2
        second_gate.set()
        await second
        first_gate.set()
        assert await first is None

    asyncio.run(_run())

    assert applied == ["two"]


def test_success_callback_errors_propagate_to_caller() -> None:
    coordinator: OptimisticUpdateCoordinator[str] = OptimisticUpdateCoordinator()

    async def _ok() -> str:
        return "done"

    def _explode(_: object) -> None:
        raise KeyError("callback bug")

    with pytest.raises(KeyError):
        asyncio.run(coordinator.execute(_ok(), on_success=_explode))


def test_keyed_reset_discards_in_flight_call_and_clears_state() -> None:
    applied: list[str] = []

    async def _run(coordinator: KeyedOptimisticCoordinator[str]) -> str | None:
        gate = asyncio.Event()
        pending = asyncio.create_task(coordinator.execute("a", _resolve_after(gate, "late")))
        await asyncio.sleep(0)
        assert coordinator.is_loading("a") is True
        coordinator.reset("a")
        assert coordinator.is_loading("a") is False
        gate.set()
        return await pending

    coordinator: KeyedOptimisticCoordinator[str] = KeyedOptimisticCoordinator(
        on_success=applied.append,
    )
    result = asyncio.run(_run(coordinator))

    assert result is None
    assert applied == []
    assert coordinator.sequence_for("a") == 2

    coordinator.set_error("a", RuntimeError("earlier failure"))
    coordinator.reset("a")

    assert coordinator.get_error("a") is None
    assert coordinator.sequence_for("a") == 3
