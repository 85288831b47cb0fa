from __future__ import annotations

import asyncio

from page_annotator.services.debounce import Debouncer


def test_burst_collapses_to_one_call_with_last_value():
    calls: list[int] = []

    async def scenario() -> None:
        debouncer = Debouncer(calls.append, delay_s=0.02)
        for value in range(5):
            debouncer.schedule(value)
            await asyncio.sleep(0.001)
        assert calls == []
        assert debouncer.pending is True
        await asyncio.sleep(0.06)
        assert debouncer.pending is False

    asyncio.run(scenario())
    assert calls == [4]


def test_flush_runs_pending_call_immediately():
    calls: list[str] = []

    async def scenario() -> None:
        debouncer = Debouncer(calls.append, delay_s=10)
        assert debouncer.flush() is False
        debouncer.schedule("draft")
        assert debouncer.flush() is True
        assert calls == ["draft"]
        await asyncio.sleep(0)
        assert debouncer.flush() is False

    asyncio.run(scenario())
    assert calls == ["draft"]


def test_cancel_drops_pending_call():
    calls: list[str] = []

    async def scenario() -> None:
        debouncer = Debouncer(calls.append, delay_s=0.01)
        debouncer.schedule("draft")
        debouncer.cancel()
        await asyncio.sleep(0.03)

    asyncio.run(scenario())
    assert calls == []


def test_failing_callback_does_not_escape():
    def explode(_: object) -> None:
        raise RuntimeError("disk full")

    async def scenario() -> bool:
        debouncer = Debouncer(explode, delay_s=10)
        debouncer.schedule("draft")
        return debouncer.flush()

    assert asyncio.run(scenario()) is True


def test_schedule_without_running_loop_waits_for_flush():
    calls: list[str] = []
    debouncer = Debouncer(calls.append, delay_s=0.01)
    debouncer.schedule("first")
    debouncer.schedule("second")
    assert debouncer.pending is True
    assert calls == []
    assert debouncer.flush() is True
    assert calls == ["second"]
