from __future__ import annotations

import asyncio
import logging

import pytest

from geopresence.scheduler import TimerScheduler


@pytest.mark.asyncio
async def test_same_key_replaces_pending_timer() -> None:
    scheduler = TimerScheduler()
    fired: list[str] = []

    scheduler.schedule("a", 0.01, lambda: fired.append("first"))
    scheduler.schedule("a", 0.01, lambda: fired.append("second"))
    await asyncio.sleep(0.05)

    assert fired == ["second"]
    assert scheduler.pending_keys() == []


@pytest.mark.asyncio
async def test_cancel_prefix_only_touches_matching_keys() -> None:
    scheduler = TimerScheduler()
    fired: list[str] = []
    scheduler.schedule("fullscreen:reconcile", 0.01, lambda: fired.append("fs"))
    scheduler.schedule("fullscreen:ready", 0.01, lambda: fired.append("fs-ready"))
    scheduler.schedule("inline:reconcile", 0.01, lambda: fired.append("inline"))

    assert scheduler.cancel_prefix("fullscreen:") == 2
    await asyncio.sleep(0.05)

    assert fired == ["inline"]


@pytest.mark.asyncio
async def test_coroutine_callbacks_run_as_tasks() -> None:
    scheduler = TimerScheduler()
    done = asyncio.Event()

    async def _work() -> None:
        done.set()

    scheduler.schedule("work", 0.0, _work)
    await asyncio.wait_for(done.wait(), timeout=1.0)


@pytest.mark.asyncio
async def test_failing_callback_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR, logger="geopresence.scheduler")
    scheduler = TimerScheduler()

    def _boom() -> None:
        raise RuntimeError("boom")

    scheduler.schedule("bad", 0.0, _boom)
    await asyncio.sleep(0.02)

    assert "Timer bad callback failed" in caplog.text


@pytest.mark.asyncio
async def test_close_cancels_and_refuses_new_timers() -> None:
    scheduler = TimerScheduler()
    fired: list[str] = []
    scheduler.schedule("a", 0.01, lambda: fired.append("a"))

    scheduler.close()
    await asyncio.sleep(0.03)

    assert fired == []
    assert scheduler.closed is True
    assert scheduler.schedule("b", 0.0, lambda: fired.append("b")) is None
    assert scheduler.is_pending("b") is False
