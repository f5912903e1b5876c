"""
tests/test_purge.py -- Tests for the background expired-session purge loop.

Covers:
  - a storage fault on one tick is logged and the loop keeps running
  - cancelling the task while a purge is running in its worker thread waits
    for that purge to finish, so shutdown never disposes the engine under it
"""

from __future__ import annotations

import asyncio
import threading
import time
from contextlib import suppress
from types import SimpleNamespace

from api.main import _purge_loop
from auth.errors import StorageUnavailable


def _fake_app(purge_expired):
    return SimpleNamespace(state=SimpleNamespace(sessions=SimpleNamespace(purge_expired=purge_expired)))


def test_storage_fault_does_not_kill_the_loop():
    calls = []
    second_tick = threading.Event()

    def flaky_purge():
        calls.append(1)
        if len(calls) == 1:
            raise StorageUnavailable("down")
        second_tick.set()
        return 0

    async def run():
        task = asyncio.create_task(_purge_loop(_fake_app(flaky_purge), 0))
        for _ in range(200):
            if second_tick.is_set():
                break
            await asyncio.sleep(0.01)
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    asyncio.run(run())
    assert second_tick.is_set()


def test_cancel_waits_for_in_flight_purge():
    started = threading.Event()
    finished = threading.Event()

    def slow_purge():
        started.set()
        time.sleep(0.2)
        finished.set()
        return 0

    async def run():
        task = asyncio.create_task(_purge_loop(_fake_app(slow_purge), 0))
        for _ in range(200):
            if started.is_set():
                break
            await asyncio.sleep(0.01)
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        return task

    task = asyncio.run(run())
    assert finished.is_set()
    assert task.cancelled()
