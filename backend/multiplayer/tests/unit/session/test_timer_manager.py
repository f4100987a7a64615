import asyncio
import logging

from multiplayer.logic.exceptions import InvalidPhaseError
from multiplayer.session.timer_manager import DeferredTaskManager
from multiplayer.tests.conftest import wait_until


class TestDeferredTaskManager:
    async def test_runs_callback_after_delay(self):
        manager = DeferredTaskManager()
        fired = []

        async def callback():
            fired.append(True)

        assert manager.schedule("k", 0, callback)
        await wait_until(lambda: fired == [True])
        await wait_until(lambda: manager.pending_keys == [])

    async def test_duplicate_key_is_ignored(self):
        manager = DeferredTaskManager()
        fired = []

        async def callback():
            fired.append(True)

        assert manager.schedule("k", 0.01, callback)
        assert not manager.schedule("k", 0.01, callback)
        await wait_until(lambda: not manager.is_pending("k"))
        assert fired == [True]

    async def test_cancel_prevents_callback(self):
        manager = DeferredTaskManager()
        fired = []

        async def callback():
            fired.append(True)

        manager.schedule("a", 0.05, callback)
        manager.schedule("b", 0.05, callback)
        manager.cancel_all()
        await asyncio.sleep(0.1)
        assert fired == []
        assert manager.pending_keys == []

    async def test_session_error_is_logged_not_raised(self, caplog):
        manager = DeferredTaskManager()

        async def callback():
            raise InvalidPhaseError("room finished")

        with caplog.at_level(logging.WARNING):
            manager.schedule("k", 0, callback)
            await wait_until(lambda: not manager.is_pending("k"))
        assert any("deferred task rejected" in str(r.msg) for r in caplog.records)

    async def test_unexpected_error_is_logged(self, caplog):
        manager = DeferredTaskManager()

        async def callback():
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR):
            manager.schedule("k", 0, callback)
            await wait_until(lambda: not manager.is_pending("k"))
        assert any("deferred task failed" in str(r.msg) for r in caplog.records)

    async def test_any_callback_exception_is_logged_and_task_released(self, caplog):
        manager = DeferredTaskManager()

        async def callback():
            raise KeyError("revision")

        with caplog.at_level(logging.ERROR):
            manager.schedule("k", 0, callback)
            await wait_until(lambda: not manager.is_pending("k"))
        assert any("deferred task failed" in str(r.msg) for r in caplog.records)
        assert manager.pending_keys == []
