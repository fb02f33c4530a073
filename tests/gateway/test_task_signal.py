"""TaskSignal 测试 -- 长轮询唤醒"""

import asyncio

from replyqueue.gateway.services.task_signal import TaskSignal


class TestTaskSignal:
    async def test_notify_wakes_all_waiters(self):
        signal = TaskSignal()
        a, b = signal.subscribe(), signal.subscribe()
        assert signal.waiter_count == 2

        asyncio.get_running_loop().call_later(0.05, signal.notify)
        results = await asyncio.gather(TaskSignal.wait(a, 1), TaskSignal.wait(b, 1))
        assert results == [True, True]

    async def test_wait_timeout(self):
        signal = TaskSignal()
        event = signal.subscribe()
        assert await TaskSignal.wait(event, 0.05) is False

    async def test_unsubscribed_not_notified(self):
        signal = TaskSignal()
        event = signal.subscribe()
        signal.unsubscribe(event)
        signal.notify()
        assert not event.is_set()
        assert signal.waiter_count == 0

    async def test_notify_before_wait_is_kept(self):
        """订阅后、等待前发生的通知不会丢失"""
        signal = TaskSignal()
        event = signal.subscribe()
        signal.notify()
        assert await TaskSignal.wait(event, 0.01) is True
