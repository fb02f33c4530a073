"""TaskSignal -- 进程内“有新任务”唤醒信号

每个等待者持有一个 asyncio.Event，create / requeue 后 notify 唤醒所有等待者。
只用于缩短本进程内长轮询 claim 的等待，对外 claim 契约不变；
其他进程创建的任务仍需等待者超时后重新扫描。
"""

import asyncio


class TaskSignal:
    """基于 asyncio.Event 的广播信号"""

    def __init__(self) -> None:
        self._waiters: set[asyncio.Event] = set()

    def subscribe(self) -> asyncio.Event:
        """注册一个等待者，返回其 Event"""
        event = asyncio.Event()
        self._waiters.add(event)
        return event

    def unsubscribe(self, event: asyncio.Event) -> None:
        self._waiters.discard(event)

    def notify(self) -> None:
        """唤醒所有等待者"""
        for event in self._waiters:
            event.set()

    @property
    def waiter_count(self) -> int:
        return len(self._waiters)

    @staticmethod
    async def wait(event: asyncio.Event, timeout: float) -> bool:
        """等待信号，超时返回 False"""
        try:
            await asyncio.wait_for(event.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True
