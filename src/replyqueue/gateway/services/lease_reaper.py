"""LeaseReaper -- 认领租约回收后台任务

周期性把认领时间超过 lease_seconds 的 claimed 任务放回队列，
弥补 worker 崩溃后任务永久处于 claimed 的问题。lease_seconds 为 0 时不启动。
"""

import asyncio

import structlog
from replyqueue.core.store.task_store import FileTaskStore

from .task_signal import TaskSignal

log = structlog.get_logger()


class LeaseReaper:
    """租约回收循环"""

    def __init__(
        self,
        task_store: FileTaskStore,
        lease_seconds: float,
        interval_s: float,
        task_signal: TaskSignal | None = None,
    ) -> None:
        self._task_store = task_store
        self._lease_seconds = lease_seconds
        self._interval_s = interval_s
        self._signal = task_signal
        self._task: asyncio.Task | None = None

    async def run_once(self) -> list[str]:
        """执行一次回收"""
        requeued = await self._task_store.reap_expired(self._lease_seconds)
        if requeued:
            log.info("lease_reaper_requeued", count=len(requeued))
            if self._signal:
                self._signal.notify()
        return requeued

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception as e:
                # 单次回收失败不终止循环，下个周期重试
                log.error("lease_reaper_failed", error=str(e))
            await asyncio.sleep(self._interval_s)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
