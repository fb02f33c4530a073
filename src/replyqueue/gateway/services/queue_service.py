"""QueueService -- worker 侧队列操作

claim / done / requeue / confirm（doneSafe）的业务封装。
claim 支持可选的长轮询：首次扫描未命中时等待本进程内的新任务信号，
然后重新扫描一次。
"""

import structlog
from replyqueue.core.models import ClaimedTask, ConfirmOutcome
from replyqueue.core.store import StoreGroup
from replyqueue.core.verifier import ConfirmationVerifier

from ..config import GatewayConfig
from .task_signal import TaskSignal

log = structlog.get_logger()


class QueueService:
    """队列业务服务"""

    def __init__(
        self,
        store_group: StoreGroup,
        verifier: ConfirmationVerifier,
        config: GatewayConfig,
        task_signal: TaskSignal | None = None,
    ) -> None:
        self._stores = store_group
        self._verifier = verifier
        self._config = config
        self._signal = task_signal

    async def claim(self, account: str | None = None, wait_s: float = 0) -> ClaimedTask | None:
        """认领一个任务

        Args:
            account: 仅认领该账户的任务
            wait_s: 未命中时最多等待的秒数（受 claim_max_wait_s 限制），0 表示立即返回
        """
        task_store = self._stores.task_store
        wait_s = min(max(wait_s, 0), self._config.claim_max_wait_s)
        if wait_s <= 0 or self._signal is None:
            return await task_store.claim(account)

        # 先订阅再扫描，避免扫描与等待之间的通知丢失
        event = self._signal.subscribe()
        try:
            claimed = await task_store.claim(account)
            if claimed is not None:
                return claimed
            await TaskSignal.wait(event, wait_s)
            return await task_store.claim(account)
        finally:
            self._signal.unsubscribe(event)

    async def done(self, lock_id: str) -> bool:
        return await self._stores.task_store.done(lock_id)

    async def requeue(self, lock_id: str) -> bool:
        requeued = await self._stores.task_store.requeue(lock_id)
        if requeued and self._signal:
            self._signal.notify()
        return requeued

    async def confirm(self, lock_id: str, chat_id: str, author: str) -> ConfirmOutcome:
        return await self._verifier.confirm_and_close(
            self._stores.task_store, lock_id, chat_id, author
        )
