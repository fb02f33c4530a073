"""Store Protocol 接口定义

定义 TaskStore、SuppressionStore、HistoryStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
文件目录以外的后端（如 KV 存储）只需以条件写/CAS 实现同样的 claim 语义：
恰好一个赢家，失败方不报错。
"""

from datetime import datetime
from typing import Protocol

from ..models.enums import TaskKind
from ..models.event import HistoryItem
from ..models.task import ClaimedTask, Task


class TaskStore(Protocol):
    """任务队列存储接口"""

    async def create(
        self,
        account: str,
        chat_id: str,
        reply_text: str = "",
        message_id: str | None = None,
        item_id: str | None = None,
        kind: TaskKind = TaskKind.MESSAGE,
    ) -> Task:
        """创建 free 状态任务"""
        ...

    async def claim(
        self,
        account: str | None = None,
        scan_limit: int | None = None,
    ) -> ClaimedTask | None:
        """原子认领一个 free 任务，无可用任务返回 None"""
        ...

    async def done(self, lock_id: str) -> bool:
        """完成任务（-> absent），锁不存在返回 False"""
        ...

    async def requeue(self, lock_id: str) -> bool:
        """放回队列（-> free），锁不存在返回 False"""
        ...

    async def claimed_at(self, lock_id: str) -> datetime | None:
        """认领时间，锁不存在返回 None"""
        ...


class SuppressionStore(Protocol):
    """apply 事件一次性抑制状态接口"""

    async def mark_once(self, account: str, chat_id: str) -> bool:
        """原子标记：首次标记返回 True，已存在返回 False"""
        ...

    async def release(self, account: str, chat_id: str) -> None:
        """撤销标记（对应任务未能创建时调用）"""
        ...

    async def contains(self, account: str, chat_id: str) -> bool:
        ...

    async def clear(self) -> None:
        ...


class HistoryStore(Protocol):
    """聊天历史侧存储接口"""

    async def append(self, account: str, item: HistoryItem) -> None:
        ...

    async def list_history(
        self,
        account: str,
        chat_id: str,
        limit: int | None = None,
    ) -> list[HistoryItem]:
        ...

    async def purge_expired(self, now: datetime | None = None) -> int:
        ...
