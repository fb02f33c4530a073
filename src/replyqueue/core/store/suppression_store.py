"""apply 事件一次性抑制状态

“某会话已创建过 apply 任务”这一事实的两种实现：
- MemorySuppressionStore: 进程内集合，进程重启后清空（默认）
- SqliteSuppressionStore: 持久化到 SQLite 侧存储，重启后仍生效

mark_once 在建任务之前占位；建任务失败时调用方必须 release，
否则该会话的 apply 事件会被永久抑制。
"""

import asyncio
from datetime import UTC, datetime

import aiosqlite


class MemorySuppressionStore:
    """进程内抑制集合

    mark_once 内部没有 await，在单个事件循环中天然原子。
    """

    def __init__(self) -> None:
        self._seen: set[tuple[str, str]] = set()

    async def mark_once(self, account: str, chat_id: str) -> bool:
        key = (account, chat_id)
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    async def release(self, account: str, chat_id: str) -> None:
        self._seen.discard((account, chat_id))

    async def contains(self, account: str, chat_id: str) -> bool:
        return (account, chat_id) in self._seen

    async def clear(self) -> None:
        self._seen.clear()


class SqliteSuppressionStore:
    """SQLite 持久化抑制集合 -- INSERT OR IGNORE 保证只有首次标记成功

    与历史存储共用连接时传入同一把 write_lock，避免 commit 穿插到对方的事务中。
    """

    def __init__(
        self,
        conn: aiosqlite.Connection,
        write_lock: asyncio.Lock | None = None,
    ) -> None:
        self._conn = conn
        self._lock = write_lock or asyncio.Lock()

    async def mark_once(self, account: str, chat_id: str) -> bool:
        async with self._lock:
            cursor = await self._conn.execute(
                """
                INSERT OR IGNORE INTO apply_suppression (account, chat_id, created_at)
                VALUES (?, ?, ?)
                """,
                (account, chat_id, datetime.now(UTC).isoformat()),
            )
            await self._conn.commit()
        return cursor.rowcount == 1

    async def release(self, account: str, chat_id: str) -> None:
        async with self._lock:
            await self._conn.execute(
                "DELETE FROM apply_suppression WHERE account = ? AND chat_id = ?",
                (account, chat_id),
            )
            await self._conn.commit()

    async def contains(self, account: str, chat_id: str) -> bool:
        cursor = await self._conn.execute(
            "SELECT 1 FROM apply_suppression WHERE account = ? AND chat_id = ?",
            (account, chat_id),
        )
        return await cursor.fetchone() is not None

    async def clear(self) -> None:
        async with self._lock:
            await self._conn.execute("DELETE FROM apply_suppression")
            await self._conn.commit()
