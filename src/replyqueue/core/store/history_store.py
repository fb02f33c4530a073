"""聊天历史侧存储 SQLite 实现

每个 (account, chat_id) 一个有上限的列表，最新在前；
超过 TTL 的条目读取时忽略，写入时顺带清理。
INSERT、裁剪与清理在同一把 write_lock 下作为一个事务提交。
"""

import asyncio
from datetime import UTC, datetime, timedelta

import aiosqlite

from ..config import HISTORY_MAX, HISTORY_TTL_SEC
from ..models.event import HistoryItem


class SqliteHistoryStore:
    """聊天历史存储"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        history_max: int = HISTORY_MAX,
        ttl_s: int = HISTORY_TTL_SEC,
        write_lock: asyncio.Lock | None = None,
    ) -> None:
        self._conn = conn
        self._lock = write_lock or asyncio.Lock()
        self._max = max(1, history_max)
        self._ttl = timedelta(seconds=ttl_s)

    def _cutoff(self, now: datetime | None = None) -> str:
        return ((now or datetime.now(UTC)) - self._ttl).isoformat()

    async def append(self, account: str, item: HistoryItem) -> None:
        """追加一条消息，并裁剪到上限、清理过期条目"""
        async with self._lock:
            try:
                await self._conn.execute(
                    """
                    INSERT INTO chat_history (account, chat_id, ts, author_id, type, text, item_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        account,
                        item.chat_id,
                        item.ts.isoformat(),
                        item.author_id,
                        item.type,
                        item.text,
                        item.item_id,
                    ),
                )
                # 只保留最新的 history_max 条
                await self._conn.execute(
                    """
                    DELETE FROM chat_history
                    WHERE account = ? AND chat_id = ? AND seq NOT IN (
                        SELECT seq FROM chat_history
                        WHERE account = ? AND chat_id = ?
                        ORDER BY seq DESC LIMIT ?
                    )
                    """,
                    (account, item.chat_id, account, item.chat_id, self._max),
                )
                await self._conn.execute(
                    "DELETE FROM chat_history WHERE account = ? AND chat_id = ? AND ts < ?",
                    (account, item.chat_id, self._cutoff()),
                )
                await self._conn.commit()
            except Exception:
                await self._conn.rollback()
                raise

    async def list_history(
        self,
        account: str,
        chat_id: str,
        limit: int | None = None,
    ) -> list[HistoryItem]:
        """查询会话历史，最新在前"""
        cursor = await self._conn.execute(
            """
            SELECT ts, chat_id, author_id, type, text, item_id FROM chat_history
            WHERE account = ? AND chat_id = ? AND ts >= ?
            ORDER BY seq DESC LIMIT ?
            """,
            (account, chat_id, self._cutoff(), min(limit or self._max, self._max)),
        )
        rows = await cursor.fetchall()
        return [
            HistoryItem(
                ts=datetime.fromisoformat(row[0]),
                chat_id=row[1],
                author_id=row[2],
                type=row[3],
                text=row[4],
                item_id=row[5],
            )
            for row in rows
        ]

    async def purge_expired(self, now: datetime | None = None) -> int:
        """删除所有过期条目，返回删除条数"""
        async with self._lock:
            cursor = await self._conn.execute(
                "DELETE FROM chat_history WHERE ts < ?",
                (self._cutoff(now),),
            )
            await self._conn.commit()
        return cursor.rowcount
