"""ReplyQueue Core Store -- 文件任务队列 + SQLite 侧存储

提供工厂函数创建共享配置的 Store 实例组。
"""

import asyncio
from pathlib import Path

import aiosqlite

from .history_store import SqliteHistoryStore
from .raw_event_log import RawEventLog
from .sqlite_init import init_db
from .suppression_store import MemorySuppressionStore, SqliteSuppressionStore
from .task_store import FileTaskStore


class StoreGroup:
    """Store 实例组 -- 任务目录、原始日志与 SQLite 侧存储"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        task_store: FileTaskStore,
        raw_log: RawEventLog,
        suppression_backend: str = "memory",
    ) -> None:
        self.conn = conn
        self.task_store = task_store
        self.raw_log = raw_log
        # 共用连接上的写事务串行化
        self.write_lock = asyncio.Lock()
        self.history_store = SqliteHistoryStore(conn, write_lock=self.write_lock)
        if suppression_backend == "sqlite":
            self.suppression_store = SqliteSuppressionStore(conn, write_lock=self.write_lock)
        else:
            self.suppression_store = MemorySuppressionStore()


async def create_store_group(
    tasks_dir: str | Path,
    raw_log_dir: str | Path,
    state_db_path: str,
    suppression_backend: str = "memory",
    **task_store_kwargs,
) -> StoreGroup:
    """创建 Store 实例组

    Args:
        tasks_dir: 任务文件目录
        raw_log_dir: 原始事件日志目录
        state_db_path: SQLite 侧存储文件路径
        suppression_backend: "memory"（进程内）或 "sqlite"（持久化）
        **task_store_kwargs: 透传给 FileTaskStore（scan_limit / order）

    Returns:
        StoreGroup 实例

    Raises:
        StoreUnavailableError: 任务目录无法创建
    """
    task_store = FileTaskStore(tasks_dir, **task_store_kwargs)
    task_store.ensure_dir()

    raw_log = RawEventLog(raw_log_dir)
    raw_log.log_dir.mkdir(parents=True, exist_ok=True)

    # 确保数据库目录存在
    Path(state_db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(state_db_path)
    await init_db(conn)

    return StoreGroup(
        conn=conn,
        task_store=task_store,
        raw_log=raw_log,
        suppression_backend=suppression_backend,
    )


__all__ = [
    "StoreGroup",
    "create_store_group",
    "FileTaskStore",
    "RawEventLog",
    "SqliteHistoryStore",
    "MemorySuppressionStore",
    "SqliteSuppressionStore",
    "init_db",
]
