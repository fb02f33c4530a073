"""SQLite 侧存储初始化

PRAGMA 配置 + 两张表 DDL + 索引创建。
侧存储只承载聊天历史与可选的持久化抑制标记，任务本身存放在文件目录中。
"""

import aiosqlite

# 聊天历史表 DDL（按会话分组的有上限、带 TTL 的列表）
_CHAT_HISTORY_DDL = """
CREATE TABLE IF NOT EXISTS chat_history (
    seq        INTEGER PRIMARY KEY AUTOINCREMENT,
    account    TEXT NOT NULL,
    chat_id    TEXT NOT NULL,
    ts         TEXT NOT NULL,
    author_id  TEXT,
    type       TEXT,
    text       TEXT NOT NULL DEFAULT '',
    item_id    TEXT
);
"""

_CHAT_HISTORY_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_chat_history_chat ON chat_history(account, chat_id, seq DESC);",
    "CREATE INDEX IF NOT EXISTS idx_chat_history_ts ON chat_history(ts);",
]

# apply 事件一次性抑制标记表 DDL
_SUPPRESSION_DDL = """
CREATE TABLE IF NOT EXISTS apply_suppression (
    account     TEXT NOT NULL,
    chat_id     TEXT NOT NULL,
    created_at  TEXT NOT NULL,

    PRIMARY KEY (account, chat_id)
);
"""


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    await conn.execute(_CHAT_HISTORY_DDL)
    for idx_sql in _CHAT_HISTORY_INDEXES:
        await conn.execute(idx_sql)

    await conn.execute(_SUPPRESSION_DDL)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否启用"""
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
