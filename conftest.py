"""全局 pytest 配置 -- 临时任务目录 / 原始日志目录 / SQLite 侧存储 fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio


@pytest.fixture
def tmp_tasks_dir(tmp_path: Path) -> Path:
    """提供临时任务目录（不预先创建，由 Store 负责创建）"""
    return tmp_path / "tasks"


@pytest.fixture
def tmp_raw_log_dir(tmp_path: Path) -> Path:
    """提供临时原始事件日志目录"""
    raw_dir = tmp_path / "raw"
    raw_dir.mkdir(parents=True, exist_ok=True)
    return raw_dir


@pytest.fixture
def tmp_state_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 侧存储路径"""
    return tmp_path / "sqlite" / "state.db"


@pytest_asyncio.fixture
async def state_conn(tmp_state_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """提供已初始化的临时 SQLite 连接"""
    from replyqueue.core.store.sqlite_init import init_db

    tmp_state_db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = await aiosqlite.connect(str(tmp_state_db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest.fixture
def make_webhook_body():
    """构造聊天平台 webhook 请求体"""

    def _make(
        chat_id: str | None = "c1",
        text: str = "Hello, is this job still open?",
        msg_type: str = "text",
        author_id: int | str | None = 1001,
        message_id: str = "m-1",
        item_id: int | None = 555,
        created: int = 1_700_000_000,
    ) -> dict:
        value = {
            "id": message_id,
            "type": msg_type,
            "author_id": author_id,
            "item_id": item_id,
            "created": created,
            "content": {"text": text},
        }
        if chat_id is not None:
            value["chat_id"] = chat_id
        return {
            "id": f"evt-{message_id}",
            "version": "v3.0.0",
            "timestamp": created,
            "payload": {"type": "message", "value": value},
        }

    return _make
