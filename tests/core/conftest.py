"""core 测试配置 -- 核心层 fixture"""

from pathlib import Path

import pytest
from replyqueue.core.store.raw_event_log import RawEventLog
from replyqueue.core.store.task_store import FileTaskStore


@pytest.fixture
def task_store(tmp_tasks_dir: Path) -> FileTaskStore:
    """默认配置（newest 优先）的任务存储"""
    return FileTaskStore(tmp_tasks_dir, scan_limit=50, order="newest")


@pytest.fixture
def raw_log(tmp_raw_log_dir: Path) -> RawEventLog:
    return RawEventLog(tmp_raw_log_dir)
