"""配置常量模块 -- 可通过环境变量覆盖

包含任务目录、原始事件日志目录、SQLite 侧存储路径以及队列调优参数。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("REPLYQUEUE_DATA_DIR", "data"))


def get_tasks_dir() -> Path:
    """获取任务文件目录（Task Store）"""
    return Path(
        os.environ.get(
            "REPLYQUEUE_TASKS_DIR",
            str(_get_base_dir() / "tasks"),
        )
    )


def get_raw_log_dir() -> Path:
    """获取原始 webhook 事件日志目录"""
    return Path(
        os.environ.get(
            "REPLYQUEUE_RAW_LOG_DIR",
            str(_get_base_dir() / "raw"),
        )
    )


def get_state_db_path() -> str:
    """获取 SQLite 侧存储路径（聊天历史 + 可选的抑制标记）"""
    return os.environ.get(
        "REPLYQUEUE_STATE_DB_PATH",
        str(_get_base_dir() / "sqlite" / "state.db"),
    )


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except ValueError:
        return default


# claim 单次扫描的候选文件上限
CLAIM_SCAN_LIMIT: int = _int_env("REPLYQUEUE_CLAIM_SCAN_LIMIT", 50)

# claim 扫描顺序：newest（按 mtime 倒序）或 oldest
CLAIM_ORDER: str = os.environ.get("REPLYQUEUE_CLAIM_ORDER", "newest")

# doneSafe 确认时扫描的原始日志分段数
CONFIRM_SEGMENTS: int = _int_env("REPLYQUEUE_CONFIRM_SEGMENTS", 2)

# 每个会话保留的历史消息条数
HISTORY_MAX: int = _int_env("REPLYQUEUE_HISTORY_MAX", 100)

# 历史消息 TTL（秒），默认 3 天
HISTORY_TTL_SEC: int = _int_env("REPLYQUEUE_HISTORY_TTL_SEC", 60 * 60 * 24 * 3)

# claim 租约时长（秒），0 表示不启用租约回收
LEASE_SECONDS: int = _int_env("REPLYQUEUE_LEASE_SECONDS", 0)

# 租约回收循环间隔（秒）
REAPER_INTERVAL_S: int = _int_env("REPLYQUEUE_REAPER_INTERVAL_S", 30)

# claim 长轮询最大等待时间（秒）
CLAIM_MAX_WAIT_S: int = _int_env("REPLYQUEUE_CLAIM_MAX_WAIT_S", 25)

# 任务文件后缀与锁后缀
TASK_FILE_SUFFIX: str = ".json"
LOCK_SUFFIX: str = ".taking"
