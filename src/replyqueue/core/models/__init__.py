"""ReplyQueue Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    OUTCOME_TO_KIND,
    ClaimOrder,
    ClassificationOutcome,
    ConfirmOutcome,
    TaskKind,
)
from .event import DEFAULT_SYSTEM_MARKERS, HistoryItem, InboundEvent, RawEventRecord
from .task import ClaimedTask, Task

__all__ = [
    # 枚举
    "TaskKind",
    "ClassificationOutcome",
    "ConfirmOutcome",
    "ClaimOrder",
    "OUTCOME_TO_KIND",
    # Task
    "Task",
    "ClaimedTask",
    # Event
    "InboundEvent",
    "RawEventRecord",
    "HistoryItem",
    "DEFAULT_SYSTEM_MARKERS",
]
