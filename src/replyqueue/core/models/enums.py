"""枚举定义

包含 TaskKind 任务类型、ClassificationOutcome 分类结果、
ConfirmOutcome 确认结果以及 ClaimOrder 扫描顺序。
"""

from enum import StrEnum


class TaskKind(StrEnum):
    """任务类型"""

    APPLY = "apply"
    MESSAGE = "message"


class ClassificationOutcome(StrEnum):
    """事件分类结果"""

    IGNORE = "ignore"
    ENQUEUE_APPLY = "enqueue_apply"
    ENQUEUE_MESSAGE = "enqueue_message"


class ConfirmOutcome(StrEnum):
    """doneSafe 确认结果

    NOT_CONFIRMED 是可重试的预期情况，不是错误。
    """

    CLOSED = "closed"
    NOT_CONFIRMED = "not_confirmed"
    NOT_FOUND = "not_found"


class ClaimOrder(StrEnum):
    """claim 扫描顺序"""

    NEWEST = "newest"
    OLDEST = "oldest"


OUTCOME_TO_KIND: dict[ClassificationOutcome, TaskKind] = {
    ClassificationOutcome.ENQUEUE_APPLY: TaskKind.APPLY,
    ClassificationOutcome.ENQUEUE_MESSAGE: TaskKind.MESSAGE,
}
