"""事件分类器 -- 决定一条入站事件是否生成任务

规则（按顺序）：
1. 没有 chat_id 的事件永不入队
2. 自己发出的消息（回声）不入队
3. 系统事件：匹配 apply 模式时入队 apply，但每个 (account, chat_id) 只入队一次；
   其余系统消息一律忽略
4. 用户消息：文本非空即入队 message，不做抑制

分类器除抑制状态查询外不做 I/O，持久化交给 TaskStore。
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from .models.enums import OUTCOME_TO_KIND, ClassificationOutcome, TaskKind
from .models.event import InboundEvent
from .store.protocols import SuppressionStore

log = structlog.get_logger()

DEFAULT_APPLY_PATTERN = r"(?i)candidate\s+applied|откликнул(?:ся|ась)"


@dataclass(frozen=True)
class Classification:
    """分类结果"""

    outcome: ClassificationOutcome
    reason: str

    @property
    def kind(self) -> TaskKind | None:
        return OUTCOME_TO_KIND.get(self.outcome)

    @property
    def should_enqueue(self) -> bool:
        return self.outcome != ClassificationOutcome.IGNORE


def _ignore(reason: str) -> Classification:
    return Classification(ClassificationOutcome.IGNORE, reason)


class EventClassifier:
    """入站事件分类器，抑制状态由外部注入"""

    def __init__(
        self,
        suppression: SuppressionStore,
        apply_pattern: str | re.Pattern[str] = DEFAULT_APPLY_PATTERN,
        own_author_ids: Iterable[str] = (),
    ) -> None:
        self._suppression = suppression
        self._apply_re = re.compile(apply_pattern) if isinstance(apply_pattern, str) else apply_pattern
        self._own_author_ids = frozenset(own_author_ids)

    def is_apply_text(self, text: str) -> bool:
        return bool(self._apply_re.search(text or ""))

    async def release_apply(self, account: str, chat_id: str) -> None:
        """撤销会话的 apply 抑制标记（apply 任务未能创建时调用）"""
        await self._suppression.release(account, chat_id)
        log.warning("apply_suppression_released", account=account, chat_id=chat_id)

    async def classify(self, event: InboundEvent) -> Classification:
        if not event.chat_id:
            return _ignore("missing_chat_id")

        if event.author_id is not None and event.author_id in self._own_author_ids:
            return _ignore("own_message")

        if event.is_system:
            if not self.is_apply_text(event.text):
                return _ignore("system_not_actionable")
            if not await self._suppression.mark_once(event.account, event.chat_id):
                log.info(
                    "apply_suppressed",
                    account=event.account,
                    chat_id=event.chat_id,
                )
                return _ignore("apply_suppressed")
            return Classification(ClassificationOutcome.ENQUEUE_APPLY, "apply_first_seen")

        if not event.text.strip():
            return _ignore("empty_text")
        return Classification(ClassificationOutcome.ENQUEUE_MESSAGE, "user_message")
