"""IngestService -- webhook 事件处理流程

1. 原始事件写入 append-only 日志（doneSafe 的证据来源）
2. 标准化为 InboundEvent
3. 非系统消息写入聊天历史侧存储
4. 分类，必要时创建任务并唤醒本进程内的长轮询 claim

日志与历史写入失败只记录，不影响分类；分类/建任务的异常向上抛给路由层，
由路由层吞掉并仍向上游平台返回 200。
"""

from datetime import UTC, datetime
from typing import Any

import structlog
from replyqueue.core.classifier import Classification, EventClassifier
from replyqueue.core.models import HistoryItem, InboundEvent, RawEventRecord, TaskKind
from replyqueue.core.store import StoreGroup

from ..config import GatewayConfig
from .task_signal import TaskSignal

log = structlog.get_logger()


class IngestService:
    """webhook 事件处理服务"""

    def __init__(
        self,
        store_group: StoreGroup,
        classifier: EventClassifier,
        config: GatewayConfig,
        task_signal: TaskSignal | None = None,
    ) -> None:
        self._stores = store_group
        self._classifier = classifier
        self._config = config
        self._signal = task_signal

    async def record_raw(self, account: str, body: Any) -> RawEventRecord | None:
        """写原始事件日志，失败只记录"""
        try:
            return await self._stores.raw_log.append(account, body)
        except OSError as e:
            log.error("raw_log_append_failed", account=account, error=str(e))
            return None

    async def save_history(self, event: InboundEvent, record: RawEventRecord | None) -> None:
        """保存非系统消息到聊天历史，失败只记录"""
        if event.is_system or not event.chat_id:
            return
        item = HistoryItem(
            ts=record.ts if record else datetime.now(UTC),
            chat_id=event.chat_id,
            author_id=event.author_id,
            type=event.message_type,
            text=event.text,
            item_id=event.item_id,
        )
        try:
            await self._stores.history_store.append(event.account, item)
        except Exception as e:
            log.error(
                "history_save_failed",
                account=event.account,
                chat_id=event.chat_id,
                error=str(e),
            )

    async def ingest(self, account: str, body: Any) -> Classification | None:
        """处理一条 webhook 事件

        Returns:
            分类结果；请求体不含事件时返回 None
        """
        record = await self.record_raw(account, body)

        event = InboundEvent.from_webhook(
            account,
            body,
            system_markers=tuple(self._config.system_markers),
        )
        if event is None:
            log.info("webhook_without_event", account=account)
            return None

        await self.save_history(event, record)

        classification = await self._classifier.classify(event)
        if not classification.should_enqueue:
            log.debug(
                "event_ignored",
                account=account,
                chat_id=event.chat_id,
                reason=classification.reason,
            )
            return classification

        is_apply = classification.kind == TaskKind.APPLY
        try:
            await self._stores.task_store.create(
                account=account,
                chat_id=event.chat_id,
                reply_text=self._config.apply_reply_text if is_apply else "",
                message_id=event.message_id,
                item_id=event.item_id,
                kind=classification.kind,
            )
        except Exception:
            # 任务未写入时撤销抑制标记，平台重投可再次创建
            if is_apply:
                await self._classifier.release_apply(account, event.chat_id)
            raise
        if self._signal:
            self._signal.notify()
        return classification

