"""确认校验器 -- doneSafe 的严格完成路径

只有在最近的原始事件日志中看到预期的出站回复（同一会话、纯文本、
指定作者、时间不早于认领时间）时才删除 claimed 任务。
未找到证据时任务保持 claimed，返回 NOT_CONFIRMED 供调用方稍后重试。
这是启发式检查，不是平台回执。
"""

import asyncio
from datetime import datetime

import structlog

from .config import CONFIRM_SEGMENTS
from .models.enums import ConfirmOutcome
from .models.event import InboundEvent, RawEventRecord
from .store.protocols import TaskStore
from .store.raw_event_log import RawEventLog
from .store.task_store import free_name_for, split_free_name

log = structlog.get_logger()

_TEXT_MESSAGE_TYPE = "text"


class ConfirmationVerifier:
    """基于原始事件日志的完成确认"""

    def __init__(self, raw_log: RawEventLog, segments: int = CONFIRM_SEGMENTS) -> None:
        self._raw_log = raw_log
        self._segments = segments

    def find_evidence(
        self,
        account: str,
        chat_id: str,
        expected_author: str,
        since: datetime,
    ) -> RawEventRecord | None:
        """在最近的日志分段中查找匹配的出站文本消息"""
        for record in self._raw_log.iter_recent(self._segments):
            if record.account != account or record.ts < since:
                continue
            event = InboundEvent.from_webhook(record.account, record.body)
            if event is None:
                continue
            if (
                event.chat_id == chat_id
                and (event.message_type or "").lower() == _TEXT_MESSAGE_TYPE
                and event.author_id == expected_author
            ):
                return record
        return None

    async def confirm_and_close(
        self,
        task_store: TaskStore,
        lock_id: str,
        chat_id: str,
        expected_author: str,
    ) -> ConfirmOutcome:
        """找到证据则完成任务，否则保持 claimed

        Raises:
            InvalidLockError: 锁标识语法不合法
        """
        account, _ = split_free_name(free_name_for(lock_id))
        claimed_at = await task_store.claimed_at(lock_id)
        if claimed_at is None:
            return ConfirmOutcome.NOT_FOUND

        evidence = await asyncio.to_thread(
            self.find_evidence, account, chat_id, expected_author, claimed_at
        )
        if evidence is None:
            log.info(
                "confirm_not_yet",
                lock_id=lock_id,
                chat_id=chat_id,
                author=expected_author,
            )
            return ConfirmOutcome.NOT_CONFIRMED

        if not await task_store.done(lock_id):
            return ConfirmOutcome.NOT_FOUND
        log.info("task_confirmed_done", lock_id=lock_id, evidence_ts=evidence.ts.isoformat())
        return ConfirmOutcome.CLOSED
