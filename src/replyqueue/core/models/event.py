"""入站事件模型

InboundEvent 是 webhook 请求体的标准化视图；
RawEventRecord 是原始事件日志中的一行。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_SYSTEM_MARKERS: tuple[str, ...] = ("[System]", "Системное сообщение")


def _opt_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


class InboundEvent(BaseModel):
    """标准化后的入站聊天事件"""

    account: str
    chat_id: str | None = None
    message_id: str | None = None
    item_id: str | None = None
    author_id: str | None = None
    message_type: str | None = Field(default=None, description="平台消息类型，如 text/system")
    text: str = ""
    is_system: bool = False
    created: float | None = Field(default=None, description="平台侧时间戳（秒）")

    @classmethod
    def from_webhook(
        cls,
        account: str,
        body: Any,
        system_markers: tuple[str, ...] = DEFAULT_SYSTEM_MARKERS,
    ) -> "InboundEvent | None":
        """从 webhook 请求体提取 payload.value

        Returns:
            InboundEvent，如果请求体不含 payload.value 则返回 None
        """
        if not isinstance(body, dict):
            return None
        payload = body.get("payload")
        if not isinstance(payload, dict):
            return None
        value = payload.get("value")
        if not isinstance(value, dict):
            return None

        content = value.get("content")
        text = ""
        if isinstance(content, dict) and content.get("text") is not None:
            text = str(content["text"])

        message_type = _opt_str(value.get("type"))
        is_system = (message_type or "").lower() == "system" or any(
            marker and marker in text for marker in system_markers
        )

        created = value.get("created")
        if not isinstance(created, (int, float)) or isinstance(created, bool):
            created = None

        return cls(
            account=account,
            chat_id=_opt_str(value.get("chat_id")),
            message_id=_opt_str(value.get("id")),
            item_id=_opt_str(value.get("item_id")),
            author_id=_opt_str(value.get("author_id")),
            message_type=message_type,
            text=text,
            is_system=is_system,
            created=created,
        )


class RawEventRecord(BaseModel):
    """原始事件日志记录（append-only）"""

    ts: datetime = Field(description="服务端接收时间")
    account: str
    body: Any = None


class HistoryItem(BaseModel):
    """聊天历史条目"""

    ts: datetime
    chat_id: str
    author_id: str | None = None
    type: str | None = None
    text: str = ""
    item_id: str | None = None
