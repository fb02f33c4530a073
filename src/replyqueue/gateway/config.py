"""GatewayConfig -- Gateway 配置加载

从环境变量加载密钥、分类规则与队列调优参数。
数值类配置无效时记录告警并使用默认值，不阻塞启动。
"""

import os
import re
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr, field_validator
from replyqueue.core.classifier import DEFAULT_APPLY_PATTERN
from replyqueue.core.config import (
    CLAIM_MAX_WAIT_S,
    CLAIM_ORDER,
    CLAIM_SCAN_LIMIT,
    CONFIRM_SEGMENTS,
    LEASE_SECONDS,
    REAPER_INTERVAL_S,
)
from replyqueue.core.models import DEFAULT_SYSTEM_MARKERS, ClaimOrder

log = structlog.get_logger()


class GatewayConfig(BaseModel):
    """Gateway 配置 -- 从环境变量加载

    环境变量:
        REPLYQUEUE_WEBHOOK_SECRET: webhook 共享密钥（X-Webhook-Secret 头或 secret 查询参数）
        REPLYQUEUE_WEBHOOK_HMAC_KEY: webhook 请求体 HMAC-SHA256 密钥（X-Signature 头）
        REPLYQUEUE_QUEUE_KEY: 队列 API 共享 key，为空时队列 API 不鉴权
        REPLYQUEUE_SYSTEM_MARKERS: 系统消息标记，逗号分隔
        REPLYQUEUE_APPLY_PATTERN: apply 事件正则
        REPLYQUEUE_OWN_AUTHOR_IDS: 自己账号的 author_id，逗号分隔
        REPLYQUEUE_APPLY_REPLY_TEXT: apply 任务的建议回复
        REPLYQUEUE_SUPPRESSION_BACKEND: memory / sqlite
    """

    webhook_secret: SecretStr = Field(default=SecretStr(""), description="webhook 共享密钥")
    webhook_hmac_key: SecretStr = Field(default=SecretStr(""), description="webhook HMAC 密钥")
    queue_key: SecretStr = Field(default=SecretStr(""), description="队列 API 共享 key")
    system_markers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SYSTEM_MARKERS),
        description="文本中出现即视为系统消息的标记",
    )
    apply_pattern: str = Field(default=DEFAULT_APPLY_PATTERN, description="apply 事件正则")
    own_author_ids: list[str] = Field(default_factory=list, description="自己账号的 author_id")
    apply_reply_text: str = Field(default="", description="apply 任务的建议回复")
    suppression_backend: Literal["memory", "sqlite"] = Field(
        default="memory",
        description="apply 抑制状态后端：memory（进程内）/ sqlite（持久化）",
    )
    claim_scan_limit: int = Field(default=CLAIM_SCAN_LIMIT, ge=1, description="claim 扫描上限")
    claim_order: ClaimOrder = Field(default=ClaimOrder(CLAIM_ORDER), description="claim 扫描顺序")
    claim_max_wait_s: int = Field(default=CLAIM_MAX_WAIT_S, ge=0, description="claim 长轮询上限（秒）")
    confirm_segments: int = Field(default=CONFIRM_SEGMENTS, ge=1, description="doneSafe 扫描的日志分段数")
    lease_seconds: int = Field(default=LEASE_SECONDS, ge=0, description="认领租约（秒），0 为关闭")
    reaper_interval_s: int = Field(default=REAPER_INTERVAL_S, ge=1, description="租约回收间隔（秒）")

    @field_validator("apply_pattern")
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid apply_pattern: {e}") from e
        return value

    @property
    def queue_auth_enabled(self) -> bool:
        return bool(self.queue_key.get_secret_value())

    @property
    def webhook_auth_enabled(self) -> bool:
        return bool(
            self.webhook_secret.get_secret_value() or self.webhook_hmac_key.get_secret_value()
        )


_INT_ENV_FIELDS: dict[str, str] = {
    "REPLYQUEUE_CLAIM_SCAN_LIMIT": "claim_scan_limit",
    "REPLYQUEUE_CLAIM_MAX_WAIT_S": "claim_max_wait_s",
    "REPLYQUEUE_CONFIRM_SEGMENTS": "confirm_segments",
    "REPLYQUEUE_LEASE_SECONDS": "lease_seconds",
    "REPLYQUEUE_REAPER_INTERVAL_S": "reaper_interval_s",
}


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def load_gateway_config() -> GatewayConfig:
    """从环境变量加载 Gateway 配置

    Returns:
        GatewayConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("REPLYQUEUE_WEBHOOK_SECRET"):
        kwargs["webhook_secret"] = SecretStr(val)

    if val := os.environ.get("REPLYQUEUE_WEBHOOK_HMAC_KEY"):
        kwargs["webhook_hmac_key"] = SecretStr(val)

    if val := os.environ.get("REPLYQUEUE_QUEUE_KEY"):
        kwargs["queue_key"] = SecretStr(val)

    if val := os.environ.get("REPLYQUEUE_SYSTEM_MARKERS"):
        kwargs["system_markers"] = _split_csv(val)

    if val := os.environ.get("REPLYQUEUE_APPLY_PATTERN"):
        try:
            re.compile(val)
            kwargs["apply_pattern"] = val
        except re.error:
            log.warning(
                "invalid_apply_pattern",
                env_var="REPLYQUEUE_APPLY_PATTERN",
                value=val,
            )

    if val := os.environ.get("REPLYQUEUE_OWN_AUTHOR_IDS"):
        kwargs["own_author_ids"] = _split_csv(val)

    if val := os.environ.get("REPLYQUEUE_APPLY_REPLY_TEXT"):
        kwargs["apply_reply_text"] = val

    if val := os.environ.get("REPLYQUEUE_SUPPRESSION_BACKEND"):
        kwargs["suppression_backend"] = val

    if val := os.environ.get("REPLYQUEUE_CLAIM_ORDER"):
        kwargs["claim_order"] = val

    for env_var, field in _INT_ENV_FIELDS.items():
        if val := os.environ.get(env_var):
            try:
                kwargs[field] = int(val)
            except ValueError:
                log.warning(
                    "invalid_int_config",
                    env_var=env_var,
                    value=val,
                    fallback=GatewayConfig.model_fields[field].default,
                )

    return GatewayConfig(**kwargs)
