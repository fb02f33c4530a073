"""入站请求鉴权

- webhook：共享密钥（X-Webhook-Secret 头或 secret 查询参数）或
  请求体 HMAC-SHA256（X-Signature 头，十六进制，可带 "sha256=" 前缀），
  满足任一已配置的方式即通过；都未配置时不鉴权。
- 队列 API：key 查询参数与 REPLYQUEUE_QUEUE_KEY 比较。
"""

import hashlib
import hmac
from collections.abc import Mapping

from .config import GatewayConfig

_SIGNATURE_PREFIX = "sha256="


def compute_signature(key: str, raw_body: bytes) -> str:
    """计算请求体 HMAC-SHA256 十六进制摘要"""
    return hmac.new(key.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_webhook(
    config: GatewayConfig,
    raw_body: bytes,
    headers: Mapping[str, str],
    query_secret: str | None = None,
) -> bool:
    """校验 webhook 请求"""
    if not config.webhook_auth_enabled:
        return True

    secret = config.webhook_secret.get_secret_value()
    if secret:
        provided = headers.get("x-webhook-secret") or query_secret or ""
        if hmac.compare_digest(provided.encode("utf-8"), secret.encode("utf-8")):
            return True

    hmac_key = config.webhook_hmac_key.get_secret_value()
    if hmac_key:
        signature = (headers.get("x-signature") or "").strip().lower()
        if signature.startswith(_SIGNATURE_PREFIX):
            signature = signature[len(_SIGNATURE_PREFIX):]
        expected = compute_signature(hmac_key, raw_body)
        if signature and hmac.compare_digest(signature, expected):
            return True

    return False


def check_queue_key(config: GatewayConfig, key: str | None) -> bool:
    """校验队列 API key"""
    if not config.queue_auth_enabled:
        return True
    expected = config.queue_key.get_secret_value()
    return hmac.compare_digest((key or "").encode("utf-8"), expected.encode("utf-8"))
