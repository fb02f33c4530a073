"""webhook 接收路由

POST /webhook/{account}: 接收聊天平台事件。
- 403: 鉴权失败
- 200: 其余所有情况（包括分类/建任务内部错误），避免上游平台重试风暴
"""

import json

import structlog
from fastapi import APIRouter, Depends, Query, Request

from ..config import GatewayConfig
from ..deps import (
    get_classifier,
    get_gateway_config,
    get_store_group,
    get_task_signal,
)
from ..errors import forbidden
from ..security import verify_webhook
from ..services.ingest_service import IngestService

log = structlog.get_logger()

router = APIRouter()


def _decode_body(raw_body: bytes):
    """解析 JSON 请求体，无法解析时保留原始文本"""
    if not raw_body:
        return None
    text = raw_body.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


@router.post("/webhook/{account}")
async def receive_webhook(
    account: str,
    request: Request,
    secret: str | None = Query(default=None, description="共享密钥（无法设置请求头时使用）"),
    config: GatewayConfig = Depends(get_gateway_config),
    store_group=Depends(get_store_group),
    classifier=Depends(get_classifier),
    task_signal=Depends(get_task_signal),
):
    """接收 webhook 事件，鉴权通过后永远返回 200"""
    raw_body = await request.body()
    if not verify_webhook(config, raw_body, request.headers, query_secret=secret):
        log.warning("webhook_auth_failed", account=account)
        return forbidden()

    service = IngestService(store_group, classifier, config, task_signal)
    try:
        classification = await service.ingest(account, _decode_body(raw_body))
    except Exception:
        log.exception("webhook_classification_failed", account=account)
        return {"ok": True}

    if classification is not None:
        log.info(
            "webhook_classified",
            account=account,
            outcome=classification.outcome.value,
            reason=classification.reason,
        )
    return {"ok": True}
