"""队列 API 路由

GET  /tasks/debug                    列出 free / claimed 文件名
GET  /tasks/read?file=               读取一个任务文件（404 不存在，422 内容损坏）
GET|POST /tasks/claim?key=&account=&wait=   认领任务
POST /tasks/done?key=&lock=          完成任务（400 锁非法，404 不存在）
POST /tasks/requeue?key=&lock=       放回队列（400 / 404）
POST /tasks/doneSafe?key=&lock=&chat=&author=
                                     确认后完成（204；428 尚未确认；422 缺参数）

除 debug/read 外均需 key 与 REPLYQUEUE_QUEUE_KEY 一致，否则 403。
"""

from fastapi import APIRouter, Depends, Query
from replyqueue.core.exceptions import CorruptTaskError, InvalidAccountError, InvalidLockError
from replyqueue.core.models import ConfirmOutcome
from starlette.responses import JSONResponse, Response

from ..config import GatewayConfig
from ..deps import get_gateway_config, get_store_group, get_task_signal, get_verifier
from ..errors import error_response, forbidden
from ..security import check_queue_key
from ..services.queue_service import QueueService

router = APIRouter()


def _invalid_lock(lock: str) -> JSONResponse:
    return error_response(400, "INVALID_LOCK", f"Invalid lock id: {lock!r}")


def _lock_not_found(lock: str) -> JSONResponse:
    return error_response(404, "TASK_NOT_FOUND", f"Lock {lock} does not exist")


@router.get("/tasks/debug")
async def debug_files(store_group=Depends(get_store_group)):
    """列出任务目录中的所有 free / claimed 文件"""
    return {"files": store_group.task_store.list_files()}


@router.get("/tasks/read")
async def read_task_file(
    file: str = Query(default="", description="free 文件名或锁标识"),
    store_group=Depends(get_store_group),
):
    try:
        task = await store_group.task_store.read(file)
    except InvalidLockError:
        return error_response(400, "INVALID_FILE", f"Invalid task file name: {file!r}")
    except CorruptTaskError:
        return error_response(422, "CORRUPT_TASK", f"Task file {file} cannot be parsed")
    if task is None:
        return error_response(404, "TASK_NOT_FOUND", f"Task file {file} does not exist")
    return task.model_dump(mode="json")


@router.api_route("/tasks/claim", methods=["GET", "POST"])
async def claim_task(
    key: str = Query(default=""),
    account: str | None = Query(default=None, description="仅认领该账户的任务"),
    wait: float = Query(default=0, ge=0, description="未命中时长轮询等待秒数"),
    config: GatewayConfig = Depends(get_gateway_config),
    store_group=Depends(get_store_group),
    verifier=Depends(get_verifier),
    task_signal=Depends(get_task_signal),
):
    """认领一个任务；无可用任务返回 {"has": false}"""
    if not check_queue_key(config, key):
        return forbidden()

    service = QueueService(store_group, verifier, config, task_signal)
    try:
        claimed = await service.claim(account or None, wait_s=wait)
    except InvalidAccountError:
        return error_response(400, "INVALID_ACCOUNT", f"Invalid account: {account!r}")

    if claimed is None:
        return {"has": False}
    return {
        "has": True,
        "lockId": claimed.lock_id,
        "claimed_at": claimed.claimed_at.isoformat(),
        **claimed.task.model_dump(mode="json"),
    }


@router.post("/tasks/done")
async def done_task(
    key: str = Query(default=""),
    lock: str = Query(default=""),
    config: GatewayConfig = Depends(get_gateway_config),
    store_group=Depends(get_store_group),
    verifier=Depends(get_verifier),
):
    """完成任务（删除 claimed 文件）"""
    if not check_queue_key(config, key):
        return forbidden()

    service = QueueService(store_group, verifier, config)
    try:
        removed = await service.done(lock)
    except InvalidLockError:
        return _invalid_lock(lock)
    if not removed:
        return _lock_not_found(lock)
    return {"ok": True}


@router.post("/tasks/requeue")
async def requeue_task(
    key: str = Query(default=""),
    lock: str = Query(default=""),
    config: GatewayConfig = Depends(get_gateway_config),
    store_group=Depends(get_store_group),
    verifier=Depends(get_verifier),
    task_signal=Depends(get_task_signal),
):
    """把 claimed 任务放回队列"""
    if not check_queue_key(config, key):
        return forbidden()

    service = QueueService(store_group, verifier, config, task_signal)
    try:
        requeued = await service.requeue(lock)
    except InvalidLockError:
        return _invalid_lock(lock)
    if not requeued:
        return _lock_not_found(lock)
    return {"ok": True}


@router.post("/tasks/doneSafe")
async def done_safe(
    key: str = Query(default=""),
    lock: str = Query(default=""),
    chat: str = Query(default=""),
    author: str = Query(default=""),
    config: GatewayConfig = Depends(get_gateway_config),
    store_group=Depends(get_store_group),
    verifier=Depends(get_verifier),
):
    """在原始事件日志中确认出站回复后才完成任务

    - 204: 已确认并删除
    - 428: 尚未看到回复，任务保持 claimed，调用方稍后重试
    - 422: 缺少 chat 或 author
    """
    if not check_queue_key(config, key):
        return forbidden()
    if not chat or not author:
        return error_response(422, "MISSING_PARAMS", "Both chat and author are required")

    service = QueueService(store_group, verifier, config)
    try:
        outcome = await service.confirm(lock, chat, author)
    except InvalidLockError:
        return _invalid_lock(lock)

    if outcome == ConfirmOutcome.CLOSED:
        return Response(status_code=204)
    if outcome == ConfirmOutcome.NOT_FOUND:
        return _lock_not_found(lock)
    return error_response(428, "NOT_CONFIRMED", "Reply not observed yet, retry later")
