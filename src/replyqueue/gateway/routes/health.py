"""健康检查路由

GET /: 服务说明。
GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含任务目录可写、原始日志目录、SQLite 侧存储、磁盘空间。
"""

import shutil

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/")
async def index(request: Request):
    """服务说明"""
    config = request.app.state.gateway_config
    return {
        "ok": True,
        "suppression": config.suppression_backend,
        "note": "POST /webhook/{account} to receive chat webhooks",
    }


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. tasks_dir: 任务目录存在且可写
    2. raw_log_dir: 原始日志目录存在
    3. sqlite: 侧存储连通性
    4. disk_space_mb: 任务目录所在磁盘剩余空间
    """
    checks = {}
    all_ok = True
    store_group = request.app.state.store_group

    # 1. 任务目录
    try:
        if store_group.task_store.is_writable():
            checks["tasks_dir"] = "ok"
        else:
            checks["tasks_dir"] = "error: directory missing or not writable"
            all_ok = False
    except Exception as e:
        checks["tasks_dir"] = f"error: {str(e)}"
        all_ok = False

    # 2. 原始日志目录
    if store_group.raw_log.log_dir.is_dir():
        checks["raw_log_dir"] = "ok"
    else:
        checks["raw_log_dir"] = "error: directory does not exist"
        all_ok = False

    # 3. SQLite 连通性
    try:
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        log.warning("ready_sqlite_error", error=str(e))
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    # 4. 磁盘空间
    try:
        disk_usage = shutil.disk_usage(store_group.task_store.tasks_dir)
        checks["disk_space_mb"] = disk_usage.free // (1024 * 1024)
    except OSError:
        checks["disk_space_mb"] = 0
        all_ok = False

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "checks": checks,
        },
    )
