"""统一错误响应

错误体格式：{"error": {"code": ..., "message": ...}}
"""

import structlog
from replyqueue.core.exceptions import StoreUnavailableError
from starlette.requests import Request
from starlette.responses import JSONResponse

log = structlog.get_logger()


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
            }
        },
    )


def forbidden() -> JSONResponse:
    return error_response(403, "FORBIDDEN", "Invalid or missing key")


async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    """存储层故障 -> 500，不在核心内重试"""
    log.error("store_unavailable", path=exc.path, error=str(exc.original_error))
    return error_response(500, "STORE_UNAVAILABLE", "Task store is unavailable")
