"""请求上下文中间件

每个请求绑定一组 structlog contextvars：
- request_id: 沿用上游传入的 X-Request-ID（格式合法时），否则生成 ULID
- account: /webhook/{account} 的账户名
- lock: /tasks/* 的 lock 查询参数，使同一任务生命周期内的日志可以按锁标识串联

请求结束记录状态码与耗时；key / secret 查询参数不进入日志。
"""

import re
import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

REQUEST_ID_HEADER = "X-Request-ID"

_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def resolve_request_id(incoming: str | None) -> str:
    """合法的上游 request id 原样沿用，否则生成新的 ULID"""
    if incoming and _REQUEST_ID_RE.match(incoming):
        return incoming
    return str(ULID())


def request_context(request: Request) -> dict[str, str]:
    """从路径与查询参数提取与任务相关的日志上下文"""
    parts = [p for p in request.url.path.split("/") if p]
    context: dict[str, str] = {}
    if len(parts) == 2 and parts[0] == "webhook":
        context["account"] = parts[1]
    if parts and parts[0] == "tasks":
        if lock := request.query_params.get("lock"):
            context["lock"] = lock
        if account := request.query_params.get("account"):
            context["account"] = account
    return context


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            **request_context(request),
        )

        log = structlog.get_logger()
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log.exception(
                "request_failed",
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            raise

        await log.ainfo(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
