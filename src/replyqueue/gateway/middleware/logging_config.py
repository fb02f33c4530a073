"""structlog 配置

REPLYQUEUE_LOG_FORMAT 选择渲染：dev（默认，控制台可读输出）或 json（生产采集，
异常以结构化 traceback 输出，便于检索被吞掉的 webhook 处理错误）。
REPLYQUEUE_LOG_LEVEL 控制级别。请求日志由 LoggingMiddleware 输出，
uvicorn 自带的 access log 降到 WARNING，避免每个请求记两遍。
Logfire APM 由 LOGFIRE_SEND_TO_LOGFIRE 控制，初始化失败时只用本地日志。
"""

import logging
import os

import structlog
from fastapi import FastAPI

# 日志中出现这些字段时只保留掩码
SECRET_FIELDS = frozenset({"key", "secret", "queue_key", "webhook_secret", "signature"})
_MASK = "***"


def redact_secrets(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """把密钥类字段替换为掩码"""
    for field in SECRET_FIELDS.intersection(event_dict):
        if event_dict[field]:
            event_dict[field] = _MASK
    return event_dict


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog 与标准库 logging

    Args:
        log_format: "dev" / "json"，默认读 REPLYQUEUE_LOG_FORMAT
        log_level: 日志级别名，默认读 REPLYQUEUE_LOG_LEVEL
    """
    log_format = log_format or os.environ.get("REPLYQUEUE_LOG_FORMAT", "dev")
    log_level = (log_level or os.environ.get("REPLYQUEUE_LOG_LEVEL", "INFO")).upper()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
        shared_processors.append(structlog.processors.dict_tracebacks)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    # uvicorn 的 handler 交给 root，access log 只留告警
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def setup_logfire(app: FastAPI) -> bool:
    """按 LOGFIRE_SEND_TO_LOGFIRE 启用 Logfire 并接入 app

    Returns:
        True 表示 Logfire 已启用
    """
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower() != "true":
        return False
    try:
        import logfire

        logfire.configure(service_name="replyqueue-gateway")
        logfire.instrument_fastapi(app)
    except Exception as e:
        structlog.get_logger().warning("logfire_init_failed", error=str(e))
        return False
    return True
