"""FastAPI 应用主文件

app 创建 + lifespan 管理：Store 初始化/关闭 + 分类器/校验器组装 + 租约回收 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from replyqueue.core.classifier import EventClassifier
from replyqueue.core.config import get_raw_log_dir, get_state_db_path, get_tasks_dir
from replyqueue.core.exceptions import StoreUnavailableError
from replyqueue.core.store import StoreGroup, create_store_group
from replyqueue.core.verifier import ConfirmationVerifier

from .config import GatewayConfig, load_gateway_config
from .errors import store_unavailable_handler
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .routes import health, history, tasks, webhook
from .services.lease_reaper import LeaseReaper
from .services.task_signal import TaskSignal

log = structlog.get_logger()


def init_app_state(app: FastAPI, store_group: StoreGroup) -> None:
    """把 StoreGroup 与依赖它的组件挂到 app.state

    lifespan 与测试共用（测试通过 ASGITransport 访问时不会触发 lifespan）。
    """
    config: GatewayConfig = app.state.gateway_config
    app.state.store_group = store_group
    app.state.task_signal = TaskSignal()
    app.state.classifier = EventClassifier(
        store_group.suppression_store,
        apply_pattern=config.apply_pattern,
        own_author_ids=config.own_author_ids,
    )
    app.state.verifier = ConfirmationVerifier(
        store_group.raw_log,
        segments=config.confirm_segments,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 Store，关闭时停止回收循环并清理连接"""
    config: GatewayConfig = app.state.gateway_config

    store_group = await create_store_group(
        get_tasks_dir(),
        get_raw_log_dir(),
        get_state_db_path(),
        suppression_backend=config.suppression_backend,
        scan_limit=config.claim_scan_limit,
        order=config.claim_order,
    )
    init_app_state(app, store_group)
    log.info(
        "stores_initialized",
        tasks_dir=str(store_group.task_store.tasks_dir),
        raw_log_dir=str(store_group.raw_log.log_dir),
        suppression=config.suppression_backend,
    )

    if not config.queue_auth_enabled:
        log.warning("queue_api_unauthenticated", message="REPLYQUEUE_QUEUE_KEY 未设置，队列 API 不鉴权")

    reaper = None
    if config.lease_seconds > 0:
        reaper = LeaseReaper(
            store_group.task_store,
            lease_seconds=config.lease_seconds,
            interval_s=config.reaper_interval_s,
            task_signal=app.state.task_signal,
        )
        reaper.start()
        log.info("lease_reaper_started", lease_seconds=config.lease_seconds)
    app.state.lease_reaper = reaper

    yield

    if reaper is not None:
        await reaper.stop()
    if getattr(app.state, "store_group", None):
        await app.state.store_group.conn.close()


def create_app(config: GatewayConfig | None = None) -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="ReplyQueue Gateway",
        version="0.1.0",
        description="聊天 webhook 接入 + 持久任务队列 API",
        lifespan=lifespan,
    )
    app.state.gateway_config = config or load_gateway_config()

    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(StoreUnavailableError, store_unavailable_handler)

    setup_logging()
    setup_logfire(app)

    app.include_router(webhook.router, tags=["webhook"])
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(history.router, tags=["history"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
