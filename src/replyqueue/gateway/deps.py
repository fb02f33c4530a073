"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store 与服务组件

实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request
from replyqueue.core.classifier import EventClassifier
from replyqueue.core.store import StoreGroup
from replyqueue.core.verifier import ConfirmationVerifier

from .config import GatewayConfig
from .services.task_signal import TaskSignal


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_gateway_config(request: Request) -> GatewayConfig:
    return request.app.state.gateway_config


def get_task_signal(request: Request) -> TaskSignal:
    return request.app.state.task_signal


def get_classifier(request: Request) -> EventClassifier:
    return request.app.state.classifier


def get_verifier(request: Request) -> ConfirmationVerifier:
    return request.app.state.verifier
