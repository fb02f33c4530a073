"""gateway 测试配置 -- FastAPI app + httpx AsyncClient fixture

测试通过 ASGITransport 访问 app，不会触发 lifespan，
因此手动创建 StoreGroup 并调用 init_app_state。
"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from replyqueue.core.store import create_store_group
from replyqueue.gateway.config import GatewayConfig

QUEUE_KEY = "test-queue-key"
WEBHOOK_SECRET = "test-webhook-secret"


@pytest.fixture
def gateway_config() -> GatewayConfig:
    """默认测试配置：webhook 与队列 API 均开启鉴权"""
    return GatewayConfig(
        webhook_secret=SecretStr(WEBHOOK_SECRET),
        queue_key=SecretStr(QUEUE_KEY),
        own_author_ids=["42"],
        apply_reply_text="Thanks for applying!",
        claim_max_wait_s=5,
    )


@pytest_asyncio.fixture
async def test_app(tmp_path: Path, gateway_config: GatewayConfig):
    """创建测试用 FastAPI app 实例（手动初始化，绕过 lifespan）"""
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from replyqueue.gateway.main import create_app, init_app_state

    app = create_app(gateway_config)
    store_group = await create_store_group(
        tmp_path / "tasks",
        tmp_path / "raw",
        str(tmp_path / "sqlite" / "state.db"),
        suppression_backend=gateway_config.suppression_backend,
        scan_limit=gateway_config.claim_scan_limit,
        order=gateway_config.claim_order,
    )
    init_app_state(app, store_group)

    yield app

    await store_group.conn.close()
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def store_group(test_app):
    return test_app.state.store_group


@pytest.fixture
def post_webhook(client: AsyncClient):
    """以正确的共享密钥投递 webhook"""

    async def _post(account: str, body: dict, **kwargs):
        headers = {"X-Webhook-Secret": WEBHOOK_SECRET, **kwargs.pop("headers", {})}
        return await client.post(f"/webhook/{account}", json=body, headers=headers, **kwargs)

    return _post
