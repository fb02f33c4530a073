"""集成测试共享 fixture"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from replyqueue.core.store import create_store_group
from replyqueue.gateway.config import GatewayConfig


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path):
    """集成测试用 FastAPI app"""
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from replyqueue.gateway.main import create_app, init_app_state

    config = GatewayConfig(
        webhook_secret=SecretStr("hook"),
        queue_key=SecretStr("qk"),
        own_author_ids=["900"],
        apply_reply_text="Thank you for your application!",
    )
    app = create_app(config)

    store_group = await create_store_group(
        tmp_path / "tasks",
        tmp_path / "raw",
        str(tmp_path / "sqlite" / "state.db"),
    )
    init_app_state(app, store_group)

    yield app

    await store_group.conn.close()
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
