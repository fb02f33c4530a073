"""可观测性测试 -- request_id 与上下文绑定"""

import pytest
import structlog
from httpx import AsyncClient
from replyqueue.gateway.middleware.logging_config import redact_secrets, setup_logging


class TestObservability:
    async def test_request_id_header(self, client: AsyncClient):
        resp = await client.get("/health")
        request_id = resp.headers.get("X-Request-ID")
        assert request_id is not None
        # ULID 为 26 个字符
        assert len(request_id) == 26

    async def test_request_ids_unique(self, client: AsyncClient):
        ids = {(await client.get("/health")).headers["X-Request-ID"] for _ in range(3)}
        assert len(ids) == 3

    async def test_incoming_request_id_reused(self, client: AsyncClient):
        resp = await client.get("/health", headers={"X-Request-ID": "upstream-123"})
        assert resp.headers["X-Request-ID"] == "upstream-123"

    @pytest.mark.parametrize("incoming", ["", "bad id with spaces", "x" * 65, "id;drop"])
    async def test_invalid_request_id_replaced(self, client: AsyncClient, incoming: str):
        resp = await client.get("/health", headers={"X-Request-ID": incoming})
        request_id = resp.headers["X-Request-ID"]
        assert request_id != incoming
        assert len(request_id) == 26

    async def test_lock_bound_for_queue_requests(self, client: AsyncClient, monkeypatch):
        captured: dict = {}
        original = structlog.contextvars.bind_contextvars

        def _spy(**kwargs):
            captured.update(kwargs)
            return original(**kwargs)

        monkeypatch.setattr(structlog.contextvars, "bind_contextvars", _spy)
        await client.post("/tasks/done", params={"key": "x", "lock": "acc__1.json.taking"})
        assert captured["lock"] == "acc__1.json.taking"
        assert len(captured["request_id"]) == 26

    async def test_account_bound_for_webhook(self, client: AsyncClient, monkeypatch):
        captured: dict = {}
        original = structlog.contextvars.bind_contextvars

        def _spy(**kwargs):
            captured.update(kwargs)
            return original(**kwargs)

        monkeypatch.setattr(structlog.contextvars, "bind_contextvars", _spy)
        await client.post("/webhook/acc-7", json={})
        assert captured["account"] == "acc-7"

    def test_json_log_format(self, monkeypatch, capsys):
        monkeypatch.setenv("REPLYQUEUE_LOG_FORMAT", "json")
        setup_logging()
        structlog.get_logger().info("json_line", answer=42)
        err = capsys.readouterr().err
        assert '"event": "json_line"' in err
        assert '"answer": 42' in err

    def test_secrets_redacted(self):
        event = redact_secrets(None, "info", {"event": "x", "key": "qk", "secret": "", "lock": "l"})
        assert event == {"event": "x", "key": "***", "secret": "", "lock": "l"}

    async def test_claim_account_bound(self, client: AsyncClient, monkeypatch):
        captured: dict = {}
        original = structlog.contextvars.bind_contextvars

        def _spy(**kwargs):
            captured.update(kwargs)
            return original(**kwargs)

        monkeypatch.setattr(structlog.contextvars, "bind_contextvars", _spy)
        await client.get("/tasks/claim", params={"key": "x", "account": "shop1"})
        assert captured["account"] == "shop1"
        assert "key" not in captured
