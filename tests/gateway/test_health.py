"""健康检查测试

测试内容：
1. GET / 返回服务说明
2. GET /health 返回 200 + ok
3. GET /ready 正常时返回 200 + checks 结构
4. GET /ready 任务目录或 SQLite 不可用时返回 503
"""

import shutil

from httpx import AsyncClient


class TestHealthCheck:
    async def test_index(self, client: AsyncClient):
        resp = await client.get("/")
        assert resp.status_code == 200
        data = resp.json()
        assert data["ok"] is True
        assert data["suppression"] == "memory"
        assert "/webhook/" in data["note"]

    async def test_health_returns_200(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    async def test_ready_returns_200(self, client: AsyncClient):
        resp = await client.get("/ready")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ready"
        checks = data["checks"]
        assert checks["tasks_dir"] == "ok"
        assert checks["raw_log_dir"] == "ok"
        assert checks["sqlite"] == "ok"
        assert isinstance(checks["disk_space_mb"], int)

    async def test_ready_tasks_dir_missing(self, client: AsyncClient, store_group):
        shutil.rmtree(store_group.task_store.tasks_dir)

        resp = await client.get("/ready")
        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "not_ready"
        assert data["checks"]["tasks_dir"].startswith("error")

    async def test_ready_sqlite_failure(self, test_app, client: AsyncClient):
        original = test_app.state.store_group.conn

        class _BrokenConn:
            async def execute(self, *args, **kwargs):
                raise RuntimeError("database is locked")

        test_app.state.store_group.conn = _BrokenConn()
        try:
            resp = await client.get("/ready")
        finally:
            test_app.state.store_group.conn = original

        assert resp.status_code == 503
        assert "database is locked" in resp.json()["checks"]["sqlite"]
