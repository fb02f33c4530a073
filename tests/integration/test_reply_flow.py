"""端到端回复流程测试

webhook -> 分类建任务 -> worker claim -> 平台回推自己的回复 -> doneSafe 确认关闭。
"""

import asyncio

from httpx import AsyncClient

HOOK = {"X-Webhook-Secret": "hook"}


async def _webhook(client: AsyncClient, account: str, body: dict):
    resp = await client.post(f"/webhook/{account}", json=body, headers=HOOK)
    assert resp.status_code == 200
    return resp


async def _claim(client: AsyncClient, **params) -> dict:
    resp = await client.post("/tasks/claim", params={"key": "qk", **params})
    assert resp.status_code == 200
    return resp.json()


class TestReplyFlow:
    async def test_message_reply_confirmed(self, client: AsyncClient, make_webhook_body):
        await _webhook(client, "shop1", make_webhook_body(chat_id="u-7", text="Is it available?"))

        task = await _claim(client)
        assert task["has"] is True
        assert task["chat_id"] == "u-7"
        lock = task["lockId"]

        done_safe = {"key": "qk", "lock": lock, "chat": "u-7", "author": "900"}
        resp = await client.post("/tasks/doneSafe", params=done_safe)
        assert resp.status_code == 428

        # worker 通过平台发送回复，平台把这条消息也推回 webhook
        await _webhook(
            client,
            "shop1",
            make_webhook_body(chat_id="u-7", text="Yes, it is.", author_id=900, message_id="m-out"),
        )
        # 自己的回复不产生新任务
        assert (await _claim(client)) == {"has": False}

        resp = await client.post("/tasks/doneSafe", params=done_safe)
        assert resp.status_code == 204

        files = (await client.get("/tasks/debug")).json()["files"]
        assert files == []

        history = (await client.get("/history/shop1/u-7")).json()
        assert [h["text"] for h in history["history"]] == ["Yes, it is.", "Is it available?"]

    async def test_apply_flow_single_task(self, client: AsyncClient, make_webhook_body):
        apply_event = make_webhook_body(
            chat_id="u-9",
            text="[System] Candidate applied to your vacancy",
            msg_type="system",
        )
        for _ in range(3):
            await _webhook(client, "shop1", apply_event)

        task = await _claim(client, account="shop1")
        assert task["kind"] == "apply"
        assert task["reply_text"] == "Thank you for your application!"
        assert (await _claim(client)) == {"has": False}

    async def test_worker_crash_requeue(self, client: AsyncClient, make_webhook_body):
        """worker 放弃任务后另一个 worker 可以重新认领"""
        await _webhook(client, "shop1", make_webhook_body(chat_id="u-1"))

        first = await _claim(client)
        resp = await client.post("/tasks/requeue", params={"key": "qk", "lock": first["lockId"]})
        assert resp.status_code == 200

        second = await _claim(client)
        assert second["id"] == first["id"]
        resp = await client.post("/tasks/done", params={"key": "qk", "lock": second["lockId"]})
        assert resp.status_code == 200

    async def test_concurrent_workers_unique_claims(self, client: AsyncClient, make_webhook_body):
        for i in range(5):
            await _webhook(client, "shop1", make_webhook_body(chat_id=f"u-{i}", message_id=f"m{i}"))

        results = await asyncio.gather(*(_claim(client) for _ in range(8)))
        claimed = [r for r in results if r["has"]]

        assert len(claimed) == 5
        assert len({r["lockId"] for r in claimed}) == 5
        assert sum(not r["has"] for r in results) == 3

    async def test_accounts_isolated(self, client: AsyncClient, make_webhook_body):
        await _webhook(client, "shop1", make_webhook_body(chat_id="u-1"))
        await _webhook(client, "shop2", make_webhook_body(chat_id="u-1"))

        assert (await _claim(client, account="shop2"))["account"] == "shop2"
        assert (await _claim(client, account="shop2")) == {"has": False}
        assert (await _claim(client, account="shop1"))["account"] == "shop1"
