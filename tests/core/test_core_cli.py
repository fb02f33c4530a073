"""core CLI 测试 -- list / reap / purge-history"""

import asyncio
import os
from datetime import UTC, datetime, timedelta

import pytest
from replyqueue.core.__main__ import main
from replyqueue.core.models import HistoryItem
from replyqueue.core.store import create_store_group
from replyqueue.core.store.task_store import FileTaskStore


@pytest.fixture
def cli_env(monkeypatch, tmp_tasks_dir, tmp_raw_log_dir, tmp_state_db_path):
    monkeypatch.setenv("REPLYQUEUE_TASKS_DIR", str(tmp_tasks_dir))
    monkeypatch.setenv("REPLYQUEUE_RAW_LOG_DIR", str(tmp_raw_log_dir))
    monkeypatch.setenv("REPLYQUEUE_STATE_DB_PATH", str(tmp_state_db_path))
    return FileTaskStore(tmp_tasks_dir)


def test_no_command_prints_usage(capsys):
    assert main([]) == 1
    assert "用法" in capsys.readouterr().out


def test_unknown_command(capsys):
    assert main(["bogus"]) == 1
    assert "未知命令" in capsys.readouterr().out


async def test_list(cli_env, capsys):
    await cli_env.create("acc", "c1")
    await cli_env.create("acc", "c2")
    claimed = await cli_env.claim()

    assert main(["list"]) == 0
    out = capsys.readouterr().out
    assert f"claimed  {claimed.lock_id}" in out
    assert "共 2 个文件" in out


def test_reap_requires_argument(capsys):
    assert main(["reap"]) == 1
    assert main(["reap", "soon"]) == 1


def test_reap_requeues_stale_claims(cli_env, capsys):
    async def _setup():
        await cli_env.create("acc", "c1")
        return await cli_env.claim()

    claimed = asyncio.run(_setup())
    old = (datetime.now(UTC) - timedelta(hours=1)).timestamp()
    os.utime(cli_env.tasks_dir / claimed.lock_id, (old, old))

    assert main(["reap", "60"]) == 0
    assert "放回 1 个任务" in capsys.readouterr().out
    assert cli_env.list_claimed() == []
    assert len(cli_env.list_free()) == 1


def test_purge_history(cli_env, capsys, tmp_tasks_dir, tmp_raw_log_dir, tmp_state_db_path):
    async def _seed():
        group = await create_store_group(tmp_tasks_dir, tmp_raw_log_dir, str(tmp_state_db_path))
        try:
            await group.history_store.append(
                "acc",
                HistoryItem(ts=datetime.now(UTC), chat_id="c1", text="hi"),
            )
        finally:
            await group.conn.close()

    asyncio.run(_seed())

    assert main(["purge-history"]) == 0
    assert "删除 0 条历史" in capsys.readouterr().out
