"""CLI 入口模块 -- python -m replyqueue.core <command>

支持的命令：
  list                   列出 free / claimed 任务文件
  reap <lease_seconds>   把认领超过 lease_seconds 秒的任务放回队列
  purge-history          清理过期的聊天历史
"""

import asyncio
import sys

from .config import get_raw_log_dir, get_state_db_path, get_tasks_dir

USAGE = """用法: python -m replyqueue.core <command>
命令:
  list                   列出 free / claimed 任务文件
  reap <lease_seconds>   把认领超过 lease_seconds 秒的任务放回队列
  purge-history          清理过期的聊天历史"""


def main(argv: list[str] | None = None) -> int:
    """CLI 主入口"""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(USAGE)
        return 1

    command = args[0]

    if command == "list":
        list_tasks()
        return 0
    if command == "reap":
        if len(args) < 2:
            print("reap 需要参数 <lease_seconds>")
            return 1
        try:
            lease_s = float(args[1])
        except ValueError:
            print(f"无效的 lease_seconds: {args[1]}")
            return 1
        asyncio.run(reap(lease_s))
        return 0
    if command == "purge-history":
        asyncio.run(purge_history())
        return 0

    print(f"未知命令: {command}")
    print("可用命令: list, reap, purge-history")
    return 1


def list_tasks() -> None:
    """打印任务目录中的 free 与 claimed 文件"""
    from .store.task_store import FileTaskStore, is_lock_id

    store = FileTaskStore(get_tasks_dir())
    names = store.list_files()
    print(f"任务目录: {store.tasks_dir}")
    for name in names:
        state = "claimed" if is_lock_id(name) else "free"
        print(f"{state:8} {name}")
    print(f"共 {len(names)} 个文件")


async def reap(lease_s: float) -> None:
    """执行一次租约回收"""
    from .store.task_store import FileTaskStore

    store = FileTaskStore(get_tasks_dir())
    requeued = await store.reap_expired(lease_s)
    for name in requeued:
        print(f"requeued {name}")
    print(f"回收完成，放回 {len(requeued)} 个任务")


async def purge_history() -> None:
    """清理过期聊天历史"""
    from .store import create_store_group

    store_group = await create_store_group(
        get_tasks_dir(),
        get_raw_log_dir(),
        get_state_db_path(),
    )
    try:
        removed = await store_group.history_store.purge_expired()
        print(f"清理完成，删除 {removed} 条历史")
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    sys.exit(main())
