"""FileTaskStore 文件系统实现

每个任务是目录中的一个 JSON 文件：
- free:    {account}__{id}.json（account 经百分号编码）
- claimed: {account}__{id}.json.taking（锁标识即 claimed 文件名）
- absent:  文件不存在

free -> claimed 的唯一同步原语是一次原子 rename：
并发 claim 同一文件时只有一个 rename 成功，失败方继续扫描下一个候选。
文件内容在创建后不再修改，claim 时仅把 mtime 更新为认领时间（租约起点）。
"""

import asyncio
import os
import time
from datetime import UTC, datetime
from pathlib import Path
from urllib.parse import quote, unquote

import structlog
from pydantic import ValidationError
from ulid import ULID

from ..config import CLAIM_ORDER, CLAIM_SCAN_LIMIT, LOCK_SUFFIX, TASK_FILE_SUFFIX
from ..exceptions import (
    CorruptTaskError,
    InvalidAccountError,
    InvalidLockError,
    StoreUnavailableError,
)
from ..models.enums import ClaimOrder, TaskKind
from ..models.task import ClaimedTask, Task

log = structlog.get_logger()

_NAME_SEP = "__"
_CORRUPT_SUFFIX = ".corrupt"
# 编码后账户名的长度上限，保证完整文件名（含锁/隔离后缀）不超过 255 字节
_MAX_ENCODED_ACCOUNT = 160


def encode_account(account: str) -> str:
    """账户名 -> 文件名安全的可逆编码

    百分号编码全部保留字符，"_" 与 "." 也编码，编码结果不含分隔符 "__"
    且不以 "." 开头。

    Raises:
        InvalidAccountError: 账户名为空或编码后过长
    """
    if not isinstance(account, str) or not account:
        raise InvalidAccountError(str(account))
    encoded = quote(account, safe="").replace("_", "%5F").replace(".", "%2E")
    if len(encoded) > _MAX_ENCODED_ACCOUNT:
        raise InvalidAccountError(account)
    return encoded


def free_name(account: str, task_id: str) -> str:
    """free 状态文件名"""
    return f"{encode_account(account)}{_NAME_SEP}{task_id}{TASK_FILE_SUFFIX}"


def lock_id_for(free: str) -> str:
    """free 文件名 -> 锁标识（纯字符串映射）"""
    return free + LOCK_SUFFIX


def _is_plain_name(name: str) -> bool:
    return (
        bool(name)
        and not name.startswith(".")
        and "/" not in name
        and "\\" not in name
        and "\x00" not in name
    )


def is_free_name(name: str) -> bool:
    return _is_plain_name(name) and name.endswith(TASK_FILE_SUFFIX) and _NAME_SEP in name


def is_lock_id(name: str) -> bool:
    return (
        _is_plain_name(name)
        and name.endswith(LOCK_SUFFIX)
        and is_free_name(name[: -len(LOCK_SUFFIX)])
    )


def free_name_for(lock_id: str) -> str:
    """锁标识 -> free 文件名

    Raises:
        InvalidLockError: 锁标识语法不合法
    """
    if not is_lock_id(lock_id):
        raise InvalidLockError(lock_id)
    return lock_id[: -len(LOCK_SUFFIX)]


def split_free_name(name: str) -> tuple[str, str]:
    """free 文件名 -> (解码后的 account, task_id)"""
    stem = name[: -len(TASK_FILE_SUFFIX)]
    account, _, task_id = stem.rpartition(_NAME_SEP)
    return unquote(account), task_id


def _ns_to_datetime(ns: int) -> datetime:
    return datetime.fromtimestamp(ns / 1_000_000_000, UTC)


class FileTaskStore:
    """基于目录 + 原子 rename 的持久任务队列"""

    def __init__(
        self,
        tasks_dir: str | Path,
        scan_limit: int = CLAIM_SCAN_LIMIT,
        order: ClaimOrder | str = CLAIM_ORDER,
    ) -> None:
        self._dir = Path(tasks_dir)
        self._scan_limit = max(1, scan_limit)
        self._order = ClaimOrder(order)

    @property
    def tasks_dir(self) -> Path:
        return self._dir

    def ensure_dir(self) -> None:
        """创建任务目录

        Raises:
            StoreUnavailableError: 目录无法创建
        """
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreUnavailableError(str(self._dir), e) from e

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    async def create(
        self,
        account: str,
        chat_id: str,
        reply_text: str = "",
        message_id: str | None = None,
        item_id: str | None = None,
        kind: TaskKind = TaskKind.MESSAGE,
    ) -> Task:
        """创建 free 状态任务

        先写临时文件再 rename 到最终文件名，崩溃不会留下半写的任务。

        Raises:
            InvalidAccountError: 账户名不合法
            StoreUnavailableError: 目录无法创建或写入
        """
        encode_account(account)
        task = Task(
            id=str(ULID()),
            account=account,
            chat_id=chat_id,
            reply_text=reply_text or "",
            message_id=message_id,
            item_id=item_id,
            created_at=datetime.now(UTC),
            kind=kind,
        )
        await asyncio.to_thread(self._write_free, task)
        log.info(
            "task_created",
            account=account,
            task_id=task.id,
            chat_id=chat_id,
            kind=task.kind.value,
        )
        return task

    def _write_free(self, task: Task) -> None:
        self.ensure_dir()
        name = free_name(task.account, task.id)
        final_path = self._dir / name
        # 以 "." 开头的临时文件不会被列表/claim 扫描到
        tmp_path = self._dir / f".{name}.{ULID()}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(task.model_dump_json())
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, final_path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StoreUnavailableError(str(final_path), e) from e

    # ------------------------------------------------------------------
    # list / read
    # ------------------------------------------------------------------

    def list_files(self) -> list[str]:
        """列出所有 free 与 claimed 文件名（调试用）"""
        try:
            names = os.listdir(self._dir)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StoreUnavailableError(str(self._dir), e) from e
        return sorted(n for n in names if is_free_name(n) or is_lock_id(n))

    def list_free(self, account: str | None = None) -> list[str]:
        """列出 free 文件名，按 claim 扫描顺序排序

        排序键为 (mtime, 文件名)；newest 时倒序。
        """
        prefix = f"{encode_account(account)}{_NAME_SEP}" if account else ""
        entries: list[tuple[int, str]] = []
        try:
            with os.scandir(self._dir) as it:
                for entry in it:
                    name = entry.name
                    if not is_free_name(name) or not name.startswith(prefix):
                        continue
                    try:
                        mtime_ns = entry.stat().st_mtime_ns
                    except FileNotFoundError:
                        # 扫描期间已被其他 worker 认领
                        continue
                    entries.append((mtime_ns, name))
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StoreUnavailableError(str(self._dir), e) from e

        entries.sort(reverse=self._order == ClaimOrder.NEWEST)
        return [name for _, name in entries]

    def list_claimed(self) -> list[str]:
        return [n for n in self.list_files() if is_lock_id(n)]

    async def read(self, file_name: str) -> Task | None:
        """读取一个 free 或 claimed 任务文件

        Raises:
            InvalidLockError: 文件名既不是 free 名也不是锁标识
            CorruptTaskError: 文件内容无法解析（读取不做隔离，由 claim 负责移走）
        """
        if not (is_free_name(file_name) or is_lock_id(file_name)):
            raise InvalidLockError(file_name)
        try:
            raw = await asyncio.to_thread((self._dir / file_name).read_text, "utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise CorruptTaskError(file_name) from e
        except OSError as e:
            raise StoreUnavailableError(str(self._dir / file_name), e) from e
        try:
            return Task.model_validate_json(raw)
        except ValidationError as e:
            log.warning("task_file_unreadable", file=file_name)
            raise CorruptTaskError(file_name) from e

    async def claimed_at(self, lock_id: str) -> datetime | None:
        """返回认领时间（claimed 文件的 mtime），锁不存在时返回 None"""
        path = self._dir / lock_id_for(free_name_for(lock_id))
        try:
            st = await asyncio.to_thread(os.stat, path)
        except FileNotFoundError:
            return None
        return _ns_to_datetime(st.st_mtime_ns)

    # ------------------------------------------------------------------
    # claim
    # ------------------------------------------------------------------

    async def claim(
        self,
        account: str | None = None,
        scan_limit: int | None = None,
    ) -> ClaimedTask | None:
        """认领一个 free 任务

        扫描窗口内第一个 rename 成功的候选获胜；rename 失败（已被认领）
        不是错误，继续扫描。窗口耗尽返回 None（无可用任务）。

        Args:
            account: 仅认领该账户的任务
            scan_limit: 本次最多尝试的候选数，默认使用构造参数

        Raises:
            StoreUnavailableError: rename 因“已被认领”以外的原因失败
        """
        limit = self._scan_limit if scan_limit is None else max(1, scan_limit)
        return await asyncio.to_thread(self._claim_sync, account, limit)

    def _claim_sync(self, account: str | None, limit: int) -> ClaimedTask | None:
        candidates = self.list_free(account)[:limit]
        for name in candidates:
            lock_id = lock_id_for(name)
            src = self._dir / name
            dst = self._dir / lock_id
            try:
                os.rename(src, dst)
            except FileNotFoundError:
                log.debug("claim_collision", file=name)
                continue
            except OSError as e:
                raise StoreUnavailableError(str(src), e) from e

            now_ns = time.time_ns()
            try:
                os.utime(dst, ns=(now_ns, now_ns))
                raw = dst.read_bytes()
            except FileNotFoundError:
                # 认领后立即被 reaper/done 移走
                log.warning("claimed_file_vanished", lock_id=lock_id)
                continue
            except OSError as e:
                raise StoreUnavailableError(str(dst), e) from e

            try:
                task = Task.model_validate_json(raw)
            except ValidationError:
                self._quarantine(dst)
                continue

            log.info(
                "task_claimed",
                lock_id=lock_id,
                account=task.account,
                task_id=task.id,
            )
            return ClaimedTask(
                task=task,
                lock_id=lock_id,
                claimed_at=_ns_to_datetime(now_ns),
            )
        return None

    def _quarantine(self, path: Path) -> None:
        """移走无法解析的任务文件，避免反复被认领"""
        target = path.with_name(path.name + _CORRUPT_SUFFIX)
        try:
            os.rename(path, target)
        except OSError as e:
            raise StoreUnavailableError(str(path), e) from e
        log.error("task_file_corrupt", file=path.name, moved_to=target.name)

    # ------------------------------------------------------------------
    # done / requeue
    # ------------------------------------------------------------------

    async def done(self, lock_id: str) -> bool:
        """删除 claimed 文件（-> absent）

        Returns:
            True 已删除；False 锁不存在（重复 done 不是错误）

        Raises:
            InvalidLockError: 锁标识语法不合法
        """
        free_name_for(lock_id)
        path = self._dir / lock_id
        try:
            await asyncio.to_thread(os.unlink, path)
        except FileNotFoundError:
            log.info("task_done_missing", lock_id=lock_id)
            return False
        except OSError as e:
            raise StoreUnavailableError(str(path), e) from e
        log.info("task_done", lock_id=lock_id)
        return True

    async def requeue(self, lock_id: str) -> bool:
        """claimed 文件 rename 回 free 名，使其可被再次认领

        Returns:
            True 已放回；False 锁不存在

        Raises:
            InvalidLockError: 锁标识语法不合法
        """
        name = free_name_for(lock_id)
        try:
            await asyncio.to_thread(os.rename, self._dir / lock_id, self._dir / name)
        except FileNotFoundError:
            log.info("task_requeue_missing", lock_id=lock_id)
            return False
        except OSError as e:
            raise StoreUnavailableError(str(self._dir / lock_id), e) from e
        log.info("task_requeued", lock_id=lock_id)
        return True

    # ------------------------------------------------------------------
    # 租约回收
    # ------------------------------------------------------------------

    async def reap_expired(
        self,
        lease_s: float,
        now: datetime | None = None,
    ) -> list[str]:
        """把租约超过 lease_s 秒的 claimed 文件放回 free

        Returns:
            被放回队列的 free 文件名列表
        """
        return await asyncio.to_thread(self._reap_sync, lease_s, now or datetime.now(UTC))

    def _reap_sync(self, lease_s: float, now: datetime) -> list[str]:
        cutoff_ns = int((now.timestamp() - lease_s) * 1_000_000_000)
        requeued: list[str] = []
        for lock_id in self.list_claimed():
            path = self._dir / lock_id
            try:
                if path.stat().st_mtime_ns > cutoff_ns:
                    continue
                os.rename(path, self._dir / free_name_for(lock_id))
            except FileNotFoundError:
                # 与 done/requeue 竞争失败，不是错误
                continue
            except OSError as e:
                raise StoreUnavailableError(str(path), e) from e
            requeued.append(free_name_for(lock_id))
            log.warning("lease_expired_requeued", lock_id=lock_id, lease_s=lease_s)
        return requeued

    def is_writable(self) -> bool:
        return self._dir.is_dir() and os.access(self._dir, os.W_OK)

