"""原始 webhook 事件日志 -- append-only JSON Lines

每个 UTC 自然日一个分段文件 raw-YYYYMMDD.jsonl，每行一条
{"ts", "account", "body"}。日志只作为 doneSafe 确认的只读证据。
"""

import json
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from ..models.event import RawEventRecord

log = structlog.get_logger()

_SEGMENT_PREFIX = "raw-"
_SEGMENT_SUFFIX = ".jsonl"


class RawEventLog:
    """按天分段的原始事件日志"""

    def __init__(self, log_dir: str | Path) -> None:
        self._dir = Path(log_dir)

    @property
    def log_dir(self) -> Path:
        return self._dir

    def segment_path(self, ts: datetime) -> Path:
        return self._dir / f"{_SEGMENT_PREFIX}{ts.astimezone(UTC):%Y%m%d}{_SEGMENT_SUFFIX}"

    async def append(
        self,
        account: str,
        body: Any,
        received_at: datetime | None = None,
    ) -> RawEventRecord:
        """追加一条原始事件

        整行一次 write 写入 O_APPEND 文件，多进程并发追加不会交错。
        """
        record = RawEventRecord(
            ts=received_at or datetime.now(UTC),
            account=account,
            body=body,
        )
        line = json.dumps(record.model_dump(mode="json"), ensure_ascii=False) + "\n"
        path = self.segment_path(record.ts)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "ab", buffering=0) as f:
            f.write(line.encode("utf-8"))
        return record

    def recent_segments(self, n: int) -> list[Path]:
        """最近 n 个分段文件，最新在前"""
        if n <= 0 or not self._dir.is_dir():
            return []
        segments = sorted(
            self._dir.glob(f"{_SEGMENT_PREFIX}*{_SEGMENT_SUFFIX}"),
            key=lambda p: p.name,
            reverse=True,
        )
        return segments[:n]

    def iter_recent(self, n: int) -> Iterator[RawEventRecord]:
        """从最近 n 个分段中按时间倒序产出记录，跳过无法解析的行"""
        for segment in self.recent_segments(n):
            try:
                lines = segment.read_text("utf-8").splitlines()
            except FileNotFoundError:
                continue
            for line in reversed(lines):
                if not line.strip():
                    continue
                try:
                    yield RawEventRecord.model_validate_json(line)
                except ValidationError:
                    log.debug("raw_log_line_skipped", segment=segment.name)
