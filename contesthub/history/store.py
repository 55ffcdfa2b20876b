"""
File-based contest history snapshots.

Layout under ``base_dir``::

    history.json                    index of the most recent snapshots
    snapshots/snapshot_<ms>.json    one full snapshot per file

Snapshot files are immutable once written. The index is capped (100 by
default) and rewritten atomically; older snapshot files stay on disk until
the retention sweep removes them.
"""

import asyncio
import json
import os
import re
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import structlog

from contesthub.config.settings import get_settings
from contesthub.ingestion.schemas import Contest

logger = structlog.get_logger(__name__)

SNAPSHOT_ID_PATTERN = re.compile(r"^snapshot_(\d+)$")

INDEX_FILE = "history.json"
SNAPSHOTS_DIR = "snapshots"


class SnapshotNotFoundError(LookupError):
    """No snapshot exists with the requested id."""

    def __init__(self, snapshot_id: str):
        super().__init__(f"Snapshot not found: {snapshot_id}")
        self.snapshot_id = snapshot_id


class InvalidSnapshotIdError(ValueError):
    """Snapshot id does not have the ``snapshot_<digits>`` form."""


def _iso_from_ms(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()


def _parse_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


class SnapshotStore:
    """
    Persist point-in-time copies of the contest list.

    Usage:
        store = SnapshotStore(".contest-cache")
        meta = await store.save_snapshot(contests)
        snapshot = await store.get_snapshot(meta["id"])
    """

    def __init__(
        self,
        base_dir: str | Path | None = None,
        index_limit: int | None = None,
        clock: Callable[[], float] = time.time,
    ):
        settings = get_settings()
        self._base_dir = Path(base_dir or settings.history_dir)
        self._snapshots_dir = self._base_dir / SNAPSHOTS_DIR
        self._index_path = self._base_dir / INDEX_FILE
        self._index_limit = index_limit or settings.history_index_limit
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_ms = 0

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    async def save_snapshot(self, contests: Iterable[Contest]) -> dict[str, Any]:
        """
        Write a snapshot and append it to the index.

        Returns:
            Snapshot metadata ``{id, timestamp, contestCount}``
        """
        contests = list(contests)
        async with self._lock:
            ms = max(int(self._clock() * 1000), self._last_ms + 1)
            self._last_ms = ms
            snapshot = {
                "id": f"snapshot_{ms}",
                "timestamp": _iso_from_ms(ms),
                "contestCount": len(contests),
                "contests": [c.to_dict() for c in contests],
            }
            await asyncio.to_thread(self._write_snapshot, snapshot)

        meta = {k: snapshot[k] for k in ("id", "timestamp", "contestCount")}
        logger.info("Snapshot saved", snapshot_id=meta["id"], contests=len(contests))
        return meta

    async def get_history(self) -> list[dict[str, Any]]:
        """Index entries, oldest first."""
        return await asyncio.to_thread(self._read_index)

    async def get_snapshot(self, snapshot_id: str) -> dict[str, Any]:
        """
        Load one snapshot.

        Raises:
            InvalidSnapshotIdError: If the id is malformed
            SnapshotNotFoundError: If no such snapshot exists
        """
        if not SNAPSHOT_ID_PATTERN.match(snapshot_id or ""):
            raise InvalidSnapshotIdError(f"Invalid snapshot id: {snapshot_id!r}")
        snapshot = await asyncio.to_thread(self._read_snapshot, snapshot_id)
        if snapshot is None:
            raise SnapshotNotFoundError(snapshot_id)
        return snapshot

    async def get_analytics(self, start: datetime, end: datetime) -> dict[str, Any]:
        """
        Summarize indexed snapshots taken within [start, end].

        ``totalContests`` counts unique contest ids; ``platforms`` counts
        appearances across all matching snapshots.
        """
        start = start if start.tzinfo else start.replace(tzinfo=timezone.utc)
        end = end if end.tzinfo else end.replace(tzinfo=timezone.utc)
        period = {"start": start.isoformat(), "end": end.isoformat()}

        history = await self.get_history()
        relevant = [h for h in history if start <= _parse_iso(h["timestamp"]) <= end]

        snapshots = []
        for entry in relevant:
            snapshot = await asyncio.to_thread(self._read_snapshot, entry["id"])
            if snapshot is not None:
                snapshots.append(snapshot)

        if not snapshots:
            return {
                "period": period,
                "snapshots": 0,
                "totalContests": 0,
                "platforms": {},
                "averageContestsPerSnapshot": 0,
            }

        all_contests = [c for s in snapshots for c in s.get("contests", [])]
        unique_ids = {c["id"] for c in all_contests}
        platforms: dict[str, int] = {}
        for contest in all_contests:
            platforms[contest["platform"]] = platforms.get(contest["platform"], 0) + 1

        return {
            "period": period,
            "snapshots": len(snapshots),
            "totalContests": len(unique_ids),
            "platforms": platforms,
            "averageContestsPerSnapshot": round(len(all_contests) / len(snapshots)),
        }

    async def cleanup(self, days_to_keep: int | None = None) -> int:
        """
        Delete snapshots older than ``days_to_keep`` days.

        Returns:
            Number of snapshot files removed
        """
        days = days_to_keep if days_to_keep is not None else get_settings().history_retention_days
        cutoff_ms = int((self._clock() - timedelta(days=days).total_seconds()) * 1000)
        async with self._lock:
            removed = await asyncio.to_thread(self._cleanup_sync, cutoff_ms)
        logger.info("Snapshot cleanup finished", removed=removed, days_to_keep=days)
        return removed

    # Blocking helpers, run via asyncio.to_thread

    def _ensure_dirs(self) -> None:
        self._snapshots_dir.mkdir(parents=True, exist_ok=True)

    def _atomic_write(self, path: Path, data: Any) -> None:
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp, path)

    def _write_snapshot(self, snapshot: dict[str, Any]) -> None:
        self._ensure_dirs()
        self._atomic_write(self._snapshots_dir / f"{snapshot['id']}.json", snapshot)

        history = self._read_index()
        history.append(
            {
                "id": snapshot["id"],
                "timestamp": snapshot["timestamp"],
                "contestCount": snapshot["contestCount"],
            }
        )
        self._atomic_write(self._index_path, history[-self._index_limit :])

    def _read_index(self) -> list[dict[str, Any]]:
        try:
            data = json.loads(self._index_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except json.JSONDecodeError as e:
            logger.warning("History index unreadable, starting fresh", error=str(e))
            return []
        return data if isinstance(data, list) else []

    def _read_snapshot(self, snapshot_id: str) -> dict[str, Any] | None:
        try:
            return json.loads(
                (self._snapshots_dir / f"{snapshot_id}.json").read_text(encoding="utf-8")
            )
        except FileNotFoundError:
            return None

    def _cleanup_sync(self, cutoff_ms: int) -> int:
        removed = 0
        if self._snapshots_dir.is_dir():
            for path in self._snapshots_dir.glob("snapshot_*.json"):
                match = SNAPSHOT_ID_PATTERN.match(path.stem)
                if match and int(match.group(1)) < cutoff_ms:
                    path.unlink(missing_ok=True)
                    removed += 1

        history = self._read_index()
        remaining = [h for h in history if self._snapshot_ms(h.get("id", "")) >= cutoff_ms]
        if len(remaining) != len(history):
            self._ensure_dirs()
            self._atomic_write(self._index_path, remaining)
        return removed

    @staticmethod
    def _snapshot_ms(snapshot_id: str) -> int:
        match = SNAPSHOT_ID_PATTERN.match(snapshot_id)
        return int(match.group(1)) if match else 0
