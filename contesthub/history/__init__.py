"""Persisted contest history snapshots."""

from contesthub.history.store import (
    InvalidSnapshotIdError,
    SnapshotNotFoundError,
    SnapshotStore,
)

__all__ = ["InvalidSnapshotIdError", "SnapshotNotFoundError", "SnapshotStore"]
