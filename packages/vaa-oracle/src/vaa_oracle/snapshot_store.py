#!/usr/bin/env python3
"""Storage for the latest committed snapshot."""

from .models import Snapshot

EMPTY_SNAPSHOT = "{}"


class SnapshotStore:
    """Holds exactly one Snapshot; each commit replaces it wholesale."""

    def __init__(self) -> None:
        self._snapshot = Snapshot(payload=EMPTY_SNAPSHOT, committed_at=0, commit_count=0)

    def commit(self, payload: str, timestamp: int) -> Snapshot:
        """Replace the snapshot and bump the commit counter by one.

        Args:
            payload: JSON object text to store
            timestamp: Commit time in milliseconds since the Unix epoch

        Returns:
            The newly committed Snapshot
        """
        self._snapshot = Snapshot(
            payload=payload,
            committed_at=timestamp,
            commit_count=self._snapshot.commit_count + 1
        )
        return self._snapshot

    def read(self) -> Snapshot:
        return self._snapshot
