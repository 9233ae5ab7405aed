"""
WaveLens Network Record Store
==============================

Deduplicated set of discovered networks for one scan session, keyed by
BSSID. Ordering of the output is a presentation concern; the store only
guarantees uniqueness of identities.
"""

from __future__ import annotations

from typing import Iterable, Optional

from wavelens.core.models import NetworkRecord


class NetworkRecordStore:
    """Mapping from network identity to its most recent observation.

    Usage::

        store = NetworkRecordStore()
        store.upsert(record)
        records = store.snapshot()
    """

    def __init__(self) -> None:
        self._records: dict[str, NetworkRecord] = {}
        self._generation = 0

    def clear(self) -> None:
        """Drop every record. Channel metrics derived earlier are stale."""
        self._records.clear()
        self._generation += 1

    def upsert(self, record: NetworkRecord) -> None:
        """Insert *record*, or replace every field of the stored one.

        Last write wins; fields are never merged individually.
        """
        self._records[record.identity] = record

    def upsert_many(self, records: Iterable[NetworkRecord]) -> int:
        """Upsert a batch in arrival order and return its size."""
        count = 0
        for record in records:
            self.upsert(record)
            count += 1
        return count

    def get(self, identity: str) -> Optional[NetworkRecord]:
        return self._records.get(identity.strip().upper())

    def snapshot(self) -> list[NetworkRecord]:
        """Return the current records as a new list.

        Records are immutable, so the copy is safe against later upserts.
        """
        return list(self._records.values())

    @property
    def generation(self) -> int:
        """Incremented by every :meth:`clear`; identifies the scan session."""
        return self._generation

    def __contains__(self, identity: object) -> bool:
        return isinstance(identity, str) and identity.strip().upper() in self._records

    def __len__(self) -> int:
        return len(self._records)
