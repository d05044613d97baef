"""Merge pages into one aggregate array, dropping records already seen."""

from __future__ import annotations

IDENTITY_KEY = "_id"


def entry_count(value: object) -> int:
    """Entries shown in progress output: list length, 1 for a non-empty object, else 0."""
    if isinstance(value, list):
        return len(value)
    if isinstance(value, dict):
        return 1 if value else 0
    return 0


def record_identity(record: object) -> str | None:
    if isinstance(record, dict):
        identity = record.get(IDENTITY_KEY)
        if isinstance(identity, str):
            return identity
    return None


class Accumulator:
    """Aggregate records and the identities seen so far for one run."""

    def __init__(self, min_count: int | None = None):
        self.min_count = min_count
        self.records: list = []
        self.seen_ids: set[str] = set()

    def __len__(self) -> int:
        return len(self.records)

    @property
    def min_satisfied(self) -> bool:
        return self.min_count is not None and len(self.records) >= self.min_count

    def add_cursor_page(self, records: list) -> bool:
        """Add a cursor page; return whether it introduced any new identity.

        Records without a string ``_id`` are always kept. A record whose
        identity was already seen (on an earlier page or earlier on this
        one) is dropped.
        """
        seen_before = len(self.seen_ids)
        for record in records:
            identity = record_identity(record)
            if identity is None:
                self.records.append(record)
                continue
            if identity not in self.seen_ids:
                self.records.append(record)
                self.seen_ids.add(identity)
        return len(self.seen_ids) > seen_before

    def add_window(self, records: list) -> bool:
        """Add an offset page; return whether the aggregate grew."""
        before = len(self.records)
        self.records.extend(records)
        return len(self.records) > before
