# reviewsync Local Cache
# In-memory mirror of the records currently in scope

from collections.abc import Iterable, Iterator

from reviewsync.sync.record import Record


class LocalCache:
    """
    In-memory mirror of the working set, keyed by record identity.

    The cache does no filtering of its own: whoever detects that a record
    left scope is responsible for removing it. Records are replaced whole,
    never edited in place.
    """

    def __init__(self, records: Iterable[Record] | None = None):
        self._records: dict[str, Record] = {}
        if records:
            for record in records:
                self.upsert(record)

    def upsert(self, record: Record) -> None:
        """Insert or replace a record by identity."""
        self._records[record.id] = record

    def remove(self, identity: str) -> bool:
        """
        Remove a record by identity.

        Removing an absent identity is a no-op.

        Returns:
            True if a record was removed.
        """
        return self._records.pop(identity, None) is not None

    def get(self, identity: str) -> Record | None:
        """Get the current record for an identity."""
        return self._records.get(identity)

    def has(self, identity: str) -> bool:
        """Check if an identity is in the working set."""
        return identity in self._records

    def snapshot(self) -> list[Record]:
        """Return a point-in-time copy of all records (insertion order, unsorted)."""
        return list(self._records.values())

    def ids(self) -> set[str]:
        """Return a copy of all identities."""
        return set(self._records)

    def replace_all(self, records: Iterable[Record]) -> None:
        """Replace the whole working set (used at bootstrap)."""
        self._records = {record.id: record for record in records}

    def clear(self) -> None:
        """Remove all records."""
        self._records.clear()

    def __contains__(self, identity: object) -> bool:
        return identity in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.snapshot())
