# reviewsync Remote Store Interface
# Contract between the sync core and the authoritative remote collection

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from reviewsync.sync.cancel import CancellationToken
from reviewsync.sync.record import FieldDelta, Record

if TYPE_CHECKING:
    from reviewsync.sync.scope import ScopePredicate


class RemoteStore(Protocol):
    """
    Authoritative remote record collection.

    Implementations raise TransportError for network failures,
    RemoteRejection for validation or conflict failures and Cancelled when
    the token fires before the write completes.
    """

    async def list_since(self, since: datetime) -> Sequence[Record]:
        """
        List records created or modified at or after a timestamp.

        The boundary is inclusive: a record stamped exactly at `since` is returned.
        """
        ...

    async def list_all(self, scope: ScopePredicate | None = None) -> Sequence[Record]:
        """List all records, filtered server-side by the scope where possible."""
        ...

    async def patch(
        self,
        identity: str,
        delta: FieldDelta,
        token: CancellationToken | None = None,
    ) -> Record:
        """Apply a field delta and return the authoritative post-write record."""
        ...

    async def list_table_names(self, table_id: str, name_fields: Sequence[str] = ("Name",)) -> Mapping[str, str]:
        """Map the identities of a linked table to display names."""
        ...
