# reviewsync Save Coordinator
# Per-record single-flight writes with supersession and rollback tracking

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from reviewsync.remote.base import RemoteStore
from reviewsync.sync.cache import LocalCache
from reviewsync.sync.cancel import CancellationToken
from reviewsync.sync.errors import Cancelled, RemoteStoreError
from reviewsync.sync.record import FieldDelta, FieldValue, Record, encode_value
from reviewsync.sync.scope import ScopePredicate

logger = logging.getLogger(__name__)


class OutcomeKind(str, Enum):
    """How a submitted edit ended."""

    APPLIED = "applied"
    SUPERSEDED = "superseded"
    REJECTED = "rejected"


@dataclass
class SaveOutcome:
    """
    Result of a submitted edit.

    A rejected outcome carries the failure and, when known, the last values
    confirmed by the remote store for the edited fields so the caller can
    roll back any optimistic display.
    """

    identity: str
    kind: OutcomeKind
    record: Optional[Record] = None
    error: Optional[RemoteStoreError] = None
    revert_to: Optional[dict[str, Optional[FieldValue]]] = None
    remote_called: bool = True

    @property
    def applied(self) -> bool:
        return self.kind == OutcomeKind.APPLIED

    @property
    def superseded(self) -> bool:
        return self.kind == OutcomeKind.SUPERSEDED

    @property
    def rejected(self) -> bool:
        return self.kind == OutcomeKind.REJECTED

    @property
    def reason(self) -> Optional[str]:
        """Failure detail for rejected outcomes."""
        return str(self.error) if self.error is not None else None

    def revert_values(self) -> dict[str, Any]:
        """Raw (JSON) form of the revert values, empty if none are known."""
        if not self.revert_to:
            return {}
        return {name: encode_value(value) for name, value in self.revert_to.items()}

    def raise_for_error(self) -> None:
        """
        Re-raise the failure of a rejected outcome.

        Raises:
            RemoteStoreError: The rejection or transport failure, if any.
        """
        if self.error is not None:
            raise self.error


@dataclass
class PendingSave:
    """The current in-flight write for one record."""

    identity: str
    delta: dict[str, Optional[FieldValue]]
    token: CancellationToken = field(default_factory=CancellationToken)


class SaveCoordinator:
    """
    Single-flight write path, keyed by record identity.

    A new edit to a record cancels the previous in-flight edit for the same
    record. Edits to different records run independently. Only the newest
    edit for a record ever reaches the cache.
    """

    def __init__(
        self,
        store: RemoteStore,
        cache: LocalCache,
        scope: ScopePredicate,
        *,
        on_change: Callable[[], None] | None = None,
    ):
        """
        Initialize save coordinator.

        Args:
            store: Remote store receiving the writes.
            cache: Local working set updated with confirmed records.
            scope: Predicate used to classify confirmed records.
            on_change: Called after the cache changed.
        """
        self.store = store
        self.cache = cache
        self.scope = scope
        self.on_change = on_change
        self._pending: dict[str, PendingSave] = {}
        self._last_good: dict[str, Record] = {}

    def pending(self, identity: str) -> PendingSave | None:
        """Get the in-flight write for a record, if any."""
        return self._pending.get(identity)

    @property
    def pending_ids(self) -> set[str]:
        return set(self._pending)

    def last_good_value(self, identity: str) -> Record | None:
        """Get the last record confirmed by the remote store for an identity."""
        return self._last_good.get(identity)

    def remember(self, records: Iterable[Record]) -> None:
        """
        Seed confirmed values from server reads.

        Records with a write in flight are skipped.
        """
        for record in records:
            if record.id not in self._pending:
                self._last_good[record.id] = record

    def cancel_all(self) -> None:
        """Supersede every in-flight write (used on shutdown)."""
        for pending in self._pending.values():
            pending.token.cancel()
        self._pending.clear()

    async def submit(self, identity: str, delta: FieldDelta) -> SaveOutcome:
        """
        Write an edit to a record.

        Args:
            identity: Record identity.
            delta: Fields to change; None clears a field.

        Returns:
            SaveOutcome: applied, superseded or rejected.
        """
        delta = dict(delta)
        current = self.cache.get(identity)

        # A delta equal to the cached record never reaches the store, except
        # while an edit of the same record is in flight: the cache still holds
        # the pre-edit value then, and writing it back must supersede that edit
        # or the remote ends up with the value the user just undid.
        if current is not None and identity not in self._pending and current.matches(delta):
            logger.debug("Skipping save of %s: no field changed", identity)
            return SaveOutcome(identity=identity, kind=OutcomeKind.APPLIED, record=current, remote_called=False)

        previous = self._pending.get(identity)
        if previous is not None:
            logger.debug("Superseding in-flight save of %s", identity)
            previous.token.cancel()

        pending = PendingSave(identity=identity, delta=delta)
        self._pending[identity] = pending

        try:
            confirmed = await self.store.patch(identity, delta, pending.token)
        except Cancelled:
            return self._superseded(identity)
        except RemoteStoreError as e:
            if pending.token.cancelled:
                return self._superseded(identity)
            logger.warning("Save of %s failed: %s", identity, e)
            return SaveOutcome(
                identity=identity,
                kind=OutcomeKind.REJECTED,
                error=e,
                revert_to=self._revert_values(identity, delta),
            )
        finally:
            if self._pending.get(identity) is pending:
                del self._pending[identity]

        # The transport may ignore the token; the result is discarded regardless
        if pending.token.cancelled:
            return self._superseded(identity)

        self._apply(confirmed)
        return SaveOutcome(identity=identity, kind=OutcomeKind.APPLIED, record=confirmed)

    def _apply(self, record: Record) -> None:
        """Put a confirmed record into the cache, or drop it if the edit moved it out of scope."""
        if self.scope.in_scope(record):
            self.cache.upsert(record)
        else:
            self.cache.remove(record.id)
            logger.info("Record %s left scope after save", record.id)
        self._last_good[record.id] = record
        if self.on_change is not None:
            self.on_change()

    def _revert_values(self, identity: str, delta: FieldDelta) -> dict[str, Optional[FieldValue]] | None:
        last = self._last_good.get(identity)
        if last is None:
            return None
        return {name: last.get(name) for name in delta}

    def _superseded(self, identity: str) -> SaveOutcome:
        logger.debug("Save of %s superseded", identity)
        return SaveOutcome(identity=identity, kind=OutcomeKind.SUPERSEDED, remote_called=True)
