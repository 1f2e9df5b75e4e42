# reviewsync Reconciliation Loop
# Checkpoint-windowed polling that partitions remote changes into adds and removes

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from reviewsync.remote.base import RemoteStore
from reviewsync.sync.cache import LocalCache
from reviewsync.sync.record import Record
from reviewsync.sync.scope import ScopePredicate
from reviewsync.sync.state import StateManager
from reviewsync.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

# Used when no checkpoint exists yet: fetch everything
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class LoopState(str, Enum):
    """Reconciliation loop states."""

    IDLE = "idle"
    POLLING = "polling"


@dataclass
class PollResult:
    """Result of a single reconciliation tick."""

    started_at: datetime
    skipped: bool = False
    fetched: int = 0
    added: list[Record] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    candidates: list[Record] = field(default_factory=list)
    checkpoint_before: Optional[datetime] = None
    checkpoint_after: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        """Check if the tick ran and completed without a fetch error."""
        return not self.skipped and self.error is None

    @property
    def changed(self) -> bool:
        """Check if the tick changed the working set."""
        return bool(self.added or self.removed)


class ReconciliationLoop:
    """
    Brings the local working set in line with remote changes.

    Each tick fetches everything changed since the checkpoint, removes records
    that left scope and adds records that entered it. With autoload off, new
    records are held as candidates until accepted.
    """

    def __init__(
        self,
        store: RemoteStore,
        cache: LocalCache,
        scope: ScopePredicate,
        state_manager: StateManager,
        *,
        clock: Clock | None = None,
        overlap: timedelta = timedelta(seconds=30),
        on_change: Callable[[], None] | None = None,
        on_candidates: Callable[[list[Record]], None] | None = None,
    ):
        """
        Initialize reconciliation loop.

        Args:
            store: Remote store to poll.
            cache: Local working set to update.
            scope: Predicate deciding membership of the working set.
            state_manager: Persistence for the checkpoint and autoload flag.
            clock: Time source (defaults to system time).
            overlap: How far the checkpoint is regressed after each poll.
            on_change: Called after the cache changed.
            on_candidates: Called with all pending candidates when autoload is off.
        """
        self.store = store
        self.cache = cache
        self.scope = scope
        self.state_manager = state_manager
        self.clock = clock or SystemClock()
        self.overlap = overlap
        self.on_change = on_change
        self.on_candidates = on_candidates
        self._state = LoopState.IDLE
        self._candidates: dict[str, Record] = {}
        self.last_result: PollResult | None = None

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def autoload(self) -> bool:
        """Whether new in-scope records are merged without asking."""
        return self.state_manager.autoload

    @autoload.setter
    def autoload(self, enabled: bool) -> None:
        self.state_manager.set_autoload(enabled)

    @property
    def pending_candidates(self) -> list[Record]:
        """New in-scope records waiting for acceptance and not yet cached."""
        self._drop_cached_candidates()
        return list(self._candidates.values())

    async def tick(self) -> PollResult:
        """
        Run one reconciliation pass.

        Never raises: fetch failures are logged and recorded in the result and
        the state file, leaving the cache and the checkpoint untouched. A state
        file that cannot be written is reported the same way.

        Returns:
            PollResult describing what changed.
        """
        started_at = self.clock.now()

        if self._state == LoopState.POLLING:
            logger.debug("Poll already in progress, skipping tick")
            return PollResult(started_at=started_at, skipped=True)

        self._state = LoopState.POLLING
        try:
            result = await self._poll(started_at)
        finally:
            self._state = LoopState.IDLE

        self.last_result = result
        return result

    async def _poll(self, started_at: datetime) -> PollResult:
        checkpoint = self.state_manager.checkpoint
        result = PollResult(started_at=started_at, checkpoint_before=checkpoint)
        since = checkpoint or EPOCH

        logger.debug("Polling for changes since %s", since.isoformat())
        try:
            updates = await self.store.list_since(since)
        except Exception as e:
            logger.warning("Background poll failed: %s", e)
            result.error = str(e) or type(e).__name__
            result.checkpoint_after = checkpoint
            try:
                self.state_manager.record_poll_error(result.error)
            except OSError as write_error:
                logger.warning("Could not record poll error in %s: %s", self.state_manager.state_path, write_error)
            return result

        result.fetched = len(updates)
        to_add, to_remove = self.partition(updates)

        for record in to_remove:
            self.cache.remove(record.id)
            result.removed.append(record.id)
        if to_remove:
            logger.info("Removed %d record(s) that left scope", len(to_remove))

        self._drop_stale_candidates(updates)
        self._drop_cached_candidates()

        if to_add:
            if self.autoload:
                for record in to_add:
                    self.cache.upsert(record)
                result.added.extend(to_add)
                logger.info("Auto-loaded %d new record(s)", len(to_add))
            else:
                for record in to_add:
                    self._candidates[record.id] = record
                result.candidates.extend(to_add)

        # On a failed write the next poll starts from the old checkpoint and
        # sees these changes again
        try:
            result.checkpoint_after = self.state_manager.advance_checkpoint(
                started_at - self.overlap,
                polled_at=started_at,
            )
        except OSError as e:
            logger.warning("Could not save checkpoint to %s: %s", self.state_manager.state_path, e)
            result.error = f"Could not save checkpoint: {e}"
            result.checkpoint_after = checkpoint

        if result.changed and self.on_change is not None:
            self.on_change()
        if result.candidates and self.on_candidates is not None:
            self.on_candidates(self.pending_candidates)
        return result

    def partition(self, updates: Iterable[Record]) -> tuple[list[Record], list[Record]]:
        """
        Split fetched records into additions and removals.

        Records in scope and already cached, or out of scope and not cached,
        are ignored. When a record appears more than once, the last copy wins.

        Returns:
            Tuple of (to_add, to_remove).
        """
        latest: dict[str, Record] = {}
        for record in updates:
            latest[record.id] = record

        to_add: list[Record] = []
        to_remove: list[Record] = []
        for record in latest.values():
            in_scope = self.scope.in_scope(record)
            cached = self.cache.has(record.id)
            if in_scope and not cached:
                to_add.append(record)
            elif not in_scope and cached:
                to_remove.append(record)
        return to_add, to_remove

    def _drop_stale_candidates(self, updates: Sequence[Record]) -> None:
        for record in updates:
            if record.id in self._candidates and not self.scope.in_scope(record):
                del self._candidates[record.id]

    def _drop_cached_candidates(self) -> None:
        # A save or an earlier manual load may have cached a candidate already
        for identity in [i for i in self._candidates if self.cache.has(i)]:
            del self._candidates[identity]

    def accept_candidates(self, ids: Iterable[str] | None = None) -> list[Record]:
        """
        Merge pending candidates into the working set.

        Args:
            ids: Candidate identities to accept. None accepts all.

        Returns:
            Records that were added.
        """
        wanted = set(self._candidates) if ids is None else set(ids)
        added: list[Record] = []
        for identity in list(self._candidates):
            if identity not in wanted:
                continue
            record = self._candidates.pop(identity)
            if self.cache.has(identity) or not self.scope.in_scope(record):
                continue
            self.cache.upsert(record)
            added.append(record)

        if added:
            logger.info("Loaded %d record(s) on request", len(added))
            if self.on_change is not None:
                self.on_change()
        return added

    def dismiss_candidates(self, ids: Iterable[str] | None = None) -> int:
        """
        Forget pending candidates without loading them.

        Returns:
            Number of candidates dismissed.
        """
        if ids is None:
            count = len(self._candidates)
            self._candidates.clear()
            return count
        count = 0
        for identity in ids:
            if self._candidates.pop(identity, None) is not None:
                count += 1
        return count
