# reviewsync Sync Controller
# Wires cache, reconciliation and saves together behind a stable API

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import timedelta
from pathlib import Path
from typing import Any, Protocol

from reviewsync.remote.base import RemoteStore
from reviewsync.remote.upload import Uploader, upload_attachments
from reviewsync.sync.cache import LocalCache
from reviewsync.sync.errors import RemoteStoreError
from reviewsync.sync.names import LinkedNames, LinkedTable
from reviewsync.sync.reconcile import PollResult, ReconciliationLoop
from reviewsync.sync.record import AttachmentValue, FieldValue, Record, coerce_delta
from reviewsync.sync.save import SaveCoordinator, SaveOutcome
from reviewsync.sync.scheduler import PeriodicTask
from reviewsync.sync.scope import ScopePredicate
from reviewsync.sync.state import StateManager
from reviewsync.sync.view import select_records
from reviewsync.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    """Consumer of working set changes (a UI, a console, a test double)."""

    def on_snapshot_changed(self, records: Sequence[Record]) -> None:
        ...

    def on_candidates(self, records: Sequence[Record]) -> None:
        ...


class SyncController:
    """
    Owns the working set and its lifecycle.

    Bootstraps the cache from a full fetch, runs the reconciliation loop on
    a timer and routes edits through the save coordinator. All dependencies
    are passed in; there is no module-level state.

    Usage:
        controller = SyncController(store, scope, StateManager())
        await controller.start()
        outcome = await controller.request_save("rec123", {"Amount": 50})
        await controller.stop()
    """

    def __init__(
        self,
        store: RemoteStore,
        scope: ScopePredicate,
        state_manager: StateManager,
        *,
        clock: Clock | None = None,
        renderer: Renderer | None = None,
        uploader: Uploader | None = None,
        interval: float = 15 * 60,
        initial_delay: float = 1.5,
        overlap: float = 30.0,
        search_fields: Sequence[str] = (),
        linked_tables: Sequence[LinkedTable] = (),
    ):
        """
        Initialize sync controller.

        Args:
            store: Authoritative remote store.
            scope: Predicate defining the working set.
            state_manager: Persistence for checkpoint and autoload flag.
            clock: Time source (defaults to system time).
            renderer: Optional consumer notified of changes.
            uploader: Optional attachment upload collaborator.
            interval: Seconds between background polls.
            initial_delay: Seconds before the first poll after start or resume.
            overlap: Seconds the checkpoint is regressed after each poll.
            search_fields: Fields searched by select().
            linked_tables: Linked fields whose identities are shown by name.
        """
        self.store = store
        self.scope = scope
        self.state_manager = state_manager
        self.clock = clock or SystemClock()
        self.renderer = renderer
        self.uploader = uploader
        self.interval = interval
        self.initial_delay = initial_delay
        self.overlap = timedelta(seconds=overlap)
        self.search_fields = tuple(search_fields)
        self.linked_tables = tuple(linked_tables)
        self.names = LinkedNames()

        self.cache = LocalCache()
        self.saves = SaveCoordinator(store, self.cache, scope, on_change=self._notify)
        self.loop = ReconciliationLoop(
            store,
            self.cache,
            scope,
            state_manager,
            clock=self.clock,
            overlap=self.overlap,
            on_change=self._notify,
            on_candidates=self._notify_candidates,
        )
        self._scheduler: PeriodicTask | None = None
        self.bootstrapped = False

    @property
    def autoload(self) -> bool:
        return self.loop.autoload

    @autoload.setter
    def autoload(self, enabled: bool) -> None:
        self.loop.autoload = enabled

    @property
    def scheduler(self) -> PeriodicTask | None:
        return self._scheduler

    async def bootstrap(self) -> list[Record]:
        """
        Load the working set with one full fetch.

        The remote filter is only an optimization; every record is checked
        against the scope again locally.

        Returns:
            Records now in the working set.
        """
        started_at = self.clock.now()
        fetched = await self.store.list_all(self.scope)
        records = [record for record in fetched if self.scope.in_scope(record)]
        if len(records) != len(fetched):
            logger.debug("Dropped %d out-of-scope record(s) from full load", len(fetched) - len(records))

        self.cache.replace_all(records)
        self.saves.remember(records)
        try:
            self.state_manager.advance_checkpoint(started_at - self.overlap)
        except OSError as e:
            logger.warning("Could not save checkpoint to %s: %s", self.state_manager.state_path, e)
        self.bootstrapped = True
        logger.info("Loaded %d record(s)", len(records))
        self._notify()
        return records

    async def load_linked_names(self) -> LinkedNames:
        """
        Load display names for every configured linked table.

        A table that cannot be read is logged and skipped; its identities
        keep showing as record IDs. Tables shared by several fields are
        fetched once.

        Returns:
            The name lookup used by select().
        """
        fetched: dict[tuple[str, tuple[str, ...]], Mapping[str, str]] = {}
        for table in self.linked_tables:
            key = (table.table_id, table.name_fields)
            if key not in fetched:
                try:
                    fetched[key] = await self.store.list_table_names(table.table_id, table.name_fields)
                except RemoteStoreError as e:
                    logger.warning("Could not load names for %s from %s: %s", table.field, table.table_id, e)
                    fetched[key] = {}
            self.names.update(table.field, fetched[key])
        if self.linked_tables:
            logger.debug("Loaded %d linked name(s)", len(self.names))
        return self.names

    async def start(self, *, schedule: bool = True) -> None:
        """
        Bootstrap the working set and start background polling.

        Args:
            schedule: Start the background timer (False for one-shot use).
        """
        if not self.bootstrapped:
            await self.bootstrap()
            await self.load_linked_names()
        if schedule and self._scheduler is None:
            self._scheduler = PeriodicTask(self.poll_now, self.interval, initial_delay=self.initial_delay)
            self._scheduler.start()

    async def stop(self) -> None:
        """Stop background polling and supersede in-flight writes."""
        if self._scheduler is not None:
            await self._scheduler.stop()
            self._scheduler = None
        self.saves.cancel_all()

    def pause(self) -> None:
        """Suspend polling while the consuming surface is hidden or idle."""
        if self._scheduler is not None:
            self._scheduler.pause()

    def resume(self) -> None:
        """Resume polling with an immediate catch-up poll."""
        if self._scheduler is not None:
            self._scheduler.resume()

    async def poll_now(self) -> PollResult:
        """Run one reconciliation pass right away."""
        result = await self.loop.tick()
        if result.added:
            self.saves.remember(result.added)
        return result

    async def request_save(
        self,
        identity: str,
        delta: Mapping[str, Any],
        *,
        attachments: Iterable[Path] | None = None,
        attachment_field: str | None = None,
    ) -> SaveOutcome:
        """
        Submit an edit to a record.

        Args:
            identity: Record identity.
            delta: Field changes, typed or raw JSON values; None clears a field.
            attachments: Files to upload and attach (failures are omitted).
            attachment_field: Field receiving the uploaded attachment URLs.

        Returns:
            SaveOutcome from the save coordinator.

        Raises:
            ValueError: If the delta has unsupported values, or attachments are
                given without an uploader or target field.
        """
        typed: dict[str, FieldValue | None] = coerce_delta(delta)

        paths = list(attachments or [])
        if paths:
            if self.uploader is None or not attachment_field:
                raise ValueError("Attachments need an uploader and an attachment field")
            urls = await upload_attachments(self.uploader, paths)
            if urls:
                typed[attachment_field] = self._with_attachments(identity, attachment_field, typed, urls)

        return await self.saves.submit(identity, typed)

    def _with_attachments(
        self,
        identity: str,
        attachment_field: str,
        typed: Mapping[str, FieldValue | None],
        urls: Sequence[str],
    ) -> AttachmentValue:
        """
        Append uploaded URLs to the attachments the record keeps.

        The remote store replaces the whole field on write, so the kept
        attachments are the ones in the delta or, if the delta does not touch
        the field, the ones on the cached record.
        """
        if attachment_field in typed:
            current = typed[attachment_field]
        else:
            record = self.cache.get(identity) or self.saves.last_good_value(identity)
            current = record.get(attachment_field) if record is not None else None
        kept = current.urls if isinstance(current, AttachmentValue) else ()
        return AttachmentValue(kept + tuple(url for url in urls if url not in kept))

    def request_manual_load(self, ids: Iterable[str] | None = None) -> list[Record]:
        """Accept pending candidates (all of them when ids is None)."""
        added = self.loop.accept_candidates(ids)
        if added:
            self.saves.remember(added)
        return added

    def dismiss_candidates(self) -> int:
        return self.loop.dismiss_candidates()

    def snapshot(self) -> list[Record]:
        return self.cache.snapshot()

    def select(
        self,
        *,
        search: str | None = None,
        filters: Mapping[str, str] | None = None,
        sort_by: str | None = None,
        descending: bool = False,
    ) -> list[Record]:
        """Search, filter and sort the current snapshot for display."""
        return select_records(
            self.cache.snapshot(),
            search=search,
            search_fields=self.search_fields,
            filters=filters,
            sort_by=sort_by,
            descending=descending,
            names=self.names,
        )

    def _notify(self) -> None:
        if self.renderer is not None:
            self.renderer.on_snapshot_changed(self.cache.snapshot())

    def _notify_candidates(self, records: list[Record]) -> None:
        if self.renderer is not None:
            self.renderer.on_candidates(records)
