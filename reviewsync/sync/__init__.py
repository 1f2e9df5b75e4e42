# reviewsync Sync Module
# Working set cache, reconciliation loop, save coordination and controller

from reviewsync.sync.cache import LocalCache
from reviewsync.sync.cancel import CancellationToken
from reviewsync.sync.controller import Renderer, SyncController
from reviewsync.sync.errors import (
    Cancelled,
    RecordDecodeError,
    RemoteRejection,
    RemoteStoreError,
    SyncError,
    TransportError,
)
from reviewsync.sync.names import LinkedNames, LinkedTable, pick_display_name
from reviewsync.sync.reconcile import LoopState, PollResult, ReconciliationLoop
from reviewsync.sync.record import (
    AttachmentValue,
    FieldValue,
    LinkValue,
    NumberValue,
    Record,
    TextValue,
    coerce_delta,
    decode_record,
    decode_value,
)
from reviewsync.sync.save import OutcomeKind, PendingSave, SaveCoordinator, SaveOutcome
from reviewsync.sync.scheduler import PeriodicTask
from reviewsync.sync.scope import ScopePredicate, ScopeRule
from reviewsync.sync.state import StateManager, SyncState
from reviewsync.sync.view import select_records

__all__ = [
    # Records
    "Record",
    "FieldValue",
    "TextValue",
    "NumberValue",
    "LinkValue",
    "AttachmentValue",
    "decode_record",
    "decode_value",
    "coerce_delta",
    # Scope
    "ScopePredicate",
    "ScopeRule",
    # Cache
    "LocalCache",
    # Saves
    "CancellationToken",
    "SaveCoordinator",
    "SaveOutcome",
    "OutcomeKind",
    "PendingSave",
    # Reconciliation
    "ReconciliationLoop",
    "PollResult",
    "LoopState",
    "PeriodicTask",
    # State
    "SyncState",
    "StateManager",
    # Controller
    "SyncController",
    "Renderer",
    "select_records",
    # Linked names
    "LinkedTable",
    "LinkedNames",
    "pick_display_name",
    # Errors
    "SyncError",
    "RemoteStoreError",
    "TransportError",
    "RemoteRejection",
    "RecordDecodeError",
    "Cancelled",
]
