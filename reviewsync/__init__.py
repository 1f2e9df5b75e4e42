"""reviewsync - keep review items in sync with a remote table.

Maintains a local working set of records matching a scope, reconciles it
with remote changes on a timer and writes edits back with single-flight
saves per record.
"""

__version__ = "1.0.0"
__author__ = "Equitania Software GmbH"
__email__ = "info@equitania.de"

__all__ = [
    "__version__",
    "Record",
    "ScopePredicate",
    "LocalCache",
    "SaveCoordinator",
    "SaveOutcome",
    "ReconciliationLoop",
    "PollResult",
    "SyncController",
    "StateManager",
    "AirtableStore",
    "load_config",
]


def __getattr__(name: str):
    """Lazy import to avoid loading dependencies during setup."""
    if name in (
        "Record",
        "ScopePredicate",
        "LocalCache",
        "SaveCoordinator",
        "SaveOutcome",
        "ReconciliationLoop",
        "PollResult",
        "SyncController",
        "StateManager",
    ):
        from reviewsync import sync

        return getattr(sync, name)
    if name == "AirtableStore":
        from reviewsync.remote.airtable import AirtableStore

        return AirtableStore
    if name == "load_config":
        from reviewsync.config.loader import load_config

        return load_config
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
