# reviewsync Sync Errors
# Exception taxonomy shared by the remote store, save and reconciliation paths


class SyncError(Exception):
    """Base class for all reviewsync errors."""


class RemoteStoreError(SyncError):
    """A remote store operation failed."""


class TransportError(RemoteStoreError):
    """
    Network-level failure: connection problems, timeouts, 5xx or rate limiting.

    Reconciliation retries these on the next tick. They never mean data loss.
    """

    def __init__(self, message: str, *, status: int | None = None):
        super().__init__(message)
        self.status = status


class RemoteRejection(RemoteStoreError):
    """
    The remote store refused a request (validation or conflict, 4xx).

    Attributes:
        status: HTTP status code returned by the store.
        error_type: Structured error type reported by the store, if any.
        message: Human-readable message reported by the store.
    """

    def __init__(self, message: str, *, status: int | None = None, error_type: str | None = None):
        super().__init__(message)
        self.status = status
        self.error_type = error_type
        self.message = message

    def __str__(self) -> str:
        parts = []
        if self.status is not None:
            parts.append(f"HTTP {self.status}")
        parts.append(self.message)
        text = " - ".join(parts)
        if self.error_type:
            text += f" [{self.error_type}]"
        return text


class RecordDecodeError(RemoteStoreError):
    """A raw payload from the remote store could not be decoded into a Record."""


class Cancelled(SyncError):
    """An in-flight write was superseded by a newer edit to the same record."""
