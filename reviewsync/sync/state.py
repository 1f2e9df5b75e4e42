# reviewsync Sync State
# Persistence of the poll checkpoint, the last poll outcome and the autoload flag

from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import yaml

from reviewsync.utils.clock import format_timestamp, parse_timestamp


@dataclass
class SyncState:
    """
    Process-wide sync state that survives restarts.

    The checkpoint marks "everything known as of T" and only moves forward.
    """

    version: str = "1.0"
    checkpoint: Optional[str] = None  # ISO format datetime, UTC
    autoload: bool = True
    last_poll: Optional[str] = None  # ISO format datetime, UTC
    last_error: Optional[str] = None

    @property
    def checkpoint_time(self) -> Optional[datetime]:
        """Get the checkpoint as a datetime."""
        if not self.checkpoint:
            return None
        return parse_timestamp(self.checkpoint)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "version": self.version,
            "checkpoint": self.checkpoint,
            "autoload": self.autoload,
            "last_poll": self.last_poll,
            "last_error": self.last_error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncState":
        """Create from dictionary."""
        checkpoint = data.get("checkpoint")
        if checkpoint is not None:
            try:
                checkpoint = format_timestamp(parse_timestamp(str(checkpoint)))
            except ValueError:
                checkpoint = None

        last_error = data.get("last_error")
        return cls(
            version=data.get("version", "1.0"),
            checkpoint=checkpoint,
            autoload=bool(data.get("autoload", True)),
            last_poll=data.get("last_poll"),
            last_error=str(last_error) if last_error else None,
        )


class StateManager:
    """
    Manages sync state persistence.

    Every update is written to disk before it takes effect in memory, so a
    failed write leaves the state exactly as it was.
    """

    def __init__(self, state_path: Optional[Path] = None):
        """
        Initialize state manager.

        Args:
            state_path: Path to state file. Defaults to ~/.config/reviewsync/state.yaml
        """
        if state_path is None:
            state_path = Path.home() / ".config" / "reviewsync" / "state.yaml"
        self.state_path = Path(state_path).expanduser()
        self._state: Optional[SyncState] = None

    @property
    def state(self) -> SyncState:
        """Get current state, loading if necessary."""
        if self._state is None:
            self._state = self.load()
        return self._state

    def load(self) -> SyncState:
        """Load state from file, falling back to defaults."""
        if not self.state_path.exists():
            return SyncState()

        try:
            with open(self.state_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError:
            return SyncState()

        if not isinstance(data, dict):
            return SyncState()
        return SyncState.from_dict(data)

    def save(self) -> None:
        """Save state to file."""
        if self._state is None:
            return
        self._write(self._state)

    def _write(self, state: SyncState) -> None:
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.state_path, "w", encoding="utf-8") as f:
            yaml.dump(state.to_dict(), f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    def _commit(self, **changes: Any) -> SyncState:
        """
        Persist a changed copy of the state, then adopt it.

        Raises:
            OSError: If the state file cannot be written; nothing changes.
        """
        updated = replace(self.state, **changes)
        self._write(updated)
        self._state = updated
        return updated

    @property
    def checkpoint(self) -> Optional[datetime]:
        """Get the persisted checkpoint."""
        return self.state.checkpoint_time

    @property
    def last_error(self) -> Optional[str]:
        """Get the error of the last failed poll, if the last poll failed."""
        return self.state.last_error

    def advance_checkpoint(self, candidate: datetime, *, polled_at: Optional[datetime] = None) -> datetime:
        """
        Move the checkpoint forward and save.

        The checkpoint never moves backwards: an older candidate leaves it as is.
        A successful advance also clears the last poll error.

        Args:
            candidate: Proposed new checkpoint (already regressed by the overlap window).
            polled_at: Time of the poll that produced the candidate.

        Returns:
            The checkpoint now in effect.

        Raises:
            OSError: If the state file cannot be written.
        """
        current = self.checkpoint
        effective = candidate if current is None or candidate > current else current
        changes: dict[str, Any] = {"checkpoint": format_timestamp(effective), "last_error": None}
        if polled_at is not None:
            changes["last_poll"] = format_timestamp(polled_at)
        state = self._commit(**changes)
        return parse_timestamp(state.checkpoint)

    def record_poll_error(self, message: str) -> None:
        """
        Remember why the last poll failed.

        Only the error is written; the checkpoint stays where it was.

        Raises:
            OSError: If the state file cannot be written.
        """
        self._commit(last_error=message)

    @property
    def autoload(self) -> bool:
        """Get the autoload policy flag."""
        return self.state.autoload

    def set_autoload(self, enabled: bool) -> None:
        """Update the autoload policy flag and save."""
        self._commit(autoload=enabled)

    def reset_checkpoint(self) -> None:
        """Forget the checkpoint so the next session starts from a full load."""
        self._commit(checkpoint=None, last_poll=None, last_error=None)

    def reset(self) -> None:
        """Reset state to defaults."""
        state = SyncState()
        self._write(state)
        self._state = state
