# reviewsync Test Fixtures
# Pytest fixtures for reviewsync tests

import asyncio
import tempfile
from collections.abc import Callable, Generator, Sequence
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import pytest
import yaml

from reviewsync.sync.cancel import CancellationToken
from reviewsync.sync.errors import Cancelled
from reviewsync.sync.record import FieldDelta, Record, coerce_delta
from reviewsync.sync.scope import ScopePredicate, ScopeRule
from reviewsync.sync.state import StateManager

TYPE_FIELD = "Type of Backcharge"
STATUS_FIELD = "Approved or Dispute"
AMOUNT_FIELD = "Sub Backcharge Amount"
BUILDER_ISSUED = "Builder Issued Backcharge"


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current = self.current + timedelta(seconds=seconds)
        return self.current


class FakeStore:
    """
    In-memory remote store.

    `updates` is what the next list_since call returns. With `hold_patches`
    set, every patch waits until released, so tests can interleave writes.
    `tables` maps linked table IDs to the names list_table_names returns.
    """

    def __init__(self, records: Optional[list[Record]] = None, *, honor_tokens: bool = True):
        self.records: dict[str, Record] = {r.id: r for r in records or []}
        self.updates: list[Record] = []
        self.poll_error: Optional[Exception] = None
        self.patch_errors: dict[str, Exception] = {}
        self.honor_tokens = honor_tokens
        self.hold_patches = False
        self.gates: list[asyncio.Event] = []
        self.since_calls: list[datetime] = []
        self.list_all_calls = 0
        self.patch_calls: list[tuple[str, dict]] = []
        self.tables: dict[str, dict[str, str]] = {}
        self.table_errors: dict[str, Exception] = {}
        self.table_calls: list[tuple[str, tuple[str, ...]]] = []
        self.closed = False

    async def list_since(self, since: datetime) -> list[Record]:
        self.since_calls.append(since)
        if self.poll_error is not None:
            raise self.poll_error
        return list(self.updates)

    async def list_all(self, scope: Optional[ScopePredicate] = None) -> list[Record]:
        self.list_all_calls += 1
        return list(self.records.values())

    async def patch(self, identity: str, delta: FieldDelta, token: Optional[CancellationToken] = None) -> Record:
        self.patch_calls.append((identity, dict(delta)))

        if self.hold_patches:
            gate = asyncio.Event()
            self.gates.append(gate)
            if token is not None and self.honor_tokens:
                waiter = asyncio.ensure_future(token.wait())
                opened = asyncio.ensure_future(gate.wait())
                done, pending = await asyncio.wait({waiter, opened}, return_when=asyncio.FIRST_COMPLETED)
                for task in pending:
                    task.cancel()
                if token.cancelled:
                    raise Cancelled(f"patch of {identity} cancelled")
            else:
                await gate.wait()

        error = self.patch_errors.get(identity)
        if error is not None:
            raise error

        current = self.records.get(identity) or Record(id=identity)
        updated = current.with_fields(delta)
        self.records[identity] = updated
        return updated

    async def list_table_names(self, table_id: str, name_fields: Sequence[str] = ("Name",)) -> dict[str, str]:
        self.table_calls.append((table_id, tuple(name_fields)))
        error = self.table_errors.get(table_id)
        if error is not None:
            raise error
        return dict(self.tables.get(table_id, {}))

    def release(self, index: int = -1) -> None:
        self.gates[index].set()

    async def aclose(self) -> None:
        self.closed = True


def make_backcharge(
    identity: str,
    *,
    in_scope: bool = True,
    amount: Optional[float] = None,
    job: Optional[str] = None,
    **extra: Any,
) -> Record:
    """Build a backcharge record, in or out of the default scope."""
    fields: dict[str, Any] = {TYPE_FIELD: BUILDER_ISSUED}
    if not in_scope:
        fields[STATUS_FIELD] = "Approved"
    if amount is not None:
        fields[AMOUNT_FIELD] = amount
    if job is not None:
        fields["Job Name"] = job
    fields.update(extra)
    return Record(id=identity, fields=coerce_delta(fields))


async def settle(rounds: int = 5) -> None:
    """Let pending tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a temporary home directory."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def scope() -> ScopePredicate:
    """Default backcharge scope: builder issued and not yet approved or disputed."""
    return ScopePredicate(
        [
            ScopeRule(field=TYPE_FIELD, equals=BUILDER_ISSUED),
            ScopeRule(field=STATUS_FIELD, blank=True),
        ]
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def backcharge() -> Callable[..., Record]:
    """Factory for backcharge records."""
    return make_backcharge


@pytest.fixture
def state_file(temp_dir: Path) -> Path:
    return temp_dir / "state" / "state.yaml"


@pytest.fixture
def state_manager(state_file: Path) -> StateManager:
    return StateManager(state_file)


@pytest.fixture
def sample_config(temp_dir: Path) -> dict:
    """Create sample configuration dict."""
    return {
        "remote": {
            "base_id": "appTEST",
            "table_id": "tblTEST",
            "token_env": "REVIEWSYNC_TEST_TOKEN",
        },
        "scope": [
            {"field": TYPE_FIELD, "equals": BUILDER_ISSUED},
            {"field": STATUS_FIELD, "blank": True},
        ],
        "linked": [],
        "polling": {
            "interval_seconds": 60,
            "initial_delay_seconds": 0.5,
            "overlap_seconds": 30,
        },
        "view": {
            "title_field": "Job Name",
            "columns": [AMOUNT_FIELD],
            "search_fields": ["Job Name"],
        },
        "output": {
            "verbose": False,
            "colored": False,
        },
        "state_file": str(temp_dir / "state.yaml"),
    }


@pytest.fixture
def config_file(temp_dir: Path, sample_config: dict, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Write the sample configuration and point REVIEWSYNC_CONFIG at it."""
    path = temp_dir / "config.yaml"
    path.write_text(yaml.dump(sample_config), encoding="utf-8")
    monkeypatch.setenv("REVIEWSYNC_CONFIG", str(path))
    return path
