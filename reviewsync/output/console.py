# reviewsync Console Output
# Rich-based console output for user-friendly display

from collections.abc import Sequence
from datetime import datetime
from typing import Optional

from rich.console import Console as RichConsole
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from reviewsync.sync.names import LinkedNames
from reviewsync.sync.reconcile import PollResult
from reviewsync.sync.record import AttachmentValue, LinkValue, Record
from reviewsync.sync.save import OutcomeKind, SaveOutcome
from reviewsync.sync.state import SyncState
from reviewsync.utils.clock import format_timestamp


def _cell(record: Record, name: str, names: Optional[LinkedNames] = None) -> str:
    """Render a field for a table cell (linked records by display name when known)."""
    value = record.get(name)
    if value is None or value.is_blank:
        return ""
    if isinstance(value, LinkValue):
        return ", ".join(names.resolve(name, value.ids) if names is not None else value.ids)
    if isinstance(value, AttachmentValue):
        return f"{len(value.urls)} file(s)"
    return str(value.raw)


def _when(value: Optional[datetime]) -> str:
    return format_timestamp(value) if value is not None else "never"


class Console:
    """
    Console output manager using Rich.

    Also serves as the renderer for a running sync controller: snapshot and
    candidate notifications are printed as one-line updates.
    """

    def __init__(
        self,
        *,
        verbose: bool = False,
        colored: bool = True,
        title_field: str = "Job Name",
        columns: Sequence[str] = (),
    ):
        """
        Initialize console.

        Args:
            verbose: Enable verbose output.
            colored: Enable colored output.
            title_field: Field shown as the record title in tables.
            columns: Extra fields shown in tables.
        """
        self.verbose = verbose
        self.title_field = title_field
        self.columns = list(columns)
        self._console = RichConsole(force_terminal=colored, no_color=not colored)
        self._last_count: Optional[int] = None

    def print(self, *args, **kwargs) -> None:
        """Print to console."""
        self._console.print(*args, **kwargs)

    def print_error(self, message: str) -> None:
        """Print error message."""
        self._console.print(f"[red]Error:[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print warning message."""
        self._console.print(f"[yellow]Warning:[/yellow] {message}")

    def print_success(self, message: str) -> None:
        """Print success message."""
        self._console.print(f"[green]{message}[/green]")

    def print_info(self, message: str) -> None:
        """Print info message."""
        self._console.print(f"[blue]{message}[/blue]")

    def print_problems(self, problems: Sequence[str]) -> None:
        """Print a bullet list of configuration problems."""
        for problem in problems:
            self._console.print(f"  [red]•[/red] {escape(problem)}")

    # Renderer

    def on_snapshot_changed(self, records: Sequence[Record]) -> None:
        count = len(records)
        if count != self._last_count or self.verbose:
            self._console.print(f"[dim]Working set:[/dim] {count} record(s)")
        self._last_count = count

    def on_candidates(self, records: Sequence[Record]) -> None:
        self.print_candidates(records)

    # Records

    def print_records(
        self,
        records: Sequence[Record],
        *,
        title: Optional[str] = None,
        names: Optional[LinkedNames] = None,
    ) -> None:
        """
        Print records as a table.

        Args:
            records: Records in display order.
            title: Optional table title.
            names: Display names for linked fields.
        """
        if not records:
            self._console.print("[dim]No records to display[/dim]")
            return

        table = Table(show_header=True, header_style="bold", title=title)
        table.add_column("ID", style="dim")
        table.add_column(self.title_field)
        for column in self.columns:
            table.add_column(column)

        for record in records:
            table.add_row(
                escape(record.id),
                escape(_cell(record, self.title_field, names)),
                *(escape(_cell(record, c, names)) for c in self.columns),
            )

        self._console.print(table)

    def print_candidates(self, records: Sequence[Record]) -> None:
        """Print the banner for new records awaiting a manual load."""
        if not records:
            return
        self._console.print(
            f"[yellow]{len(records)} new record(s) available[/yellow] [dim](autoload is off)[/dim]"
        )
        if self.verbose:
            for record in records:
                self._console.print(f"    [cyan]+[/cyan] {record.id} {_cell(record, self.title_field)}")

    def print_poll_result(self, result: PollResult) -> None:
        """Print the outcome of one reconciliation pass."""
        if result.skipped:
            self._console.print("[dim]Poll skipped (another poll is running)[/dim]")
            return
        if result.error:
            self._console.print(f"[red]✗[/red] Poll failed: {escape(result.error)}")
            return

        parts = [f"{result.fetched} fetched"]
        if result.added:
            parts.append(f"[green]{len(result.added)} added[/green]")
        if result.removed:
            parts.append(f"[red]{len(result.removed)} removed[/red]")
        if result.candidates:
            parts.append(f"[yellow]{len(result.candidates)} new[/yellow]")
        self._console.print(f"[green]✓[/green] Poll: {', '.join(parts)}")

        if self.verbose:
            self._console.print(f"    [dim]checkpoint {_when(result.checkpoint_after)}[/dim]")

    def print_save_outcome(self, outcome: SaveOutcome, *, in_working_set: bool = True) -> None:
        """
        Print the outcome of an edit, including values to roll back to.

        Args:
            outcome: Outcome returned by the save path.
            in_working_set: Whether the saved record is still in the working set.
        """
        if outcome.kind == OutcomeKind.APPLIED:
            if not outcome.remote_called:
                self._console.print(f"[dim]○[/dim] {outcome.identity}: no changes")
                return
            suffix = "" if in_working_set else " [dim](left the working set)[/dim]"
            self._console.print(f"[green]✓[/green] {outcome.identity}: saved{suffix}")
        elif outcome.kind == OutcomeKind.SUPERSEDED:
            self._console.print(f"[dim]○[/dim] {outcome.identity}: superseded by a newer edit")
        else:
            self._console.print(f"[red]✗[/red] {outcome.identity}: {escape(outcome.reason or '')}")
            for name, value in outcome.revert_values().items():
                shown = "" if value is None else value
                self._console.print(f"    [dim]→ {name} reverts to {escape(repr(shown))}[/dim]")

    def print_status(self, state: SyncState, *, config_path: str, state_path: str) -> None:
        """Print persisted sync state."""
        autoload = "[green]on[/green]" if state.autoload else "[yellow]off[/yellow]"
        lines = [
            f"Config: {config_path}",
            f"State: {state_path}",
            f"Checkpoint: {state.checkpoint or 'never'}",
            f"Last poll: {state.last_poll or 'never'}",
            f"Autoload: {autoload}",
        ]
        if state.last_error:
            lines.append(f"[red]Last error:[/red] {escape(state.last_error)}")
        self._console.print(
            Panel(
                "\n".join(lines),
                title="reviewsync Status",
                border_style="blue",
            )
        )

    def print_config_summary(self, config_path: str, base_id: str, table_id: str, rules: int) -> None:
        """Print configuration summary."""
        self._console.print(
            Panel(
                f"Config: {config_path}\n" f"Table: {base_id}/{table_id}\n" f"Scope rules: {rules}",
                title="reviewsync Configuration",
                border_style="blue",
            )
        )

    def confirm(self, message: str, default: bool = False) -> bool:
        """
        Ask for confirmation.

        Args:
            message: Confirmation message.
            default: Default value if user just presses enter.

        Returns:
            True if confirmed.
        """
        suffix = " [Y/n]" if default else " [y/N]"
        response = self._console.input(f"{message}{suffix}: ").strip().lower()

        if not response:
            return default

        return response in ("y", "yes")


def create_console(
    *,
    verbose: bool = False,
    colored: bool = True,
    title_field: str = "Job Name",
    columns: Sequence[str] = (),
) -> Console:
    """
    Create a console instance.

    Args:
        verbose: Enable verbose output.
        colored: Enable colored output.
        title_field: Field shown as the record title.
        columns: Extra fields shown in tables.

    Returns:
        Console instance.
    """
    return Console(verbose=verbose, colored=colored, title_field=title_field, columns=columns)
