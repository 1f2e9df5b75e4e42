"""Click-based CLI for reviewsync - review items kept in sync with a remote table."""

from __future__ import annotations

import asyncio
import math
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Optional

import click
import yaml

from reviewsync import __version__
from reviewsync.config.loader import (
    ConfigError,
    get_config_path,
    load_config,
    validate_config_file,
    write_default_config,
)
from reviewsync.config.schema import ReviewSyncConfig
from reviewsync.output.console import Console, create_console
from reviewsync.output.logging import setup_logging
from reviewsync.remote.airtable import AirtableStore
from reviewsync.remote.base import RemoteStore
from reviewsync.sync.controller import SyncController
from reviewsync.sync.errors import SyncError
from reviewsync.sync.names import LinkedNames, LinkedTable
from reviewsync.sync.record import Record
from reviewsync.sync.scope import ScopePredicate
from reviewsync.sync.state import StateManager


def _create_store(config: ReviewSyncConfig) -> RemoteStore:
    """Create the remote store for a configuration."""
    return AirtableStore.from_config(config.remote)


def _load_config_or_exit(console: Console) -> ReviewSyncConfig:
    """Load configuration, exiting with a readable message on failure."""
    try:
        return load_config()
    except FileNotFoundError as e:
        console.print_error(str(e))
        raise SystemExit(1)
    except ConfigError as e:
        console.print_error(str(e))
        console.print_problems(e.problems)
        raise SystemExit(1)


def _load(verbose: bool = False) -> tuple[ReviewSyncConfig, Console]:
    """Load configuration and create a console styled by it."""
    config = _load_config_or_exit(create_console(verbose=verbose))
    console = create_console(
        verbose=verbose or config.output.verbose,
        colored=config.output.colored,
        title_field=config.view.title_field,
        columns=config.view.columns,
    )
    return config, console


def _setup(verbose: bool) -> tuple[ReviewSyncConfig, Console]:
    """Load configuration and set up console output and logging."""
    config, console = _load(verbose)
    setup_logging(verbose=console.verbose, log_file=config.output.log_file)
    return config, console


def _build_controller(
    config: ReviewSyncConfig,
    store: RemoteStore,
    console: Console,
    *,
    interval: Optional[float] = None,
) -> SyncController:
    """Wire a controller from configuration."""
    return SyncController(
        store,
        ScopePredicate.from_config(config.scope),
        StateManager(Path(config.state_file)),
        renderer=console,
        interval=interval or config.polling.interval_seconds,
        initial_delay=config.polling.initial_delay_seconds,
        overlap=config.polling.overlap_seconds,
        search_fields=config.view.search_fields,
        linked_tables=[LinkedTable.from_config(linked) for linked in config.linked],
    )


def _open_store_or_exit(config: ReviewSyncConfig, console: Console) -> RemoteStore:
    try:
        return _create_store(config)
    except ValueError as e:
        console.print_error(str(e))
        raise SystemExit(1)


async def _close_store(store: RemoteStore) -> None:
    aclose = getattr(store, "aclose", None)
    if aclose is not None:
        await aclose()


def parse_assignment(text: str) -> tuple[str, str]:
    """
    Split a FIELD=VALUE argument.

    Raises:
        click.BadParameter: If there is no '=' or the field name is empty.
    """
    name, sep, value = text.partition("=")
    name = name.strip()
    if not sep or not name:
        raise click.BadParameter(f"Expected FIELD=VALUE, got '{text}'")
    return name, value


def parse_field_value(value: str) -> Any:
    """
    Convert a command line value to a field value.

    An empty string clears the field and integers and decimals become
    numbers. Everything else stays text, including numbers written with a
    leading zero ("007") and values wrapped in matching quotes ('"42"'),
    which are stored without the quotes.

    Raises:
        click.BadParameter: If the value is a non-finite number (nan, inf).
    """
    if value == "":
        return None
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    if _has_leading_zero(value):
        return value
    try:
        return int(value)
    except ValueError:
        pass
    try:
        number = float(value)
    except ValueError:
        return value
    if not math.isfinite(number):
        raise click.BadParameter(f"'{value}' is not a finite number; quote it to store it as text")
    return number


def _has_leading_zero(value: str) -> bool:
    digits = value.lstrip("+-")
    return len(digits) > 1 and digits[0] == "0" and digits[1].isdigit()


@click.group()
@click.version_option(version=__version__, prog_name="reviewsync")
def cli() -> None:
    """reviewsync - keep review items in sync with a remote table.

    Maintains a local working set of records matching the configured scope,
    polls for remote changes and writes edits back.

    \b
    Config: ~/.config/reviewsync/config.yaml (override with REVIEWSYNC_CONFIG)
    Token:  read from the environment variable named in remote.token_env
    """
    pass


@cli.command()
def status() -> None:
    """Show checkpoint, autoload flag, last poll time and last poll error."""
    config, console = _load()
    manager = StateManager(Path(config.state_file))
    console.print_status(manager.state, config_path=str(get_config_path()), state_path=str(manager.state_path))


@cli.command("list")
@click.option("--search", "-s", default=None, help="Case-insensitive search over the configured fields")
@click.option("--sort", "sort_by", default=None, help="Sort by field (blanks last)")
@click.option("--desc", is_flag=True, help="Sort in descending order")
@click.option("--filter", "-f", "filters", multiple=True, help="Exact filter as FIELD=VALUE (repeatable)")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
def list_records(
    search: Optional[str],
    sort_by: Optional[str],
    desc: bool,
    filters: Sequence[str],
    verbose: bool,
) -> None:
    """Load the working set and print it."""
    config, console = _setup(verbose)
    wanted = dict(parse_assignment(item) for item in filters)
    store = _open_store_or_exit(config, console)

    async def run() -> tuple[list[Record], LinkedNames]:
        controller = _build_controller(config, store, console)
        try:
            await controller.start(schedule=False)
            records = controller.select(
                search=search,
                filters=wanted,
                sort_by=sort_by or config.view.sort_by,
                descending=desc,
            )
            return records, controller.names
        finally:
            await controller.stop()
            await _close_store(store)

    try:
        records, names = asyncio.run(run())
    except SyncError as e:
        console.print_error(f"Could not load records: {e}")
        raise SystemExit(1)

    console.print_records(records, title=f"{len(records)} record(s)", names=names)


@cli.command()
@click.option("--interval", "-i", type=float, default=None, help="Seconds between polls (overrides config)")
@click.option("--autoload/--no-autoload", default=None, help="Merge new records automatically (persisted)")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
def watch(interval: Optional[float], autoload: Optional[bool], verbose: bool) -> None:
    """Keep the working set in sync until interrupted.

    When autoload is off, new records are announced and loaded only after
    confirmation.
    """
    config, console = _setup(verbose)
    store = _open_store_or_exit(config, console)

    async def run() -> None:
        controller = _build_controller(config, store, console, interval=interval)
        if autoload is not None:
            controller.autoload = autoload
        arrived = asyncio.Event()

        def announce(records: Sequence[Record]) -> None:
            console.print_candidates(records)
            arrived.set()

        controller.loop.on_candidates = announce
        try:
            await controller.start()
            console.print_info(
                f"Watching {len(controller.snapshot())} record(s), polling every {controller.interval:g}s "
                f"(autoload {'on' if controller.autoload else 'off'}). Press Ctrl+C to stop."
            )
            while True:
                await arrived.wait()
                arrived.clear()
                pending = controller.loop.pending_candidates
                if not pending:
                    continue
                if await asyncio.to_thread(console.confirm, f"Load {len(pending)} new record(s)?", True):
                    added = controller.request_manual_load()
                    console.print_success(f"Loaded {len(added)} record(s)")
                else:
                    controller.dismiss_candidates()
        finally:
            await controller.stop()
            await _close_store(store)

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped[/dim]")
    except SyncError as e:
        console.print_error(f"Could not load records: {e}")
        raise SystemExit(1)


@cli.command()
@click.argument("record_id")
@click.argument("assignments", nargs=-1, required=True)
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
def save(record_id: str, assignments: Sequence[str], verbose: bool) -> None:
    """Write FIELD=VALUE changes to a record.

    An empty value (FIELD=) clears the field. Exits with status 1 when the
    remote store rejects the edit.
    """
    delta = {name: parse_field_value(value) for name, value in map(parse_assignment, assignments)}
    config, console = _setup(verbose)
    store = _open_store_or_exit(config, console)

    async def run():
        controller = _build_controller(config, store, console)
        try:
            await controller.start(schedule=False)
            outcome = await controller.request_save(record_id, delta)
            return outcome, record_id in controller.cache
        finally:
            await controller.stop()
            await _close_store(store)

    try:
        outcome, in_working_set = asyncio.run(run())
    except SyncError as e:
        console.print_error(f"Could not load records: {e}")
        raise SystemExit(1)

    console.print_save_outcome(outcome, in_working_set=in_working_set)
    if outcome.rejected:
        raise SystemExit(1)


@cli.command()
@click.argument("mode", type=click.Choice(["on", "off"]))
def autoload(mode: str) -> None:
    """Turn automatic loading of new records on or off."""
    config, console = _load()
    manager = StateManager(Path(config.state_file))
    manager.set_autoload(mode == "on")
    console.print_success(f"Autoload {mode}")


@cli.group()
def checkpoint() -> None:
    """Manage the polling checkpoint."""
    pass


@checkpoint.command("reset")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
def checkpoint_reset(yes: bool) -> None:
    """Forget the checkpoint so the next poll scans from the beginning."""
    config, console = _load()
    manager = StateManager(Path(config.state_file))

    if not yes and not console.confirm("Reset checkpoint?"):
        console.print("[dim]Aborted[/dim]")
        return

    manager.reset_checkpoint()
    console.print_success("Checkpoint reset")


@cli.group()
def config() -> None:
    """Manage the reviewsync configuration file."""
    pass


@config.command("init")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing configuration")
def config_init(force: bool) -> None:
    """Create a default configuration file."""
    console = create_console()
    existed = get_config_path().exists()

    path, written = write_default_config(overwrite=force)
    if written and existed:
        console.print_success(f"Configuration overwritten: {path}")
    elif written:
        console.print_success(f"Configuration created: {path}")
        console.print("[dim]Edit remote.base_id and remote.table_id, then export the API token.[/dim]")
    else:
        console.print_warning(f"Configuration already exists: {path} (use --force to overwrite)")


@config.command("show")
def config_show() -> None:
    """Print the effective configuration."""
    loaded, console = _load()
    console.print_config_summary(
        str(get_config_path()), loaded.remote.base_id, loaded.remote.table_id, len(loaded.scope)
    )
    console.print(yaml.dump(loaded.model_dump(mode="json"), default_flow_style=False, sort_keys=False), markup=False)


@config.command("validate")
@click.argument("file", type=click.Path(path_type=Path), required=False)
def config_validate(file: Optional[Path]) -> None:
    """Validate a configuration file."""
    console = create_console()
    path = file or get_config_path()
    problems = validate_config_file(path)

    if not problems:
        console.print_success(f"Configuration is valid: {path}")
        return

    console.print_error(f"Configuration is invalid: {path}")
    console.print_problems(problems)
    raise SystemExit(1)


@config.command("path")
def config_path() -> None:
    """Print the configuration file path."""
    click.echo(str(get_config_path()))


if __name__ == "__main__":
    cli()
