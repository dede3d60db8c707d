"""vendorsync CLI: the main entry point."""

import functools
import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from vendorsync import __version__
from vendorsync.errors import PropagationError, VendorSyncError
from vendorsync.models.compliance import ComplianceResult, DriftState, SummaryResult
from vendorsync.settings import Settings
from vendorsync.utils.logging import setup_logging

console = Console()
err_console = Console(stderr=True)

STATE_STYLES = {
    DriftState.SYNCED: "green",
    DriftState.SOURCE_DRIFT: "yellow",
    DriftState.DEST_DRIFT: "yellow",
    DriftState.BOTH_DRIFT: "red",
}


class Project:
    """Stores and services for one project root, built on first use."""

    def __init__(self, root: Path, settings: Settings):
        from vendorsync.store.cache_store import FileCacheStore
        from vendorsync.store.filesystem import OSFileSystem
        from vendorsync.store.yaml_store import FileConfigStore, FileLockStore

        self.root = root
        self.settings = settings
        self.fs = OSFileSystem(root)
        self.config_store = FileConfigStore(root, settings)
        self.lock_store = FileLockStore(root, settings)
        self.cache = FileCacheStore(self.fs, root, settings)

    def compliance(self):
        from vendorsync.sync.compliance import ComplianceService

        return ComplianceService(self.config_store, self.lock_store, self.cache, self.fs, self.settings)

    def validation(self):
        from vendorsync.sync.validation import ValidationService

        return ValidationService(self.config_store, self.fs, self.settings)

    def internal_sync(self):
        from vendorsync.sync.internal import InternalSyncService

        return InternalSyncService(self.config_store, self.lock_store, self.cache, self.fs, self.settings)


def handle_errors(func):
    """Print vendorsync errors and exit 1 instead of showing a traceback."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except VendorSyncError as e:
            err_console.print(f"[red]Error:[/] {escape(str(e))}")
            sys.exit(1)

    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option("--root", default=None, help="Project root (defaults to the enclosing Git work tree)")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Diagnostics level on stderr",
)
@click.pass_context
def main(ctx: click.Context, root: str | None, log_level: str | None):
    """vendorsync: position-addressed file vendoring.

    Copy whole files or exact line/column regions between paths of one
    project, then detect and propagate drift between the copies.
    """
    overrides = {"log_level": log_level.upper()} if log_level else {}
    settings = Settings.from_env(**overrides)
    setup_logging(settings.log_level, settings.log_format)

    if root is None:
        from vendorsync.utils.git_ops import find_project_root

        root = find_project_root()
    ctx.obj = Project(Path(root), settings)


# --- Positions ---


@main.command()
@click.argument("path_spec")
@click.option("--fingerprint", "show_fingerprint", is_flag=True, help="Print only the sha256 fingerprint")
@click.pass_obj
@handle_errors
def extract(project: Project, path_spec: str, show_fingerprint: bool):
    """Print the content addressed by PATH_SPEC (e.g. src/a.py:L5-L20)."""
    from vendorsync.position import extract_position, parse_path_position

    file_path, address = parse_path_position(path_spec)
    try:
        content, fp = extract_position(
            file_path, address, fs=project.fs, window=project.settings.binary_scan_window
        )
    except FileNotFoundError:
        err_console.print(f"[red]Error:[/] file not found: {escape(file_path)}")
        sys.exit(1)

    if show_fingerprint:
        click.echo(fp)
    else:
        click.get_binary_stream("stdout").write(content)


@main.command()
@click.argument("path_spec")
@click.option(
    "--input",
    "input_file",
    type=click.File("rb"),
    default="-",
    help="File holding the content to place (default: stdin)",
)
@click.pass_obj
@handle_errors
def place(project: Project, path_spec: str, input_file):
    """Write content into the region addressed by PATH_SPEC."""
    from vendorsync.position import parse_path_position, place_content

    file_path, address = parse_path_position(path_spec)
    place_content(
        file_path,
        input_file.read(),
        address,
        fs=project.fs,
        window=project.settings.binary_scan_window,
    )
    err_console.print(f"[green]Placed[/] {escape(path_spec)}")


# --- Compliance ---


@main.command()
@click.option("--vendor", "vendor_name", default="", help="Only check this vendor")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_obj
@handle_errors
def check(project: Project, vendor_name: str, as_json: bool):
    """Report drift between internal vendor sources and destinations.

    Exits 1 when anything drifted or conflicts.
    """
    from vendorsync.sync.compliance import ComplianceOptions

    result = project.compliance().check(ComplianceOptions(vendor_name=vendor_name))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result(result)

    if result.summary.result != SummaryResult.SYNCED:
        sys.exit(1)


@main.command()
@click.option("--vendor", "vendor_name", default="", help="Only propagate this vendor")
@click.option("--dry-run", is_flag=True, help="Show what would be copied")
@click.option("--reverse", is_flag=True, help="Apply destination edits back to the source")
@click.pass_obj
@handle_errors
def propagate(project: Project, vendor_name: str, dry_run: bool, reverse: bool):
    """Propagate drift according to each vendor's compliance mode."""
    from vendorsync.sync.compliance import ComplianceOptions

    options = ComplianceOptions(vendor_name=vendor_name, dry_run=dry_run, reverse=reverse)
    try:
        result = project.compliance().propagate(options)
    except PropagationError as e:
        if e.result is not None:
            _print_result(e.result)
        err_console.print("\n[red]Propagation failed:[/]")
        for failure in e.failures:
            err_console.print(f"  [red]x[/] {escape(failure)}")
        sys.exit(1)

    _print_result(result)
    propagated = sum(1 for entry in result.entries if entry.propagated)
    if dry_run:
        console.print("\n[yellow]Dry run, nothing written.[/]")
    else:
        console.print(f"\n[green]Propagated {propagated} mapping(s).[/]")


def _print_result(result: ComplianceResult) -> None:
    if not result.entries:
        console.print("[yellow]No synced internal mappings found.[/]")
    else:
        table = Table(title=f"Compliance ({result.summary.result.value})")
        table.add_column("Vendor", style="cyan")
        table.add_column("Source")
        table.add_column("Destination")
        table.add_column("State")
        table.add_column("Action", style="dim")

        for entry in result.entries:
            style = STATE_STYLES[entry.state]
            table.add_row(
                entry.vendor_name,
                escape(entry.from_path),
                escape(entry.to_path),
                f"[{style}]{entry.state.value}[/]",
                escape(entry.action_text),
            )
        console.print(table)

    for warning in result.warnings:
        console.print(f"  [yellow]![/] {escape(warning)}")


# --- Configuration ---


@main.command()
@click.pass_obj
@handle_errors
def validate(project: Project):
    """Validate vendor.yml, including cycles between internal mappings."""
    project.validation().validate_config()
    console.print("[green]Valid![/]")


@main.command()
@click.pass_obj
@handle_errors
def conflicts(project: Project):
    """List destinations claimed by more than one vendor."""
    found = project.validation().detect_conflicts()
    if not found:
        console.print("[green]No path conflicts.[/]")
        return

    table = Table(title=f"Path Conflicts ({len(found)} found)")
    table.add_column("Path", style="cyan")
    table.add_column("Vendor")
    table.add_column("Vendor")
    for conflict in found:
        table.add_row(escape(conflict.path), conflict.vendor1, conflict.vendor2)
    console.print(table)
    sys.exit(1)


@main.command()
@click.option("--vendor", "vendor_name", default=None, help="Only sync this vendor")
@click.option("--dry-run", is_flag=True, help="Show what would be copied")
@click.option("--force", is_flag=True, help="Copy even when nothing appears to have changed")
@click.pass_obj
@handle_errors
def sync(project: Project, vendor_name: str | None, dry_run: bool, force: bool):
    """Copy internal vendor mappings and update the lock."""
    project.validation().validate_config()
    report = project.internal_sync().sync(vendor_name=vendor_name, dry_run=dry_run, force=force)

    for name in report.synced:
        verb = "Would sync" if dry_run else "Synced"
        console.print(f"  [green]v[/] {verb} {name}")
    for name in report.skipped:
        console.print(f"  [dim]-[/] {name} unchanged")
    for warning in report.warnings:
        console.print(f"  [yellow]![/] {escape(warning)}")

    if not dry_run:
        console.print(f"\n[green]{report.files_written} file(s) written.[/]")


if __name__ == "__main__":
    main()
