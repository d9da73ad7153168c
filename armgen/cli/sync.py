"""CLI sync command implementation.

Runs the sync orchestrator over a schema corpus and prints the change
report. Exit codes: 0 when every document succeeded, 1 when any document
failed, 2 when the run aborted or the invocation was invalid.
"""

import asyncio
import json
from pathlib import Path
import signal
import sys
from typing import Any

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
import rich_click as click

from ..core.config import SyncSettings
from ..core.exceptions import SyncEnvironmentError
from ..core.logging import configure_logging
from ..sync import ChangeKind, DocumentStatus, SchemaSync, SyncReport

# Create console for rich formatting
console = Console()

CHANGE_STYLES = {
    ChangeKind.ADDED: "green",
    ChangeKind.MODIFIED: "yellow",
    ChangeKind.UNCHANGED: "dim",
    ChangeKind.REMOVED: "red",
}

STATUS_ICONS = {
    DocumentStatus.SUCCEEDED: "✅",
    DocumentStatus.FAILED: "❌",
    DocumentStatus.SKIPPED: "⏭️",
}


def _should_use_rich_formatting(force_colors: bool = False) -> bool:
    """Determine if we should use rich formatting based on environment."""
    return force_colors or console.is_terminal


def _build_settings(config_file: Path | None, overrides: dict[str, Any]) -> SyncSettings:
    if config_file is not None:
        return SyncSettings.from_yaml(config_file, **overrides)
    return SyncSettings(**{key: value for key, value in overrides.items() if value is not None})


async def _run(sync: SchemaSync) -> SyncReport:
    """Run the sync, turning SIGINT into a cooperative cancellation."""
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
        installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        installed = False

    try:
        return await sync.run(cancel_event)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def _output_table_format(report: SyncReport, force_colors: bool = False) -> None:
    """Output the sync report as tables (rich) or plain lines."""
    counts = report.change_counts()
    summary = (
        f"{report.discovered} documents: {report.succeeded} succeeded, "
        f"{report.failed} failed, {report.skipped} skipped"
    )
    changes = ", ".join(f"{counts[kind.value]} {kind.value}" for kind in ChangeKind)

    if not _should_use_rich_formatting(force_colors):
        mode = " (dry run)" if report.dry_run else ""
        click.echo(f"Sync {report.phase.value}{mode}: {summary}")
        click.echo(f"Files: {changes}")
        for change in report.changes:
            if change.change != ChangeKind.UNCHANGED:
                click.echo(f"  {change.change.value}: {change.path}")
        for outcome in report.failures():
            click.echo(f"❌ {outcome.document}: {outcome.error_type}: {outcome.reason}")
        return

    title = "🔄 Sync report" + (" [dim](dry run)[/dim]" if report.dry_run else "")
    documents = Table(title=title, show_header=True, header_style="bold blue")
    documents.add_column("Document", style="cyan")
    documents.add_column("Status")
    documents.add_column("Package")
    documents.add_column("Details")
    for outcome in report.documents:
        details = (
            f"{outcome.error_type}: {outcome.reason}"
            if outcome.reason
            else f"{len(outcome.files)} files"
        )
        documents.add_row(
            outcome.document,
            f"{STATUS_ICONS[outcome.status]} {outcome.status.value}",
            outcome.package or "-",
            details,
        )
    console.print(documents)

    changed = [change for change in report.changes if change.change != ChangeKind.UNCHANGED]
    if changed:
        files = Table(show_header=True, header_style="bold blue")
        files.add_column("File")
        files.add_column("Change")
        for change in changed:
            style = CHANGE_STYLES[change.change]
            files.add_row(change.path, f"[{style}]{change.change.value}[/{style}]")
        console.print(files)

    console.print(f"[bold]{summary}[/bold]")
    console.print(f"Files: {changes}")
    console.print(f"Time: {report.duration_ms:.0f}ms")


@click.command("sync")
@click.argument("root", type=click.Path(file_okay=False, path_type=Path))
@click.argument("patterns", nargs=-1)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="📁 **Root of the generated tree** (default: ./generated)",
)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="⚡ **Documents processed at once**",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="⏱️ **Per-document timeout** in seconds",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="🧪 **Diff without writing** - report what would change",
)
@click.option(
    "--format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="📋 **Output format** for the sync report",
    show_default=True,
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="⚙️ **YAML settings file**",
)
@click.option(
    "--force-colors",
    is_flag=True,
    help="🎨 **Force colored output** - useful for testing rich formatting",
    hidden=True,
)
@click.pass_context
def sync_command(
    ctx: click.Context,
    root: Path,
    patterns: tuple[str, ...],
    output_dir: Path | None,
    concurrency: int | None,
    timeout: float | None,
    dry_run: bool,
    format: str,
    config_file: Path | None,
    force_colors: bool,
) -> None:
    """🔄 **Sync a generated tree with a schema corpus**

    Discovers ``*.json`` documents under ROOT (optionally filtered by fnmatch
    PATTERNS), regenerates every document and writes only the files that
    changed.

    **Examples:**

    ```bash
    armgen sync schemas/ -o generated/
    armgen sync schemas/ "2024-*/Microsoft.Network.json" --dry-run
    armgen sync schemas/ --format json
    ```
    """
    overrides = {
        "schemas_dir": root,
        "output_dir": output_dir,
        "patterns": list(patterns) or None,
        "concurrency": concurrency,
        "document_timeout_seconds": timeout,
        "dry_run": True if dry_run else None,
    }

    try:
        settings = _build_settings(config_file, overrides)
    except (ValidationError, SyncEnvironmentError) as e:
        click.echo(f"❌ Invalid configuration: {e}", err=True)
        sys.exit(2)

    options = ctx.find_object(dict) or {}
    configure_logging(
        environment=settings.environment,
        log_level=options.get("log_level") or settings.log_level,
        json_logs=options.get("json_logs") or settings.json_logs,
    )

    try:
        report = asyncio.run(_run(SchemaSync(settings)))
    except SyncEnvironmentError as e:
        if format == "json":
            click.echo(json.dumps({"phase": "aborted", "error": str(e)}, indent=2))
        else:
            click.echo(f"❌ Sync aborted: {e}", err=True)
        sys.exit(2)

    if format == "json":
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        _output_table_format(report, force_colors)

    sys.exit(1 if report.has_failures else 0)
