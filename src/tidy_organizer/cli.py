"""Command line interface for tidy organizer."""

import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .core.operation_history import OperationHistoryStore
from .core.priority_preview import detect_priority_ties, preview_rule_priority
from .core.restore import restore_file
from .core.template_renderer import render_filename
from .core.template_resolver import resolve_template_for_rule
from .core.undo import UndoEngine
from .core.unified_priority import get_unified_rule_priorities
from .domain.result import DomainError, Failure, Result, TemplateError
from .exceptions import FileOperationError, TidyOrganizerError
from .models.config import AppConfig, load_config
from .models.file_info import FileInfo
from .models.history import OperationType, PruneConfig
from .models.metadata import UnifiedMetadata
from .utils.format import format_bytes, format_duration

console = Console()

FORMAT_OPTION = click.option(
    '--format', 'output_format',
    type=click.Choice(['table', 'json']),
    default='table',
    help='Output format (default: table)'
)


def _print_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


def _fail(error: Any, output_format: str = 'table') -> None:
    """Report an error and exit with status 1."""
    if output_format == 'json' and isinstance(error, DomainError):
        _print_json({"error": error.to_dict()})
    else:
        message = error.message if isinstance(error, DomainError) else str(error)
        console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


def _config(ctx: click.Context) -> AppConfig:
    if ctx.obj.get('config') is None:
        try:
            ctx.obj['config'] = load_config(ctx.obj['config_path'])
        except TidyOrganizerError as e:
            _fail(e)
    return ctx.obj['config']


def _history(ctx: click.Context) -> OperationHistoryStore:
    config = _config(ctx)
    return OperationHistoryStore(ctx.obj['history_path'], prune_config=config.preferences.prune_config)


def _metadata_for(path: Path) -> UnifiedMetadata:
    """Basic metadata from the file system for rule previews."""
    try:
        stat = path.stat()
    except OSError as e:
        raise FileOperationError(f"Cannot read {path}: {e}") from e
    file_info = FileInfo.from_path(
        path.resolve(),
        size=stat.st_size,
        created_at=datetime.fromtimestamp(stat.st_ctime, tz=timezone.utc),
        modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
    )
    return UnifiedMetadata.basic(file_info)


def _render_resolved(config: AppConfig, template_id: Optional[str],
                     metadata: UnifiedMetadata) -> Result[str, TemplateError]:
    """The filename the resolved template would produce."""
    template = config.get_template(template_id) if template_id else None
    if template is None:
        return Failure(TemplateError(TemplateError.NOT_FOUND, "No template resolved",
                                     {"templateId": template_id}))
    return render_filename(template.pattern, metadata)


@click.group()
@click.version_option(version=__version__)
@click.option(
    '--config', 'config_path',
    type=click.Path(path_type=Path),
    help='Configuration file path'
)
@click.option(
    '--history-file', 'history_path',
    type=click.Path(path_type=Path),
    help='Operation history file path'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Verbose output'
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], history_path: Optional[Path], verbose: bool):
    """Rule-driven file renaming with history and undo."""
    ctx.ensure_object(dict)
    ctx.obj.update(config_path=config_path, history_path=history_path, config=None)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


# History


@cli.group()
def history():
    """Inspect and prune operation history."""
    pass


@history.command('list')
@click.option('--limit', type=int, default=20, help='Number of entries to show (default: 20, 0 for all)')
@click.option(
    '--type', 'operation_type',
    type=click.Choice([t.value for t in OperationType]),
    help='Only show operations of this type'
)
@FORMAT_OPTION
@click.pass_context
def history_list(ctx: click.Context, limit: int, operation_type: Optional[str], output_format: str):
    """List recorded operations, newest first."""
    result = asyncio.run(_history(ctx).query(
        limit=limit, operation_type=OperationType(operation_type) if operation_type else None,
    ))
    if result.is_failure():
        _fail(result.error(), output_format)
    entries = result.value()

    if output_format == 'json':
        _print_json([e.to_dict() for e in entries])
        return

    if not entries:
        console.print("[yellow]No operations in history[/yellow]")
        return

    table = Table(title="Operation History")
    table.add_column("ID", style="cyan")
    table.add_column("Date")
    table.add_column("Type")
    table.add_column("Files", justify="right")
    table.add_column("Succeeded", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Status")

    for entry in entries:
        table.add_row(
            entry.id[:8],
            entry.timestamp.astimezone().strftime("%Y-%m-%d %H:%M"),
            entry.operation_type.value,
            str(entry.file_count),
            str(entry.summary.succeeded),
            str(entry.summary.failed),
            "[dim]undone[/dim]" if entry.is_undone else "",
        )
    console.print(table)


@history.command('show')
@click.argument('operation_id')
@FORMAT_OPTION
@click.pass_context
def history_show(ctx: click.Context, operation_id: str, output_format: str):
    """Show one operation and its files."""
    result = asyncio.run(_history(ctx).get(operation_id))
    if result.is_failure():
        _fail(result.error(), output_format)
    entry = result.value()
    if entry is None:
        _fail(f"Operation not found: {operation_id}", output_format)

    if output_format == 'json':
        _print_json(entry.to_dict())
        return

    details = [
        f"[bold]Type:[/bold] {entry.operation_type.value}",
        f"[bold]Date:[/bold] {entry.timestamp.astimezone().strftime('%Y-%m-%d %H:%M:%S')}",
        f"[bold]Duration:[/bold] {format_duration(entry.duration_ms)}",
        f"[bold]Files:[/bold] {entry.summary.succeeded} succeeded, "
        f"{entry.summary.skipped} skipped, {entry.summary.failed} failed",
    ]
    if entry.is_undone:
        details.append(f"[bold]Undone:[/bold] {entry.undone_at.astimezone().strftime('%Y-%m-%d %H:%M:%S')}")
    console.print(Panel("\n".join(details), title=f"Operation {entry.id}"))

    table = Table()
    table.add_column("Original", style="cyan")
    table.add_column("New")
    table.add_column("Result")
    for record in entry.files:
        status = "[green]ok[/green]" if record.success else f"[red]{record.error or 'failed'}[/red]"
        table.add_row(record.original_path, record.new_path or "-", status)
    console.print(table)


@history.command('prune')
@click.option('--max-entries', type=click.IntRange(min=0), help='Keep at most this many entries (0 = unlimited)')
@click.option('--max-age-days', type=click.IntRange(min=0), help='Drop entries older than this (0 = unlimited)')
@FORMAT_OPTION
@click.pass_context
def history_prune(ctx: click.Context, max_entries: Optional[int], max_age_days: Optional[int], output_format: str):
    """Remove old history entries."""
    defaults = _config(ctx).preferences.prune_config
    config = PruneConfig(
        max_entries=defaults.max_entries if max_entries is None else max_entries,
        max_age_days=defaults.max_age_days if max_age_days is None else max_age_days,
    )
    result = asyncio.run(_history(ctx).prune(config))
    if result.is_failure():
        _fail(result.error(), output_format)

    if output_format == 'json':
        _print_json({"removed": result.value()})
    else:
        console.print(f"[green]Removed {result.value()} history entries[/green]")


# Undo


@cli.command()
@click.argument('operation_id', required=False)
@click.option('--dry-run', is_flag=True, help='Show what would be restored without making changes')
@click.option('--force', is_flag=True, help='Proceed even when some files cannot be restored')
@FORMAT_OPTION
@click.pass_context
def undo(ctx: click.Context, operation_id: Optional[str], dry_run: bool, force: bool, output_format: str):
    """Undo OPERATION_ID, or the most recent operation."""
    result = asyncio.run(UndoEngine(_history(ctx)).undo(operation_id, dry_run=dry_run, force=force))
    if result.is_failure():
        _fail(result.error(), output_format)
    outcome = result.value()

    if output_format == 'json':
        _print_json(outcome.to_dict())
    else:
        table = Table(title="Undo preview" if outcome.dry_run else "Undo")
        table.add_column("Original", style="cyan")
        table.add_column("Current")
        table.add_column("Result")
        for item in outcome.files:
            if item.success:
                status = "[green]restored[/green]" if not outcome.dry_run else "[green]would restore[/green]"
            elif item.skipped:
                status = f"[yellow]skipped ({item.skip_reason})[/yellow]"
            else:
                status = f"[red]{item.error}[/red]"
            table.add_row(item.original_path, item.current_path or "-", status)
        console.print(table)
        console.print(
            f"{outcome.files_restored} restored, {outcome.files_skipped} skipped, "
            f"{outcome.files_failed} failed"
        )
        for directory in outcome.directories_removed:
            console.print(f"[dim]Removed empty directory {directory}[/dim]")
        if outcome.dry_run and not dry_run:
            console.print("[yellow]Conflicts found; nothing was changed. Re-run with --force to proceed.[/yellow]")

    if not outcome.success:
        sys.exit(1)


@cli.command()
@click.argument('path', required=False)
@click.option('--operation', 'operation_id', help='Restore every file of this operation (same as undo)')
@click.option('--lookup', is_flag=True, help="Only show the file's history, don't restore")
@click.option('--dry-run', is_flag=True, help='Show what would be restored without making changes')
@FORMAT_OPTION
@click.pass_context
def restore(ctx: click.Context, path: Optional[str], operation_id: Optional[str], lookup: bool,
            dry_run: bool, output_format: str):
    """Restore PATH to its original name from history."""
    if not path and not operation_id:
        _fail("A file path or --operation is required", output_format)
    store = _history(ctx)

    if lookup:
        if not path:
            _fail("--lookup needs a file path", output_format)
        found = asyncio.run(store.lookup_file_history(path))
        if found.is_failure():
            _fail(found.error(), output_format)
        history_lookup = found.value()
        if history_lookup is None:
            _fail(f"No history found for file: {path}", output_format)
        if output_format == 'json':
            _print_json(history_lookup.to_dict())
            return
        console.print(Panel(
            f"[bold]Original:[/bold] {history_lookup.original_path}\n"
            f"[bold]Current:[/bold] {history_lookup.current_path or '-'}\n"
            f"[bold]At original:[/bold] {'yes' if history_lookup.is_at_original else 'no'}",
            title=f"History of {Path(path).name}",
        ))
        table = Table()
        table.add_column("Operation", style="cyan")
        table.add_column("Date")
        table.add_column("From")
        table.add_column("To")
        for op in history_lookup.operations:
            table.add_row(op.operation_id[:8], op.timestamp.astimezone().strftime("%Y-%m-%d %H:%M"),
                          op.original_path, op.new_path or "-")
        console.print(table)
        return

    result = asyncio.run(restore_file(store, path, dry_run=dry_run, operation_id=operation_id))
    if result.is_failure():
        _fail(result.error(), output_format)
    outcome = result.value()

    if output_format == 'json':
        _print_json(outcome.to_dict())
    elif not outcome.success:
        console.print(f"[red]Error: {outcome.error}[/red]")
    elif outcome.message:
        console.print(f"[yellow]{outcome.message}[/yellow]")
    else:
        verb = "Would restore" if outcome.dry_run else "Restored"
        console.print(f"[green]{verb}[/green] {outcome.previous_path} -> {outcome.original_path}")

    if not outcome.success:
        sys.exit(1)


# Rules


@cli.group()
def rules():
    """Inspect rule priorities."""
    pass


@rules.command('list')
@FORMAT_OPTION
@click.pass_context
def rules_list(ctx: click.Context, output_format: str):
    """List all rules in evaluation order."""
    config = _config(ctx)
    ordered = get_unified_rule_priorities(config)

    if output_format == 'json':
        _print_json([r.to_dict() for r in ordered])
        return

    if not ordered:
        console.print("[yellow]No rules configured[/yellow]")
        return

    table = Table(title=f"Rules ({config.preferences.rule_priority_mode.value})")
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Family")
    table.add_column("Priority", justify="right")
    table.add_column("Template")
    table.add_column("Enabled")
    for position, rule in enumerate(ordered, 1):
        table.add_row(
            str(position), rule.name, rule.family.value, str(rule.priority), rule.template_id,
            "yes" if rule.enabled else "[dim]no[/dim]",
        )
    console.print(table)


@rules.command('preview')
@click.argument('file_path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@FORMAT_OPTION
@click.pass_context
def rules_preview(ctx: click.Context, file_path: Path, output_format: str):
    """Show how the rules evaluate against FILE_PATH."""
    config = _config(ctx)
    try:
        metadata = _metadata_for(file_path)
    except FileOperationError as e:
        _fail(e, output_format)
    preview = preview_rule_priority(metadata, config)
    resolution = resolve_template_for_rule(metadata, config)
    rendered = _render_resolved(config, resolution.template_id, metadata)

    if output_format == 'json':
        _print_json({
            "preview": preview.to_dict(),
            "resolution": resolution.to_dict(),
            "rendered": rendered.value() if rendered.is_success() else None,
            "renderError": rendered.error().message if rendered.is_failure() else None,
        })
        return

    console.print(f"\n[bold]File: {file_path.name}[/bold] ({format_bytes(metadata.file.size)})")
    table = Table()
    table.add_column("Rule", style="cyan")
    table.add_column("Family")
    table.add_column("Priority", justify="right")
    table.add_column("Result")
    for entry in preview.evaluation_order:
        if not entry.will_evaluate:
            status = f"[dim]skipped ({entry.skip_reason})[/dim]"
        elif entry.error:
            status = f"[red]error: {entry.error}[/red]"
        elif entry.rule is preview.winning_rule:
            status = "[green]winner[/green]"
        elif entry.matched:
            status = "[yellow]matched (lower priority)[/yellow]"
        else:
            status = "no match"
        table.add_row(entry.rule.name, entry.rule.family.value, str(entry.rule.priority), status)
    console.print(table)
    console.print(f"[bold]Template:[/bold] {resolution.template_id or '-'} ({resolution.reason.value})")
    console.print(resolution.explanation)
    if rendered.is_success():
        console.print(f"[bold]New name:[/bold] {rendered.value()}")
    elif resolution.template_id:
        console.print(f"[red]Cannot render template: {rendered.error().message}[/red]")


@rules.command('ties')
@FORMAT_OPTION
@click.pass_context
def rules_ties(ctx: click.Context, output_format: str):
    """Report enabled rules that share a priority."""
    ties = detect_priority_ties(_config(ctx))

    if output_format == 'json':
        _print_json([t.to_dict() for t in ties])
        return

    if not ties:
        console.print("[green]No priority ties[/green]")
        return

    for tie in ties:
        names = ", ".join(r.name for r in tie.rules)
        scope = " (across families)" if tie.cross_family else ""
        console.print(f"[yellow]Priority {tie.priority}{scope}:[/yellow] {names} "
                      f"[dim]→ {tie.rules[0].name} wins[/dim]")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
