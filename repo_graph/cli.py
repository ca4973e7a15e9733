"""
CLI commands for repo-graph.

Provides the `repo-graph` command-line interface for project setup, git
hook installation and dispatch, impact reports, structural extraction and
semantic link maintenance.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from config.loader import ConfigurationLoader
from core.hooks.installer import HookInstaller, HookInstallError
from core.impact import git
from core.models.config import GlobalSettings, Verbosity
from core.models.hooks import HookEvent, HookResult, HookType
from core.models.impact import ImpactReport, RiskLevel
from core.models.linking import BatchLinkResult, DiscoveryResult
from core.models.parse import ParseResult
from core.relationships.registry import extractor_registry
from repo_graph import __version__
from repo_graph.context import RepoGraphContext
from repo_graph.logging_setup import configure_logging

console = Console()

RISK_STYLES = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red",
}


def _load_context(project_path: Optional[Path] = None) -> RepoGraphContext:
    """Build a context for the project at project_path (default: cwd)"""
    return RepoGraphContext.from_path(project_path or Path.cwd(), console=console)


@click.group()
@click.version_option(version=__version__, prog_name="repo-graph")
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def main(verbose: bool):
    """
    repo-graph CLI.

    Keep a code knowledge graph in sync with your git repository.
    """
    configure_logging(GlobalSettings(), Verbosity.VERBOSE if verbose else None)


@main.command()
@click.option('--force', '-f', is_flag=True, help='Overwrite existing configuration')
@click.option('--server-url', help='Tool server URL used for indexing and search')
@click.option('--qdrant-url', help='Qdrant server URL')
def init(force: bool, server_url: Optional[str], qdrant_url: Optional[str]):
    """Initialize repo-graph for the current project."""
    project_path = Path.cwd()
    loader = ConfigurationLoader()

    existing = loader.load_project_config(project_path)
    if existing.is_initialized and not force:
        console.print("[yellow]⚠️  Project already initialized. Use --force to overwrite.[/yellow]")
        return

    console.print("[blue]🚀 Initializing repo-graph...[/blue]")

    try:
        config = loader.setup_project(project_path, overwrite=True)
        if server_url:
            config.hooks.server_url = server_url
        if qdrant_url:
            config.qdrant.url = qdrant_url
        if not loader.save_project_config(config):
            raise click.ClickException(f"Could not write {config.get_config_file()}")
    except (ValueError, click.ClickException) as e:
        console.print(f"[red]❌ Failed to create configuration: {e}[/red]")
        sys.exit(1)

    console.print(f"[blue]📂 Project: {config.name}[/blue]")
    console.print(f"[blue]🗄️  Database: {config.get_database_path()}[/blue]")
    console.print(f"[green]✅ Created {config.get_config_file()}[/green]")
    console.print("\n[blue]Next steps:[/blue]")
    console.print("1. Install git hooks: [bold]repo-graph install-hooks[/bold]")
    console.print("2. Check impact of your branch: [bold]repo-graph impact[/bold]")


@main.command(name="install-hooks")
@click.option('--force', '-f', is_flag=True, help='Replace hooks not managed by repo-graph')
def install_hooks(force: bool):
    """Install git hook shims for the enabled hooks."""
    config = ConfigurationLoader().load_project_config(Path.cwd())
    installer = HookInstaller(Path.cwd(), config.hooks)

    try:
        result = installer.install(force=force)
    except HookInstallError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)

    for hook_type in result.installed:
        console.print(f"[green]✅ Installed {hook_type.value}[/green]")
    for reason in result.skipped:
        console.print(f"[yellow]⚠️  Skipped {reason}[/yellow]")
    if not result.changed:
        console.print("[dim]No hooks installed[/dim]")


@main.command(name="uninstall-hooks")
def uninstall_hooks():
    """Remove git hook shims written by repo-graph."""
    config = ConfigurationLoader().load_project_config(Path.cwd())
    installer = HookInstaller(Path.cwd(), config.hooks)

    try:
        result = installer.uninstall()
    except HookInstallError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)

    for hook_type in result.removed:
        console.print(f"[green]🗑️  Removed {hook_type.value}[/green]")
    for reason in result.skipped:
        console.print(f"[yellow]⚠️  Kept {reason}[/yellow]")
    if not result.changed:
        console.print("[dim]No repo-graph hooks found[/dim]")


@main.command(context_settings={"ignore_unknown_options": True})
@click.argument('hook_type', type=click.Choice([t.value for t in HookType]))
@click.argument('git_args', nargs=-1, type=click.UNPROCESSED)
def hook(hook_type: str, git_args: Tuple[str, ...]):
    """Handle a git hook event (called by the installed shims)."""
    context = _load_context()
    verbosity = context.config.hooks.verbosity
    configure_logging(GlobalSettings(), verbosity)

    try:
        event = asyncio.run(_build_event(HookType(hook_type), Path.cwd(), list(git_args)))
        result = asyncio.run(context.hook_handler().handle(event))
    finally:
        context.close()

    _print_hook_result(result, verbosity, notify_on_error=context.config.hooks.notify_on_error)
    if not result.success:
        sys.exit(1)


@main.command()
@click.option('--base', '-b', help='Base branch (default: detected main/master)')
@click.option('--target', '-t', default='HEAD', help='Target branch or ref')
@click.option('--json', 'as_json', is_flag=True, help='Print the report as JSON')
@click.option('--save/--no-save', default=True, help='Persist the report')
def impact(base: Optional[str], target: str, as_json: bool, save: bool):
    """Analyze the impact of changes between two branches."""
    context = _load_context()
    try:
        report = asyncio.run(_run_impact(context, base, target, save))
    finally:
        context.close()

    if as_json:
        click.echo(report.model_dump_json(indent=2))
        return

    _print_impact_report(report)


@main.command()
@click.option(
    '--hook-type',
    type=click.Choice([t.value for t in HookType]),
    help='Only show one hook type'
)
@click.option('--limit', '-n', default=20, show_default=True, help='Number of executions')
def history(hook_type: Optional[str], limit: int):
    """Show recent hook executions."""
    context = _load_context()
    try:
        executions = asyncio.run(context.hook_store.get_recent_executions(
            context.project_id,
            hook_type=HookType(hook_type) if hook_type else None,
            limit=limit
        ))
    finally:
        context.close()

    if not executions:
        console.print("[dim]No hook executions recorded[/dim]")
        return

    table = Table(title="Hook Executions")
    table.add_column("When", style="dim", no_wrap=True)
    table.add_column("Hook", style="cyan")
    table.add_column("Branch")
    table.add_column("Status")
    table.add_column("Files", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Message", style="dim")

    for execution in executions:
        status = "[green]✅ ok[/green]" if execution.success else "[red]❌ failed[/red]"
        table.add_row(
            execution.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            execution.hook_type.value,
            execution.branch,
            status,
            str(execution.files_indexed),
            f"{execution.duration_ms:.0f}ms",
            execution.message
        )

    console.print(table)


@main.command()
@click.argument('parse_result', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--language', '-l', help='Language or extension (default: from the parse result)')
@click.option('--store', is_flag=True, help='Write the relationships into the project graph')
@click.option('--json', 'as_json', is_flag=True, help='Print relationships as JSON')
def extract(parse_result: Path, language: Optional[str], store: bool, as_json: bool):
    """Extract structural relationships from a parse-result JSON file."""
    try:
        data = json.loads(parse_result.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        console.print(f"[red]❌ Cannot read {parse_result}: {e}[/red]")
        sys.exit(1)

    parsed = ParseResult.model_validate(data if isinstance(data, dict) else {})
    extractor = (
        extractor_registry.get_extractor(language or parsed.language)
        or extractor_registry.get_extractor_for_file(parsed.file_path)
    )
    if extractor is None:
        console.print(f"[red]❌ No extractor for {language or parsed.language or parsed.file_path or 'unknown language'}[/red]")
        sys.exit(1)

    relationships = extractor.extract(parsed)

    if as_json:
        click.echo(json.dumps(
            [rel.model_dump(mode="json") for rel in relationships], indent=2
        ))
    else:
        table = Table(title=f"Relationships in {parsed.file_path or parse_result.name}")
        table.add_column("Type", style="cyan")
        table.add_column("Source")
        table.add_column("Target")
        table.add_column("Weight", justify="right")
        for rel in relationships:
            table.add_row(rel.type.value, rel.source, rel.target, f"{rel.weight:.1f}")
        console.print(table)

    if store:
        context = _load_context()
        try:
            result = asyncio.run(
                context.structural_writer().write(relationships, file_path=parsed.file_path or None)
            )
        finally:
            context.close()

        console.print(f"[green]✅ Stored {result.data or 0} new relationships[/green]")
        for warning in result.warnings:
            console.print(f"[yellow]⚠️  {warning}[/yellow]")


@main.group()
def link():
    """Maintain semantic similarity links."""
    pass


@link.command()
@click.option('--min-similarity', type=float, help='Minimum similarity (default: from config)')
@click.option('--max-per-entity', type=int, help='Maximum links per entity (default: from config)')
@click.option('--all', 'include_linked', is_flag=True, help='Also process entities that already have links')
@click.option('--index/--no-index', 'sync_index', default=True, help='Embed graph entities into the similarity index first')
def discover(
    min_similarity: Optional[float],
    max_per_entity: Optional[int],
    include_linked: bool,
    sync_index: bool
):
    """Discover similarity links across the graph."""
    context = _load_context()
    linking = context.config.linking

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True
        ) as progress:
            progress.add_task("Discovering semantic links...", total=None)
            result = asyncio.run(_discover(
                context,
                min_similarity=min_similarity if min_similarity is not None else linking.min_similarity,
                max_per_entity=max_per_entity or linking.max_links_per_entity,
                skip_existing=not include_linked,
                sync_index=sync_index
            ))
    except Exception as e:
        console.print(f"[red]❌ Discovery failed: {e}[/red]")
        sys.exit(1)
    finally:
        context.close()

    console.print(
        f"[green]🔗 Created {result.created} links[/green] "
        f"[dim]({result.entities_processed} processed, {result.entities_skipped} skipped)[/dim]"
    )
    for warning in result.warnings:
        console.print(f"[yellow]⚠️  {warning}[/yellow]")


@link.command()
@click.option('--min-weight', type=float, help='Prune links weaker than this (default: from config)')
def prune(min_weight: Optional[float]):
    """Delete weak semantically discovered links."""
    context = _load_context()
    threshold = min_weight if min_weight is not None else context.config.linking.prune_below

    try:
        pruned = asyncio.run(context.linker().prune_weak_links(min_weight=threshold))
    finally:
        context.close()

    console.print(f"[green]🧹 Pruned {pruned} links below {threshold}[/green]")


@link.command(name="batch")
@click.argument('entity_ids', nargs=-1, required=True)
@click.option('--min-similarity', type=float, help='Minimum similarity (default: from config)')
@click.option('--index/--no-index', 'sync_index', default=True, help='Embed graph entities into the similarity index first')
def batch(entity_ids: Tuple[str, ...], min_similarity: Optional[float], sync_index: bool):
    """Link the given entities to their most similar entities."""
    context = _load_context()
    linking = context.config.linking

    try:
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=console,
            transient=True
        ) as progress:
            task = progress.add_task("Linking entities...", total=len(entity_ids))
            result = asyncio.run(_batch_link(
                context,
                list(entity_ids),
                min_similarity=min_similarity if min_similarity is not None else linking.min_similarity,
                sync_index=sync_index,
                on_progress=lambda done, total: progress.update(task, completed=done)
            ))
    finally:
        context.close()

    console.print(f"[green]🔗 Created {result.total_created} links for {result.entities_processed} entities[/green]")
    for warning in result.warnings:
        console.print(f"[yellow]⚠️  {warning}[/yellow]")


async def _build_event(hook_type: HookType, repo_path: Path, git_args: List[str]) -> HookEvent:
    """Assemble a HookEvent from git state and the hook's arguments."""
    current_branch = await git.get_current_branch(repo_path)
    current_commit = await git.get_head_commit(repo_path)
    previous_commit = None

    if hook_type == HookType.POST_CHECKOUT and len(git_args) >= 2:
        previous_commit, current_commit = git_args[0], git_args[1]
    elif hook_type == HookType.POST_MERGE:
        previous_commit = await git.resolve_ref(repo_path, "ORIG_HEAD") or None

    return HookEvent(
        type=hook_type,
        repository=str(repo_path),
        current_branch=current_branch,
        current_commit=current_commit,
        previous_commit=previous_commit,
    )


async def _run_impact(
    context: RepoGraphContext,
    base: Optional[str],
    target: str,
    save: bool
) -> ImpactReport:
    """Run impact analysis and optionally persist the report."""
    repo_path = context.config.path
    base_branch = base or await git.detect_base_branch(repo_path)

    report = await context.analyzer().analyze(
        project_id=context.project_id,
        base_branch=base_branch,
        target_branch=target,
        repo_path=repo_path
    )
    if save:
        await context.hook_store.save_impact_report(context.project_id, report)
    return report


async def _sync_index(context: RepoGraphContext) -> List[str]:
    """Embed linkable graph entities; returns warnings instead of failing"""
    result = await context.sync_similarity_index(context.config.linking.entity_types)
    if result.success:
        return []
    return [f"Similarity index sync failed: {result.error}"]


async def _discover(
    context: RepoGraphContext,
    min_similarity: float,
    max_per_entity: int,
    skip_existing: bool,
    sync_index: bool
) -> DiscoveryResult:
    warnings = await _sync_index(context) if sync_index else []
    result = await context.linker().discover_relationships(
        min_similarity=min_similarity,
        max_per_entity=max_per_entity,
        entity_types=context.config.linking.entity_types,
        skip_existing=skip_existing
    )
    result.warnings[:0] = warnings
    return result


async def _batch_link(
    context: RepoGraphContext,
    entity_ids: List[str],
    min_similarity: float,
    sync_index: bool,
    on_progress=None
) -> BatchLinkResult:
    warnings = await _sync_index(context) if sync_index else []
    result = await context.linker().batch_link(
        entity_ids,
        min_similarity=min_similarity,
        max_links_per_entity=context.config.linking.max_links_per_entity,
        on_progress=on_progress
    )
    result.warnings[:0] = warnings
    return result


def _print_hook_result(result: HookResult, verbosity: Verbosity, notify_on_error: bool = True) -> None:
    if verbosity == Verbosity.SILENT and result.success:
        return

    prefix = f"repo-graph {result.hook_type.value}:"
    if result.success:
        console.print(f"[dim]{prefix}[/dim] {result.message}")
    else:
        console.print(f"[red]{prefix} {result.message or 'failed'}[/red]")

    for warning in result.warnings:
        console.print(f"[yellow]⚠️  {warning}[/yellow]")
    if not notify_on_error:
        return
    for error in result.errors:
        console.print(f"[red]❌ {error}[/red]")


def _print_impact_report(report: ImpactReport) -> None:
    style = RISK_STYLES.get(report.risk_level, "white")

    summary = (
        f"Risk Level: [{style}]{report.risk_level.value.upper()}[/{style}]\n"
        f"Files: +{len(report.files_added)} ~{len(report.files_modified)} -{len(report.files_deleted)}\n"
        f"Affected: {len(report.affected_entities)} entities, {len(report.affected_decisions)} decisions"
    )
    console.print(Panel(summary, title=f"Impact: {report.base_branch}...{report.target_branch}", expand=False))

    for reason in report.reasons:
        console.print(f"  • {reason}")

    if report.affected_entities:
        table = Table(title="Affected Entities")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("File", style="dim")
        table.add_column("Change")
        table.add_column("Usages", justify="right")
        for entity in report.affected_entities:
            table.add_row(
                entity.name, entity.type, entity.file_path,
                entity.change_type.value, str(entity.usage_count)
            )
        console.print(table)

    if report.suggestions:
        console.print("\n[blue]Recommendations:[/blue]")
        for suggestion in report.suggestions:
            console.print(f"  - {suggestion}")

    for warning in report.warnings:
        console.print(f"[yellow]⚠️  {warning}[/yellow]")


if __name__ == "__main__":
    main()
