"""agconf CLI — sync and check managed agent configuration."""

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from agconf import __version__
from agconf.exceptions import AgconfError
from agconf.log import configure_logging

console = Console()


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.option("--log-json", is_flag=True, help="Write log events to stderr as JSON")
def main(verbose: bool, log_json: bool):
    """agconf — sync canonical agent instructions, skills, rules and agents.

    Content from a canonical repository is merged into downstream
    repositories without clobbering what those repositories wrote themselves.
    """
    configure_logging(verbose, json_logs=log_json)


# ── Sync ─────────────────────────────────────────────────────────────


@main.command()
@click.argument("target_dir", default=".", type=click.Path(file_okay=False))
@click.option("--local", "local_path", default=None, type=click.Path(exists=True, file_okay=False),
              help="Path to a local canonical repository (default: search nearby)")
@click.option("--target", "-t", "targets", multiple=True,
              help="Target agent(s), e.g. claude or claude,codex (default: from agconf.yaml)")
@click.option("--override", is_flag=True, help="Discard repository-specific content in AGENTS.md")
@click.option("--keep-orphans", is_flag=True, help="Do not delete skills, rules or agents removed upstream")
@click.option("--pinned", default=None, help="Record a pinned content version in the lockfile")
def sync(target_dir: str, local_path: str | None, targets: tuple[str, ...], override: bool,
         keep_orphans: bool, pinned: str | None):
    """Sync canonical content into TARGET_DIR."""
    from agconf.config import load_downstream_config, parse_targets
    from agconf.sync.engine import SyncOptions, sync as run_sync
    from agconf.sync.source import resolve_local_source

    try:
        resolved = resolve_local_source(local_path)
        if not targets:
            downstream = load_downstream_config(target_dir)
            targets = tuple(downstream.targets or ()) if downstream else ()
        options = SyncOptions(
            override=override,
            targets=parse_targets(targets) if targets else None,
            pinned_version=pinned,
            delete_orphans=not keep_orphans,
        )
        console.print(f"\n[bold blue]agconf[/] — Syncing from {resolved.source.describe()}\n")
        result = run_sync(Path(target_dir), resolved, options)
    except AgconfError as e:
        console.print(f"[red]Error:[/] {e}")
        raise SystemExit(1)

    if result.agents_md_written:
        note = " (repository content preserved)" if result.merge.preserved_repo_content else ""
        console.print(f"  [green]v[/] AGENTS.md updated{note}")
    else:
        console.print("  [dim]-[/] AGENTS.md unchanged")
    if result.claude_md.created or result.claude_md.updated:
        console.print("  [green]v[/] CLAUDE.md now references AGENTS.md")
    if result.claude_md.deleted_dot_claude_md:
        console.print("  [green]v[/] Removed .claude/CLAUDE.md (content merged into AGENTS.md)")

    targets_label = ", ".join(result.targets)
    console.print(f"  [green]v[/] {len(result.skills)} skill(s) synced to {targets_label}")
    if result.rules:
        console.print(f"  [green]v[/] {len(result.rules)} rule(s) synced")
    if result.agents:
        console.print(f"  [green]v[/] {len(result.agents)} agent(s) synced")

    for name in result.skills_modified:
        console.print(f"  [yellow]![/] Local changes to skill '{name}' were overwritten")
    for error in result.skill_errors:
        console.print(f"  [yellow]![/] Skill '{error.skill_name}': {'; '.join(error.errors)}")
    for error in result.agent_errors:
        console.print(f"  [yellow]![/] Agent '{error.agent_path}' skipped: {'; '.join(error.errors)}")

    for kind, orphans in (
        ("skill", result.orphaned_skills),
        ("rule", result.orphaned_rules),
        ("agent", result.orphaned_agents),
    ):
        for name in orphans.deleted:
            console.print(f"  [green]v[/] Removed orphaned {kind} '{name}'")
        for name in orphans.skipped:
            console.print(f"  [yellow]![/] Kept orphaned {kind} '{name}' (modified or not managed)")

    console.print(f"\n[green]Sync complete.[/] Lockfile written to {Path(target_dir) / '.agconf' / 'lockfile.json'}")


# ── Check ────────────────────────────────────────────────────────────


@main.command()
@click.argument("target_dir", default=".", type=click.Path(file_okay=False))
@click.option("--quiet", "-q", is_flag=True, help="No output; only the exit code")
def check(target_dir: str, quiet: bool):
    """Check that managed files in TARGET_DIR have not been modified.

    Exits with status 1 when a managed file was edited by hand.
    """
    from agconf.sync.drift import DriftDetector

    try:
        report = DriftDetector(target_dir).check()
    except AgconfError as e:
        if not quiet:
            console.print(f"[red]Error:[/] {e}")
        raise SystemExit(1)

    if not report.synced:
        if not quiet:
            console.print("[yellow]Not synced.[/] Run 'agconf sync' first.")
        return

    if quiet:
        if not report.passed:
            raise SystemExit(1)
        return

    console.print(f"\n[bold blue]agconf[/] — Checking managed files: {target_dir}\n")
    if report.schema_warning:
        console.print(f"  [yellow]![/] {report.schema_warning}")
    if report.schema_error:
        console.print(f"  [red]x[/] {report.schema_error}")
        raise SystemExit(1)

    if not report.files:
        console.print("[yellow]No managed files found.[/]")
        raise SystemExit(1)

    if not report.has_drift:
        console.print(f"  [green]OK[/] {report.summary()} ({len(report.files)} checked)")
        return

    console.print(f"  [red]DRIFT[/] {report.summary()}\n")
    for item in report.modified:
        label = f"{item.path} ({item.name})" if item.name and item.name not in item.path else item.path
        console.print(f"  [red]x[/] {label} [dim]{item.type}[/]")
        console.print(f"      Expected hash: {item.expected_hash}")
        console.print(f"      Current hash:  {item.current_hash}")
    console.print("\nRun 'agconf sync' to restore managed content, or move your changes to the repository block.")
    raise SystemExit(1)


# ── Status ───────────────────────────────────────────────────────────


@main.command()
@click.argument("target_dir", default=".", type=click.Path(file_okay=False))
def status(target_dir: str):
    """Show what the last sync recorded for TARGET_DIR."""
    from agconf.sync.engine import get_sync_status

    try:
        result = get_sync_status(target_dir)
    except AgconfError as e:
        console.print(f"[red]Error:[/] {e}")
        raise SystemExit(1)

    if result is None:
        console.print("[yellow]Not synced.[/] Run 'agconf sync' first.")
        return

    lockfile = result.lockfile
    table = Table(title="Sync status")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Source", lockfile.source.describe())
    table.add_row("Last synced", lockfile.synced_at)
    if lockfile.pinned_version:
        table.add_row("Pinned version", lockfile.pinned_version)
    table.add_row("Targets", ", ".join(lockfile.targets))
    table.add_row("Marker prefix", lockfile.marker_prefix or "agconf")
    table.add_row("Global block hash", lockfile.global_block_hash)
    table.add_row("Skills", str(len(lockfile.skills)))
    table.add_row("Rules", str(len(lockfile.rule_files)))
    table.add_row("Agents", str(len(lockfile.agent_files)))
    table.add_row("Schema", lockfile.version)
    console.print(table)

    if result.compatibility.warning:
        console.print(f"[yellow]![/] {result.compatibility.warning}")
    if result.compatibility.error:
        console.print(f"[red]x[/] {result.compatibility.error}")


if __name__ == "__main__":
    main()
