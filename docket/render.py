"""
Rendering functions for docket output.

This module handles all pretty-printing and table formatting.
Commands build plain dictionaries, this module makes them human-readable.
"""

from rich.table import Table
from rich.console import Console
from rich import box
from typing import List, Dict, Any, Optional

console = Console()


def _table(title: Optional[str]) -> Table:
    return Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )


def render_versions_table(name: str, versions: List[Dict[str, Any]]) -> None:
    """
    Render the published versions of an artifact.

    Args:
        name: Artifact name
        versions: Dicts with 'version', 'tag', 'release_date', 'prerelease', 'integration'
    """
    if not versions:
        console.print(f"[yellow]No releases found for {name}.[/yellow]")
        return

    table = _table(f"Releases of {name}")
    table.add_column("Version", style="cyan")
    table.add_column("Tag", style="green")
    table.add_column("Released", style="dim")
    table.add_column("Kind", style="magenta")

    for entry in versions:
        kind = "integration" if entry.get('integration') else "plugin"
        if entry.get('prerelease'):
            kind += " (pre)"
        table.add_row(
            entry['version'],
            entry['tag'],
            entry.get('release_date') or "unreleased",
            kind,
        )

    console.print(table)


def render_plugins_table(package_desc: str, plugins: List[Dict[str, Any]]) -> None:
    """
    Render the plugins provided by one release package.

    Args:
        package_desc: Package description, e.g. "logstash-integration-kafka@v11.0.0"
        plugins: Dicts with 'canonical_name', 'type', 'name', 'kind', 'release_date'
    """
    if not plugins:
        console.print(f"[yellow]No plugins found in {package_desc}.[/yellow]")
        return

    table = _table(f"Plugins in {package_desc}")
    table.add_column("Plugin", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Kind", style="magenta")
    table.add_column("Released", style="dim")

    for plugin in plugins:
        table.add_row(
            plugin['canonical_name'],
            plugin['type'],
            plugin['kind'],
            plugin.get('release_date') or "unreleased",
        )

    console.print(table)


def render_scan_table(details: List[Dict[str, Any]]) -> None:
    """
    Render per-repository scan results.

    Args:
        details: Dicts with 'name', 'status', 'packages', 'plugins', 'error'
    """
    if not details:
        console.print("[yellow]No repositories scanned.[/yellow]")
        return

    status_styles = {
        'updated': "[green]updated[/green]",
        'unchanged': "[dim]unchanged[/dim]",
        'skipped': "[yellow]skipped[/yellow]",
        'failed': "[red]failed[/red]",
    }

    table = _table("Scan Results")
    table.add_column("Repository", style="cyan")
    table.add_column("Status")
    table.add_column("Releases", justify="right")
    table.add_column("Plugins", justify="right")
    table.add_column("Error", style="red")

    for detail in details:
        table.add_row(
            detail['name'],
            status_styles.get(detail['status'], detail['status']),
            str(detail.get('packages', 0)),
            str(detail.get('plugins', 0)),
            detail.get('error') or "",
        )

    console.print(table)


def print_scan_summary(summary: Dict[str, Any]) -> None:
    """Print totals of a scan below its table."""
    console.print(
        f"\n[bold]Total:[/bold] {summary['total']} repositories  "
        f"[green]{summary['updated']} updated[/green]  "
        f"[dim]{summary['unchanged']} unchanged[/dim]  "
        f"[yellow]{summary['skipped']} skipped[/yellow]  "
        f"[red]{summary['failed']} failed[/red]"
    )

    if summary.get('updated_plugins'):
        console.print(f"[bold]Plugins to reindex:[/bold] {len(summary['updated_plugins'])}")
    for plugin_type, names in sorted(summary.get('types', {}).items()):
        console.print(f"  {plugin_type}: {len(names)} plugins")


def render_rate_limit(status: Dict[str, Any]) -> None:
    """Render GitHub API rate limit status."""
    remaining = status['remaining']
    limit = status['limit']
    style = "red" if remaining < 100 else "green"
    console.print(f"GitHub rate limit: [{style}]{remaining}/{limit}[/{style}] remaining")
    if remaining < 100:
        console.print("[yellow]Warning! API rate limit is close to being reached.[/yellow]")
