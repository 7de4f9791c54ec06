"""
Commands that work across many plugin repositories.

- scan: resolve repositories in parallel and index their plugins
- rate-limit: GitHub API quota used by discovery
"""

import json
import click

from ..config import logger
from ..exit_codes import API_ERROR, CommandError, PartialSuccessError
from ..infra.github_client import GitHubClient
from ..render import render_rate_limit, render_scan_table, print_scan_summary
from ..services import ScanOptions, ScanService
from ..cli_utils import standard_command, add_common_options, output_json_lines


@click.command("scan")
@click.argument("names", nargs=-1)
@click.option("--org", default=None, help="Discover repositories of this GitHub organization")
@click.option("--since", type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]),
              default=None, help="Report releases on or after this date as updated")
@click.option("--cutoff", type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]),
              default=None, help="Leave out plugins released before this date")
@click.option("-p", "--parallel", type=int, default=None, help="Worker threads (default: from config)")
@add_common_options('verbose', 'json', 'prerelease')
@standard_command
def scan_cmd(names, org, since, cutoff, parallel, include_prerelease, output_json, config):
    """
    Resolve plugin repositories and index their released plugins.

    Without NAMES, repositories are discovered in the GitHub organization
    given by --org (default: github.default_org). Names are filtered by
    scan.plugin_regex and scan.skip.

    Examples:

    \b
        docket scan logstash-filter-mutate logstash-integration-kafka
        docket scan --org logstash-plugins --since 2024-01-01
        docket scan --parallel 8 --json
    """
    scan_config = config.get('scan', {})
    service = ScanService(config)

    if not names:
        org = org or config.get('github', {}).get('default_org')
        click.echo(f"Discovering repositories in {org}...", err=True)
        names = service.discover(org)

    selected = service.select(names)
    options = ScanOptions(
        since=since,
        cutoff=cutoff,
        parallel=parallel if parallel is not None else int(scan_config.get('parallel', 4)),
        include_prerelease=include_prerelease or bool(scan_config.get('include_prerelease')),
    )
    logger.debug(f"Scanning {len(selected)} of {len(names)} repositories")

    for message in service.scan(selected, options):
        click.echo(message, err=True)

    result = service.last_result
    details = [detail.to_dict() for detail in result.details]
    summary = result.to_dict()

    if output_json:
        output_json_lines(details)
    else:
        render_scan_table(details)
        print_scan_summary(summary)

    if result.failed:
        raise PartialSuccessError(
            f"{result.failed} of {result.total} repositories failed",
            succeeded=result.total - result.failed,
            failed=result.failed,
        )


@click.command("rate-limit")
@add_common_options('verbose', 'json')
@standard_command
def rate_limit_cmd(output_json, config):
    """Show the GitHub API rate limit status."""
    github = config.get('github', {})
    client = GitHubClient(
        token=github.get('token') or None,
        base_url=github.get('api_base_url', 'https://api.github.com'),
        timeout=float(github.get('timeout_seconds', 30)),
    )

    status = client.get_rate_limit_status()
    if status is None:
        raise CommandError("Could not read the GitHub rate limit", API_ERROR)

    if output_json:
        print(json.dumps(status.to_dict()), flush=True)
    else:
        render_rate_limit(status.to_dict())
