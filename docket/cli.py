#!/usr/bin/env python3

import click

from docket import __version__
from docket.commands.release import versions_cmd, plugins_cmd, doc_cmd
from docket.commands.scan import scan_cmd, rate_limit_cmd


@click.group()
@click.version_option(version=__version__, prog_name="docket")
def cli():
    """docket - Release and plugin resolution for Logstash plugin repositories.

    Reads release history from rubygems.org and plugin sources from GitHub,
    and tells you which plugins exist in which release.
    """
    pass


# Single-artifact commands
cli.add_command(versions_cmd)
cli.add_command(plugins_cmd)
cli.add_command(doc_cmd)

# Bulk commands
cli.add_command(scan_cmd)
cli.add_command(rate_limit_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
