"""
Commands that inspect the releases of one artifact.

- versions: published versions, newest first
- plugins: plugins provided by one release
- doc: raw documentation of one plugin at one release

Commands build plain dictionaries; docket.render formats them, or they are
printed as JSONL with --json.
"""

import click
from typing import Any, Dict, Optional

from ..config import build_registry_client, github_source_factory, logger
from ..domain import PackagedPlugin, Plugin, ReleasePackage, Repository
from ..domain.release_package import INTEGRATION_PLUGINS_KEY
from ..exit_codes import USAGE_ERROR, CommandError, NotFoundError
from ..render import render_plugins_table, render_versions_table
from ..cli_utils import standard_command, add_common_options, output_json_lines


def _date(value) -> Optional[str]:
    return value.strftime("%Y-%m-%d") if value else None


def open_repository(name: str, config: Dict[str, Any], version: Optional[str] = None) -> Repository:
    """Resolve `name` on the registry, raising NotFoundError if it is unknown."""
    repository = Repository.from_registry(
        name,
        github_source_factory(name, config),
        version,
        registry=build_registry_client(name, config),
        logger=logger.getChild("repository"),
    )
    if repository is None:
        if version is not None:
            raise NotFoundError(f"{name} {version} is not published to the registry")
        raise NotFoundError(f"{name} is not published to the registry")
    return repository


def select_package(repository: Repository, version: Optional[str], master: bool) -> ReleasePackage:
    """The package for --version/--master, defaulting to the newest release."""
    if version and master:
        raise CommandError("--version and --master are mutually exclusive", USAGE_ERROR)
    if master:
        return repository.released_package(None)

    version = version or repository.registry.latest()
    if version is None or repository.registry.for_version(version) is None:
        raise NotFoundError(f"{repository.name} has no release {version}")
    return repository.released_package(version)


def version_to_dict(package: ReleasePackage) -> Dict[str, Any]:
    record = package.metadata() or {}
    return {
        'version': package.version,
        'tag': package.tag,
        'release_date': _date(package.release_date()),
        'prerelease': package.prerelease,
        'integration': INTEGRATION_PLUGINS_KEY in (record.get('metadata') or {}),
    }


def plugin_to_dict(plugin: Plugin) -> Dict[str, Any]:
    return {
        'canonical_name': plugin.canonical_name,
        'type': plugin.type,
        'name': plugin.name,
        'kind': 'packaged' if isinstance(plugin, PackagedPlugin) else 'standalone',
        'version': plugin.version,
        'tag': plugin.tag,
        'release_date': _date(plugin.release_date()),
        'changelog_url': plugin.changelog_url(),
    }


def find_plugin(package: ReleasePackage, wanted: Optional[str]) -> Plugin:
    """Pick a plugin by canonical or short name; the only one if not given."""
    plugins = package.plugins()
    if not plugins:
        raise NotFoundError(f"{package.desc} provides no plugins")

    if wanted is None:
        if len(plugins) == 1:
            return plugins[0]
        names = ", ".join(plugin.canonical_name for plugin in plugins)
        raise CommandError(f"{package.desc} provides several plugins, pick one with --plugin: {names}",
                           USAGE_ERROR)

    for plugin in plugins:
        if wanted in (plugin.canonical_name, plugin.name):
            return plugin
    raise NotFoundError(f"{package.desc} does not provide {wanted}")


@click.command("versions")
@click.argument("name")
@add_common_options('verbose', 'json', 'prerelease')
@standard_command
def versions_cmd(name, include_prerelease, output_json, config):
    """
    List the published versions of an artifact, newest first.

    Examples:

    \b
        docket versions logstash-filter-mutate
        docket versions logstash-integration-kafka --prerelease --json
    """
    repository = open_repository(name, config)
    include_prerelease = include_prerelease or bool(config.get('scan', {}).get('include_prerelease'))

    versions = [version_to_dict(package) for package in repository.released_packages(include_prerelease)]

    if output_json:
        output_json_lines(versions)
    else:
        render_versions_table(name, versions)


@click.command("plugins")
@click.argument("name")
@click.option("--version", "version", default=None, help="Release to inspect (default: newest)")
@click.option("--master", is_flag=True, help="Inspect the unreleased head")
@add_common_options('verbose', 'json')
@standard_command
def plugins_cmd(name, version, master, output_json, config):
    """
    List the plugins provided by one release of an artifact.

    Examples:

    \b
        docket plugins logstash-integration-kafka
        docket plugins logstash-integration-kafka --version 10.0.0
        docket plugins logstash-filter-mutate --master --json
    """
    repository = open_repository(name, config, version)
    package = select_package(repository, version, master)

    plugins = [plugin_to_dict(plugin) for plugin in package.plugins()]

    if output_json:
        output_json_lines(plugins)
    else:
        render_plugins_table(package.desc, plugins)


@click.command("doc")
@click.argument("name")
@click.option("--plugin", "plugin_name", default=None, help="Plugin of an integration package")
@click.option("--version", "version", default=None, help="Release to read (default: newest)")
@click.option("--master", is_flag=True, help="Read the unreleased head")
@add_common_options('verbose')
@standard_command
def doc_cmd(name, plugin_name, version, master, config):
    """
    Print the raw documentation of a plugin.

    Examples:

    \b
        docket doc logstash-filter-mutate
        docket doc logstash-integration-kafka --plugin kafka --version 10.0.0
    """
    repository = open_repository(name, config, version)
    package = select_package(repository, version, master)
    plugin = find_plugin(package, plugin_name)

    content = plugin.documentation()
    if content is None:
        raise NotFoundError(f"[{plugin.desc}]: no documentation found")
    click.echo(content, nl=not content.endswith("\n"))
