"""
docket - Release and plugin resolution for Logstash plugin repositories.

docket answers "which plugins exist, in which versions, released when, and
where is their documentation" from the rubygems.org registry and the
plugins' GitHub sources.

Quick Start:
    import docket
    from docket.config import load_config, github_source_factory

    config = load_config()
    repository = docket.Repository.from_registry(
        "logstash-integration-kafka",
        github_source_factory("logstash-integration-kafka", config),
    )

    for package in repository.released_packages():
        for plugin in package.plugins():
            print(plugin.desc, plugin.release_date())

Domain Objects:
    Repository - Named artifact with registry history and a source
    ReleasePackage - One version of a repository
    StandalonePlugin / PackagedPlugin - Plugins provided by a package

Concurrency Primitives:
    LazyValue - Compute-once value that retries while empty
    KeyedLazyCache - Compute-once-per-key cache
    SynchronizedSet - Lock-guarded set
"""

__version__ = "0.1.0"

# Domain objects
from .domain import (
    ArtifactName,
    Plugin,
    PluginLike,
    StandalonePlugin,
    PackagedPlugin,
    ReleasePackage,
    Repository,
)

# Infrastructure
from .infra import GitHubSource, RubygemsClient

# Concurrency primitives
from .threadsafe import KeyedLazyCache, LazyValue, SynchronizedSet

# Errors
from .errors import DocketError, FetchError, ValidationError

__all__ = [
    '__version__',
    'ArtifactName',
    'Plugin',
    'PluginLike',
    'StandalonePlugin',
    'PackagedPlugin',
    'ReleasePackage',
    'Repository',
    'GitHubSource',
    'RubygemsClient',
    'KeyedLazyCache',
    'LazyValue',
    'SynchronizedSet',
    'DocketError',
    'FetchError',
    'ValidationError',
]
