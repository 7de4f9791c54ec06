"""
Domain layer for docket.

Contains the resolution graph:
- ArtifactName: Parsed canonical name (prefix, type, name)
- Repository: Named artifact with registry history and a source
- ReleasePackage: One version of a repository
- StandalonePlugin / PackagedPlugin: Plugins provided by a package

Packages and plugins are created lazily and cached for the run.
"""

from .artifact_name import ArtifactName, ALL_TYPES, PLUGIN_TYPES, DEFAULT_PREFIX, is_canonical_name
from .plugin import Plugin, PluginLike, StandalonePlugin, PackagedPlugin
from .release_package import ReleasePackage
from .repository import Repository, ReleasedPackages, parse_timestamp

__all__ = [
    'ArtifactName',
    'ALL_TYPES',
    'PLUGIN_TYPES',
    'DEFAULT_PREFIX',
    'is_canonical_name',
    'Plugin',
    'PluginLike',
    'StandalonePlugin',
    'PackagedPlugin',
    'ReleasePackage',
    'Repository',
    'ReleasedPackages',
    'parse_timestamp',
]
