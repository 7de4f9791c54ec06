"""
Release packages for docket.

A ReleasePackage is one published version of a Repository (or its
unreleased head). Its plugin list is derived once from the registry record
of that version.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from ..errors import ValidationError
from ..infra.github_source import ref_for
from ..infra.rubygems_client import is_prerelease, parse_version
from ..threadsafe import LazyValue
from .plugin import PackagedPlugin, Plugin, StandalonePlugin

if TYPE_CHECKING:
    from .repository import Repository

INTEGRATION_PLUGINS_KEY = 'integration_plugins'
CHANGELOG_PATH = 'CHANGELOG.md'


class ReleasePackage:
    """
    One version of a repository.

    Use Repository.released_package() rather than constructing these
    directly, so each version is built once per run.

    Example:
        package = repository.released_package("11.0.1")
        for plugin in package.plugins():
            print(plugin.desc, plugin.release_date())
    """

    def __init__(
        self,
        repository: 'Repository',
        version: Optional[Any] = None,
        record: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize ReleasePackage.

        Args:
            repository: Repository this package belongs to
            version: Released version, or None for the unreleased head
            record: Registry record to use instead of looking one up
        """
        self.repository = repository
        self.version: Optional[str] = None if version is None else str(version)
        self.parsed_version = parse_version(self.version) if self.version is not None else None
        self.logger: logging.Logger = repository.logger
        self.desc = f"{repository.name}@{self.tag}"

        self._metadata = LazyValue(lambda: record or self._fetch_metadata())
        self._plugins = LazyValue(self._generate_plugins)

    @property
    def name(self) -> str:
        return self.repository.name

    @property
    def tag(self) -> str:
        """Git ref of this release."""
        return ref_for(self.version)

    @property
    def prerelease(self) -> bool:
        return self.version is not None and is_prerelease(self.version)

    def metadata(self) -> Optional[Dict[str, Any]]:
        """
        Registry record describing this package.

        The head uses the newest published record. Returns None while the
        registry has nothing for this version; the next call asks again.
        """
        return self._metadata.get()

    def plugins(self) -> Tuple[Plugin, ...]:
        """Plugins provided by this package, in published order."""
        return self._plugins.get() or ()

    def is_integration(self) -> bool:
        """Whether this package bundles plugins rather than being one."""
        return any(isinstance(plugin, PackagedPlugin) for plugin in self.plugins())

    def release_date(self) -> Optional[datetime]:
        """When this version was published; None for the unreleased head."""
        if self.version is None:
            return None
        return self.repository.release_date(self.version)

    def changelog_url(self) -> str:
        return self.repository.web_url(CHANGELOG_PATH, self.version)

    def read_file(self, path: str) -> Optional[str]:
        """Contents of `path` in the source at this release."""
        return self.repository.read_file(path, self.version)

    def _fetch_metadata(self) -> Optional[Dict[str, Any]]:
        registry = self.repository.registry
        version = self.version if self.version is not None else registry.latest()
        if version is None:
            self.logger.warning(f"[{self.desc}]: no releases on registry")
            return None

        record = registry.for_version(version)
        if record is None:
            self.logger.warning(f"[{self.desc}]: no registry data available for {version}")
        return record

    def _generate_plugins(self) -> Tuple[Plugin, ...]:
        record = self.metadata()
        if record is None:
            return ()

        gem_metadata = record.get('metadata') or {}
        if INTEGRATION_PLUGINS_KEY not in gem_metadata:
            return (StandalonePlugin.for_package(self),)

        plugins: List[Plugin] = []
        for canonical_name in split_plugin_names(gem_metadata[INTEGRATION_PLUGINS_KEY]):
            if not canonical_name:
                self.logger.warning(f"[{self.desc}]: skipping blank plugin name")
                continue
            try:
                plugins.append(PackagedPlugin.from_canonical_name(self, canonical_name))
            except ValidationError as e:
                self.logger.warning(f"[{self.desc}]: skipping {canonical_name}: {e}")
        return tuple(plugins)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReleasePackage):
            return NotImplemented
        return self.repository == other.repository and self.version == other.version

    def __hash__(self) -> int:
        return hash((self.repository, self.version))

    def __repr__(self) -> str:
        return f"<ReleasePackage {self.desc}>"


def split_plugin_names(value: Any) -> List[str]:
    """Split a comma-separated list of canonical names. Blank entries come back as ''."""
    if value is None or not str(value).strip():
        return []
    return [part.strip() for part in str(value).split(',')]
