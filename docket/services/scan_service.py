"""
Scan service for docket.

Resolves many plugin repositories in parallel and collects every released
plugin into a shared index:
- which versions of each plugin exist
- which plugin names exist for each type
- which plugins and packages were released since a reference date

Worker threads write straight into the index, which is built from
KeyedLazyCache and SynchronizedSet.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Generator, Iterable, List, Optional, Tuple

from ..config import build_registry_client, github_source_factory, load_config
from ..domain import Plugin, Repository
from ..errors import DocketError
from ..infra.github_client import GitHubClient
from ..infra.rubygems_client import GemVersion
from ..threadsafe import KeyedLazyCache, SynchronizedSet

logger = logging.getLogger(__name__)

_OLDEST = GemVersion("0")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ScanStatus(Enum):
    """Outcome of scanning one repository."""
    UPDATED = "updated"        # has releases since the reference date
    UNCHANGED = "unchanged"    # indexed, but nothing new
    SKIPPED = "skipped"        # unknown to the registry
    FAILED = "failed"


@dataclass
class ScanOptions:
    """Options for a scan."""
    since: Optional[datetime] = None    # releases on or after this are "updated"
    cutoff: Optional[datetime] = None   # plugins released before this are not indexed
    parallel: int = 4
    include_prerelease: bool = False

    def __post_init__(self):
        self.since = _as_utc(self.since)
        self.cutoff = _as_utc(self.cutoff)
        self.parallel = max(1, self.parallel)


@dataclass
class RepositoryScan:
    """What happened to one repository during a scan."""
    name: str
    status: ScanStatus
    packages: int = 0
    plugins: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'status': self.status.value,
            'packages': self.packages,
            'plugins': self.plugins,
            'error': self.error,
        }


class PluginIndex:
    """Plugins found during a scan, safe to fill from many threads."""

    def __init__(self):
        self.versions_by_plugin: KeyedLazyCache[str, SynchronizedSet[Plugin]] = KeyedLazyCache(
            lambda _: SynchronizedSet()
        )
        self.names_by_type: KeyedLazyCache[str, SynchronizedSet[str]] = KeyedLazyCache(
            lambda _: SynchronizedSet()
        )
        self.updated_plugins: SynchronizedSet[str] = SynchronizedSet()
        self.updated_packages: SynchronizedSet[str] = SynchronizedSet()

    def add(self, plugin: Plugin) -> None:
        self.versions_by_plugin.for_key(plugin.canonical_name).add(plugin)
        self.names_by_type.for_key(plugin.type).add(plugin.name)

    def plugin_versions(self, canonical_name: str) -> List[Tuple[str, Optional[str]]]:
        """(tag, release date) of every indexed version of a plugin, newest first."""
        plugins = self.versions_by_plugin.for_key(canonical_name, create_if_missing=False)
        if plugins is None:
            return []

        ordered = plugins.sorted(key=lambda p: p.package.parsed_version or _OLDEST, reverse=True)
        versions = []
        for plugin in ordered:
            date = plugin.release_date()
            versions.append((plugin.tag, date.strftime("%Y-%m-%d") if date else None))
        return versions

    def types(self) -> Dict[str, List[str]]:
        """Plugin names by type, sorted."""
        return {plugin_type: names.sorted() for plugin_type, names in self.names_by_type.each()}

    def canonical_names(self) -> List[str]:
        return sorted(name for name, _ in self.versions_by_plugin.each())


@dataclass
class ScanResult:
    """Summary of a scan."""
    index: PluginIndex = field(default_factory=PluginIndex)
    details: List[RepositoryScan] = field(default_factory=list)

    def count(self, status: ScanStatus) -> int:
        return sum(1 for detail in self.details if detail.status == status)

    @property
    def total(self) -> int:
        return len(self.details)

    @property
    def failed(self) -> int:
        return self.count(ScanStatus.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'updated': self.count(ScanStatus.UPDATED),
            'unchanged': self.count(ScanStatus.UNCHANGED),
            'skipped': self.count(ScanStatus.SKIPPED),
            'failed': self.failed,
            'updated_plugins': sorted(self.index.updated_plugins),
            'updated_packages': sorted(self.index.updated_packages),
            'types': self.index.types(),
        }


class ScanService:
    """
    Service for resolving plugin repositories in bulk.

    Example:
        service = ScanService()
        names = service.select(service.discover("logstash-plugins"))

        for progress in service.scan(names, ScanOptions(since=last_run)):
            print(progress)

        result = service.last_result
        print(sorted(result.index.updated_plugins))
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        repository_factory: Optional[Callable[[str], Optional[Repository]]] = None,
        github_client: Optional[GitHubClient] = None,
    ):
        """
        Initialize ScanService.

        Args:
            config: Configuration dict (loads default if None)
            repository_factory: Builds a Repository from a name, None if unknown
            github_client: GitHubClient for discovery (created on demand if None)
        """
        self.config = config or load_config()
        self.repository_factory = repository_factory or self._repository_from_registry
        self._github = github_client
        self.last_result: Optional[ScanResult] = None

    @property
    def github(self) -> GitHubClient:
        if self._github is None:
            github = self.config.get('github', {})
            self._github = GitHubClient(
                token=github.get('token') or None,
                base_url=github.get('api_base_url', 'https://api.github.com'),
                timeout=float(github.get('timeout_seconds', 30)),
            )
        return self._github

    def _repository_from_registry(self, name: str) -> Optional[Repository]:
        return Repository.from_registry(
            name,
            github_source_factory(name, self.config),
            registry=build_registry_client(name, self.config),
            logger=logging.getLogger("docket.repository"),
        )

    def discover(self, org: str) -> List[str]:
        """Names of all repositories in a GitHub organization."""
        return [repo['name'] for repo in self.github.list_org_repos(org) if repo.get('name')]

    def select(self, names: Iterable[str]) -> List[str]:
        """Keep names matching the configured plugin pattern and not on the skip list."""
        scan_config = self.config.get('scan', {})
        pattern = re.compile(scan_config.get('plugin_regex') or '.*')
        skip = set(scan_config.get('skip', []))
        return sorted({name for name in names if pattern.match(name) and name not in skip})

    def scan(
        self,
        names: List[str],
        options: ScanOptions,
    ) -> Generator[str, None, ScanResult]:
        """
        Scan repositories in parallel.

        Args:
            names: Repository names to scan
            options: Scan options

        Yields:
            Progress messages

        Returns:
            ScanResult (also stored in last_result)
        """
        result = ScanResult()
        self.last_result = result

        if not names:
            yield "No repositories to scan"
            return result

        yield f"Scanning {len(names)} repositories"

        with ThreadPoolExecutor(max_workers=options.parallel) as executor:
            futures = {
                executor.submit(self.scan_repository, name, options, result.index): name
                for name in names
            }

            for future in as_completed(futures):
                detail = future.result()
                result.details.append(detail)

                if detail.status == ScanStatus.UPDATED:
                    yield f"  ✓ {detail.name}: {detail.plugins} plugins in {detail.packages} releases"
                elif detail.status == ScanStatus.UNCHANGED:
                    yield f"  - {detail.name}: no new releases"
                elif detail.status == ScanStatus.SKIPPED:
                    yield f"  Skipping {detail.name} ({detail.error})"
                else:
                    yield f"  ✗ {detail.name}: {detail.error}"

        result.details.sort(key=lambda detail: detail.name)
        return result

    def scan_repository(self, name: str, options: ScanOptions, index: PluginIndex) -> RepositoryScan:
        """Index the releases of one repository."""
        try:
            repository = self.repository_factory(name)
            if repository is None:
                return RepositoryScan(name, ScanStatus.SKIPPED, error="not published to registry")

            logger.debug(f"{repository.desc}: loading releases...")
            packages = list(repository.released_packages(options.include_prerelease))

            plugin_count = 0
            for package in packages:
                for plugin in package.plugins():
                    release_date = plugin.release_date()
                    if options.cutoff and release_date and release_date < options.cutoff:
                        continue
                    index.add(plugin)
                    plugin_count += 1

            last_release_date = repository.last_release_date()
            if options.since and (last_release_date is None or last_release_date < options.since):
                logger.debug(f"{repository.desc}: no new releases")
                return RepositoryScan(name, ScanStatus.UNCHANGED, len(packages), plugin_count)

            for package in packages:
                release_date = package.release_date()
                if options.since and (release_date is None or release_date < options.since):
                    continue
                if package.is_integration():
                    index.updated_packages.add(package.name)
                for plugin in package.plugins():
                    index.updated_plugins.add(plugin.canonical_name)

            return RepositoryScan(name, ScanStatus.UPDATED, len(packages), plugin_count)

        except DocketError as e:
            logger.warning(f"[{name}]: scan failed: {e}")
            return RepositoryScan(name, ScanStatus.FAILED, error=str(e))
