"""
Repository domain object for docket.

A Repository is a named artifact with a release history on the registry
and a source that holds its files. It owns one registry client and hands
out one ReleasePackage per version for the lifetime of the run.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, Optional

from ..infra.github_source import SourceProvider
from ..infra.rubygems_client import RubygemsClient, is_prerelease
from ..threadsafe import KeyedLazyCache
from .artifact_name import DEFAULT_PREFIX
from .release_package import ReleasePackage

logger = logging.getLogger(__name__)

SourceFactory = Callable[[Dict[str, Any]], SourceProvider]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp such as "2017-06-22T17:08:31.455Z".

    The registry reports UTC, so a timestamp without an offset is read as UTC.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        logger.debug(f"Unparseable timestamp {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ReleasedPackages:
    """
    The released packages of a repository, newest first.

    Iterating is lazy and can be repeated; each pass walks the registry's
    version list again and reuses the repository's cached packages.
    """

    def __init__(self, repository: 'Repository', include_prerelease: bool = False):
        self.repository = repository
        self.include_prerelease = include_prerelease

    def versions(self) -> Iterator[str]:
        for version in self.repository.registry.versions():
            if self.include_prerelease or not is_prerelease(version):
                yield version

    def __iter__(self) -> Iterator[ReleasePackage]:
        for version in self.versions():
            yield self.repository.released_package(version)

    def __len__(self) -> int:
        return sum(1 for _ in self.versions())


class Repository:
    """
    A named artifact, its registry history and its source.

    Example:
        repository = Repository.from_registry("logstash-filter-mutate", source_factory)
        if repository:
            for package in repository.released_packages():
                print(package.desc, package.release_date())
    """

    def __init__(
        self,
        name: str,
        source: SourceProvider,
        registry: Optional[RubygemsClient] = None,
        prefix: str = DEFAULT_PREFIX,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize Repository.

        Args:
            name: Artifact name as published on the registry
            source: Where the artifact's files are read from
            registry: Registry client for this name (created if None)
            prefix: Prefix of canonical plugin names
            logger: Logger for diagnostics (module logger if None)
        """
        self.name = name
        self.source = source
        self.prefix = prefix
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.registry = registry or RubygemsClient(name, logger=self.logger)
        self.desc = f"[repository:{name}]"

        self._packages: KeyedLazyCache[Optional[str], ReleasePackage] = KeyedLazyCache(
            lambda version: ReleasePackage(self, version)
        )

    @classmethod
    def from_registry(
        cls,
        name: str,
        source_factory: SourceFactory,
        version: Optional[Any] = None,
        *,
        registry: Optional[RubygemsClient] = None,
        prefix: str = DEFAULT_PREFIX,
        logger: Optional[logging.Logger] = None,
    ) -> Optional['Repository']:
        """
        Build a Repository from registry metadata.

        Args:
            name: Artifact name on the registry
            source_factory: Called with the registry record to build the source
            version: Version whose record describes the source (default: latest)
            registry: Registry client to use (created if None)
            prefix: Prefix of canonical plugin names
            logger: Logger for diagnostics

        Returns:
            Repository, or None if the artifact is unknown or the
            version was never published

        Raises:
            FetchError: if the registry could not be queried
        """
        log = logger if logger is not None else logging.getLogger(__name__)
        registry = registry or RubygemsClient(name, logger=log)

        resolved = str(version) if version is not None else registry.latest()
        if resolved is None:
            log.warning(f"[gem:{name}]: release metadata unavailable from registry")
            return None

        record = registry.for_version(resolved)
        if record is None:
            log.warning(f"[gem:{name}]: release `{resolved}` not published to registry")
            return None

        source = source_factory(record)
        return cls(name, source, registry=registry, prefix=prefix, logger=log)

    @classmethod
    def from_source(
        cls,
        name: str,
        source: SourceProvider,
        *,
        registry: Optional[RubygemsClient] = None,
        prefix: str = DEFAULT_PREFIX,
        logger: Optional[logging.Logger] = None,
    ) -> 'Repository':
        """Build a Repository for a known source, without consulting the registry."""
        return cls(name, source, registry=registry, prefix=prefix, logger=logger)

    def released_package(self, version: Optional[Any] = None) -> ReleasePackage:
        """
        The package for `version`, created on first request.

        None selects the unreleased head, described by the newest
        published metadata.
        """
        key = None if version is None else str(version)
        return self._packages.for_key(key)

    def released_packages(self, include_prerelease: bool = False) -> ReleasedPackages:
        """All released packages, newest first."""
        return ReleasedPackages(self, include_prerelease)

    def cached_packages(self) -> list:
        """Packages created so far in this run."""
        return list(self._packages.each_value())

    def last_release(self) -> Optional[ReleasePackage]:
        """The newest released package, or None if there are no releases."""
        latest = self.registry.latest()
        if latest is None:
            return None
        return self.released_package(latest)

    def last_release_date(self) -> Optional[datetime]:
        release = self.last_release()
        return release.release_date() if release is not None else None

    def release_date(self, version: Optional[Any]) -> Optional[datetime]:
        """Publication time of `version`, without building its package."""
        if version is None:
            return None
        record = self.registry.for_version(version)
        return parse_timestamp(record.get('created_at')) if record else None

    def read_file(self, path: str, version: Optional[str] = None) -> Optional[str]:
        return self.source.read_file(path, version)

    def web_url(self, path: str, version: Optional[str] = None) -> str:
        return self.source.web_url(path, version)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Repository):
            return NotImplemented
        return self.name == other.name and self.source == other.source

    def __hash__(self) -> int:
        return hash((self.name, self.source))

    def __repr__(self) -> str:
        return f"<Repository {self.name}>"
