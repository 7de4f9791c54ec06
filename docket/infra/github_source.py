"""
Source providers for docket.

A source provider hands out raw file contents and browsable URLs for a
repository at a given release. Versions map to git refs: "v<version>" for
a release, "master" for the unreleased head.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import requests

from ..errors import FetchError, ValidationError

logger = logging.getLogger(__name__)

GITHUB_RAW_BASE_URL = "https://raw.githubusercontent.com"
GITHUB_WEB_BASE_URL = "https://github.com"

NOT_FOUND_BODY = "404: Not Found"

_GITHUB_REPO_PATTERN = re.compile(r'\bgithub\.com[/:](?P<org>[^/\s]+)/(?P<repo>[^/\s#?]+)')


def ref_for(version: Any) -> str:
    """Git ref for a release version; "master" when there is none."""
    return f"v{version}" if version is not None else "master"


@runtime_checkable
class SourceProvider(Protocol):
    """Where a repository's files live."""

    def read_file(self, path: str, version: Optional[str] = None) -> Optional[str]:
        """Raw content of `path` at `version`, or None if it does not exist."""
        ...

    def web_url(self, path: str, version: Optional[str] = None) -> str:
        """Browsable URL of `path` at `version`."""
        ...


@dataclass(frozen=True)
class GitHubSource:
    """
    Files of a GitHub repository, read through the raw content host.

    Example:
        source = GitHubSource("logstash-plugins", "logstash-filter-mutate")
        doc = source.read_file("docs/index.asciidoc", "3.5.0")
    """
    org: str
    repo: str
    raw_base_url: str = GITHUB_RAW_BASE_URL
    web_base_url: str = GITHUB_WEB_BASE_URL
    timeout: float = 30
    session: Optional[requests.Session] = field(default=None, compare=False, repr=False)

    def raw_url(self, path: str, version: Optional[str] = None) -> str:
        return f"{self.raw_base_url.rstrip('/')}/{self.org}/{self.repo}/{ref_for(version)}/{path}"

    def web_url(self, path: str, version: Optional[str] = None) -> str:
        return f"{self.web_base_url.rstrip('/')}/{self.org}/{self.repo}/blob/{ref_for(version)}/{path}"

    def read_file(self, path: str, version: Optional[str] = None) -> Optional[str]:
        url = self.raw_url(path, version)
        logger.debug(f"  < `{url}`")

        http = self.session or requests
        try:
            response = http.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"fetching {url} failed: {e}", url=url)

        if response.status_code == 404:
            return None
        if not 200 <= response.status_code < 300:
            raise FetchError(
                f"fetching {url} failed with HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        content = response.content.decode('utf-8', errors='replace')
        if content.startswith(NOT_FOUND_BODY):
            return None
        return content

    @property
    def full_name(self) -> str:
        return f"{self.org}/{self.repo}"


def github_source_from_metadata(
    name: str,
    record: Optional[Dict[str, Any]],
    default_org: str,
    **source_options: Any,
) -> GitHubSource:
    """
    Work out the GitHub repository of a gem from its registry record.

    Uses `metadata.source_code_uri` when the gem declares one, otherwise
    assumes the repository is `<default_org>/<name>`.

    Raises:
        ValidationError: if source_code_uri is set but is not a GitHub URL
    """
    metadata = (record or {}).get('metadata') or {}
    known_source = metadata.get('source_code_uri')

    if known_source:
        match = _GITHUB_REPO_PATTERN.search(known_source)
        if not match:
            raise ValidationError(f"[{name}]: unsupported source `{known_source}`")
        org = match.group('org')
        repo = re.sub(r'\.git$', '', match.group('repo'))
    else:
        org = default_org
        repo = name

    return GitHubSource(org, repo, **source_options)
