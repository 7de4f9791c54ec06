"""
Rubygems.org registry client for docket.

Fetches the full list of published versions of one gem, once, and keeps it
for the rest of the run:
- 404 means the gem is unknown: an empty version list, not an error
- 429 is retried with a linear backoff inside the attempt budget
- Any other non-success status is a FetchError
"""

import json
import logging
import re
import threading
import time
from functools import total_ordering
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import requests

from ..errors import FetchError

RUBYGEMS_BASE_URL = "https://rubygems.org"
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_RATE_LIMIT_DELAY = 1.0

VERSION_PATTERN = re.compile(
    r'^\s*[0-9]+(?:\.[0-9a-zA-Z]+)*(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?\s*\Z'
)
_SEGMENT = re.compile(r'[0-9]+|[a-z]+', re.IGNORECASE)

Segment = Union[int, str]


def _drop_trailing_zeros(segments: List[Segment]) -> List[Segment]:
    while segments and segments[-1] == 0:
        segments = segments[:-1]
    return segments


@total_ordering
class GemVersion:
    """
    A version number ordered the way rubygems orders them.

    The string splits into numeric and alphabetic segments ("2.0.0.beta2"
    gives 2, 0, 0, "beta", 2); a dash reads as ".pre.". Any letter makes
    the version a pre-release, and a letter segment sorts below any
    number, so "1.0.0.post1" < "1.0.0" < "1.0.1.snapshot1". Trailing zeros
    of the release and pre-release parts are ignored: "1.0" == "1".

    Raises ValueError for strings rubygems would reject.
    """

    def __init__(self, version: str):
        text = str(version)
        if not VERSION_PATTERN.match(text):
            raise ValueError(f"Malformed version number {text!r}")
        self.version = text.strip()
        self.segments: Tuple[Segment, ...] = tuple(
            int(s) if s.isdigit() else s
            for s in _SEGMENT.findall(self.version.replace('-', '.pre.'))
        )

        first_string = next(
            (i for i, s in enumerate(self.segments) if isinstance(s, str)), len(self.segments)
        )
        self.canonical_segments: Tuple[Segment, ...] = tuple(
            _drop_trailing_zeros(list(self.segments[:first_string]))
            + _drop_trailing_zeros(list(self.segments[first_string:]))
        )

    @property
    def is_prerelease(self) -> bool:
        return any(c.isalpha() for c in self.version)

    def _compare(self, other: 'GemVersion') -> int:
        lhs_segments, rhs_segments = self.canonical_segments, other.canonical_segments
        for i in range(max(len(lhs_segments), len(rhs_segments))):
            lhs = lhs_segments[i] if i < len(lhs_segments) else 0
            rhs = rhs_segments[i] if i < len(rhs_segments) else 0
            if lhs == rhs:
                continue
            if isinstance(lhs, str) and isinstance(rhs, int):
                return -1
            if isinstance(lhs, int) and isinstance(rhs, str):
                return 1
            return -1 if lhs < rhs else 1
        return 0

    def __eq__(self, other):
        if not isinstance(other, GemVersion):
            return NotImplemented
        return self._compare(other) == 0

    def __lt__(self, other):
        if not isinstance(other, GemVersion):
            return NotImplemented
        return self._compare(other) < 0

    def __hash__(self):
        return hash(self.canonical_segments)

    def __str__(self):
        return self.version

    def __repr__(self):
        return f"GemVersion({self.version!r})"


def parse_version(version: str) -> Optional[GemVersion]:
    """Parse a gem version string, or None when it is malformed."""
    try:
        return GemVersion(version)
    except ValueError:
        return None


def is_prerelease(version: str) -> bool:
    """Whether a version string denotes a pre-release. Unparseable counts as one."""
    parsed = parse_version(version)
    return parsed is None or parsed.is_prerelease


def sort_versions_descending(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort version records newest first; unparseable numbers go last."""
    parseable = []
    unparseable = []
    for record in records:
        parsed = parse_version(record.get('number', ''))
        if parsed is None:
            unparseable.append(record)
        else:
            parseable.append((parsed, record))

    parseable.sort(key=lambda pair: pair[0], reverse=True)
    return [record for _, record in parseable] + unparseable


class RubygemsClient:
    """
    Cached version metadata for one gem.

    Example:
        client = RubygemsClient("logstash-filter-mutate")
        for version in client.versions():
            print(version, client.for_version(version)['created_at'])
    """

    def __init__(
        self,
        gem_name: str,
        session: Optional[requests.Session] = None,
        base_url: str = RUBYGEMS_BASE_URL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY,
        timeout: float = 30,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize RubygemsClient.

        Args:
            gem_name: Name of the gem on the registry
            session: HTTP session to use (a new one if None)
            base_url: Registry base URL
            max_attempts: Total attempts for rate-limited or failed connections
            rate_limit_delay: Seconds to wait after the first 429, growing linearly
            timeout: HTTP request timeout in seconds
            logger: Logger for diagnostics (module logger if None)
        """
        self.gem_name = gem_name
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip('/')
        self.max_attempts = max(1, max_attempts)
        self.rate_limit_delay = rate_limit_delay
        self.timeout = timeout
        self.logger = logger if logger is not None else logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._index: Optional[Mapping[str, Dict[str, Any]]] = None

    @property
    def url(self) -> str:
        return f"{self.base_url}/api/v1/versions/{self.gem_name}.json"

    def metadata(self) -> Mapping[str, Dict[str, Any]]:
        """All version records, newest first, keyed by version string."""
        index = self._index
        if index is not None:
            return index

        with self._lock:
            if self._index is None:
                self._index = MappingProxyType(self._fetch_index())
            return self._index

    def versions(self) -> Tuple[str, ...]:
        """Published version strings, newest first."""
        return tuple(self.metadata().keys())

    def for_version(self, version: Any) -> Optional[Dict[str, Any]]:
        """Record for an exact version string, or None if it was never published."""
        if version is None:
            return None
        return self.metadata().get(str(version))

    def latest(self) -> Optional[str]:
        """Newest version string, or None if nothing has been published."""
        versions = self.versions()
        return versions[0] if versions else None

    def _fetch_index(self) -> Dict[str, Dict[str, Any]]:
        body = self._fetch_body()
        if body is None:
            self.logger.warning(f"[{self.gem_name}]: not found on registry, no versions available")
            return {}

        # Some published gemspecs carry bytes that are not valid UTF-8.
        text = body.decode('utf-8', errors='replace')
        try:
            records = json.loads(text)
        except ValueError as e:
            raise FetchError(f"[{self.gem_name}]: registry returned invalid JSON: {e}", url=self.url)

        if not isinstance(records, list):
            raise FetchError(f"[{self.gem_name}]: unexpected registry payload", url=self.url)

        index: Dict[str, Dict[str, Any]] = {}
        for record in sort_versions_descending([r for r in records if isinstance(r, dict)]):
            number = record.get('number')
            if number is None:
                continue
            index[str(number)] = record

        self.logger.debug(f"[{self.gem_name}]: {len(index)} versions on registry")
        return index

    def _fetch_body(self) -> Optional[bytes]:
        """GET the versions document. Returns None on 404."""
        self.logger.info(f"[{self.gem_name}]: fetching versions from registry")
        url = self.url
        last_error = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = self.session.get(url, timeout=self.timeout)
            except (requests.ConnectionError, requests.Timeout) as e:
                last_error = f"request failed: {e}"
                self.logger.warning(f"[{self.gem_name}]: {last_error} (attempt {attempt}/{self.max_attempts})")
                self._backoff(attempt)
                continue

            if response.status_code == 404:
                return None

            if response.status_code == 429:
                last_error = "too many requests"
                self.logger.info(f"[{self.gem_name}]: rate limited (attempt {attempt}/{self.max_attempts})")
                self._backoff(attempt)
                continue

            if 200 <= response.status_code < 300:
                return response.content

            raise FetchError(
                f"[{self.gem_name}]: fetching registry metadata {url} failed with HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        raise FetchError(
            f"[{self.gem_name}]: giving up on {url} after {self.max_attempts} attempts: {last_error}",
            url=url,
            status_code=429 if last_error == "too many requests" else None,
        )

    def _backoff(self, attempt: int) -> None:
        if attempt < self.max_attempts and self.rate_limit_delay > 0:
            time.sleep(self.rate_limit_delay * attempt)

    def __repr__(self) -> str:
        return f"RubygemsClient({self.gem_name!r})"
