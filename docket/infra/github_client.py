"""
GitHub REST access for docket.

Only two calls are needed: listing the repositories of an organization
(to discover plugins) and reading the API rate limit. Every response's
X-RateLimit-* headers are remembered, and 403/429 answers are retried.
"""

import logging
import os
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import requests

from ..errors import FetchError

logger = logging.getLogger(__name__)

GITHUB_API_BASE_URL = "https://api.github.com"
LOW_RATE_LIMIT = 100
RATE_LIMITED_STATUSES = (403, 429)


@dataclass
class RateLimitStatus:
    """Remaining GitHub API budget as of the last response."""
    remaining: int
    limit: int
    reset_time: int  # epoch seconds
    used: int

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> Optional['RateLimitStatus']:
        """Read X-RateLimit-* headers; None when they are missing or garbled."""
        try:
            status = cls(
                remaining=int(headers.get('X-RateLimit-Remaining', -1)),
                limit=int(headers.get('X-RateLimit-Limit', -1)),
                reset_time=int(headers.get('X-RateLimit-Reset', 0)),
                used=int(headers.get('X-RateLimit-Used', 0)),
            )
        except (TypeError, ValueError):
            return None
        if status.remaining < 0 or status.limit < 0:
            return None
        return status

    @property
    def reset_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.reset_time)

    @property
    def minutes_until_reset(self) -> int:
        return max(0, (self.reset_time - int(time.time())) // 60)

    @property
    def is_low(self) -> bool:
        return self.remaining < LOW_RATE_LIMIT

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class GitHubClient:
    """
    Minimal GitHub API client.

    The token falls back to DOCKET_GITHUB_TOKEN, then GITHUB_TOKEN; without
    one, requests are anonymous. Rate-limited requests wait until the
    advertised reset when that is closer than `max_delay`, otherwise
    `base_delay * 2**attempt` capped at `max_delay`, for at most
    `max_retries` attempts.

        client = GitHubClient()
        names = [repo['name'] for repo in client.list_org_repos("logstash-plugins")]
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = GITHUB_API_BASE_URL,
        session: Optional[requests.Session] = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        timeout: float = 30,
    ):
        self.token = token or os.environ.get('DOCKET_GITHUB_TOKEN') or os.environ.get('GITHUB_TOKEN')
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.timeout = timeout
        self._rate_limit_status: Optional[RateLimitStatus] = None

    @property
    def headers(self) -> Dict[str, str]:
        headers = {
            'Accept': 'application/vnd.github.v3+json',
            'User-Agent': 'docket',
        }
        if self.token:
            headers['Authorization'] = f'token {self.token}'
        return headers

    def get_rate_limit_status(self) -> Optional[RateLimitStatus]:
        """Last seen rate limit, asking /rate_limit when no call was made yet."""
        if self._rate_limit_status is None:
            rate = self._get(f"{self.base_url}/rate_limit").json().get('rate', {})
            self._rate_limit_status = RateLimitStatus(
                remaining=rate.get('remaining', 0),
                limit=rate.get('limit', 0),
                reset_time=rate.get('reset', 0),
                used=rate.get('used', 0),
            )
        return self._rate_limit_status

    def list_org_repos(self, org: str, per_page: int = 100) -> List[Dict[str, Any]]:
        """Every repository of `org`, following Link rel="next" pages."""
        repos: List[Dict[str, Any]] = []
        url: Optional[str] = f"{self.base_url}/orgs/{org}/repos?per_page={per_page}"

        while url:
            response = self._get(url)
            page = response.json()
            if not isinstance(page, list):
                raise FetchError(f"unexpected response listing repositories of {org}", url=url)
            repos += page
            url = response.links.get('next', {}).get('url')

        logger.info(f"GitHub: {org} has {len(repos)} repositories")
        return repos

    def _remember_rate_limit(self, headers: Mapping[str, str]) -> None:
        status = RateLimitStatus.from_headers(headers)
        if status is None:
            return
        self._rate_limit_status = status
        if status.is_low:
            logger.warning(
                f"GitHub API budget low: {status.remaining}/{status.limit}, "
                f"resets in {status.minutes_until_reset} min"
            )

    def _backoff(self, response: requests.Response, attempt: int) -> float:
        try:
            until_reset = int(response.headers.get('X-RateLimit-Reset', 0)) - int(time.time())
        except (TypeError, ValueError):
            until_reset = 0
        if 0 < until_reset < self.max_delay:
            return until_reset
        return min(self.base_delay * 2 ** attempt, self.max_delay)

    def _get(self, url: str) -> requests.Response:
        status_code = None
        for attempt in range(self.max_retries):
            try:
                response = self.session.get(url, headers=self.headers, timeout=self.timeout)
            except requests.RequestException as e:
                raise FetchError(f"GitHub request to {url} failed: {e}", url=url)

            self._remember_rate_limit(response.headers)
            status_code = response.status_code

            if status_code == 200:
                return response
            if status_code not in RATE_LIMITED_STATUSES:
                raise FetchError(f"GitHub answered {status_code} for {url}", url=url, status_code=status_code)

            if attempt == self.max_retries - 1:
                break
            delay = self._backoff(response, attempt)
            logger.info(f"GitHub rate limited, retrying in {delay}s (attempt {attempt + 1}/{self.max_retries})")
            time.sleep(delay)

        raise FetchError(
            f"GitHub still rate limited after {self.max_retries} attempts: {url}",
            url=url,
            status_code=status_code,
        )
