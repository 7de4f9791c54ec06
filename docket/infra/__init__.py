"""
Infrastructure layer for docket.

Contains abstractions for external systems:
- RubygemsClient: Registry version metadata (fetched once per gem)
- GitHubSource: Raw file contents and web URLs of a GitHub repository
- GitHubClient: GitHub API access (organization listing, rate limits)

These provide clean interfaces that can be mocked for testing.
"""

from .rubygems_client import GemVersion, RubygemsClient, parse_version, is_prerelease
from .github_source import SourceProvider, GitHubSource, github_source_from_metadata, ref_for
from .github_client import GitHubClient, RateLimitStatus

__all__ = [
    'RubygemsClient',
    'GemVersion',
    'parse_version',
    'is_prerelease',
    'SourceProvider',
    'GitHubSource',
    'github_source_from_metadata',
    'ref_for',
    'GitHubClient',
    'RateLimitStatus',
]
