"""Tests for the GitHub API client."""

import time
from unittest.mock import patch

import pytest

from conftest import FakeResponse, FakeSession
from docket.errors import FetchError
from docket.infra.github_client import GitHubClient, RateLimitStatus

API = "https://api.github.com"


def rate_headers(remaining=4999, limit=5000, reset=None, used=1):
    return {
        'X-RateLimit-Remaining': str(remaining),
        'X-RateLimit-Limit': str(limit),
        'X-RateLimit-Reset': str(reset if reset is not None else int(time.time()) + 3600),
        'X-RateLimit-Used': str(used),
    }


class TestRateLimitStatus:
    """Tests for RateLimitStatus."""

    def test_is_low(self):
        assert RateLimitStatus(remaining=50, limit=5000, reset_time=0, used=4950).is_low
        assert not RateLimitStatus(remaining=500, limit=5000, reset_time=0, used=4500).is_low

    def test_minutes_until_reset(self):
        status = RateLimitStatus(remaining=1, limit=60, reset_time=int(time.time()) + 600, used=59)
        assert 9 <= status.minutes_until_reset <= 10

    def test_to_dict(self):
        status = RateLimitStatus(remaining=1, limit=60, reset_time=123, used=59)
        assert status.to_dict() == {'remaining': 1, 'limit': 60, 'reset_time': 123, 'used': 59}


class TestGitHubClient:
    """Tests for GitHubClient."""

    def test_token_from_environment(self, monkeypatch):
        monkeypatch.delenv('DOCKET_GITHUB_TOKEN', raising=False)
        monkeypatch.setenv('GITHUB_TOKEN', 'env-token')
        client = GitHubClient(session=FakeSession())
        assert client.headers['Authorization'] == 'token env-token'

    def test_no_token_no_authorization(self, monkeypatch):
        monkeypatch.delenv('DOCKET_GITHUB_TOKEN', raising=False)
        monkeypatch.delenv('GITHUB_TOKEN', raising=False)
        client = GitHubClient(session=FakeSession())
        assert 'Authorization' not in client.headers

    def test_list_org_repos_follows_pagination(self):
        page1 = f"{API}/orgs/logstash-plugins/repos?per_page=2"
        page2 = f"{API}/orgs/logstash-plugins/repos?per_page=2&page=2"
        session = FakeSession({
            page1: FakeResponse(200, payload=[{'name': 'a'}, {'name': 'b'}],
                                headers=rate_headers(), links={'next': {'url': page2}}),
            page2: FakeResponse(200, payload=[{'name': 'c'}], headers=rate_headers(remaining=4997)),
        })
        client = GitHubClient(token="t", session=session)

        repos = client.list_org_repos("logstash-plugins", per_page=2)

        assert [repo['name'] for repo in repos] == ['a', 'b', 'c']
        assert client.get_rate_limit_status().remaining == 4997

    def test_unexpected_payload(self):
        url = f"{API}/orgs/acme/repos?per_page=100"
        client = GitHubClient(token="t", session=FakeSession({url: FakeResponse(200, payload={'message': 'x'})}))
        with pytest.raises(FetchError):
            client.list_org_repos("acme")

    def test_rate_limit_endpoint_when_nothing_seen(self):
        session = FakeSession({
            f"{API}/rate_limit": FakeResponse(200, payload={'rate': {'remaining': 42, 'limit': 60, 'reset': 0, 'used': 18}}),
        })
        client = GitHubClient(token="t", session=session)

        status = client.get_rate_limit_status()

        assert (status.remaining, status.limit, status.used) == (42, 60, 18)

    def test_retries_when_rate_limited(self):
        url = f"{API}/rate_limit"
        session = FakeSession({url: [
            FakeResponse(403),
            FakeResponse(200, payload={'rate': {'remaining': 5, 'limit': 60}}),
        ]})
        client = GitHubClient(token="t", session=session, base_delay=0.5)

        with patch("docket.infra.github_client.time.sleep") as sleep:
            status = client.get_rate_limit_status()

        assert status.remaining == 5
        sleep.assert_called_once_with(0.5)

    def test_gives_up_after_max_retries(self):
        url = f"{API}/rate_limit"
        session = FakeSession({url: [FakeResponse(429)]})
        client = GitHubClient(token="t", session=session, max_retries=3)

        with patch("docket.infra.github_client.time.sleep") as sleep:
            with pytest.raises(FetchError) as excinfo:
                client.get_rate_limit_status()

        assert session.count(url) == 3
        assert sleep.call_count == 2
        assert excinfo.value.status_code == 429

    def test_garbled_reset_header_falls_back_to_backoff(self):
        url = f"{API}/rate_limit"
        session = FakeSession({url: [
            FakeResponse(429, headers={'X-RateLimit-Reset': 'soon'}),
            FakeResponse(200, payload={'rate': {'remaining': 5, 'limit': 60}}),
        ]})
        client = GitHubClient(token="t", session=session, base_delay=0.25)

        with patch("docket.infra.github_client.time.sleep") as sleep:
            client.get_rate_limit_status()

        sleep.assert_called_once_with(0.25)

    def test_other_errors_are_fatal(self):
        url = f"{API}/orgs/missing/repos?per_page=100"
        client = GitHubClient(token="t", session=FakeSession({url: FakeResponse(404)}))
        with pytest.raises(FetchError) as excinfo:
            client.list_org_repos("missing")
        assert excinfo.value.status_code == 404
