"""Tests for the rubygems.org registry client."""

import threading
from unittest.mock import patch

import pytest
import requests

from conftest import FakeResponse, FakeSession, gem_record, run_together, versions_url
from docket.errors import FetchError
from docket.infra.rubygems_client import (
    GemVersion, RubygemsClient, is_prerelease, parse_version, sort_versions_descending,
)

NAME = "logstash-filter-mutate"
URL = versions_url(NAME)


def client_for(responses, **kwargs):
    session = FakeSession({URL: responses})
    kwargs.setdefault('rate_limit_delay', 0)
    return RubygemsClient(NAME, session=session, **kwargs), session


class TestVersionHelpers:
    """Tests for version parsing and ordering."""

    def test_parse_version(self):
        assert parse_version("3.5.1") is not None
        assert parse_version("1.0.0.pre.1").is_prerelease
        assert parse_version("not a version") is None

    def test_is_prerelease(self):
        assert not is_prerelease("3.5.1")
        assert is_prerelease("2.0.0.beta2")
        assert is_prerelease("garbage!")

    def test_sort_versions_descending(self):
        records = [{'number': n} for n in ("1.10.0", "1.2.0", "junk!", "1.9.9", "2.0.0.pre.1")]
        ordered = [r['number'] for r in sort_versions_descending(records)]
        assert ordered == ["2.0.0.pre.1", "1.10.0", "1.9.9", "1.2.0", "junk!"]

    def test_letters_sort_below_numbers(self):
        assert GemVersion("1.0.0.post1") < GemVersion("1.0.0") < GemVersion("1.0.1")
        assert GemVersion("2.0.0.snapshot1") > GemVersion("1.0.0")
        assert GemVersion("1.0.0.alpha") < GemVersion("1.0.0.beta") < GemVersion("1.0.0.rc1")
        assert GemVersion("1.0.0-1") == GemVersion("1.0.0.pre.1")

    def test_trailing_zeros_are_ignored(self):
        assert GemVersion("1.0") == GemVersion("1.0.0")
        assert hash(GemVersion("1.0")) == hash(GemVersion("1"))
        assert str(GemVersion("1.0")) == "1.0"

    def test_any_letter_means_prerelease(self):
        assert is_prerelease("1.0.0.post1")
        assert is_prerelease("2.0.0.snapshot1")
        assert is_prerelease("1.0.0-java")
        assert not is_prerelease("10.2.0")

    def test_malformed_versions(self):
        for text in ("", "v1.0", "1..0", "1.0_beta"):
            assert parse_version(text) is None
        with pytest.raises(ValueError):
            GemVersion("garbage!")

    def test_snapshot_is_latest(self):
        records = [gem_record(n) for n in ("0.9.0", "2.0.0.snapshot1", "1.0.0")]
        client, _ = client_for(FakeResponse(200, payload=records))

        assert client.versions() == ("2.0.0.snapshot1", "1.0.0", "0.9.0")
        assert client.latest() == "2.0.0.snapshot1"

    def test_post_release_sorts_below_base(self):
        records = [gem_record(n) for n in ("1.0.0", "1.0.0.post1")]
        client, _ = client_for(FakeResponse(200, payload=records))

        assert client.versions() == ("1.0.0", "1.0.0.post1")


class TestMetadata:
    """Tests for fetching and indexing the versions document."""

    def test_indexes_records_newest_first(self):
        records = [gem_record("3.5.0"), gem_record("3.10.0"), gem_record("3.5.1")]
        client, _ = client_for(FakeResponse(200, payload=records))

        assert client.versions() == ("3.10.0", "3.5.1", "3.5.0")
        assert client.latest() == "3.10.0"
        assert client.for_version("3.5.1")['number'] == "3.5.1"
        assert client.for_version("9.9.9") is None
        assert client.for_version(None) is None

    def test_metadata_is_read_only(self):
        client, _ = client_for(FakeResponse(200, payload=[gem_record("1.0.0")]))
        with pytest.raises(TypeError):
            client.metadata()["2.0.0"] = {}

    def test_fetches_once(self):
        client, session = client_for(FakeResponse(200, payload=[gem_record("1.0.0")]))
        client.versions()
        client.latest()
        client.for_version("1.0.0")
        assert session.count(URL) == 1

    def test_not_found_is_empty_and_cached(self):
        client, session = client_for(FakeResponse(404))

        assert client.versions() == ()
        assert client.latest() is None
        assert client.for_version("1.0.0") is None
        assert session.count(URL) == 1

    def test_invalid_utf8_is_replaced(self):
        body = b'[{"number": "1.0.0", "summary": "caf\xe9", "metadata": {}}]'
        client, _ = client_for(FakeResponse(200, content=body))

        record = client.for_version("1.0.0")
        assert record['summary'] == "caf\ufffd"

    def test_invalid_json_is_a_fetch_error(self):
        client, _ = client_for(FakeResponse(200, content=b"<html>"))
        with pytest.raises(FetchError, match="invalid JSON"):
            client.versions()

    def test_non_list_payload_is_a_fetch_error(self):
        client, _ = client_for(FakeResponse(200, payload={"error": "nope"}))
        with pytest.raises(FetchError):
            client.versions()

    def test_url(self):
        client = RubygemsClient(NAME, session=FakeSession(), base_url="https://gems.example/")
        assert client.url == f"https://gems.example/api/v1/versions/{NAME}.json"


class TestRetries:
    """Tests for rate limiting and failures."""

    def test_retries_429_then_succeeds(self):
        client, session = client_for([
            FakeResponse(429),
            FakeResponse(429),
            FakeResponse(200, payload=[gem_record("1.0.0")]),
        ])

        assert client.versions() == ("1.0.0",)
        assert session.count(URL) == 3

    def test_gives_up_after_five_attempts(self):
        client, session = client_for([FakeResponse(429)])

        with pytest.raises(FetchError) as excinfo:
            client.versions()

        assert session.count(URL) == 5
        assert excinfo.value.status_code == 429
        assert excinfo.value.url == URL

    def test_backoff_grows_linearly(self):
        client, _ = client_for([FakeResponse(429)], rate_limit_delay=2.0)

        with patch("docket.infra.rubygems_client.time.sleep") as sleep:
            with pytest.raises(FetchError):
                client.versions()

        assert [c.args[0] for c in sleep.call_args_list] == [2.0, 4.0, 6.0, 8.0]

    def test_connection_errors_are_retried(self):
        client, session = client_for([
            requests.ConnectionError("reset"),
            requests.Timeout("slow"),
            FakeResponse(200, payload=[gem_record("1.0.0")]),
        ])

        assert client.latest() == "1.0.0"
        assert session.count(URL) == 3

    def test_server_error_is_fatal_without_retry(self):
        client, session = client_for([FakeResponse(500)])

        with pytest.raises(FetchError) as excinfo:
            client.versions()

        assert session.count(URL) == 1
        assert excinfo.value.status_code == 500

    def test_failed_fetch_is_not_cached(self):
        client, session = client_for([
            FakeResponse(503),
            FakeResponse(200, payload=[gem_record("1.0.0")]),
        ])

        with pytest.raises(FetchError):
            client.versions()
        assert client.versions() == ("1.0.0",)
        assert session.count(URL) == 2


class TestConcurrency:
    """Concurrent callers share one fetch."""

    def test_single_fetch_under_contention(self):
        release = threading.Event()
        session = FakeSession({URL: FakeResponse(200, payload=[gem_record("1.0.0")])}, delay=release)
        client = RubygemsClient(NAME, session=session, rate_limit_delay=0)

        threading.Timer(0.1, release.set).start()
        results = run_together(8, lambda _: client.versions())

        assert session.count(URL) == 1
        assert all(result == ("1.0.0",) for result in results)
