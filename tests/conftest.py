"""Shared fakes for docket tests. No test touches the network."""

import json
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from docket.domain import Repository
from docket.infra.rubygems_client import RubygemsClient


def run_together(count, func):
    """Run func(i) on `count` threads released at the same moment."""
    barrier = threading.Barrier(count)

    def worker(i):
        barrier.wait()
        return func(i)

    with ThreadPoolExecutor(max_workers=count) as executor:
        return list(executor.map(worker, range(count)))


class FakeResponse:
    """Just enough of requests.Response."""

    def __init__(self, status_code=200, content=b"", headers=None, links=None, payload=None):
        if payload is not None:
            content = json.dumps(payload).encode('utf-8')
        if isinstance(content, str):
            content = content.encode('utf-8')
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}
        self.links = links or {}

    @property
    def text(self):
        return self.content.decode('utf-8', errors='replace')

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """
    A requests.Session stand-in.

    `responses` maps a URL to a response, an exception instance, or a list
    of those consumed in order (the last one repeats). Unknown URLs get 404.
    """

    def __init__(self, responses=None, delay=None):
        self.responses = dict(responses or {})
        self.calls = []
        self.delay = delay
        self._lock = threading.Lock()

    def get(self, url, **kwargs):
        with self._lock:
            self.calls.append(url)
            planned = self.responses.get(url, FakeResponse(404, b"404: Not Found"))
            if isinstance(planned, list):
                planned = planned.pop(0) if len(planned) > 1 else planned[0]
        if self.delay is not None:
            self.delay.wait()
        if isinstance(planned, BaseException):
            raise planned
        return planned

    def count(self, url):
        with self._lock:
            return self.calls.count(url)


class FakeSource:
    """In-memory SourceProvider keyed by (path, version)."""

    def __init__(self, files=None, name="fake"):
        self.files = dict(files or {})
        self.name = name
        self.reads = []

    def read_file(self, path, version=None):
        self.reads.append((path, version))
        return self.files.get((path, version))

    def web_url(self, path, version=None):
        ref = f"v{version}" if version is not None else "master"
        return f"https://github.com/example/{self.name}/blob/{ref}/{path}"


def gem_record(number, created_at="2020-01-01T00:00:00.000Z", metadata=None, prerelease=None):
    """A registry version record as returned by rubygems.org."""
    return {
        'number': number,
        'created_at': created_at,
        'prerelease': prerelease if prerelease is not None else any(c.isalpha() for c in number),
        'metadata': metadata or {},
    }


def versions_url(name, base_url="https://rubygems.org"):
    return f"{base_url}/api/v1/versions/{name}.json"


def make_repository(name, records, files=None, **kwargs):
    """Repository backed by a fake registry session and a FakeSource."""
    session = FakeSession({versions_url(name): FakeResponse(200, payload=records)})
    registry = RubygemsClient(name, session=session, rate_limit_delay=0)
    return Repository(name, FakeSource(files, name=name), registry=registry, **kwargs)


@pytest.fixture
def kafka_records():
    """An integration with two releases and a pre-release."""
    plugins = "logstash-input-kafka, logstash-output-kafka"
    return [
        gem_record("10.0.0", "2019-10-01T10:00:00.000Z", {'integration_plugins': plugins}),
        gem_record("11.0.0", "2021-03-15T10:00:00.000Z", {'integration_plugins': plugins}),
        gem_record("11.1.0.pre.1", "2021-05-01T10:00:00.000Z", {'integration_plugins': plugins}),
    ]


@pytest.fixture
def mutate_records():
    """A standalone filter plugin with two releases."""
    return [
        gem_record("3.5.0", "2020-06-01T12:00:00.000Z"),
        gem_record("3.5.1", "2020-09-01T12:00:00.000Z"),
    ]


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point configuration at an empty directory and clear DOCKET_ overrides."""
    import os
    for key in list(os.environ):
        if key.startswith('DOCKET_') or key in ('GITHUB_TOKEN', 'PLUGIN_ORG'):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv('HOME', str(tmp_path))
    monkeypatch.setenv('DOCKET_CONFIG', str(tmp_path / 'missing.json'))
    return tmp_path
