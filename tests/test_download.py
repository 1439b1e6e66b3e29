import os

import pytest
import requests

from roadnet.config import APIConfig
from roadnet.errors import ConfigError, DownloadError
from roadnet.ingest import api_client
from roadnet.ingest.api_client import OverpassAPIClient
from roadnet.ingest.download import RegionDownloader, apply_env_overrides, build_region_query

MIRRORS = ["https://a.example/api", "https://b.example/api", "https://c.example/api"]


class FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error", response=self)


class FakePost:
    """Replays a scripted outcome per URL and records every call"""

    def __init__(self, outcomes):
        self.outcomes = {url: list(results) for url, results in outcomes.items()}
        self.calls = []

    def __call__(self, url, data=None, headers=None, timeout=None):
        self.calls.append(url)
        outcome = self.outcomes[url].pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def no_sleep(monkeypatch):
    sleeps = []
    monkeypatch.setattr(api_client.time, "sleep", sleeps.append)
    return sleeps


@pytest.fixture
def client(no_sleep):
    return OverpassAPIClient(APIConfig(max_retries=2, retry_delay=1.0), mirrors=MIRRORS)


def test_first_mirror_success(monkeypatch, client):
    post = FakePost({MIRRORS[0]: [FakeResponse(text="<osm/>")]})
    monkeypatch.setattr(api_client.requests, "post", post)
    assert client.query("q") == "<osm/>"
    assert post.calls == [MIRRORS[0]]


def test_failover_in_configured_order(monkeypatch, client):
    post = FakePost({
        MIRRORS[0]: [requests.exceptions.Timeout(), requests.exceptions.Timeout()],
        MIRRORS[1]: [FakeResponse(429), FakeResponse(429)],
        MIRRORS[2]: [FakeResponse(text="<osm>ok</osm>")],
    })
    monkeypatch.setattr(api_client.requests, "post", post)

    assert client.query("q") == "<osm>ok</osm>"
    assert post.calls == [MIRRORS[0], MIRRORS[0], MIRRORS[1], MIRRORS[1], MIRRORS[2]]


def test_non_retryable_status_moves_to_next_mirror(monkeypatch, client):
    post = FakePost({
        MIRRORS[0]: [FakeResponse(500)],
        MIRRORS[1]: [FakeResponse(text="<osm/>")],
    })
    monkeypatch.setattr(api_client.requests, "post", post)
    assert client.query("q") == "<osm/>"
    assert post.calls == [MIRRORS[0], MIRRORS[1]]


def test_retry_then_success_on_same_mirror(monkeypatch, client):
    post = FakePost({MIRRORS[0]: [requests.exceptions.ConnectionError("reset"), FakeResponse(text="<osm/>")]})
    monkeypatch.setattr(api_client.requests, "post", post)
    assert client.query("q") == "<osm/>"
    assert post.calls == [MIRRORS[0], MIRRORS[0]]


def test_all_mirrors_fail(monkeypatch, client):
    post = FakePost({url: [FakeResponse(503)] for url in MIRRORS})
    monkeypatch.setattr(api_client.requests, "post", post)
    with pytest.raises(DownloadError) as exc_info:
        client.query("q")
    for url in MIRRORS:
        assert url in str(exc_info.value)


def test_region_query_covers_roads_places_and_elevation(config):
    query = build_region_query(config.regions["mindanao"], 180)
    assert query.startswith("[out:xml][timeout:180];")
    assert "(5.5,121.9,9.8,126.6)" in query
    assert "motorway_link" in query and "tertiary" in query
    assert 'node["place"~"^(city|town)$"]' in query
    assert 'node["amenity"="fuel"]' in query
    assert 'node["ele"]' in query


class StubClient:
    timeout = 60

    def __init__(self, body="<osm/>"):
        self.body = body
        self.queries = []

    def query(self, query):
        self.queries.append(query)
        return self.body


def test_download_writes_region_file(config, tmp_path):
    client = StubClient('<osm version="0.6"/>')
    path = RegionDownloader(config, client).download("davao", str(tmp_path / "raw"))

    assert path == os.path.join(str(tmp_path / "raw"), "davao.osm")
    with open(path, encoding="utf-8") as f:
        assert f.read() == '<osm version="0.6"/>'
    assert os.listdir(tmp_path / "raw") == ["davao.osm"]
    assert "(6.9,125.3,7.4,125.7)" in client.queries[0]


def test_download_failure_leaves_no_file(config, tmp_path):
    class FailingClient(StubClient):
        def query(self, query):
            raise DownloadError("all mirrors failed")

    with pytest.raises(DownloadError):
        RegionDownloader(config, FailingClient()).download("davao", str(tmp_path))
    assert os.listdir(tmp_path) == []


def test_unknown_region(config, tmp_path):
    with pytest.raises(ConfigError, match="Unknown region 'atlantis'"):
        RegionDownloader(config, StubClient()).download("atlantis", str(tmp_path))


def test_env_overrides(config, monkeypatch):
    monkeypatch.setenv("ROADNET_OVERPASS_MIRRORS", " https://one.example/api , https://two.example/api ")
    monkeypatch.setenv("ROADNET_USER_AGENT", "tester/2.0")
    apply_env_overrides(config)
    assert config.api.overpass_mirrors == ["https://one.example/api", "https://two.example/api"]
    assert config.api.user_agent == "tester/2.0"
