from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from endpoint_resolver.cache import JsonFileStore, PersistentConfigCache
from endpoint_resolver.errors import TransportError
from endpoint_resolver.types import DomainCandidate, GlobalConfig, ServiceDefinition


@pytest.fixture
def mock_pubsub_client():
    client = MagicMock()
    # Mock the publish method to return a Future-like object
    future = MagicMock()
    future.result.return_value = "msg_id_123"
    client.publish.return_value = future
    return client


@pytest.fixture
def mock_token_fetcher():
    return MagicMock(return_value="fake_token")


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=8, thread_name_prefix="test-probe")
    yield pool
    pool.shutdown(wait=True)


def make_probe_transport(timings):
    """
    MagicMock transport whose probe() answers from timings: domain -> ms,
    or domain -> Exception instance to raise.
    """

    def _probe(domain, cert_type):
        outcome = timings[domain]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    transport = MagicMock()
    transport.probe.side_effect = _probe
    return transport


@pytest.fixture
def probe_transport_factory():
    return make_probe_transport


@pytest.fixture
def unreachable():
    return TransportError("connection refused")


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def task_factory():
    """Stands in for PeriodicTask so no background thread ever runs."""
    factory = MagicMock(side_effect=lambda fn, interval, name=None: MagicMock(fn=fn, interval=interval, name=name))
    return factory


@pytest.fixture
def config_cache(tmp_path):
    return PersistentConfigCache(JsonFileStore(tmp_path / "storage"))


@pytest.fixture
def global_config():
    return GlobalConfig(
        domains=[
            DomainCandidate(domain="chat-a.example.com", cert_type="self", label="main"),
            DomainCandidate(domain="chat-b.example.com", cert_type="authority", label="main"),
            DomainCandidate(domain="media.example.com", cert_type="authority", label="media"),
        ],
        services=[
            ServiceDefinition(name="chat", path="/chat", domains=["main"]),
            ServiceDefinition(name="fileSharing", path="/files", domains=["main"]),
            ServiceDefinition(name="livekit", path="", domains=["media"]),
            ServiceDefinition(name="unregistered", path="/x", domains=["main"]),
        ],
    )
