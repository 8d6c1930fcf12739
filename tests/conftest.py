"""Shared fixtures: tmp-backed stores and scripted providers."""

import threading

import pytest

from config import Secrets
from connections import ConnectionRegistry
from content_cache import ContentCache
from hub import Hub
from models import ProviderResult


class FakeProvider:
    """Scripted provider: returns items, None, or raises."""

    def __init__(self, name, confidence=0.9, items=None, unavailable=False, error=None):
        self.name = name
        self.confidence = confidence
        self.items = items if items is not None else []
        self.unavailable = unavailable
        self.error = error
        self.queries = []

    @property
    def calls(self):
        return len(self.queries)

    def call(self, query):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        if self.unavailable:
            return None
        return ProviderResult(self.name, self.confidence, list(self.items))


class BlockingProvider(FakeProvider):
    """Holds the call until the gate opens."""

    def __init__(self, name, gate, **kwargs):
        super().__init__(name, **kwargs)
        self.gate = gate

    def call(self, query):
        self.gate.wait(10)
        return super().call(query)


class RecordingPusher:

    def __init__(self, dead=()):
        self.dead = set(dead)
        self.sent = []

    def push(self, connection_id, data):
        self.sent.append((connection_id, data))
        return connection_id not in self.dead


def raw_items(n, prefix="item"):
    return [{
        "id": "{}-{}".format(prefix, i),
        "title": "{} headline {}".format(prefix, i),
        "summary": "{} summary {}".format(prefix, i),
        "url": "https://example.com/{}/{}".format(prefix, i),
    } for i in range(n)]


@pytest.fixture
def make_provider():
    return FakeProvider


@pytest.fixture
def make_items():
    return raw_items


@pytest.fixture
def gate():
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def blocking_provider():
    return BlockingProvider


@pytest.fixture
def pusher():
    return RecordingPusher()


@pytest.fixture
def cache(tmp_path):
    return ContentCache(tmp_path / "cache")


@pytest.fixture
def registry(tmp_path):
    return ConnectionRegistry(tmp_path / "connections.json")


@pytest.fixture
def no_secrets():
    return Secrets(path="", environ={})


@pytest.fixture
def make_hub(cache, registry, no_secrets):
    def _make(provider_factory=None, pusher=None, cache_override=None):
        return Hub(cache=cache_override or cache, secrets=no_secrets, registry=registry,
                   pusher=pusher, provider_factory=provider_factory, websocket_endpoint="")
    return _make
