import json

import requests

from connections import ConnectionRegistry
from pipeline import notify
from pipeline.notify import GatewayPusher


class Clock:
    def __init__(self, now=5_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_broadcast_to_all_live(registry, pusher):
    registry.connect("a")
    registry.connect("b")

    outcomes, report = notify.broadcast({"type": "refresh"}, registry, pusher)

    assert outcomes == {"a": notify.DELIVERED, "b": notify.DELIVERED}
    assert json.loads(pusher.sent[0][1]) == {"type": "refresh"}
    assert report.items_out == 2


def test_dead_connections_are_pruned_after_pass(registry):
    for cid in ("a", "b", "c"):
        registry.connect(cid)

    class ClosedSocketPusher:
        sent = []

        def push(self, connection_id, data):
            self.sent.append(connection_id)
            if connection_id == "b":
                raise ConnectionError("socket closed")
            return True

    pusher = ClosedSocketPusher()
    outcomes, _ = notify.broadcast({}, registry, pusher)

    assert sorted(pusher.sent) == ["a", "b", "c"]
    assert outcomes["b"] == notify.DEAD
    assert sorted(c.connection_id for c in registry.live()) == ["a", "c"]


def test_explicit_ids_only(registry, pusher):
    registry.connect("a")
    registry.connect("b")

    outcomes, _ = notify.broadcast({}, registry, pusher, connection_ids=["b", "b", "zzz"])

    assert [cid for cid, _ in pusher.sent] == ["b", "zzz"]
    assert outcomes == {"b": notify.DELIVERED, "zzz": notify.DELIVERED}


def test_expired_registrations_skipped_and_pruned(tmp_path, pusher):
    clock = Clock()
    registry = ConnectionRegistry(tmp_path / "c.json", ttl_seconds=10, clock=clock)
    registry.connect("old")
    clock.now += 20
    registry.connect("new")

    notify.broadcast({}, registry, pusher)

    assert [cid for cid, _ in pusher.sent] == ["new"]
    assert registry.get("old") is None


def test_no_pusher_skips(registry):
    registry.connect("a")
    outcomes, report = notify.broadcast({}, registry, None)
    assert outcomes == {}
    assert registry.get("a") is not None
    assert report.notes == ["no pusher"]


class FakeSession:
    def __init__(self, status_code=200, error=None):
        self.status_code = status_code
        self.error = error
        self.urls = []
        self.headers = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.urls.append(url)
        self.headers.append(headers)
        if self.error:
            raise self.error
        return type("R", (), {"status_code": self.status_code, "ok": self.status_code < 400})()


def test_gateway_pusher_statuses():
    ok = FakeSession(200)
    assert GatewayPusher("https://ws.example.com/prod/", session=ok).push("id=1", "{}") is True
    assert ok.urls == ["https://ws.example.com/prod/@connections/id%3D1"]

    assert GatewayPusher("https://ws", session=FakeSession(410)).push("x", "{}") is False
    assert GatewayPusher("https://ws", session=FakeSession(500)).push("x", "{}") is False
    gone = FakeSession(error=requests.exceptions.ConnectionError("refused"))
    assert GatewayPusher("https://ws", session=gone).push("x", "{}") is False


def test_gateway_pusher_sends_bearer_token():
    signed = FakeSession(200)
    GatewayPusher("https://ws", session=signed, token="s3cret").push("x", "{}")
    assert signed.headers[0]["Authorization"] == "Bearer s3cret"

    unsigned = FakeSession(200)
    GatewayPusher("https://ws", session=unsigned).push("x", "{}")
    assert "Authorization" not in unsigned.headers[0]
