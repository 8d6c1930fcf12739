import pytest
import requests

import providers
from config import Secrets
from models import ProviderUnavailable
from providers import ProviderAdapter, parse_generated_items


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.payload = payload or {}

    @property
    def ok(self):
        return self.status_code < 400

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError("HTTP {}".format(self.status_code), response=self)

    def json(self):
        return self.payload


def _secrets(**values):
    return Secrets(values=values)


def test_missing_credential_makes_no_call(monkeypatch):
    def explode(*args, **kwargs):
        raise AssertionError("network call without a key")
    monkeypatch.setattr(providers.requests, "post", explode)

    for pid in ("perplexity", "gemini", "chatgpt", "feeds"):
        assert ProviderAdapter(pid, _secrets()).call("q") is None


def test_perplexity_result(monkeypatch):
    seen = {}

    def fake_post(url, headers=None, json=None, timeout=None):
        seen.update(url=url, auth=headers["Authorization"], body=json, timeout=timeout)
        return FakeResponse(payload={"confidence": 0.93, "results": [{"title": "a"}, "junk"]})
    monkeypatch.setattr(providers.requests, "post", fake_post)

    result = ProviderAdapter("perplexity", _secrets(perplexity="pk"), timeout=3).call("top ai")

    assert result.provider == "perplexity"
    assert result.confidence == 0.93
    assert result.items == [{"title": "a"}]
    assert seen["auth"] == "Bearer pk"
    assert seen["body"] == {"query": "top ai", "max_results": 10}
    assert seen["timeout"] == 3


def test_perplexity_without_confidence_uses_default(monkeypatch):
    monkeypatch.setattr(providers.requests, "post",
                        lambda *a, **k: FakeResponse(payload={"results": []}))
    result = ProviderAdapter("perplexity", _secrets(perplexity="pk")).call("q")
    assert result.confidence == 0.7
    assert result.items == []


def test_chatgpt_json_answer(monkeypatch):
    content = '```json\n[{"title": "Chip news", "summary": "Faster chips.", "url": ""}]\n```'
    monkeypatch.setattr(providers.requests, "post", lambda *a, **k: FakeResponse(
        payload={"choices": [{"message": {"content": content}}]}))

    result = ProviderAdapter("chatgpt", _secrets(chatgpt="ok")).call("q")

    assert result.confidence == 0.6
    assert result.items == [{"title": "Chip news", "summary": "Faster chips.", "url": ""}]


def test_gemini_text_answer(monkeypatch):
    text = "1. Qubits: a new record\n2. Sensors: cheaper"
    monkeypatch.setattr(providers.requests, "post", lambda *a, **k: FakeResponse(
        payload={"candidates": [{"content": {"parts": [{"text": text}]}}]}))

    result = ProviderAdapter("gemini", _secrets(gemini="gk")).call("q")

    assert [i["title"] for i in result.items] == ["Qubits", "Sensors"]
    assert result.items[0]["summary"] == "Qubits: a new record"


def test_hard_policy_raises(monkeypatch):
    monkeypatch.setattr(providers.requests, "post", lambda *a, **k: FakeResponse(500))
    with pytest.raises(ProviderUnavailable) as exc:
        ProviderAdapter("chatgpt", _secrets(chatgpt="ok"), policy="hard").call("q")
    assert exc.value.provider == "chatgpt"
    assert "500" in exc.value.reason


def test_soft_policy_returns_none_on_timeout(monkeypatch):
    def slow(*a, **k):
        raise requests.exceptions.Timeout("read timed out")
    monkeypatch.setattr(providers.requests, "post", slow)
    assert ProviderAdapter("perplexity", _secrets(perplexity="pk"), policy="soft").call("q") is None


def test_rate_limit_retried(monkeypatch):
    responses = [FakeResponse(429), FakeResponse(payload={"results": [{"title": "x"}]})]
    monkeypatch.setattr(providers.requests, "post", lambda *a, **k: responses.pop(0))
    monkeypatch.setattr(providers.time, "sleep", lambda s: None)

    result = ProviderAdapter("perplexity", _secrets(perplexity="pk")).call("q")
    assert result.items == [{"title": "x"}]


def test_build_providers_order():
    adapters = providers.build_providers("patents", _secrets())
    assert [a.name for a in adapters] == ["perplexity", "chatgpt"]
    assert all(a.policy == "hard" for a in adapters)
    assert {a.policy for a in providers.build_providers("search", _secrets())} == {"soft"}


def test_parse_generated_items_shapes():
    assert parse_generated_items("") == []
    assert parse_generated_items('{"items": [{"title": "t"}]}') == [{"title": "t"}]
    lines = parse_generated_items("- Alpha: one\n\n* Beta two")
    assert lines == [{"title": "Alpha", "summary": "Alpha: one"},
                     {"title": "Beta two", "summary": "Beta two"}]
