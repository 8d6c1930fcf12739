import json

from config import Secrets, get_active_periods, get_active_sections, load_refresh_pack


def test_secrets_load_once_until_invalidated(tmp_path):
    bundle = tmp_path / "secrets.json"
    bundle.write_text(json.dumps({"perplexityApiKey": "first"}))
    secrets = Secrets(path=str(bundle), environ={})

    assert secrets.get("perplexity") == "first"
    bundle.write_text(json.dumps({"perplexityApiKey": "second"}))
    assert secrets.get("perplexity") == "first"

    secrets.invalidate()
    assert secrets.get("perplexity") == "second"


def test_environment_beats_bundle(tmp_path):
    bundle = tmp_path / "secrets.json"
    bundle.write_text(json.dumps({"chatGptApiKey": "from-bundle",
                                  "feedUrls": ["https://a/rss", "https://b/rss"]}))
    secrets = Secrets(path=str(bundle), environ={"OPENAI_API_KEY": "from-env"})

    assert secrets.get("chatgpt") == "from-env"
    assert secrets.get("feeds") == "https://a/rss,https://b/rss"
    assert secrets.get("gemini") == ""
    assert secrets.available("news") == ["chatgpt", "feeds"]


def test_unreadable_bundle_means_no_keys(tmp_path):
    bundle = tmp_path / "secrets.json"
    bundle.write_text("{not json")
    assert Secrets(path=str(bundle), environ={}).available("news") == []


def test_refresh_pack_filters(tmp_path):
    pack_path = tmp_path / "pack.json"
    pack_path.write_text(json.dumps({"name": "nightly", "sections": ["quantum", "ai"],
                                     "timePeriods": ["yearly"]}))
    pack = load_refresh_pack(str(pack_path))

    assert get_active_sections(pack) == ["ai", "quantum"]
    assert get_active_periods(pack) == ["yearly"]
    assert get_active_sections(None) == ["ml", "ai", "iot", "quantum"]
    assert load_refresh_pack(str(tmp_path / "missing.json")) is None
