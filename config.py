"""
Configuration: sections, periods, summarization providers, cache horizons.
Secrets come from environment variables, optionally layered over a JSON
secret bundle. Refresh packs are JSON files that narrow a sweep to some
sections and periods.
"""

import json
import os
import threading
from pathlib import Path


SECTIONS = {
    "ml": {
        "name": "Machine Learning",
        "keywords": ["machine learning", "deep learning", "neural network", "model training",
                     "pytorch", "tensorflow", "reinforcement learning", "dataset", "benchmark"],
    },
    "ai": {
        "name": "Artificial Intelligence",
        "keywords": ["artificial intelligence", "AI", "LLM", "chatgpt", "openai", "anthropic",
                     "gemini", "deepmind", "generative", "agent", "foundation model"],
    },
    "iot": {
        "name": "Internet of Things",
        "keywords": ["iot", "internet of things", "sensor", "edge computing", "smart home",
                     "embedded", "wearable", "connected device", "industrial iot", "5g"],
    },
    "quantum": {
        "name": "Quantum Computing",
        "keywords": ["quantum", "qubit", "quantum computing", "superconducting", "ion trap",
                     "error correction", "quantum advantage", "photonic", "entanglement"],
    },
}

PERIODS = ["daily", "weekly", "monthly", "yearly"]

DEFAULT_SECTION = "ai"
DEFAULT_PERIOD = "daily"
DEFAULT_PATENT_PERIOD = "monthly"

PROVIDER_CONFIGS = {
    "perplexity": {
        "provider": "perplexity", "model": "",
        "env_key": "PERPLEXITY_API_KEY", "secret_key": "perplexityApiKey",
        "label": "Perplexity", "confidence": 0.7,
    },
    "gemini": {
        "provider": "google", "model": "gemini-1.5-flash",
        "env_key": "GOOGLE_API_KEY", "secret_key": "geminiApiKey",
        "label": "Gemini", "confidence": 0.7,
    },
    "chatgpt": {
        "provider": "openai", "model": "gpt-4o-mini",
        "env_key": "OPENAI_API_KEY", "secret_key": "chatGptApiKey",
        "label": "ChatGPT", "confidence": 0.6,
    },
    "feeds": {
        "provider": "rss", "model": "",
        "env_key": "TECHNEWS_FEED_URLS", "secret_key": "feedUrls",
        "label": "RSS feeds", "confidence": 0.5,
    },
}

# Priority order per content kind. First provider with items wins.
CASCADES = {
    "news": ["perplexity", "gemini", "chatgpt", "feeds"],
    "patents": ["perplexity", "chatgpt"],
    "search": ["perplexity", "gemini", "chatgpt"],
}

# "hard" adapters raise ProviderUnavailable on failure, "soft" ones return None
CASCADE_POLICY = {
    "news": "hard",
    "patents": "hard",
    "search": "soft",
}

NEWS_QUERY = "Top verified {section} technology news for {period}"
PATENT_QUERY = "Summarize the most impactful patents related to {section} filed within {period}"

MAX_ITEMS = 10
PLACEHOLDER_COUNT = 3
PLACEHOLDER_NEWS_SCORE = 50
PLACEHOLDER_PATENT_SCORE = 55
PLACEHOLDER_DEEP_DIVE_SCORE = 60
PLACEHOLDER_CONTEXT_SCORE = 55

MAX_DEPTH = 5
DEFAULT_DEPTH = 3
MAX_RELATED = 3

CONTENT_TTL_SECONDS = 24 * 60 * 60
CONNECTION_TTL_SECONDS = 24 * 60 * 60
PURGE_GRACE_SECONDS = 7 * 24 * 60 * 60

PROVIDER_TIMEOUT = float(os.environ.get("TECHNEWS_PROVIDER_TIMEOUT", "20"))
PUSH_TIMEOUT = float(os.environ.get("TECHNEWS_PUSH_TIMEOUT", "5"))
SWEEP_DEADLINE = float(os.environ.get("TECHNEWS_SWEEP_DEADLINE", str(15 * 60)))
SWEEP_WORKERS = int(os.environ.get("TECHNEWS_SWEEP_WORKERS", "8"))

CACHE_DIR = Path(os.environ.get("TECHNEWS_CACHE_DIR", "output/content_cache"))
CONNECTIONS_PATH = Path(os.environ.get("TECHNEWS_CONNECTIONS_PATH", "output/connections.json"))
WEBSOCKET_ENDPOINT = os.environ.get("TECHNEWS_WEBSOCKET_ENDPOINT", "")
PUSH_TOKEN = os.environ.get("TECHNEWS_PUSH_TOKEN", "")

SCHEDULE_HOUR_UTC = 0


class Secrets:
    """Provider credentials, loaded once on first use.

    Values come from the JSON bundle at `path` (or TECHNEWS_SECRETS_FILE),
    with environment variables taking precedence. Nothing is re-read until
    invalidate() is called.
    """

    def __init__(self, path=None, environ=None, values=None):
        self._path = path if path is not None else os.environ.get("TECHNEWS_SECRETS_FILE", "")
        self._environ = environ if environ is not None else os.environ
        self._values = dict(values) if values is not None else None
        self._lock = threading.Lock()

    def _load(self):
        bundle = {}
        if self._path and Path(self._path).exists():
            try:
                data = json.loads(Path(self._path).read_text(encoding="utf-8"))
                if isinstance(data, dict):
                    bundle = data
            except (json.JSONDecodeError, OSError) as e:
                print("  X secrets: unreadable bundle {} ({})".format(self._path, str(e)[:80]))

        values = {}
        for provider_id, cfg in PROVIDER_CONFIGS.items():
            value = self._environ.get(cfg["env_key"]) or bundle.get(cfg["secret_key"]) or ""
            if isinstance(value, list):
                value = ",".join(value)
            values[provider_id] = value
        return values

    def get(self, provider_id):
        with self._lock:
            if self._values is None:
                self._values = self._load()
            return self._values.get(provider_id, "")

    def available(self, kind="news"):
        return [p for p in CASCADES.get(kind, []) if self.get(p)]

    def invalidate(self):
        with self._lock:
            self._values = None


def load_refresh_pack(path):
    """Load a JSON refresh pack that narrows the sections/periods of a sweep."""
    if not path or not Path(path).exists():
        return None
    with open(path) as f:
        return json.load(f)


def get_active_sections(pack=None):
    """Return section ids, optionally filtered by a refresh pack."""
    if pack and pack.get("sections"):
        allowed = set(pack["sections"])
        return [s for s in SECTIONS if s in allowed]
    return list(SECTIONS)


def get_active_periods(pack=None):
    """Return period ids, optionally filtered by a refresh pack."""
    if pack and pack.get("timePeriods"):
        allowed = set(pack["timePeriods"])
        return [p for p in PERIODS if p in allowed]
    return list(PERIODS)
