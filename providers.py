"""
Provider adapters. Every outbound summarization call goes through here.
Each adapter turns one free-text query into a ProviderResult, or None when
the provider has no credential (or fails under the soft policy).
Retries on rate limits; everything else is the cascade's problem.
"""

import json
import re
import time

import requests

from config import (PROVIDER_CONFIGS, CASCADES, CASCADE_POLICY, PROVIDER_TIMEOUT,
                    SECTIONS, MAX_ITEMS)
from models import ProviderResult, ProviderUnavailable
from pipeline import fetch

RATE_LIMIT_RETRIES = 2

SYSTEM_PROMPTS = {
    "news": "You are a technology news summarizer. Return only JSON.",
    "patents": "Generate concise patent summaries for technology news readers. Return only JSON.",
    "search": "Provide concise, factual answers to technology news search queries. Return only JSON.",
}

FORMAT_INSTRUCTIONS = {
    "news": """Return ONLY a JSON array, at most {n} entries, most important first:
[
  {{"title": "headline", "summary": "2-3 factual sentences", "url": "source link or empty"}},
  ...
]""",
    "patents": """Return ONLY a JSON array, at most {n} entries, most impactful first:
[
  {{"title": "patent title", "abstract": "1-2 sentences on what it covers and why it matters",
    "inventors": ["name"], "filing_date": "YYYY-MM-DD or empty", "url": "link or empty"}},
  ...
]""",
    "search": """Return ONLY a JSON array, at most {n} entries:
[
  {{"title": "short answer headline", "summary": "1-2 sentences", "url": "source link or empty"}},
  ...
]""",
}


class ProviderAdapter:
    """Wraps one external provider behind call(query)."""

    def __init__(self, provider_id, secrets, kind="news", policy=None, timeout=None, section=None):
        self.provider_id = provider_id
        self.config = PROVIDER_CONFIGS[provider_id]
        self.label = self.config["label"]
        self.secrets = secrets
        self.kind = kind
        self.policy = policy or CASCADE_POLICY.get(kind, "hard")
        self.timeout = timeout or PROVIDER_TIMEOUT
        self.section = section

    @property
    def name(self):
        return self.provider_id

    def call(self, query):
        api_key = self.secrets.get(self.provider_id)
        if not api_key:
            return None

        for attempt in range(RATE_LIMIT_RETRIES + 1):
            try:
                return self._call_once(query, api_key)
            except requests.exceptions.HTTPError as e:
                code = e.response.status_code if e.response is not None else "unknown"
                if code == 429 and attempt < RATE_LIMIT_RETRIES:
                    wait = (attempt + 1) * 2
                    print("    ... {} rate limited, waiting {}s (attempt {}/{})".format(
                        self.label, wait, attempt + 1, RATE_LIMIT_RETRIES + 1))
                    time.sleep(wait)
                    continue
                return self._fail("HTTP {}".format(code))
            except requests.exceptions.Timeout:
                return self._fail("timed out after {}s".format(self.timeout))
            except (requests.exceptions.RequestException, ValueError, KeyError,
                    IndexError, TypeError) as e:
                return self._fail(str(e)[:100])
        return self._fail("rate limited")

    def _fail(self, reason):
        print("  X {}: {}".format(self.label, reason))
        if self.policy == "hard":
            raise ProviderUnavailable(self.provider_id, reason)
        return None

    def _call_once(self, query, api_key):
        provider = self.config["provider"]
        default_confidence = self.config["confidence"]

        if provider == "perplexity":
            resp = requests.post(
                "https://api.perplexity.ai/search",
                headers={"Authorization": "Bearer " + api_key},
                json={"query": query, "max_results": MAX_ITEMS},
                timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
            results = data.get("results") or []
            return ProviderResult(
                provider=self.provider_id,
                confidence=clamp_confidence(data.get("confidence"), default_confidence),
                items=[r for r in results if isinstance(r, dict)])

        elif provider == "google":
            url = "https://generativelanguage.googleapis.com/v1beta/models/{}:generateContent?key={}".format(
                self.config["model"], api_key)
            payload = {
                "systemInstruction": {"parts": [{"text": SYSTEM_PROMPTS[self.kind]}]},
                "contents": [{"parts": [{"text": self._prompt(query)}]}],
                "generationConfig": {"maxOutputTokens": 2000, "temperature": 0.3},
            }
            resp = requests.post(url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
            candidates = data.get("candidates") or []
            if not candidates:
                return ProviderResult(self.provider_id, default_confidence, [])
            parts = candidates[0].get("content", {}).get("parts", [])
            text = "\n".join(p["text"] for p in parts if "text" in p)
            return ProviderResult(self.provider_id, default_confidence, parse_generated_items(text))

        elif provider == "openai":
            resp = requests.post(
                "https://api.openai.com/v1/chat/completions",
                headers={"Authorization": "Bearer " + api_key, "Content-Type": "application/json"},
                json={
                    "model": self.config["model"],
                    "messages": [
                        {"role": "system", "content": SYSTEM_PROMPTS[self.kind]},
                        {"role": "user", "content": self._prompt(query)},
                    ],
                    "max_tokens": 2000, "temperature": 0.3,
                },
                timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
            choices = data.get("choices") or []
            text = choices[0]["message"]["content"] if choices else ""
            return ProviderResult(self.provider_id, default_confidence, parse_generated_items(text or ""))

        elif provider == "rss":
            urls = [u.strip() for u in api_key.split(",") if u.strip()]
            keywords = SECTIONS[self.section]["keywords"] if self.section in SECTIONS else query.split()
            entries, _ = fetch.run(urls, keywords, timeout=self.timeout)
            return ProviderResult(self.provider_id, default_confidence, entries)

        raise ValueError("unknown provider type {}".format(provider))

    def _prompt(self, query):
        return "{}\n\n{}".format(query, FORMAT_INSTRUCTIONS[self.kind].format(n=MAX_ITEMS))


def clamp_confidence(value, default):
    """Coerce a provider-reported confidence into [0, 1]."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    if value != value:  # NaN
        return default
    return min(1.0, max(0.0, value))


def parse_generated_items(text):
    """Turn generative output into raw item dicts.

    Prefers a JSON array (fenced or bare); falls back to one item per
    non-empty line, titled by the text before the first colon.
    """
    if not text or not text.strip():
        return []
    cleaned = re.sub(r'```json\s*', '', text)
    cleaned = re.sub(r'```\s*', '', cleaned).strip()
    m = re.search(r'\[.*\]', cleaned, re.DOTALL)
    try:
        data = json.loads(m.group() if m else cleaned)
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        data = data["items"]
    if isinstance(data, list):
        return [d for d in data if isinstance(d, dict)][:MAX_ITEMS]

    items = []
    for line in cleaned.splitlines():
        line = re.sub(r'^\s*(?:[-*•]|\d+[.)])\s*', '', line).strip()
        if not line:
            continue
        title = line.split(":")[0].strip()
        items.append({"title": title or line, "summary": line})
    return items[:MAX_ITEMS]


def build_providers(kind, secrets, section=None, policy=None):
    """Adapters for one cascade kind (news, patents, search), in priority order."""
    return [ProviderAdapter(pid, secrets, kind=kind, policy=policy, section=section)
            for pid in CASCADES[kind]]
