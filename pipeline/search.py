"""
Free-text search across the summarization providers. Same cascade as news
(soft policy), nothing is cached. Always returns at least one result.
"""

import uuid
from datetime import datetime, timezone

from config import MAX_ITEMS, SECTIONS
from models import StepReport
from pipeline import cascade, canonicalize

DEFAULT_QUERY = "latest ai breakthroughs"


def clamp_limit(limit):
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        return MAX_ITEMS
    return max(1, min(MAX_ITEMS, limit))


def format_results(raw_items, confidence, limit):
    score = canonicalize.confidence_score(confidence)
    results = []
    for item in raw_items[:limit]:
        source = item.get("source")
        results.append({
            "id": str(item.get("id") or uuid.uuid4()),
            "headline": item.get("title") or item.get("summary") or item.get("text") or "Technology insight",
            "summary": (item.get("summary") or item.get("content") or item.get("text")
                        or "Summary unavailable from upstream provider."),
            "source": (source.get("name") if isinstance(source, dict) else source) or "aggregated",
            "url": (source.get("url") if isinstance(source, dict) else None) or item.get("url"),
            "score": score,
        })
    return results


def normalize(body):
    """Search payload -> (query, section, limit). Bad payloads get defaults."""
    body = body if isinstance(body, dict) else {}
    query = body.get("query")
    query = query.strip() if isinstance(query, str) and query.strip() else DEFAULT_QUERY
    section = body.get("section") if body.get("section") in SECTIONS else None
    return query, section, clamp_limit(body.get("limit", MAX_ITEMS))


def run(query, section, limit, providers):
    """Returns (response, report)."""
    print("\n>>> SEARCH: {!r}...".format(query[:60]))
    report = StepReport("search")

    enriched = "{} focused on {}".format(query, section) if section else query
    outcome = cascade.select(providers, enriched, report)

    if outcome.selected:
        results = format_results(outcome.result.items, outcome.result.confidence, limit)
    else:
        results = format_results([{
            "title": "Stay tuned for curated technology insights",
            "summary": "Configure API keys to enable live search results.",
        }], 0.5, 1)
        report.notes.append("placeholder")

    report.items_out = len(results)
    return {
        "query": query,
        "section": section,
        "results": results,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "provider": outcome.provider,
    }, report
