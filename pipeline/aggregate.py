"""
News aggregation for one (section, period) pair:
cascade -> canonicalize -> cache upsert, strictly in that order.

Shared by the HTTP route and the refresh orchestrator; both hand in an
already-normalized AggregationRequest. Every provider problem degrades to
placeholder content. A cache write failure propagates, since the response
must reflect what was persisted.
"""

from datetime import datetime, timezone

from config import NEWS_QUERY
from models import StepReport
from pipeline import cascade, canonicalize

PLACEHOLDER_SUMMARY = "Placeholder content generated because AI providers were unavailable."


def verification_summary(outcome):
    if not outcome.selected:
        return PLACEHOLDER_SUMMARY
    return "Content verified via {} with confidence {}%.".format(
        outcome.provider, canonicalize.confidence_score(outcome.result.confidence))


def run(request, cache, providers):
    """Aggregate and persist news for one pair. Returns (response, report)."""
    print("\n>>> NEWS: {}...".format(request.key))
    report = StepReport("news {}".format(request.key))

    query = NEWS_QUERY.format(section=request.section, period=request.time_period)
    outcome = cascade.select(providers, query, report)

    generated_at = datetime.now(timezone.utc).isoformat()
    if outcome.selected:
        items = canonicalize.news_items(
            outcome.result, request.section, request.time_period, generated_at)
        report.items_in = len(outcome.result.items)
    else:
        items = canonicalize.placeholder_news(request.section, request.time_period, generated_at)
        report.notes.append("placeholder")

    cache.upsert(request.key, "news", items)
    report.items_out = len(items)
    print("    {} items via {}".format(len(items), outcome.provider or "placeholder"))

    response = {
        "section": request.section,
        "timePeriod": request.time_period,
        "items": [i.to_dict() for i in items],
        "verificationSummary": verification_summary(outcome),
        "generatedAt": generated_at,
        "provider": outcome.provider,
    }
    return response, report
