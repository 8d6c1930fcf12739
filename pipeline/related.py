"""
Deep dive: look up one cached news item and expand its related tree.
Lookup order: exact id, then case-insensitive title substring, then a
synthesized placeholder. Never an error.
"""

from datetime import datetime, timezone

from models import AggregationRequest, StepReport
from pipeline import canonicalize

FALLBACK_ITEM_ID = "unknown"


def find_target(candidates, item_id):
    for item in candidates:
        if item.id == item_id:
            return item
    needle = item_id.lower()
    for item in candidates:
        if needle in (item.title or "").lower():
            return item
    return None


def run(section, period, item_id, depth, cache):
    """Returns (response, report)."""
    request = AggregationRequest.build(section, period)
    item_id = item_id or FALLBACK_ITEM_ID
    report = StepReport("deep dive {}".format(request.key))

    record = cache.read(request.key)
    candidates = record.news if record else []
    report.items_in = len(candidates)

    target = find_target(candidates, item_id)
    if target is None:
        report.notes.append("placeholder")
        target = canonicalize.placeholder_deep_dive(request.section, request.time_period, item_id)

    item = canonicalize.expand_related(target, canonicalize.clamp_depth(depth))
    report.items_out = 1
    return {
        "section": request.section,
        "period": request.time_period,
        "item": item.to_dict(),
        "generatedAt": datetime.now(timezone.utc).isoformat(),
    }, report
