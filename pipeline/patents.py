"""
Patent aggregation for one (section, period) pair. Same flow as news,
written into the patents slot of the same cache key.
"""

from datetime import datetime, timezone

from config import PATENT_QUERY
from models import StepReport
from pipeline import cascade, canonicalize
from pipeline.aggregate import verification_summary


def run(request, cache, providers):
    """Aggregate and persist patents for one pair. Returns (response, report)."""
    print("\n>>> PATENTS: {}...".format(request.key))
    report = StepReport("patents {}".format(request.key))

    query = PATENT_QUERY.format(section=request.section, period=request.time_period)
    outcome = cascade.select(providers, query, report)

    if outcome.selected:
        patents = canonicalize.patent_items(outcome.result, request.section, request.time_period)
        report.items_in = len(outcome.result.items)
    else:
        patents = canonicalize.placeholder_patents(request.section, request.time_period)
        report.notes.append("placeholder")

    record = cache.upsert(request.key, "patents", patents)
    report.items_out = len(patents)
    print("    {} patents via {}".format(len(patents), outcome.provider or "placeholder"))

    return {
        "section": request.section,
        "timePeriod": request.time_period,
        "patents": [p.to_dict() for p in patents],
        "impactAverage": round(record.patents_score),
        "verificationSummary": verification_summary(outcome),
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "provider": outcome.provider,
    }, report
