"""
Canonicalize: map each provider's item shape onto ContentItem / PatentItem.
Pure functions, no I/O. Also holds the placeholder sets and the depth-bounded
deep-dive expansion.
"""

import math
import re
import uuid

from config import (MAX_ITEMS, MAX_DEPTH, DEFAULT_DEPTH, MAX_RELATED, PLACEHOLDER_COUNT,
                    PLACEHOLDER_NEWS_SCORE, PLACEHOLDER_PATENT_SCORE,
                    PLACEHOLDER_DEEP_DIVE_SCORE, PLACEHOLDER_CONTEXT_SCORE)
from models import ContentItem, PatentItem


def confidence_score(confidence):
    """0..1 confidence -> 0..100 score, rounded half up."""
    return int(math.floor(min(1.0, max(0.0, confidence)) * 100 + 0.5))


def _first(raw, *keys):
    for k in keys:
        v = raw.get(k)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return None


def _source_url(raw):
    source = raw.get("source")
    if isinstance(source, dict) and source.get("url"):
        return source["url"]
    return raw.get("url") or raw.get("sourceUrl") or None


def _item_id(raw):
    value = raw.get("id")
    if value is None or value == "":
        return str(uuid.uuid4())
    return str(value)


def news_item(raw, section, period, score, generated_at, depth=MAX_DEPTH):
    """One raw provider dict -> ContentItem."""
    related = None
    if depth > 1 and isinstance(raw.get("related"), list):
        related = [news_item(r, section, period, score, generated_at, depth - 1)
                   for r in raw["related"][:MAX_RELATED] if isinstance(r, dict)]
    return ContentItem(
        id=_item_id(raw),
        title=_first(raw, "title", "summary") or "Update for {}".format(section),
        summary=(_first(raw, "summary", "content", "body", "snippet", "text")
                 or "Automated insight regarding {} developments for {}.".format(section, period)),
        source_url=_source_url(raw),
        score=score,
        published_at=_first(raw, "published_at", "publishedAt", "date") or generated_at,
        related=related,
    )


def news_items(result, section, period, generated_at):
    """Canonicalize a whole provider result. Score is shared by every item."""
    score = confidence_score(result.confidence)
    return [news_item(raw, section, period, score, generated_at)
            for raw in result.items[:MAX_ITEMS]]


def patent_items(result, section, period):
    """Canonicalize a patent result. An item's own confidence beats the call's."""
    shared = confidence_score(result.confidence)
    patents = []
    for raw in result.items[:MAX_ITEMS]:
        own = raw.get("confidence")
        impact = confidence_score(float(own)) if isinstance(own, (int, float)) else shared
        inventors = raw.get("inventors")
        patents.append(PatentItem(
            id=_item_id(raw),
            title=_first(raw, "title") or "Patent insight for {}".format(section),
            summary=(_first(raw, "summary", "abstract", "content", "text")
                     or "Summary pending for a {} patent during {}.".format(section, period)),
            impact_score=impact,
            filing_date=_first(raw, "filing_date", "filingDate", "published_at"),
            inventors=[str(i) for i in inventors] if isinstance(inventors, list) else [],
            source_url=_source_url(raw),
        ))
    return patents


def placeholder_news(section, period, generated_at):
    return [ContentItem(
        id="{}-{}-placeholder-{}".format(section, period, i + 1),
        title="{} insight {} ({})".format(section.upper(), i + 1, period),
        summary=("Placeholder content for {} during {}. Replace with real aggregation "
                 "when API keys are configured.").format(section, period),
        score=PLACEHOLDER_NEWS_SCORE,
        published_at=generated_at,
        placeholder=True,
    ) for i in range(PLACEHOLDER_COUNT)]


def placeholder_patents(section, period):
    return [PatentItem(
        id="{}-{}-patent-placeholder-{}".format(section, period, i + 1),
        title="{} patent highlight {}".format(section.upper(), i + 1),
        summary=("Placeholder patent highlight for {} ({}). Configure API keys "
                 "to replace this data.").format(section, period),
        impact_score=PLACEHOLDER_PATENT_SCORE,
        placeholder=True,
    ) for i in range(PLACEHOLDER_COUNT)]


def placeholder_deep_dive(section, period, item_id):
    """Synthesized target for a deep dive on an unknown item."""
    return ContentItem(
        id=item_id,
        title="Deep dive for {} ({})".format(section.upper(), period),
        summary="Configure aggregation providers to unlock hierarchical related content.",
        score=PLACEHOLDER_DEEP_DIVE_SCORE,
        placeholder=True,
        related=[ContentItem(
            id="{}-{}-context-{}".format(section, period, i + 1),
            title="{} contextual insight {}".format(section.upper(), i + 1),
            summary="Placeholder context pending real AI enrichment.",
            score=PLACEHOLDER_CONTEXT_SCORE,
            placeholder=True,
        ) for i in range(2)],
    )


def clamp_depth(depth):
    """Requested deep-dive depth -> [1, MAX_DEPTH]. Garbage means the default."""
    if depth is None or depth == "":
        return DEFAULT_DEPTH
    if not isinstance(depth, int):
        m = re.match(r"\s*([+-]?\d+)", str(depth))
        if m is None:
            return DEFAULT_DEPTH
        depth = int(m.group(1))
    return max(1, min(MAX_DEPTH, depth))


def expand_related(item, depth):
    """Copy of `item` whose related tree is cut at `depth` levels.

    Children are only included while the remaining depth is > 1, and at
    most MAX_RELATED of them per level.
    """
    children = None
    if depth > 1:
        children = [expand_related(child, depth - 1) for child in (item.related or [])[:MAX_RELATED]]
    return ContentItem(
        id=item.id,
        title=item.title,
        summary=item.summary,
        score=item.score,
        published_at=item.published_at,
        source_url=item.source_url,
        related=children,
        placeholder=item.placeholder,
    )
