"""
Data models for the aggregation pipeline. Clean interfaces between steps.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any

from config import SECTIONS, PERIODS, DEFAULT_SECTION, DEFAULT_PERIOD


class ProviderUnavailable(Exception):
    """A provider could not be reached or answered with garbage."""

    def __init__(self, provider, reason=""):
        super().__init__("{} unavailable: {}".format(provider, reason))
        self.provider = provider
        self.reason = reason


class CacheWriteFailure(Exception):
    """The keyed upsert into the content cache did not persist."""

    def __init__(self, key, reason=""):
        super().__init__("cache write failed for {}: {}".format(key, reason))
        self.key = key
        self.reason = reason


def cache_key(section, period):
    return "{}#{}".format(section, period)


@dataclass
class AggregationRequest:
    """A normalized request for one (section, period) pair."""
    section: str = DEFAULT_SECTION
    time_period: str = DEFAULT_PERIOD
    mode: str = "api"  # api or refresh

    @property
    def key(self):
        return cache_key(self.section, self.time_period)

    @classmethod
    def build(cls, section=None, time_period=None, mode="api", default_period=DEFAULT_PERIOD):
        """Coerce raw values into a valid request, substituting defaults."""
        section = str(section).lower() if section else DEFAULT_SECTION
        time_period = str(time_period).lower() if time_period else default_period
        if section not in SECTIONS:
            print("    unknown section {!r}, using {}".format(section, DEFAULT_SECTION))
            section = DEFAULT_SECTION
        if time_period not in PERIODS:
            print("    unknown period {!r}, using {}".format(time_period, default_period))
            time_period = default_period
        return cls(section=section, time_period=time_period, mode=mode)

    @classmethod
    def from_api(cls, body=None, args=None, default_period=DEFAULT_PERIOD):
        """External entry: JSON body fields win over query-string fields."""
        body = body if isinstance(body, dict) else {}
        args = args or {}
        return cls.build(
            body.get("section") or args.get("section"),
            body.get("timePeriod") or args.get("timePeriod"),
            mode="api", default_period=default_period)

    @classmethod
    def from_event(cls, event, default_period=DEFAULT_PERIOD):
        """Internal entry used by the refresh orchestrator."""
        event = event if isinstance(event, dict) else {}
        return cls.build(event.get("section"), event.get("timePeriod"),
                         mode=event.get("mode") or "refresh",
                         default_period=default_period)


@dataclass
class ProviderResult:
    """Raw answer from one summarization provider."""
    provider: str
    confidence: float
    items: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ContentItem:
    """One canonical news entry. `related` is only filled for deep dives."""
    id: str
    title: str
    summary: str
    score: int
    published_at: str = ""
    source_url: Optional[str] = None
    related: Optional[List["ContentItem"]] = None
    placeholder: bool = False

    def to_dict(self):
        d = {
            "id": self.id,
            "title": self.title,
            "summary": self.summary,
            "sourceUrl": self.source_url,
            "score": self.score,
            "publishedAt": self.published_at,
            "placeholder": self.placeholder,
        }
        if self.related is not None:
            d["related"] = [r.to_dict() for r in self.related]
        return d

    @classmethod
    def from_dict(cls, d):
        related = d.get("related")
        return cls(
            id=d.get("id", ""),
            title=d.get("title", ""),
            summary=d.get("summary", ""),
            score=int(d.get("score", 0)),
            published_at=d.get("publishedAt", ""),
            source_url=d.get("sourceUrl"),
            related=[cls.from_dict(r) for r in related] if isinstance(related, list) else None,
            placeholder=bool(d.get("placeholder", False)),
        )


@dataclass
class PatentItem:
    """One canonical patent entry."""
    id: str
    title: str
    summary: str
    impact_score: int
    filing_date: Optional[str] = None
    inventors: List[str] = field(default_factory=list)
    source_url: Optional[str] = None
    placeholder: bool = False

    @property
    def score(self):
        return self.impact_score

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.summary,
            "sourceUrl": self.source_url,
            "impactScore": self.impact_score,
            "filingDate": self.filing_date,
            "inventors": list(self.inventors),
            "placeholder": self.placeholder,
        }

    @classmethod
    def from_dict(cls, d):
        return cls(
            id=d.get("id", ""),
            title=d.get("title", ""),
            summary=d.get("summary", ""),
            impact_score=int(d.get("impactScore", 0)),
            filing_date=d.get("filingDate"),
            inventors=list(d.get("inventors") or []),
            source_url=d.get("sourceUrl"),
            placeholder=bool(d.get("placeholder", False)),
        )


ITEM_TYPES = {"news": ContentItem, "patents": PatentItem}


@dataclass
class CacheRecord:
    """Persisted snapshot of one section#period key."""
    key: str
    section: str
    period: str
    news: List[ContentItem] = field(default_factory=list)
    patents: List[PatentItem] = field(default_factory=list)
    news_score: float = 0.0
    patents_score: float = 0.0
    news_generated_at: str = ""
    patents_generated_at: str = ""
    verified_at: str = ""
    expires_at: int = 0

    def items(self, item_type):
        return self.news if item_type == "news" else self.patents

    def aggregate_score(self, item_type):
        return self.news_score if item_type == "news" else self.patents_score

    def is_expired(self, now):
        return now >= self.expires_at

    def to_dict(self):
        return {
            "key": self.key,
            "section": self.section,
            "period": self.period,
            "news": [i.to_dict() for i in self.news],
            "patents": [i.to_dict() for i in self.patents],
            "news_score": self.news_score,
            "patents_score": self.patents_score,
            "news_generated_at": self.news_generated_at,
            "patents_generated_at": self.patents_generated_at,
            "verified_at": self.verified_at,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, d):
        return cls(
            key=d["key"],
            section=d.get("section", ""),
            period=d.get("period", ""),
            news=[ContentItem.from_dict(i) for i in d.get("news", [])],
            patents=[PatentItem.from_dict(i) for i in d.get("patents", [])],
            news_score=float(d.get("news_score", 0)),
            patents_score=float(d.get("patents_score", 0)),
            news_generated_at=d.get("news_generated_at", ""),
            patents_generated_at=d.get("patents_generated_at", ""),
            verified_at=d.get("verified_at", ""),
            expires_at=int(d.get("expires_at", 0)),
        )


@dataclass
class LiveConnection:
    """A subscriber registration eligible for push notifications."""
    connection_id: str
    session_id: str
    connected_at: str = ""
    last_seen_at: str = ""
    expires_at: int = 0

    def is_live(self, now):
        return now < self.expires_at

    def to_dict(self):
        return dict(self.__dict__)


@dataclass
class StepReport:
    """Observability for each pipeline step."""
    step_name: str
    items_in: int = 0
    items_out: int = 0
    provider_calls: int = 0
    provider_successes: int = 0
    provider_failures: int = 0
    notes: List[str] = field(default_factory=list)

    def summary(self):
        success_rate = ""
        if self.provider_calls > 0:
            pct = int(100 * self.provider_successes / self.provider_calls)
            success_rate = " ({}% success)".format(pct)
        return "{}: {} in -> {} out | {} provider calls{}{}".format(
            self.step_name, self.items_in, self.items_out,
            self.provider_calls, success_rate,
            " | " + "; ".join(self.notes) if self.notes else "")
