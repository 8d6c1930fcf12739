"""
Content Cache: one JSON document per section#period key.

Each key holds two independent slots, news and patents. An upsert replaces
one whole slot, recomputes that slot's mean score, stamps verified_at and
pushes expires_at 24h out, then rewrites the whole document atomically.
There is no version check: the last writer wins.

Expiry is advisory. Readers that care pass fresh_only=True; nothing is
deleted except by purge_expired(), which plays the store's TTL sweep.

Storage: output/content_cache/<section>__<period>.json
"""

import json
import os
import tempfile
import threading
import time
from datetime import datetime, timezone
from pathlib import Path

from config import CACHE_DIR, CONTENT_TTL_SECONDS, PURGE_GRACE_SECONDS
from models import CacheRecord, CacheWriteFailure, ITEM_TYPES


def mean_score(items):
    if not items:
        return 0.0
    return sum(i.score for i in items) / len(items)


class ContentCache:

    def __init__(self, root=None, ttl_seconds=CONTENT_TTL_SECONDS, clock=time.time):
        self.root = Path(root) if root is not None else CACHE_DIR
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._lock = threading.Lock()

    def _path(self, key):
        return self.root / "{}.json".format(key.replace("#", "__"))

    def _load(self, key):
        path = self._path(key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CacheRecord.from_dict(data)
        except (json.JSONDecodeError, OSError, KeyError, TypeError, ValueError) as e:
            print("  X cache: unreadable record {} ({})".format(key, str(e)[:80]))
            return None

    def read(self, key, fresh_only=False):
        """Record for `key`, or None if never written (or stale when fresh_only)."""
        record = self._load(key)
        if record is None:
            return None
        if fresh_only and record.is_expired(self.clock()):
            return None
        return record

    def upsert(self, key, item_type, items):
        """Replace the `item_type` slot of `key` with `items`. Returns the new record."""
        if item_type not in ITEM_TYPES:
            raise ValueError("unknown item type {}".format(item_type))
        items = list(items)
        now = self.clock()
        stamp = datetime.fromtimestamp(now, timezone.utc).isoformat()

        with self._lock:
            record = self._load(key)
            if record is None:
                section, _, period = key.partition("#")
                record = CacheRecord(key=key, section=section, period=period)

            if item_type == "news":
                record.news = items
                record.news_score = mean_score(items)
                record.news_generated_at = stamp
            else:
                record.patents = items
                record.patents_score = mean_score(items)
                record.patents_generated_at = stamp
            record.verified_at = stamp
            record.expires_at = int(now) + self.ttl_seconds

            self._write(key, record)
        return record

    def _write(self, key, record):
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=".tmp-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(record.to_dict(), f, indent=2, default=str)
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise CacheWriteFailure(key, str(e)) from e

    def keys(self):
        if not self.root.exists():
            return []
        return sorted(p.stem.replace("__", "#") for p in self.root.glob("*.json")
                      if not p.name.startswith("."))

    def purge_expired(self, grace_seconds=PURGE_GRACE_SECONDS):
        """Drop records expired for longer than the grace period. Returns purged keys."""
        cutoff = self.clock() - grace_seconds
        purged = []
        with self._lock:
            for key in self.keys():
                record = self._load(key)
                if record is not None and record.expires_at < cutoff:
                    self._path(key).unlink()
                    purged.append(key)
        return purged
