"""
Refresh: sweep the section x period cross-product and rebuild every cache key.

  1. One unit of work per (section, period) pair: news, then patents
  2. Pairs run concurrently (they write disjoint keys)
  3. A failing pair never aborts the others; its previous record stays
  4. The sweep has a wall-clock deadline; late pairs are abandoned, not awaited
  5. After the sweep, live subscribers get a change summary

Triggered on demand (handle_refresh_event) or daily at midnight UTC (run_daily).
"""

import time
import traceback
from concurrent.futures import ThreadPoolExecutor, as_completed, TimeoutError as FuturesTimeout
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List

from config import SECTIONS, PERIODS, SWEEP_DEADLINE, SWEEP_WORKERS, SCHEDULE_HOUR_UTC
from models import AggregationRequest, StepReport, cache_key
from pipeline import aggregate, patents, notify


@dataclass
class SweepResult:
    sections: List[str]
    periods: List[str]
    refreshed: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    abandoned: List[str] = field(default_factory=list)
    reports: List[StepReport] = field(default_factory=list)
    runtime_seconds: int = 0
    completed_at: str = ""

    def payload(self):
        """Change summary pushed to subscribers."""
        return {
            "type": "refresh",
            "message": "TechNews Hub content refreshed",
            "sections": self.sections,
            "timePeriods": self.periods,
            "refreshed": self.refreshed,
            "failed": sorted(self.failed),
            "abandoned": self.abandoned,
            "completedAt": self.completed_at,
        }


def refresh_pair(hub, section, period):
    """News then patents for one key. Raises whatever the pipelines raise."""
    request = AggregationRequest.from_event(
        {"section": section, "timePeriod": period, "mode": "refresh"})
    _, news_report = aggregate.run(request, hub.cache, hub.providers("news", section))
    _, patent_report = patents.run(request, hub.cache, hub.providers("patents", section))
    return [news_report, patent_report]


def _collect(future, key, result):
    try:
        result.reports.extend(future.result())
        result.refreshed.append(key)
    except Exception as e:
        print("  ERROR {}: {}".format(key, str(e)[:100]))
        traceback.print_exc()
        result.failed[key] = str(e)[:200]


def run_sweep(hub, sections=None, periods=None, deadline=SWEEP_DEADLINE, max_workers=SWEEP_WORKERS):
    """Refresh every (section, period) pair. Returns a SweepResult."""
    start_time = time.time()
    sections = list(sections or SECTIONS)
    periods = list(periods or PERIODS)
    print("=" * 70)
    print("TECHNEWS HUB REFRESH: {} sections x {} periods".format(len(sections), len(periods)))
    print("=" * 70)

    result = SweepResult(sections=sections, periods=periods)
    executor = ThreadPoolExecutor(max_workers=max_workers)
    futures = {
        executor.submit(refresh_pair, hub, s, p): cache_key(s, p)
        for s in sections for p in periods
    }
    collected = set()
    try:
        for future in as_completed(futures, timeout=deadline):
            _collect(future, futures[future], result)
            collected.add(future)
    except FuturesTimeout:
        for future, key in futures.items():
            if future in collected:
                continue
            if future.done():
                _collect(future, key, result)
            else:
                result.abandoned.append(key)
        print("  Deadline of {}s reached, abandoned: {}".format(
            deadline, ", ".join(sorted(result.abandoned))))
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    result.refreshed.sort()
    result.abandoned.sort()
    result.runtime_seconds = int(time.time() - start_time)
    result.completed_at = datetime.now(timezone.utc).isoformat()

    print("\n" + "=" * 70)
    print("SWEEP REPORT")
    print("=" * 70)
    for r in result.reports:
        print("  " + r.summary())
    print("  Refreshed {} | failed {} | abandoned {} | {}s".format(
        len(result.refreshed), len(result.failed), len(result.abandoned), result.runtime_seconds))
    print("=" * 70)
    return result


def _valid(values, allowed):
    if not isinstance(values, list):
        return []
    return [v for v in values if v in allowed]


def handle_refresh_event(hub, event=None, deadline=SWEEP_DEADLINE, max_workers=SWEEP_WORKERS):
    """On-demand trigger: {sections?, timePeriods?, connections?}, optionally under 'detail'.

    Omitted or invalid fields fall back to the full defaults. Without an
    explicit connection list every live connection is notified.
    """
    event = event if isinstance(event, dict) else {}
    detail = event.get("detail") if isinstance(event.get("detail"), dict) else event

    sections = _valid(detail.get("sections"), SECTIONS) or list(SECTIONS)
    periods = _valid(detail.get("timePeriods"), PERIODS) or list(PERIODS)
    connections = detail.get("connections")
    if not isinstance(connections, list):
        connections = None

    result = run_sweep(hub, sections, periods, deadline=deadline, max_workers=max_workers)
    _, notify_report = notify.broadcast(result.payload(), hub.registry, hub.pusher, connections)
    result.reports.append(notify_report)
    return result


def next_run_at(now, hour=SCHEDULE_HOUR_UTC):
    """Next scheduled instant strictly after `now` (aware UTC datetime)."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return target


def run_daily(hub, sleep=time.sleep, max_runs=None):
    """Sweep once a day at the scheduled hour, forever (or max_runs times)."""
    runs = 0
    while max_runs is None or runs < max_runs:
        now = datetime.now(timezone.utc)
        target = next_run_at(now)
        wait = (target - now).total_seconds()
        print("Next scheduled refresh at {} (in {}s)".format(target.isoformat(), int(wait)))
        sleep(wait)
        try:
            handle_refresh_event(hub, {})
        except Exception as e:
            print("  ERROR: scheduled refresh failed: {}".format(str(e)[:100]))
            traceback.print_exc()
        runs += 1
