"""
RSS tier: fetch configured tech feeds in parallel and keep the entries that
mention a section keyword. Last provider in the news cascade, only active
when feed URLs are configured.
"""

import re
from concurrent.futures import ThreadPoolExecutor, as_completed

import feedparser
import requests

from config import MAX_ITEMS, PROVIDER_TIMEOUT
from models import StepReport

USER_AGENT = "TechNewsHub/1.0"


def fetch_single_feed(url, timeout=PROVIDER_TIMEOUT, max_entries=15):
    entries = []
    try:
        resp = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
        resp.raise_for_status()
    except requests.exceptions.RequestException as e:
        print("    X feed {}: {}".format(url[:60], str(e)[:80]))
        return entries

    feed = feedparser.parse(resp.content)
    if feed.bozo and not feed.entries:
        return entries
    for entry in feed.entries[:max_entries]:
        title = entry.get("title", "").strip()
        link = entry.get("link", "").strip()
        if not title or not link:
            continue
        summary = entry.get("summary", entry.get("description", ""))
        summary = re.sub(r"<[^>]+>", "", summary or "").strip()[:500]
        entries.append({
            "id": entry.get("id") or link,
            "title": title,
            "summary": summary,
            "url": link,
            "published_at": entry.get("published", entry.get("updated", "")),
        })
    return entries


def matches_keywords(entry, keywords):
    text = "{} {}".format(entry.get("title", ""), entry.get("summary", "")).lower()
    for kw in keywords:
        if re.search(r"\b{}\b".format(re.escape(kw.lower())), text):
            return True
    return False


def run(urls, keywords, timeout=PROVIDER_TIMEOUT):
    """Fetch all feeds, keep matching entries. Returns (entries, report)."""
    print("\n>>> FEEDS: {} sources...".format(len(urls)))
    report = StepReport("feeds", items_in=len(urls))

    all_entries = []
    with ThreadPoolExecutor(max_workers=min(10, max(1, len(urls)))) as executor:
        futures = {executor.submit(fetch_single_feed, url, timeout): url for url in urls}
        for future in as_completed(futures):
            all_entries.extend(future.result())

    seen = set()
    relevant = []
    for e in all_entries:
        if e["url"] in seen or not matches_keywords(e, keywords):
            continue
        seen.add(e["url"])
        relevant.append(e)

    report.items_out = min(len(relevant), MAX_ITEMS)
    print("    {} matching entries from {} fetched".format(len(relevant), len(all_entries)))
    return relevant[:MAX_ITEMS], report
