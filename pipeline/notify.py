"""
Notify: best-effort push of a change summary to live subscribers.

Each push is independent. Outcomes are tagged per connection (delivered or
dead) and dead registrations are pruned in one batch after the pass, so the
registry is never mutated mid-iteration. No retries, no ordering.
"""

import json
from urllib.parse import quote

import requests

from config import PUSH_TIMEOUT
from models import StepReport

DELIVERED = "delivered"
DEAD = "dead"


class GatewayPusher:
    """Posts to a websocket gateway's management endpoint: POST {endpoint}/@connections/{id}.

    With a token every push carries `Authorization: Bearer <token>`. Without
    one the endpoint must accept unauthenticated posts, since a 401/403 marks
    the connection dead like any other non-2xx.
    """

    def __init__(self, endpoint, timeout=PUSH_TIMEOUT, session=None, token=None):
        self.token = token
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def push(self, connection_id, data):
        url = "{}/@connections/{}".format(self.endpoint, quote(connection_id, safe=""))
        try:
            resp = self.session.post(url, data=data.encode("utf-8"),
                                     headers=self._headers(), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            print("    X push {}: {}".format(connection_id, str(e)[:80]))
            return False
        if resp.status_code in (404, 410):
            print("    X push {}: gone".format(connection_id))
            return False
        return resp.ok

    def _headers(self):
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = "Bearer " + self.token
        return headers


def _push(pusher, connection_id, data):
    try:
        return bool(pusher.push(connection_id, data))
    except Exception as e:
        print("    X push {}: {}".format(connection_id, str(e)[:80]))
        return False


def broadcast(payload, registry, pusher, connection_ids=None):
    """Push `payload` to the given ids, or to every live registration. Returns (outcomes, report)."""
    report = StepReport("notify")
    if pusher is None:
        print("\n>>> NOTIFY: no push endpoint configured, skipping")
        report.notes.append("no pusher")
        return {}, report

    stale = [c.connection_id for c in registry.expired()]
    if connection_ids is None:
        targets = [c.connection_id for c in registry.live()]
    else:
        targets = [cid for cid in dict.fromkeys(connection_ids) if cid and cid not in stale]
    print("\n>>> NOTIFY: {} connections...".format(len(targets)))
    report.items_in = len(targets)

    data = json.dumps(payload, default=str)
    outcomes = {}
    for connection_id in targets:
        outcomes[connection_id] = DELIVERED if _push(pusher, connection_id, data) else DEAD

    dead = [cid for cid, outcome in outcomes.items() if outcome == DEAD]
    pruned = registry.remove_many(dead + stale) if (dead or stale) else 0

    report.items_out = len(outcomes) - len(dead)
    if pruned:
        report.notes.append("pruned {}".format(pruned))
    print("    {} delivered, {} dead, {} pruned".format(report.items_out, len(dead), pruned))
    return outcomes, report
