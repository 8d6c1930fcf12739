#!/usr/bin/env python3
"""
TechNews Hub Runner
===================
Cascade > Canonicalize > Cache, for every section x period, then notify.

Usage:
  python runner.py refresh                          # Full sweep once
  python runner.py refresh --sections ai ml         # Narrowed sweep
  python runner.py refresh --pack packs/nightly.json
  python runner.py schedule                         # Sweep daily at 00:00 UTC
  python runner.py serve --port 8080                # HTTP API
  python runner.py show ai daily                    # Print a cached record
  python runner.py purge                            # Drop long-expired records
"""

import argparse
import json
import sys

from config import (PROVIDER_CONFIGS, SECTIONS, PERIODS, load_refresh_pack,
                    get_active_sections, get_active_periods)
from hub import Hub
from models import cache_key
import refresh


def cmd_refresh(hub, args):
    pack = load_refresh_pack(args.pack)
    if pack:
        print("Refresh pack: {}".format(pack.get("name", args.pack)))
    event = {
        "sections": args.sections or get_active_sections(pack),
        "timePeriods": args.periods or get_active_periods(pack),
    }
    if args.connections:
        event["connections"] = args.connections
    result = refresh.handle_refresh_event(hub, event, deadline=args.deadline)
    return 1 if result.failed or result.abandoned else 0


def cmd_schedule(hub, args):
    refresh.run_daily(hub)
    return 0


def cmd_serve(hub, args):
    from api import create_app
    app = create_app(hub)
    app.run(host=args.host, port=args.port)
    return 0


def cmd_show(hub, args):
    record = hub.cache.read(cache_key(args.section, args.period))
    if record is None:
        print("No record for {}".format(cache_key(args.section, args.period)))
        return 1
    print(json.dumps(record.to_dict(), indent=2))
    return 0


def cmd_purge(hub, args):
    purged = hub.cache.purge_expired()
    print("Purged {} records{}".format(len(purged), ": " + ", ".join(purged) if purged else ""))
    return 0


def build_parser():
    parser = argparse.ArgumentParser(description="TechNews Hub")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("refresh", help="Run one sweep now")
    p.add_argument("--sections", nargs="+", choices=list(SECTIONS))
    p.add_argument("--periods", nargs="+", choices=PERIODS)
    p.add_argument("--connections", nargs="+", help="Only notify these connection ids")
    p.add_argument("--pack", help="Path to refresh pack JSON", default=None)
    p.add_argument("--deadline", type=float, default=refresh.SWEEP_DEADLINE)
    p.set_defaults(func=cmd_refresh)

    p = sub.add_parser("schedule", help="Sweep daily at midnight UTC")
    p.set_defaults(func=cmd_schedule)

    p = sub.add_parser("serve", help="Run the HTTP API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8080)
    p.set_defaults(func=cmd_serve)

    p = sub.add_parser("show", help="Print a cached record")
    p.add_argument("section", choices=list(SECTIONS))
    p.add_argument("period", choices=PERIODS)
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("purge", help="Drop records expired past the grace period")
    p.set_defaults(func=cmd_purge)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    hub = Hub()

    available = hub.secrets.available("news")
    if available:
        print("Providers: {}".format(", ".join(PROVIDER_CONFIGS[k]["label"] for k in available)))
    else:
        print("No provider keys found; content will be placeholders.")

    return args.func(hub, args)


if __name__ == "__main__":
    sys.exit(main())
