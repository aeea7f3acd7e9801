"""
CoinHunt CLI entrypoint.

This CLI is intended for quick local demos and debugging without a device:
- `replay` feeds a recorded walk through a hunt session and prints every notification,
- `tiers` prints the configured find-limit tier table.

It delegates all hunt logic to `coinhunt.hunt.session.HuntSession`.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from coinhunt.catalog.loader import load_coins, load_track
from coinhunt.config.settings import get_settings
from coinhunt.core.geo import format_bearing, format_distance
from coinhunt.core.logging import configure_logging
from coinhunt.domain.models import Collected, ProximityZone
from coinhunt.economy.tiers import TierPolicy, format_money
from coinhunt.hunt.events import EventKind, ProximityEvent, RecordingListener
from coinhunt.hunt.session import HuntSession


def _describe(event: ProximityEvent) -> str:
    """Render one notification as a short human-readable line."""
    kind = event.kind
    if kind is EventKind.DISTANCE_UPDATED:
        return f"distance {format_distance(event.distance_m)} bearing {format_bearing(event.bearing_deg)}"
    if kind is EventKind.ZONE_CHANGED:
        return f"zone {event.old_zone.value} -> {event.new_zone.value}"
    if kind is EventKind.TARGET_COLLECTED:
        return f"collected {event.coin.id} (+{format_money(event.credited_value)})"
    if kind is EventKind.LOCK_STATE_CHANGED:
        return "target locked" if event.is_locked else "target unlocked"
    if event.coin is not None:
        return f"{kind.value} {event.coin.id}"
    return kind.value


def _cmd_replay(args: argparse.Namespace) -> int:
    """Handle the `replay` subcommand."""
    settings = get_settings()
    session = HuntSession(settings, find_limit=args.find_limit)
    recorder = RecordingListener()
    session.add_listener(recorder)
    session.start(load_coins(args.coins))

    ticks: list[dict[str, Any]] = []
    for i, fix in enumerate(load_track(args.track)):
        accepted = session.on_location(fix.lat, fix.lon, fix.heading)
        collection: dict[str, Any] | None = None
        if accepted and args.collect and session.engine.current_zone is ProximityZone.COLLECTIBLE:
            result = session.collect()
            collection = result.model_dump(mode="json", exclude={"coin"})
            if isinstance(result, Collected):
                collection["coin_id"] = result.coin.id
        ticks.append(
            {
                "tick": i,
                "accepted": accepted,
                "events": recorder.drain(),
                "collection": collection,
            }
        )

    if args.json:
        payload = {
            "ticks": [
                {**t, "events": [e.as_dict() for e in t["events"]]}
                for t in ticks
            ],
            "wallet_balance": str(getattr(session.wallet, "pending_balance", "0.00")),
            "remaining_coins": len(session.pool),
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0

    for t in ticks:
        if not t["accepted"]:
            print(f"{t['tick']:>4}  (rejected)")
            continue
        for event in t["events"]:
            print(f"{t['tick']:>4}  {_describe(event)}")
        if t["collection"] and t["collection"]["outcome"] == "denied":
            print(f"{t['tick']:>4}  collection denied: {t['collection']['message']}")
    print(f"Remaining coins: {len(session.pool)}")
    print(f"Wallet (pending): {format_money(getattr(session.wallet, 'pending_balance', 0))}")
    return 0


def _cmd_tiers(args: argparse.Namespace) -> int:
    settings = get_settings()
    policy = TierPolicy(settings.economy)
    current = policy.tier_for(args.find_limit) if args.find_limit is not None else None
    for info in policy.tiers:
        marker = "*" if info.tier == current else " "
        print(f"{marker} {info.tier.value}  {info.name:<16} {format_money(info.limit)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CoinHunt CLI."""
    parser = argparse.ArgumentParser(prog="coinhunt")
    parser.add_argument("--log-level", default=None, help="Override the configured log level.")
    sub = parser.add_subparsers(dest="command", required=True)

    rep = sub.add_parser("replay", help="Replay a recorded walk against a coin file.")
    rep.add_argument("--coins", required=True, help="JSON list of coins (id, location, value).")
    rep.add_argument("--track", required=True, help="JSON list of fixes {lat, lon, heading?}.")
    rep.add_argument("--find-limit", type=str, default=None, help="Decimal find limit (default from config).")
    rep.add_argument("--collect", action="store_true", help="Try to collect whenever the target is collectible.")
    rep.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    rep.set_defaults(func=_cmd_replay)

    tiers = sub.add_parser("tiers", help="Print the find-limit tier table.")
    tiers.add_argument("--find-limit", type=str, default=None, help="Mark the tier for this limit.")
    tiers.set_defaults(func=_cmd_tiers)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m coinhunt.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
