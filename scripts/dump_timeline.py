#!/usr/bin/env python3
"""Dump a driver or vehicle timeline and the visible alerts.

Reads the source collections from the HTTP document store configured via
``FLOTTA_*`` environment variables and prints what the dashboard would show.
Nothing is written back unless ``--reconcile`` is given.

Usage
-----
::

    export FLOTTA_BASE_URL="https://dashboard.example.com/api"
    export FLOTTA_API_TOKEN="..."
    python scripts/dump_timeline.py --badge 12
    python scripts/dump_timeline.py --name "Mario Rossi" --json
    python scripts/dump_timeline.py --targa AB123CD
    python scripts/dump_timeline.py --day today
    python scripts/dump_timeline.py --alerts --reconcile

Options::

    --badge BADGE        Driver timeline by badge
    --name NAME          Driver timeline by free-text name
    --targa PLATE        Vehicle timeline for a plate
    --trailers           Trailer status board
    --day YYYY-MM-DD     Fleet event feed for one day (or "today")
    --alerts             Alert candidates with their visibility
    --reconcile          Persist pruned alert state (implies --alerts)
    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyflotta import FlottaClient, FlottaConfig  # noqa: E402
from pyflotta.models import TimelineEvent  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _format_event(event: TimelineEvent) -> list[str]:
    lines = [f"  [{event.date_label}] {event.type.value:<9} {event.title}"]
    if event.subtitle:
        lines.append(f"      {event.subtitle}")
    tags = [event.match_confidence.value, event.id]
    if event.badge:
        tags.append(f"badge {event.badge}")
    lines.append(f"      ({', '.join(tags)})")
    return lines


def _dump(model: Any) -> Any:
    return model.model_dump(mode="json")


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Dump timelines and alerts computed by pyflotta for debugging / development.",
    )
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--badge", help="Driver timeline by badge")
    target.add_argument("--name", help="Driver timeline by free-text name")
    target.add_argument("--targa", help="Vehicle timeline for a plate")
    parser.add_argument("--trailers", action="store_true", help="Trailer status board")
    parser.add_argument("--day", metavar="YYYY-MM-DD", help="Fleet event feed for one day ('today' for the current day)")
    parser.add_argument("--alerts", action="store_true", help="Alert candidates with their visibility")
    parser.add_argument("--reconcile", action="store_true", help="Persist pruned alert state")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    if not (args.badge or args.name or args.targa or args.trailers or args.day or args.alerts or args.reconcile):
        parser.error("nothing to dump: pass --badge, --name, --targa, --trailers, --day or --alerts")
    try:
        day = None if args.day in (None, "today") else date.fromisoformat(args.day)
    except ValueError:
        parser.error(f"--day expects YYYY-MM-DD, got {args.day!r}")

    config = FlottaConfig.from_env()
    result: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "base_url": config.base_url,
        "time_zone": config.time_zone,
    }
    out: list[str] = [
        _section("pyflotta dump_timeline"),
        f"  time      : {result['timestamp']}",
        f"  store     : {config.base_url}",
    ]

    async with FlottaClient(config) as client:
        buckets = await client.load_sources()
        counts = {
            name: len(getattr(buckets, name))
            for name in (
                "sessions",
                "reports",
                "checks",
                "refuels",
                "requests",
                "tire_drafts",
                "tire_events",
                "vehicles",
                "history",
                "unhooks",
                "motrice_changes",
            )
        }
        result["collections"] = counts
        out.append("  records   : " + ", ".join(f"{name}={count}" for name, count in counts.items()))

        if args.badge or args.name:
            timeline = await client.driver_timeline(badge=args.badge, name=args.name, buckets=buckets)
            result["driver_timeline"] = _dump(timeline)
            out.append(_section(f"DRIVER {timeline.header_name} (badge {timeline.badge_label or '-'})"))
            if timeline.is_ambiguous:
                out.append("  name matches:")
                for match in timeline.name_matches:
                    out.append(f"    badge {match.badge_label or '-'} ({match.name_label}) x{match.occurrence_count}")
            for event in timeline.events:
                out.extend(_format_event(event))

        if args.targa:
            vehicle_timeline = await client.vehicle_timeline(args.targa, buckets=buckets)
            result["vehicle_timeline"] = _dump(vehicle_timeline)
            label = vehicle_timeline.vehicle.label if vehicle_timeline.vehicle else "not in master list"
            out.append(_section(f"VEHICLE {vehicle_timeline.targa} ({label or '-'})"))
            for event in vehicle_timeline.events:
                out.extend(_format_event(event))

        if args.trailers:
            board = await client.trailer_status(buckets=buckets)
            result["trailers"] = [_dump(row) for row in board]
            out.append(_section("TRAILERS"))
            for row in board:
                out.append(f"  {row.targa:<10} {row.stato.value:<10} {row.motrice or '-':<10} {row.autista or '-'}")

        if args.day:
            feed = await client.day_events(day, buckets=buckets)
            result["day_events"] = [_dump(event) for event in feed]
            out.append(_section(f"DAY {args.day} ({len(feed)} events)"))
            for event in feed:
                out.extend(_format_event(event))

        if args.alerts or args.reconcile:
            if args.reconcile:
                visible = await client.refresh_alerts(buckets=buckets)
                candidates = await client.alert_candidates(buckets=buckets)
            else:
                candidates = await client.alert_candidates(buckets=buckets)
                await client.load_alert_state()
                visible = client.visible_alerts()
            visible_ids = {candidate.id for candidate in visible}
            result["alerts"] = [dict(_dump(c), visible=c.id in visible_ids) for c in candidates]
            out.append(_section(f"ALERTS ({len(visible)} visible of {len(candidates)})"))
            for candidate in candidates:
                marker = " " if candidate.id in visible_ids else "-"
                out.append(f" {marker}[{candidate.severity.value:<7}] {candidate.title}: {candidate.detail}")
                out.append(f"      ({candidate.id}, ref {candidate.meta.ref})")

    # ── Output ──
    if args.json_mode:
        payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
    else:
        payload = "\n".join(out)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"Output written to {args.output}", file=sys.stderr)
    else:
        print(payload)


if __name__ == "__main__":
    asyncio.run(main())
