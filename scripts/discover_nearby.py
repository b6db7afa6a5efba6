#!/usr/bin/env python3
"""Query the directory service and print what the presence engine would show.

Configuration comes from ``GEOPRESENCE_*`` environment variables; at least
``GEOPRESENCE_PARTICIPANT_ID`` must be set. Coordinates and identifiers are
masked in the output unless ``--show-coordinates`` is passed.

Examples::

    GEOPRESENCE_PARTICIPANT_ID=abc123 python scripts/discover_nearby.py --lat 52.37 --lng 4.89
    python scripts/discover_nearby.py --participant-id abc123 --global --radar participants
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from geopresence import (  # noqa: E402
    DiscoveryResult,
    GeoPresenceError,
    PresenceClient,
    PresenceConfig,
    RadarMode,
    SearchMode,
    TrueLocation,
)
from geopresence._redact import mask_identifier, redact_for_log  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--participant-id", help="Overrides GEOPRESENCE_PARTICIPANT_ID")
    parser.add_argument("--base-url", help="Overrides GEOPRESENCE_BASE_URL")
    parser.add_argument("--lat", type=float, help="Viewer latitude (enables collectible lookup and radar)")
    parser.add_argument("--lng", type=float, help="Viewer longitude")
    parser.add_argument("--radius-km", type=float, help="Participant search radius in km")
    parser.add_argument("--global", dest="global_search", action="store_true", help="Search everywhere")
    parser.add_argument(
        "--publish",
        action="store_true",
        help="Submit the viewer location (obfuscated when privacy is on) before discovering",
    )
    parser.add_argument("--radar", choices=[m.value for m in RadarMode], help="Print radar points for this mode")
    parser.add_argument("--show-coordinates", action="store_true", help="Print unmasked ids and coordinates")
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> PresenceConfig:
    overrides: dict[str, Any] = {}
    if args.participant_id:
        overrides["participant_id"] = args.participant_id
    if args.base_url:
        overrides["base_url"] = args.base_url
    if args.radius_km is not None:
        overrides["search_radius_km"] = args.radius_km
    if args.global_search:
        overrides["global_search"] = True
    return PresenceConfig.from_env(**overrides)


def _summarize(result: DiscoveryResult, *, show_coordinates: bool) -> dict[str, Any]:
    participants = [
        {
            "id": p.id if show_coordinates else mask_identifier(p.id),
            "distance_m": p.distance_from_viewer,
            "location": p.true_location.model_dump() if p.true_location is not None else None,
        }
        for p in result.participants
    ]
    markers = [
        {
            "id": m.id,
            "name": m.name,
            "distance_m": m.distance_from_viewer,
            "collected": m.collected,
            "location": m.true_location.model_dump() if m.true_location is not None else None,
        }
        for m in result.markers
    ]
    summary: dict[str, Any] = {
        "mode": result.mode.query_params(),
        "stale": result.stale,
        "participants": participants,
        "markers": markers,
    }
    if show_coordinates:
        return summary
    return redact_for_log(summary)


async def _run(args: argparse.Namespace) -> int:
    config = _build_config(args)
    async with PresenceClient(config, on_warning=lambda exc: print(f"warning: {exc}", file=sys.stderr)) as client:
        if args.lat is not None and args.lng is not None:
            reading = TrueLocation(latitude=args.lat, longitude=args.lng)
            if args.publish:
                published = await client.submit_location(reading)
                print(f"published location (privacy={'on' if config.privacy_enabled else 'off'})")
                if args.show_coordinates:
                    print(f"  sent: {published.latitude:.6f}, {published.longitude:.6f}")
            else:
                client.discovery.set_viewer_location(reading)

        mode = SearchMode.everywhere() if args.global_search else None
        result = await (client.set_search_mode(mode) if mode is not None else client.refresh())
        summary = _summarize(result, show_coordinates=args.show_coordinates)

        if args.radar:
            points = client.radar_points(RadarMode(args.radar))
            summary["radar"] = [
                {**p.model_dump(), "entity_id": p.entity_id if args.show_coordinates else mask_identifier(p.entity_id)}
                for p in points
            ]

    if args.json:
        print(json.dumps(summary, indent=2, default=str))
        return 1 if result.stale else 0

    print(f"mode: {summary['mode']}  stale: {summary['stale']}")
    print(f"participants ({len(summary['participants'])}):")
    for entry in summary["participants"]:
        print(f"  {entry['id']}  distance={entry['distance_m']}")
    print(f"collectibles ({len(summary['markers'])}):")
    for entry in summary["markers"]:
        print(f"  {entry['id']}  {entry['name'] or '-'}  distance={entry['distance_m']}  collected={entry['collected']}")
    for point in summary.get("radar", []):
        print(
            f"  radar {point['entity_id']}: {point['angle_degrees']:.1f} deg, "
            f"{point['clamped_distance_px']:.1f}px{' (pinned)' if point['pinned'] else ''}"
        )
    return 1 if result.stale else 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        return asyncio.run(_run(args))
    except GeoPresenceError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
