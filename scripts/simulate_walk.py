#!/usr/bin/env python3
"""
Walk around through the Walk Tracker API.

Starts a walk, pushes position fixes one by one, stops it and prints the
recorded summary. Fixes come from a GPX file, or from a synthetic
straight-line walk when no file is given.

Usage examples:
  - Replay a previous export against a local server:
      uvicorn --factory walktrack.main:create_app &
      python scripts/simulate_walk.py --base-url http://localhost:8000 --gpx documents/walk_1700000000000.gpx
  - Synthetic 500 m walk heading east, one fix every 0.2 s:
      python scripts/simulate_walk.py --base-url http://localhost:8000 --meters 500 --bearing 90 --delay 0.2
"""

from __future__ import annotations

import argparse
import sys
import time

import httpx

from walktrack.core.geo import destination_point
from walktrack.schemas.walk import Coordinate
from walktrack.sources.replay import read_gpx_points


def synthetic_path(start: Coordinate, bearing: float, meters: float, step_m: float = 5.0) -> list[Coordinate]:
    path = [start]
    walked = 0.0
    while walked < meters:
        path.append(destination_point(path[-1], bearing, step_m))
        walked += step_m
    return path


def call(client: httpx.Client, method: str, path: str, payload: dict | None = None) -> dict:
    r = client.request(method, path, json=payload)
    if r.status_code >= 300:
        raise RuntimeError(f"{method} {path} -> HTTP {r.status_code}: {r.text}")
    return r.json()


def main() -> int:
    ap = argparse.ArgumentParser(description="Simulate a walk against the Walk Tracker API")
    ap.add_argument("--base-url", required=True, help="API base URL (e.g. http://localhost:8000)")
    ap.add_argument("--gpx", help="GPX file whose track points are replayed")
    ap.add_argument("--lat", type=float, default=51.5072, help="Start latitude for a synthetic walk")
    ap.add_argument("--lon", type=float, default=-0.1276, help="Start longitude for a synthetic walk")
    ap.add_argument("--meters", type=float, default=300.0, help="Length of a synthetic walk")
    ap.add_argument("--bearing", type=float, default=0.0, help="Heading of a synthetic walk (degrees)")
    ap.add_argument("--delay", type=float, default=1.0, help="Seconds between fixes")
    args = ap.parse_args()

    if args.gpx:
        path = read_gpx_points(args.gpx)
    else:
        path = synthetic_path(Coordinate(latitude=args.lat, longitude=args.lon), args.bearing, args.meters)
    if not path:
        print("No points to walk", file=sys.stderr)
        return 1

    with httpx.Client(base_url=args.base_url, timeout=15) as client:
        call(client, "POST", "/walk/start")
        for i, coord in enumerate(path):
            m = call(client, "POST", "/walk/positions", coord.model_dump(by_alias=True))
            print(f"[{i + 1}/{len(path)}] {m['distance_km']:.2f} km  {m['calories']:.1f} kcal  {m['clock']}")
            time.sleep(args.delay)
        result = call(client, "POST", "/walk/stop")

    if result["recorded"]:
        s = result["session"]
        print(f"Recorded walk #{s['index']}: {s['distance_km']:.2f} km, {s['calories']:.1f} kcal, {s['minutes']} min")
    else:
        print("Walk too short, not recorded")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
