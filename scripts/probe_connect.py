#!/usr/bin/env python3
"""Fetch raw attendance events from the Connect API for one location.

Useful to check credentials and inspect what a device will feed into
reconciliation, without touching the ERP.

Usage
-----
Set environment variables and run::

    export CONNECT_API_KEY="..."
    python scripts/probe_connect.py --location "Mild Tower" --since 2026-01-04T18:00:00

Options::

    --location NAME   Connect location (device name without " device")
    --since TS        Only events after this local timestamp
    --json            Output events as JSON
    -v, --verbose     Debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

import aiohttp

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from attendance_importer import CancellationToken, ConnectConfig, TransportError  # noqa: E402
from attendance_importer._transport import ConnectApiClient  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Probe the Connect attendance API")
    parser.add_argument("--location", required=True, help="Connect location name.")
    parser.add_argument(
        "--since",
        type=datetime.fromisoformat,
        default=None,
        help="Last-sync watermark (ISO timestamp). Omit to fetch everything.",
    )
    parser.add_argument("--json", action="store_true", help="Print events as JSON.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> int:
    api_key = os.environ.get("CONNECT_API_KEY")
    if not api_key:
        print("CONNECT_API_KEY is not set", file=sys.stderr)
        return 2
    config = ConnectConfig(
        api_key=api_key,
        base_url=os.environ.get("CONNECT_BASE_URL", ConnectConfig.base_url),
    )

    async with aiohttp.ClientSession() as session:
        client = ConnectApiClient(config, session)
        try:
            events = await client.get_attendance_events(args.location, args.since, CancellationToken())
        except TransportError as exc:
            print(f"Request failed: {exc} (status={exc.status_code})", file=sys.stderr)
            return 1

    if args.json:
        print(json.dumps([event.model_dump(mode="json") for event in events], indent=2))
        return 0

    for event in events:
        direction = {True: "in", False: "out", None: "?"}[event.is_in]
        print(f"{event.time.isoformat()}  user={event.user_id:<10} {direction}")
    print(f"\n{len(events)} event(s) for {args.location!r}")
    return 0


def main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
