#!/usr/bin/env python3
"""Terminal fleet dashboard.

Signs in, seeds the collection on first run, subscribes to the vehicle
collection and reprints the dashboard every time a snapshot arrives.

Usage
-----
Set environment variables and run::

    export FLEETHUB_FIREBASE_CONFIG='{"apiKey": "...", "projectId": "..."}'
    export FLEETHUB_APP_ID="my-rental-app"
    python scripts/watch_fleet.py

Options::

    --open ID            Show the hub detail for this vehicle
    --toggle ID          Flip this vehicle's rental status once subscribed
    --once               Print the first snapshot and exit
    --interval SECONDS   Listener poll interval
    -v, --verbose        Enable DEBUG logging
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from fleethub import FleetConfig, FleetStoreClient, InventorySynchronizer, InventoryView, SyncPhase  # noqa: E402
from fleethub.view import render_dashboard  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Watch the rental fleet in the terminal.")
    parser.add_argument("--open", dest="open_id", help="Vehicle id to show in detail")
    parser.add_argument("--toggle", dest="toggle_id", help="Vehicle id whose status to flip")
    parser.add_argument("--once", action="store_true", help="Exit after the first snapshot")
    parser.add_argument("--interval", type=float, default=None, help="Poll interval in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    overrides = {}
    if args.interval is not None:
        overrides["poll_interval"] = args.interval
    config = FleetConfig.from_env(**overrides)

    first_snapshot = asyncio.Event()
    done = asyncio.Event()

    def _render(view: InventoryView) -> None:
        print("\033[2J\033[H" + render_dashboard(view, date.today()), flush=True)
        if view.phase is SyncPhase.ERROR:
            done.set()
        elif view.phase is SyncPhase.SUBSCRIBED and view.vehicles:
            first_snapshot.set()

    client = FleetStoreClient(config)
    try:
        sync = InventorySynchronizer(client)
        sync.add_listener(_render)
        await sync.start()
        if sync.phase is SyncPhase.ERROR:
            await sync.close()
            return 1

        waiter = asyncio.create_task(first_snapshot.wait())
        failed = asyncio.create_task(done.wait())
        await asyncio.wait({waiter, failed}, return_when=asyncio.FIRST_COMPLETED)
        waiter.cancel()

        if sync.phase is not SyncPhase.ERROR:
            if args.open_id:
                sync.open_detail(args.open_id)
            if args.toggle_id and not await sync.toggle_status(args.toggle_id):
                print(f"Could not toggle {args.toggle_id}", file=sys.stderr)
            if not args.once:
                await failed
        failed.cancel()

        await sync.close()
        return 1 if sync.phase is SyncPhase.ERROR else 0
    finally:
        await client.close()


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
