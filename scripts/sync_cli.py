#!/usr/bin/env python3
"""Exercise the careerforge sync layer against a running API server.

Usage
-----
Set a bearer token (and optionally a refresh token) and run::

    export CAREERFORGE_TOKEN="eyJ..."
    export CAREERFORGE_REFRESH_TOKEN="..."
    export CAREERFORGE_CACHE_PATH="$HOME/.cache/careerforge.db"
    python scripts/sync_cli.py save portfolio '{"projects": []}'
    python scripts/sync_cli.py get portfolio
    python scripts/sync_cli.py pending
    python scripts/sync_cli.py replay

Commands::

    save STORE JSON     Write JSON locally and push it (queued when offline)
    get STORE           Cache-first read refreshed from the server
    clear STORE         Delete locally and remotely
    pending             List queued mutations
    replay              Replay queued mutations now
    whoami              Show the user id and fetch the profile

Without ``CAREERFORGE_CACHE_PATH`` the cache lives in memory and queued
mutations are lost when the script exits.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from careerforge import CareerForgeClient, CareerForgeConfig, CareerForgeError  # noqa: E402


def _print_json(value: Any) -> None:
    print(json.dumps(value, indent=2, default=str, ensure_ascii=False))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Drive the careerforge local-first sync layer.")
    parser.add_argument("--offline", action="store_true", help="Start in offline mode (queue every write)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    save = sub.add_parser("save", help="Save JSON to a store")
    save.add_argument("store")
    save.add_argument("data", help="JSON document")

    get = sub.add_parser("get", help="Read a store")
    get.add_argument("store")

    clear = sub.add_parser("clear", help="Clear a store")
    clear.add_argument("store")

    sub.add_parser("pending", help="List queued mutations")
    sub.add_parser("replay", help="Replay queued mutations")
    sub.add_parser("whoami", help="Show the current user")
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> int:
    token = os.environ.get("CAREERFORGE_TOKEN")
    if not token:
        raise SystemExit("Missing required env var: CAREERFORGE_TOKEN")

    overrides: dict[str, Any] = {"start_online": False} if args.offline else {}
    config = CareerForgeConfig.from_env(**overrides)

    async with CareerForgeClient(config) as client:
        await client.login(token, os.environ.get("CAREERFORGE_REFRESH_TOKEN"))

        if args.command == "save":
            try:
                data = json.loads(args.data)
            except json.JSONDecodeError as exc:
                raise SystemExit(f"Invalid JSON for {args.store}: {exc}") from exc
            outcome = await client.save_data(args.store, data)
            print(f"{args.store}: {outcome.value}")
        elif args.command == "get":
            _print_json(await client.get_data(args.store))
        elif args.command == "clear":
            await client.clear_data(args.store)
            print(f"{args.store}: cleared")
        elif args.command == "pending":
            items = await client.sync.queue.list_all()
            _print_json([item.to_wire() for item in items])
        elif args.command == "replay":
            report = await client.process_pending_requests()
            print(
                f"replayed={report.replayed} failed={report.failed} "
                f"remaining={report.remaining} skipped={report.skipped}"
            )
        elif args.command == "whoami":
            print(f"user_id: {client.get_user_id()}")
            _print_json(await client.get_current_user())
    return 0


def main() -> int:
    args = _parse_args()
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)
    try:
        return asyncio.run(_run(args))
    except (CareerForgeError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
