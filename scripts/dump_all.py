#!/usr/bin/env python3
"""Dump what pyreserva can read from a running deployment.

Logs in, then prints the search stats, one page of tables, and the
logged-in user's reservations, each as the parsed model **and** the raw
service JSON so unparsed fields stand out.

Usage
-----
Set environment variables and run::

    export RESERVA_USERNAME="alice"
    export RESERVA_PASSWORD="secret123"
    python scripts/dump_all.py

Service URLs come from ``RESERVA_USERS_URL``, ``RESERVA_RESERVATIONS_URL``
and ``RESERVA_SEARCH_URL``.

Options::

    --date 2025-06-01    Only tables for this date
    --meal dinner        Only tables for this meal type
    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
    --verbose            Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pydantic import BaseModel  # noqa: E402

from pyreserva import ReservaClient, ReservaConfig, ReservaError  # noqa: E402
from pyreserva.models import SearchParams  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    return f"\n{'=' * 60}\n  {title}\n{'=' * 60}"


def _print_model(label: str, model: BaseModel, out: list[str]) -> dict[str, Any]:
    data = model.model_dump(mode="json")
    out.append(f"\n── {label} ──")
    for key, value in data.items():
        out.append(f"  {key:20s}: {value}")
    return data


def _print_raw(label: str, raw: dict[str, Any], out: list[str]) -> None:
    out.append(f"  [raw {label}]")
    out.append("  " + json.dumps(raw, indent=2, default=str, ensure_ascii=False).replace("\n", "\n  "))


def _credentials() -> tuple[str, str]:
    username = os.environ.get("RESERVA_USERNAME")
    password = os.environ.get("RESERVA_PASSWORD")
    missing = [name for name, value in (("RESERVA_USERNAME", username), ("RESERVA_PASSWORD", password)) if not value]
    if missing:
        raise SystemExit("Missing required env vars: " + ", ".join(missing))
    assert username is not None and password is not None
    return username, password


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Dump the data pyreserva can read, for debugging / development.",
    )
    parser.add_argument("--date", help="Only tables for this date (YYYY-MM-DD)")
    parser.add_argument("--meal", help="Only tables for this meal type")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    username, password = _credentials()
    config = ReservaConfig.from_env()
    result: dict[str, Any] = {"timestamp": datetime.now(UTC).isoformat()}
    out: list[str] = [_section("pyreserva dump_all"), f"  time      : {result['timestamp']}"]

    async with ReservaClient(config) as client:
        identity = await client.login(username, password)
        out.append(f"  user      : {identity.username} (id {identity.id}, {identity.role.value})")
        result["user"] = identity.model_dump(mode="json")

        out.append(_section("SEARCH STATS"))
        try:
            stats = await client.get_search_stats()
            result["stats"] = _print_model("stats", stats, out)
        except ReservaError as exc:
            out.append(f"  failed: {exc}")
            result["stats"] = {"error": str(exc)}

        out.append(_section("TABLES"))
        params = SearchParams(date=args.date, meal_type=args.meal, size=config.default_page_size)
        page = await client.search_tables(params)
        out.append(f"  page {page.page}/{page.total_pages}, {page.total} total")
        result["tables"] = []
        for table in page.results:
            data = _print_model(f"Table {table.table_number} ({table.meal_type})", table, out)
            _print_raw(f"table {table.table_number}", table.raw, out)
            result["tables"].append({"info": data, "raw": table.raw})

        out.append(_section("MY RESERVATIONS"))
        result["reservations"] = []
        for reservation in await client.list_user_reservations():
            data = _print_model(f"Reservation {reservation.id}", reservation, out)
            result["reservations"].append({"info": data, "raw": reservation.raw})

        client.logout()

    if args.json_mode:
        payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
    else:
        payload = "\n".join(out)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"Written to {args.output}", file=sys.stderr)
    else:
        print(payload)


if __name__ == "__main__":
    asyncio.run(main())
