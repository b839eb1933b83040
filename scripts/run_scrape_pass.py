#!/usr/bin/env python3
import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from datetime import datetime
from pathlib import Path

from bs4 import BeautifulSoup

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sydney_events.core.config import settings
from sydney_events.core.logging import setup_logging
from sydney_events.crawlers.adapters.registry import ADAPTERS
from sydney_events.crawlers.pipeline.changes import ChangePolicy
from sydney_events.crawlers.pipeline.runner import reconcile
from sydney_events.crawlers.pipeline.store import CatalogStore
from sydney_events.crawlers.scheduler import create_scheduler
from sydney_events.db.session import SessionLocal, init_db


def _json_ready(row: dict) -> dict:
    out = dict(row)
    for key, value in out.items():
        if isinstance(value, datetime):
            out[key] = value.isoformat()
    return out


async def _run_full_pass() -> int:
    init_db()
    scheduler = create_scheduler(settings, SessionLocal)
    summary = await scheduler.trigger_manually()
    if summary is None:
        print("A pass is already running.")
        return 1
    for source, result in summary.sources.items():
        print(f"{source}: {json.dumps(asdict(result), ensure_ascii=True)}")
    print(f"total: {json.dumps(asdict(summary.total), ensure_ascii=True)}")
    return 0


def _parse_local_html(source: str, input_html: Path, *, commit: bool) -> int:
    if not input_html.exists():
        print(f"Input HTML file not found: {input_html}")
        return 1

    adapter = ADAPTERS[source]()
    print(f"Loading HTML from file: {input_html}")
    document = BeautifulSoup(input_html.read_text(encoding="utf-8"), "html.parser")
    parsed = adapter.parse(document)

    print(f"Parsed rows: {len(parsed)}")
    for row in parsed:
        print(json.dumps(_json_ready(asdict(row)), ensure_ascii=True))

    if not commit:
        print("Dry run only. Pass --commit to write to DB.")
        return 0

    init_db()
    result = reconcile(
        parsed,
        adapter.source_name,
        store=CatalogStore(SessionLocal),
        policy=ChangePolicy.from_name(settings.change_policy),
    )
    print(f"Committed: {json.dumps(asdict(result), ensure_ascii=True)}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Run one scrape pass over all configured sources, or parse a single "
            "source from a saved HTML file."
        )
    )
    parser.add_argument("--source", choices=sorted(ADAPTERS), default=None)
    parser.add_argument(
        "--input-html",
        default=None,
        help="Parse --source from a local HTML file instead of fetching it.",
    )
    parser.add_argument(
        "--commit",
        action="store_true",
        help="When parsing local HTML, reconcile the parsed rows into the catalog.",
    )
    args = parser.parse_args()
    setup_logging(settings.log_level)

    if args.input_html:
        if not args.source:
            parser.error("--input-html requires --source")
        return _parse_local_html(args.source, Path(args.input_html), commit=args.commit)

    return asyncio.run(_run_full_pass())


if __name__ == "__main__":
    raise SystemExit(main())
