#!/usr/bin/env python3
import sys
from pathlib import Path

from sqlalchemy import inspect, text

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sydney_events.core.config import settings
from sydney_events.db.session import engine


def _masked(value: str) -> str:
    if not value:
        return "<empty>"
    if len(value) <= 2:
        return "*" * len(value)
    return f"{value[0]}{'*' * (len(value) - 2)}{value[-1]}"


def main() -> int:
    print("DB runtime settings:")
    if settings.database_url:
        print(f"- DATABASE_URL: {engine.url.render_as_string(hide_password=True)}")
    else:
        print(f"- MYSQL_HOST (resolved): {settings.mysql_host_resolved!r}")
        print(f"- MYSQL_PORT: {settings.mysql_port}")
        print(f"- MYSQL_USER: {settings.mysql_user!r}")
        print(f"- MYSQL_DB: {settings.mysql_db!r}")
        print(f"- MYSQL_PASSWORD: {_masked(settings.mysql_password)}")

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            has_events = inspect(conn).has_table("events")
    except Exception as exc:
        print(f"ERROR: {exc}")
        return 1

    print("OK: Connected and executed SELECT 1.")
    if not has_events:
        print("Note: the events table does not exist yet; it is created on first app start.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
