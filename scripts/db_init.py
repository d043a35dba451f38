#!/usr/bin/env python3
"""
Initialize the database schema (idempotent).

Usage:
  python scripts/db_init.py
  python scripts/db_init.py --fk             # SQLite: enforce foreign_keys=ON
  python scripts/db_init.py --wal            # SQLite: enable WAL + NORMAL sync
  python scripts/db_init.py --show-tables    # list current DB tables
  python scripts/db_init.py --add-user NAME  # register an author after init
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure repo root on path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy import text, inspect
from sqlalchemy.engine import Engine

from editorial.app.db import engine, init_db
from editorial.app.errors import InvalidInput
from editorial.app.models import Base
from editorial.app.settings import DATABASE_URL
from editorial.sources.users import UserDirectory


def _is_sqlite_engine(engine: Engine) -> bool:
    return engine.url.get_backend_name() == "sqlite"


def _sqlite_exec(sql: str) -> None:
    with engine.begin() as conn:
        conn.execute(text(sql))


def enable_sqlite_wal():
    if _is_sqlite_engine(engine):
        _sqlite_exec("PRAGMA journal_mode=WAL;")
        _sqlite_exec("PRAGMA synchronous=NORMAL;")
        print("SQLite: WAL enabled, synchronous=NORMAL.")


def enable_sqlite_fk():
    if _is_sqlite_engine(engine):
        _sqlite_exec("PRAGMA foreign_keys=ON;")
        print("SQLite: foreign_keys=ON.")


def show_tables():
    tables = inspect(engine).get_table_names()
    if not tables:
        print("No tables found in current database.")
    else:
        print("Current tables:")
        for t in sorted(tables):
            print(f"  - {t}")


def main():
    ap = argparse.ArgumentParser(description="Initialize DB schema.")
    ap.add_argument("--wal", action="store_true", help="SQLite: enable WAL mode + NORMAL sync.")
    ap.add_argument("--fk", action="store_true", help="SQLite: enforce PRAGMA foreign_keys=ON.")
    ap.add_argument("--show-tables", action="store_true", help="List current DB tables and exit.")
    ap.add_argument("--add-user", metavar="NAME", action="append", default=[], help="Register an author.")
    args = ap.parse_args()

    print(f"DB URL: {DATABASE_URL}")

    if args.show_tables:
        show_tables()
        sys.exit(0)

    if args.fk:
        enable_sqlite_fk()
    if args.wal:
        enable_sqlite_wal()

    print("Creating tables (if not exist)…")
    init_db(engine)

    users = UserDirectory()
    for name in args.add_user:
        try:
            u = users.register(name)
            print(f"Registered user id={u.id} name={u.name!r}")
        except InvalidInput as e:
            print(f"Skipped {name!r}: {e}")

    print("✅ Done.")
    print("Tables present:", ", ".join(sorted(t.name for t in Base.metadata.sorted_tables)))


if __name__ == "__main__":
    main()
