#!/usr/bin/env python3
"""
Show row counts for all tables, sources per author and state, and the busiest keywords.

Usage:
  python scripts/db_counts.py
  python scripts/db_counts.py --top 50
"""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy import text, inspect
from sqlalchemy.exc import SQLAlchemyError

from editorial.app.db import engine  # reuse the project's engine
from editorial.sources.lifecycle import SourceLifecycle
from editorial.sources.users import UserDirectory


def table_counts():
    insp = inspect(engine)
    tables = insp.get_table_names()
    print(f"Found {len(tables)} tables.\n")

    with engine.connect() as conn:
        for t in tables:
            try:
                # table names come from the inspector, not user input
                count = conn.execute(text(f'SELECT COUNT(*) FROM "{t}"')).scalar()
                print(f"{t:<25} {count}")
            except SQLAlchemyError as e:
                print(f"{t:<25} ERROR: {e}")


def author_counts(lifecycle: SourceLifecycle):
    print(f"\n{'author':<25} {'working':>8} {'done':>8} {'aborted':>8}")
    for user in UserDirectory().list_users():
        c = lifecycle.state_counts(author_id=user.id)
        print(f"{user.name[:25]:<25} {c.working:>8} {c.done:>8} {c.aborted:>8}")


def keyword_counts(lifecycle: SourceLifecycle, top: int):
    counts = lifecycle.keyword_counts()
    print(f"\nTop {min(top, len(counts))} of {len(counts)} keywords (Working + Done):")
    for k in counts[:top]:
        print(f"  {k.keyword:<40} {k.count}")


def main() -> int:
    ap = argparse.ArgumentParser(description="Summarize the editorial store.")
    ap.add_argument("--top", type=int, default=20, help="How many keywords to list.")
    args = ap.parse_args()

    try:
        table_counts()
        lifecycle = SourceLifecycle()
        author_counts(lifecycle)
        keyword_counts(lifecycle, args.top)
    except SQLAlchemyError as e:
        print("Failed to inspect database:", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
