#!/usr/bin/env python3
"""
Run every registered background job once (meant for a system cron entry).

Usage:
  python scripts/run_cron.py
  python scripts/run_cron.py --list
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from editorial.app.tasks import default_scheduler


def main() -> int:
    ap = argparse.ArgumentParser(description="Run registered jobs.")
    ap.add_argument("--list", action="store_true", help="Print job names and exit.")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    scheduler = default_scheduler()

    if args.list:
        for name in scheduler.names:
            print(name)
        return 0

    results = scheduler.run_all()
    failed = [name for name, ok in results.items() if not ok]
    print(f"[OK] ran {len(results)} job(s), {len(failed)} failed{': ' + ', '.join(failed) if failed else ''}")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
