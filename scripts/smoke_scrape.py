#!/usr/bin/env python3
# scripts/smoke_scrape.py
"""
Scrape a few URLs and show what the pre-fill would suggest.

Usage:
  python scripts/smoke_scrape.py https://example.com/article [...]
  python scripts/smoke_scrape.py --json https://example.com/article
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from textwrap import shorten

sys.path.append(str(Path(__file__).resolve().parents[1]))  # add repo root to path
from editorial.app.errors import EditorialError
from editorial.ingestion.canonicalize import canonicalize_url
from editorial.ingestion.crawl_client import Crawl4AIClient


def main() -> int:
    ap = argparse.ArgumentParser(description="Smoke-test the scraper pre-fill.")
    ap.add_argument("urls", nargs="+")
    ap.add_argument("--json", action="store_true", help="Print raw JSON results.")
    args = ap.parse_args()

    client = Crawl4AIClient()
    errors = 0
    for url in args.urls:
        canon = canonicalize_url(url)
        try:
            res = client.scrape(url)
        except EditorialError as e:
            errors += 1
            print(f"[ERROR] {url}: {e}")
            continue
        if args.json:
            print(json.dumps({
                "url": url,
                "canonical": canon.value,
                "had_query": canon.had_query,
                "title": res.title,
                "description": res.description,
                "md_chars": len(res.markdown),
            }, ensure_ascii=False, indent=2))
            continue
        print(f"\n=== {url}")
        print(f"  canonical : {canon.value} (query={canon.had_query})")
        print(f"  title     : {shorten(res.title, 100)}")
        print(f"  desc      : {shorten(res.description, 160)}")
        print(f"  markdown  : {len(res.markdown)} chars")
    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
