#!/usr/bin/env python3
# scripts/fetch_cli.py

from __future__ import annotations

import argparse
import json
import logging
from typing import Optional
from urllib.parse import urlparse


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Fetch legal resource pages once, outside the server.")
    parser.add_argument("--url", default=None, help="Fetch a single URL instead of the configured sources.")
    parser.add_argument("--name", default=None, help="Display name for --url (defaults to its hostname).")
    parser.add_argument(
        "--strategy",
        choices=("auto", "http", "browser"),
        default="auto",
        help="Force a fetch strategy for --url. Default: classify by BLOCKED_URL_PATTERNS.",
    )
    parser.add_argument("--keyword", default=None, help="Filter the refreshed list (full refresh only).")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    # Import here so --help works without the runtime deps configured
    from src import config
    from src.cache import ResourceCache
    from src.pipeline import Refresher
    from src.query import query_resources
    from src.sources.multi_source import build_fetchers, fetch_source, load_sources, parse_sources

    if args.url:
        entry = {"url": args.url, "name": args.name} if args.name else args.url
        sources = parse_sources(json.dumps([entry]))
        if not sources:
            parser.error(f"not an http(s) url: {args.url}")
        source = sources[0]

        blocked = config.BLOCKED_URL_PATTERNS
        if args.strategy == "browser":
            blocked = [urlparse(source.url).hostname or ""]
        elif args.strategy == "http":
            blocked = []

        outcome = fetch_source(source, ResourceCache(), build_fetchers(), blocked_patterns=blocked)
        print("\n=== fetch_source ===")
        print(f"strategy:     {outcome.strategy}")
        print(f"status:       {outcome.status}")
        print(f"title:        {outcome.result.title}")
        print(f"description:  {outcome.result.description}")
        return 0 if outcome.status != "failed" else 2

    refresher = Refresher.from_config(load_sources())
    summary = refresher.refresh()
    result = query_resources(refresher.snapshot(), page=1, limit=max(1, len(refresher.sources)), keyword=args.keyword)
    print(json.dumps(result.model_dump(), indent=2, ensure_ascii=False))

    return 0 if summary is not None and summary.failed == 0 else 2


if __name__ == "__main__":
    raise SystemExit(main())
