"""Crawl the configured storefronts and print what was found.

Usage:
    python -m scripts.crawl_stores
    python -m scripts.crawl_stores --sources stores.json --store 2 --store 5
    python -m scripts.crawl_stores --backend browser --json results.json

Sources come from --sources, else settings.sources_file, else the built-in
list. Inactive sources are skipped.
"""

import argparse
import asyncio
import json
import logging
import sys

sys.path.insert(0, ".")

from catalogscout.config import settings
from catalogscout.models.catalog import summarize
from catalogscout.services.crawler.fetcher import create_fetcher
from catalogscout.services.crawler.manager import crawl_sources
from catalogscout.services.registry import get_sources, load_sources

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s %(message)s",
)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Crawl storefront product catalogs")
    parser.add_argument("--sources", help="JSON file with the sources to crawl")
    parser.add_argument(
        "--store", action="append", default=[], help="Only crawl this source id (repeatable)"
    )
    parser.add_argument("--backend", choices=["http", "browser"], help="Page fetcher to use")
    parser.add_argument("--delay", type=float, help="Seconds between requests")
    parser.add_argument("--max-pages", type=int, help="Page limit per source (at most 50)")
    parser.add_argument("--workers", type=int, help="Sources crawled at the same time")
    parser.add_argument("--json", dest="json_path", help="Write full results to this file")
    return parser.parse_args(argv)


async def main(argv=None):
    args = parse_args(argv)

    sources = load_sources(args.sources) if args.sources else get_sources()
    if args.store:
        wanted = set(args.store)
        sources = [s for s in sources if str(s.id) in wanted]
        if not sources:
            print(f"No sources match ids: {', '.join(args.store)}")
            return 1

    print(f"=== {settings.app_name}: crawling {len(sources)} sources ===\n")

    results = await crawl_sources(
        sources,
        fetcher=create_fetcher(args.backend),
        request_delay=args.delay,
        max_pages=args.max_pages,
        max_concurrent_sources=args.workers,
    )

    for r in results:
        status = "OK  " if r.success else "FAIL"
        line = (
            f"  [{status}] {r.source.name}: {r.products_found} products, "
            f"{r.pages_traversed} pages, {r.duration_seconds:.1f}s"
        )
        if r.error:
            line += f" ({r.error})"
        print(line)

    summary = summarize(results)
    print(
        f"\n{summary.successful}/{summary.total_sources} sources successful, "
        f"{summary.total_products} products total"
    )

    if args.json_path:
        with open(args.json_path, "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in results], f, ensure_ascii=False, indent=2)
        print(f"Results written to {args.json_path}")

    return 0 if summary.failed == 0 else 2


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
