#!/usr/bin/env python3
"""
CLI for the Bible.com scraper.

Usage:
    python -m bible_com_scraper scrape --version ESV
    python -m bible_com_scraper scrape --version KJV --debug --parallel 6 --headless
    python -m bible_com_scraper scrape --version ESV --books GEN,EXO,LEV
    python -m bible_com_scraper scrape --version NIV -b GEN -b EXO -b MAT
    python -m bible_com_scraper scrape --version TB --pouchdb
    python -m bible_com_scraper restructure output/ESV_verses.json ESV
    python -m bible_com_scraper recount output/TB_verses.json output/TB_detail.json -o output_fix
"""

import argparse
import logging
from typing import Optional

from .config import BIBLE_VERSION_IDS, DEFAULT_CONFIG, load_config
from .errors import ConfigError, ScraperError
from .output import recount_files, restructure_verses
from .scraper import BibleScraper

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(debug: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
    )


def split_books(values: Optional[list[str]]) -> Optional[list[str]]:
    """Flatten ``-b GEN,EXO -b MAT`` into upper-case codes."""
    if not values:
        return None
    books = [
        book.strip().upper()
        for value in values
        for book in value.split(",")
        if book.strip()
    ]
    return books or None


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bible-com-scraper",
        description="Scrape Bible versions from Bible.com into ordered verse JSON.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scrape = subparsers.add_parser("scrape", help="Scrape a Bible version")
    scrape.add_argument(
        "--version", "-v",
        type=str,
        required=True,
        help=f"Bible version to scrape ({', '.join(BIBLE_VERSION_IDS)})",
    )
    scrape.add_argument(
        "--output", "-o",
        type=str,
        help=f"Output directory (default: {DEFAULT_CONFIG.output_directory})",
    )
    scrape.add_argument("--config", "-c", type=str, help="JSON configuration file")
    scrape.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    scrape.add_argument(
        "--parallel", "-p",
        type=int,
        help=f"Number of parallel tabs (default: {DEFAULT_CONFIG.max_concurrent_tabs})",
    )
    scrape.add_argument(
        "--headless",
        action="store_true",
        default=None,
        help="Run the browser in headless mode",
    )
    scrape.add_argument(
        "--books", "-b",
        action="append",
        help="Books to scrape (comma-separated or repeated), e.g. GEN,EXO",
    )
    scrape.add_argument(
        "--pouchdb",
        action="store_true",
        default=None,
        help="Write books in the PouchDB {_id, verses} structure",
    )

    restructure = subparsers.add_parser(
        "restructure", help="Wrap a verses file as {_id, verses} with numeric ids"
    )
    restructure.add_argument("file", help="Verses JSON file to rewrite in place")
    restructure.add_argument("id", help="_id value, e.g. ESV")

    recount = subparsers.add_parser(
        "recount", help="Recompute chapter verse counts from verse ids"
    )
    recount.add_argument("verses", help="<VERSION>_verses.json")
    recount.add_argument("detail", help="<VERSION>_detail.json")
    recount.add_argument(
        "--output", "-o", default="output_fix", help="Directory for corrected files (default: output_fix)"
    )
    recount.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")

    return parser


def run_scrape(args: argparse.Namespace) -> int:
    overrides = load_config(args.config)
    overrides.update({
        "max_concurrent_tabs": args.parallel,
        "output_directory": args.output,
        "headless": args.headless,
        "pouchdb": args.pouchdb,
    })

    try:
        config = DEFAULT_CONFIG.merged(**overrides)
        scraper = BibleScraper(args.version, config, books=split_books(args.books))
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    logger.info("Initializing Bible scraper for version: %s", args.version)
    logger.debug("Configuration: %s", config.to_dict())

    try:
        results = scraper.run()
    except ScraperError:
        logger.exception("Fatal error during scraping process")
        return 1

    if not results:
        return 1
    print(f"✅ Scraping complete! Output: {config.output_directory}/")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = make_parser()
    args = parser.parse_args(argv)

    debug = getattr(args, "debug", False)
    configure_logging(debug)

    if args.command == "scrape":
        return run_scrape(args)

    try:
        if args.command == "restructure":
            envelope = restructure_verses(args.file, args.id)
            print(f"✓ Successfully restructured {args.file}")
            print(f"  - _id: {envelope['_id']}")
            print(f"  - verses count: {len(envelope['verses'])}")
        elif args.command == "recount":
            counts = recount_files(args.verses, args.detail, args.output)
            print(f"✓ Recounted {len(counts)} books into {args.output}/")
    except (OSError, ValueError) as e:
        logger.error("%s", e)
        return 1

    return 0


if __name__ == "__main__":
    exit(main())
