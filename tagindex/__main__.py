"""
tagindex - Entry Point

Run with: python -m tagindex
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from tagindex import __version__
from tagindex.commands import cmd_clear, cmd_list, cmd_scan
from tagindex.config import (
    AppConfig,
    database_path_from_url,
    load_config,
    resolve_database_url,
)
from tagindex.core.extractor import MetadataExtractor
from tagindex.core.tag_db import TagDb


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tagindex",
        description="Scan directories for audio files and index their tags in SQLite",
    )

    parser.add_argument(
        "-d",
        "--database-url",
        type=str,
        default=None,
        help="database URL - like sqlite:file_name (DATABASE_URL overrides this)",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="TOML config file (default: $TAGINDEX_CONFIG if set)",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    sub = parser.add_subparsers(dest="cmd", required=True, metavar="{list,scan,clear}")
    sub.add_parser("list", help="List indexed files ordered by path")
    scan = sub.add_parser("scan", help="Scan directories and update the index")
    scan.add_argument("dirs", nargs="*", type=Path, help="Directories to scan")
    sub.add_parser("clear", help="Delete all indexed rows")

    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    return build_parser().parse_args(argv)


async def run(
    args: argparse.Namespace,
    config: AppConfig,
    *,
    extractor: MetadataExtractor | None = None,
) -> None:
    """Open the store, run the selected command, close the store."""
    url = resolve_database_url(args.database_url, config=config)
    db_path = database_path_from_url(url)
    logging.getLogger(__name__).debug("Using database %s", db_path)

    async with TagDb(db_path) as db:
        if args.cmd == "list":
            await cmd_list(db)
        elif args.cmd == "scan":
            await cmd_scan(db, args.dirs, extractor=extractor, config=config.scan)
        elif args.cmd == "clear":
            await cmd_clear(db)


def main(
    argv: Sequence[str] | None = None,
    *,
    extractor: MetadataExtractor | None = None,
) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    logger = logging.getLogger(__name__)

    try:
        config = load_config(args.config)
        asyncio.run(run(args, config, extractor=extractor))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
