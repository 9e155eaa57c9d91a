"""Application entry point for the deadscope filter list linter."""

from __future__ import annotations

import argparse
import asyncio
from importlib.metadata import PackageNotFoundError, version
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint

import settings
from adapters.console_review import ConsoleReview, ReviewMode
from adapters.dns_lookup import DnsPythonLookup
from adapters.filter_files import FileStorage, find_files
from adapters.urlfilter_client import UrlFilterClient
from client import build_session
from core.config import LivenessConfig, ProcessingConfig
from core.host_cache import HostLookupCache
from core.liveness import DeadDomainResolver, LivenessServiceError
from core.processor import FilterListProcessor, RuleLinter

NAME = "DEADSCOPE"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


def _package_version() -> str:
    try:
        return version("deadscope")
    except PackageNotFoundError:
        return "dev"


def _configure_logging(verbose: bool) -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False) and not verbose:
        return

    level_name = "DEBUG" if verbose else str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True) or verbose:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/deadscope.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _review_mode(args: argparse.Namespace) -> ReviewMode:
    if args.show:
        return ReviewMode.SHOW
    if args.auto:
        return ReviewMode.AUTO
    return ReviewMode.INTERACTIVE


async def _run(args: argparse.Namespace) -> int:
    logger = logging.getLogger(__name__)
    logger.info("Starting deadscope v%s", _package_version())

    # One cache per run, shared by the HTTP transport and the DNS double-check.
    host_cache = HostLookupCache(DnsPythonLookup(settings.DNS_NAMESERVERS, settings.DNS_TIMEOUT))
    session = build_session(host_cache, settings.CONCURRENCY, settings.URLFILTER_REQUEST_TIMEOUT)
    try:
        resolver = DeadDomainResolver(
            UrlFilterClient(session, settings.URLFILTER_ENDPOINT),
            host_cache,
            LivenessConfig(
                chunk_size=settings.URLFILTER_CHUNK_SIZE,
                max_attempts=settings.URLFILTER_MAX_ATTEMPTS,
                double_check_dns=args.dnscheck,
            ),
        )
        processor = FilterListProcessor(
            linter=RuleLinter(resolver),
            storage=FileStorage(),
            review=ConsoleReview(_review_mode(args), comment_out=args.commentout),
            config=ProcessingConfig(concurrency=settings.CONCURRENCY, comment_out=args.commentout),
        )

        files = find_files(args.input)
        logger.info("Found %s file(s) matching %s", len(files), args.input)

        # Files are processed strictly one at a time; the first failure stops the run.
        for path in files:
            logger.info("Processing file %s", path)
            try:
                await processor.process_file(path)
            except (LivenessServiceError, OSError, ValueError) as exc:
                logger.error("Failed to process %s due to %s", path, exc)
                return 1
    finally:
        await session.close()

    logger.info("Finished successfully")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deadscope",
        description="Find dead domains in ad blocking filter lists and suggest fixes.",
    )
    parser.add_argument(
        "-i",
        "--input",
        default="**/*.txt",
        help="glob expression that selects files that the tool will scan.",
    )
    parser.add_argument(
        "--dnscheck",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Double-check dead domains with a DNS query.",
    )
    parser.add_argument(
        "--commentout",
        action="store_true",
        help="Comment out rules instead of removing them.",
    )
    parser.add_argument(
        "-a",
        "--auto",
        action="store_true",
        help="Automatically apply suggested fixes without asking the user.",
    )
    parser.add_argument(
        "-s",
        "--show",
        action="store_true",
        help="Show suggestions without applying them.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Run with verbose logging.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_package_version()}")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _print_banner()
    _configure_logging(args.verbose)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
