"""Command-line interface for the link checker."""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from linkcrawl.config import CrawlConfig
from linkcrawl.events import JsonLinesSink, LoggingSink
from linkcrawl.logging_config import get_logger, setup_logging
from linkcrawl.models import CrawlReport, EngineState
from linkcrawl.output_manager import OutputManager
from linkcrawl.session import SessionRegistry

logger = get_logger(__name__)

CLI_CHANNEL = "cli"

EXIT_OK = 0
EXIT_BROKEN_LINKS = 1
EXIT_NOT_STARTED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linkcrawl",
        description="Crawl a site breadth-first and report broken links (internal and external).",
    )
    parser.add_argument("url", help="Seed URL (e.g. https://example.com)")
    parser.add_argument(
        "--max-pages", type=int, default=None,
        help="Maximum pages to crawl (default: 50)"
    )
    parser.add_argument(
        "--max-depth", type=int, default=None,
        help="Depth at which link extraction stops; the seed is depth 0 (default: 3)"
    )
    parser.add_argument(
        "--allowed-domain", dest="allowed_domains", action="append", default=[],
        metavar="DOMAIN",
        help="Extra domain treated as internal, subdomains included (repeatable)"
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Stream events to stdout as JSON lines"
    )
    parser.add_argument(
        "--output-dir", default=None,
        help="Write broken_links.json and summary.txt under this directory"
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: INFO)")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    return parser


def build_request(args: argparse.Namespace) -> dict:
    """Turn parsed arguments into a start-crawl payload."""
    options = {}
    if args.max_pages is not None:
        options["maxPages"] = args.max_pages
    if args.max_depth is not None:
        options["maxDepth"] = args.max_depth
    if args.allowed_domains:
        options["allowedDomains"] = args.allowed_domains
    return {"url": args.url, "options": options}


async def run(args: argparse.Namespace, config: CrawlConfig) -> int:
    """Run a single crawl session and return the process exit code."""
    sink = JsonLinesSink(sys.stdout) if args.json else LoggingSink()
    registry = SessionRegistry(base_config=config)

    task = registry.start_crawl(CLI_CHANNEL, build_request(args), sink)
    if task is None:
        return EXIT_NOT_STARTED

    engine = registry.get(CLI_CHANNEL)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, registry.stop_crawl, CLI_CHANNEL, sink)
        except (NotImplementedError, RuntimeError):
            pass  # Not supported on this platform (e.g. Windows)

    broken_links = await task

    if engine.state is EngineState.IDLE:
        return EXIT_NOT_STARTED

    if args.output_dir and engine.state is not EngineState.FAILED:
        report = CrawlReport(
            seed_url=engine.seed_url,
            pages_crawled=engine.pages_crawled,
            broken_links=tuple(broken_links),
            state=engine.state,
        )
        OutputManager(args.output_dir).save_report(report, config=engine.config.to_dict())

    return EXIT_BROKEN_LINKS if broken_links else EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the linkcrawl CLI."""
    args = build_parser().parse_args(argv)

    config = CrawlConfig.from_env()
    setup_logging(level=args.log_level or config.log_level, log_file=args.log_file)

    try:
        return asyncio.run(run(args, config))
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_NOT_STARTED


if __name__ == "__main__":
    raise SystemExit(main())
