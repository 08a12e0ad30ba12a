"""
Command-line interface for the crawler.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from linkcrawler.config import CrawlerConfig, split_domains
from linkcrawler.core import Crawler
from linkcrawler.errors import ConfigError
from linkcrawler.logging_config import setup_logging
from linkcrawler.report import format_report, print_summary, summarize, to_json

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linkcrawler",
        description="Crawl every link reachable from a start URL within the allowed domains.",
    )
    parser.add_argument(
        "start_url", nargs="?", help="Start URL (default: $START_URL)"
    )
    parser.add_argument(
        "--allowed-domain",
        action="append",
        default=[],
        metavar="DOMAIN",
        help="Allowed host, subdomains included; repeatable or comma-separated "
             "(default: $ALLOWED_DOMAINS, else the start URL's host)",
    )
    parser.add_argument("--max-concurrency", type=int, help="Maximum parallel fetches (default: 5)")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds (default: 10)")
    parser.add_argument("--user-agent", help="User-Agent header")
    parser.add_argument("--details", action="store_true", help="Show redirect targets and errors")
    parser.add_argument("--json", action="store_true", help="Output JSON instead of text")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--out", help="Output file path (default: stdout)")
    parser.add_argument("--verbose", action="store_true", help="Show progress and summary")
    parser.add_argument("--log-file", help="Also write logs to this file")
    return parser


def load_config(args: argparse.Namespace) -> CrawlerConfig:
    """Environment first, command-line flags override."""
    config = CrawlerConfig.from_env()
    if args.start_url:
        config.start_url = args.start_url
    if args.allowed_domain:
        config.allowed_domains = split_domains(args.allowed_domain)
    if args.max_concurrency is not None:
        config.max_concurrency = args.max_concurrency
    if args.timeout is not None:
        config.timeout = args.timeout
    if args.user_agent:
        config.user_agent = args.user_agent
    config.include_details = args.details
    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the crawler CLI."""
    args = build_parser().parse_args(argv)
    setup_logging("INFO" if args.verbose else "WARNING", log_file=args.log_file)

    try:
        config = load_config(args)
    except ConfigError as e:
        sys.stderr.write(f"error: {e}\n")
        return 2

    if not config.allowed_domains:
        logger.info("No allowed domains given, restricting crawl to %s", config.effective_domains())

    with Crawler.from_config(config) as crawler:
        crawler.crawl(config.start_url)

    entries = crawler.registry.entries()

    if args.verbose:
        print_summary(summarize(entries))

    if args.json:
        text = to_json(entries, pretty=args.pretty) + "\n"
    else:
        text = "\n".join(format_report(entries, config.include_details)) + "\n"

    if args.out:
        output_path = Path(args.out)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text, encoding="utf-8")
        if args.verbose:
            sys.stderr.write(f"Results written to: {output_path}\n")
    else:
        sys.stdout.write(text)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
