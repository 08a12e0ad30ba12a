"""
Report output for a finished crawl.
"""
from __future__ import annotations

import json
import sys
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, TextIO

from linkcrawler.registry import DiscoveredLink, LinkStatus


@dataclass(slots=True)
class CrawlSummary:
    """Counts by outcome, for the summary output."""
    total: int = 0
    fetched: int = 0
    redirected: int = 0
    errored: int = 0
    leaves: int = 0
    pending: int = 0
    error_counts: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def record(self, link: DiscoveredLink) -> None:
        self.total += 1
        if link.leaf:
            self.leaves += 1
        elif link.status is LinkStatus.FETCHED:
            self.fetched += 1
        elif link.status is LinkStatus.REDIRECTED:
            self.redirected += 1
        elif link.status is LinkStatus.ERRORED:
            self.errored += 1
            self.error_counts[_error_category(link)] += 1
        else:
            self.pending += 1


def _error_category(link: DiscoveredLink) -> str:
    if link.status_code is None:
        return "connection_error"
    return str(link.status_code)


def summarize(entries: Iterable[DiscoveredLink]) -> CrawlSummary:
    summary = CrawlSummary()
    for link in entries:
        summary.record(link)
    return summary


def format_report(entries: Iterable[DiscoveredLink], include_details: bool = False) -> List[str]:
    """
    Render entries as report lines, sorted by URL.

    With ``include_details`` each URL is followed by indented lines for its
    redirect target and error message, when present.
    """
    links = sorted(entries, key=lambda link: link.url)
    lines: List[str] = []

    for link in links:
        lines.append(link.url)
        if not include_details:
            continue
        if link.redirect_target is not None:
            lines.append(f"\tRedirects to: {link.redirect_target}")
        if link.error_message is not None:
            lines.append(f"\tError detected: {link.error_message}")

    lines.append(f"Found {len(links)} unique links")
    return lines


def print_links(
    entries: Iterable[DiscoveredLink],
    include_details: bool = False,
    stream: Optional[TextIO] = None,
) -> None:
    """Write the text report to ``stream`` (stdout by default)."""
    out = stream or sys.stdout
    for line in format_report(entries, include_details):
        out.write(line + "\n")


def to_json(entries: Iterable[DiscoveredLink], pretty: bool = False) -> str:
    payload = [link.to_dict() for link in sorted(entries, key=lambda link: link.url)]
    return json.dumps(payload, ensure_ascii=False, indent=2 if pretty else None)


def print_summary(summary: CrawlSummary, stream: Optional[TextIO] = None) -> None:
    """Print crawl summary (stderr by default)."""
    out = stream or sys.stderr
    out.write("=" * 50 + "\n")
    out.write("CRAWL SUMMARY\n")
    out.write("=" * 50 + "\n\n")

    out.write(f"Unique links:           {summary.total}\n")
    out.write(f"Pages fetched:          {summary.fetched}\n")
    out.write(f"Redirects:              {summary.redirected}\n")
    out.write(f"Leaf resources:         {summary.leaves}\n")
    out.write(f"Errors:                 {summary.errored}\n\n")

    if summary.error_counts:
        out.write("Errors by type:\n")
        for error_type, count in sorted(summary.error_counts.items()):
            label = "Connection errors" if error_type == "connection_error" else f"HTTP {error_type}"
            out.write(f"  {label}: {count}\n")
    else:
        out.write("No errors encountered.\n")

    out.write("\n")
