"""
Link extraction strategies.

Markup is parsed into a tag tree and walked element by element; inert text
types (JavaScript, CSS) are scraped with a URL pattern instead. Each strategy
returns a mapping of resolved URL -> whether it should be traversed as a page.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from linkcrawler.errors import MarkupParseError
from linkcrawler.urls import resolve_url

logger = logging.getLogger(__name__)

# Content types scanned as plain text rather than parsed as markup
TEXT_CONTENT_MARKERS: Tuple[str, ...] = ("/javascript", "/ecmascript", "/css")

# element -> (attributes checked in order, should traverse)
LINK_ATTRIBUTES: Dict[str, Tuple[Tuple[str, ...], bool]] = {
    "img": (("src",), False),
    "a": (("src", "href"), True),
    "link": (("src", "href"), True),
    "iframe": (("src", "href"), True),
    "embed": (("src", "href"), True),
    "object": (("src", "href"), True),
    "source": (("src", "href"), True),
    "script": (("src", "href"), True),
    "form": (("action",), False),
}

META_REFRESH_RE = re.compile(
    r"""<meta\s+http-equiv=["']?refresh["']?\s+content=["']?[^;]+;\s*url=([^"'>]+)["']?""",
    re.IGNORECASE,
)
URL_RE = re.compile(r"""https?://[^\s"'()<>]+""")


def _record(links: Dict[str, bool], url: Optional[str], traverse: bool) -> None:
    # Traversal wins when the same URL shows up as both page and leaf
    if url:
        links[url] = links.get(url, False) or traverse


def is_text_content(content_type: str) -> bool:
    content_type = (content_type or "").lower()
    return any(marker in content_type for marker in TEXT_CONTENT_MARKERS)


def first_attribute(tag, names: Iterable[str]) -> Optional[str]:
    """Return the first non-empty attribute value among ``names``."""
    for name in names:
        value = tag.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        if value and value.strip():
            return value
    return None


def extract_links_from_html(base_url: str, body: str) -> Dict[str, bool]:
    """Walk every element of the document and collect link attributes."""
    try:
        soup = BeautifulSoup(body, "lxml")
    except ParserRejectedMarkup as e:
        raise MarkupParseError(f"Error parsing HTML body ({e})") from e

    links: Dict[str, bool] = {}
    for tag in soup.find_all(list(LINK_ATTRIBUTES)):
        names, traverse = LINK_ATTRIBUTES[tag.name]
        value = first_attribute(tag, names)
        if value is not None:
            _record(links, resolve_url(value, base_url), traverse)
    return links


def extract_meta_refresh(body: str) -> Optional[str]:
    """Return the raw target of the first meta-refresh directive, if any."""
    match = META_REFRESH_RE.search(body)
    if match:
        return match.group(1).strip()
    return None


def extract_links_from_text(base_url: str, body: str) -> Dict[str, bool]:
    """Scrape absolute http(s) URLs out of unstructured text."""
    links: Dict[str, bool] = {}
    for match in URL_RE.findall(body):
        _record(links, resolve_url(match, base_url), True)
    return links


class LinkExtractor:
    """
    Chooses an extraction strategy from the declared content type.

    ``scan_text`` turns the pattern-matching heuristic for JavaScript/CSS
    bodies on or off; when off those bodies yield no links.
    """

    def __init__(self, scan_text: bool = True, follow_meta_refresh: bool = True) -> None:
        self.scan_text = scan_text
        self.follow_meta_refresh = follow_meta_refresh

    def extract(self, base_url: str, body: str, content_type: str) -> Dict[str, bool]:
        """
        Extract links from a response body.

        Args:
            base_url: URL the body was fetched from; relative links resolve against it.
            body: Decoded response body.
            content_type: Value of the Content-Type header.

        Returns:
            Mapping of resolved URL -> should it be traversed.

        Raises:
            MarkupParseError: the body could not be parsed at all.
        """
        if is_text_content(content_type):
            if not self.scan_text:
                return {}
            return extract_links_from_text(base_url, body)

        links = extract_links_from_html(base_url, body)

        if self.follow_meta_refresh:
            target = extract_meta_refresh(body)
            if target:
                _record(links, resolve_url(target, base_url), True)

        logger.debug("Extracted %d links from %s", len(links), base_url)
        return links


def extract_links(base_url: str, body: str, content_type: str) -> Dict[str, bool]:
    """Extract links using the default strategies."""
    return LinkExtractor().extract(base_url, body, content_type)
