"""
URL resolution, normalization and the domain allow-list.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urldefrag, urljoin, urlsplit, urlunsplit

from linkcrawler.errors import URLSyntaxError

DEFAULT_PORTS = {"http": 80, "https": 443}

# ASCII control characters are never valid inside a URL reference
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def parse_url(reference: str, base: str) -> str:
    """
    Resolve ``reference`` against ``base`` and normalize the result.

    - Joins relative references against base
    - Drops fragments (#...)
    - Normalizes scheme/host case
    - Removes default ports (:80, :443)
    - Keeps querystrings (they matter for uniqueness)

    Raises:
        URLSyntaxError: if the reference is not a valid URL reference.
    """
    reference = (reference or "").strip()
    if not reference:
        raise URLSyntaxError("empty URL reference")
    if _CONTROL_CHARS.search(reference):
        raise URLSyntaxError(f"control character in URL reference: {reference!r}")

    try:
        joined, _ = urldefrag(urljoin(base, reference))
        parts = urlsplit(joined)
        # .port raises ValueError for non-numeric or out-of-range ports
        port = parts.port
    except ValueError as e:
        raise URLSyntaxError(f"invalid URL reference {reference!r}: {e}") from e

    scheme = parts.scheme.lower()
    if not parts.netloc:
        return urlunsplit((scheme, "", parts.path, parts.query, ""))

    hostname = (parts.hostname or "").lower()
    if ":" in hostname:
        hostname = f"[{hostname}]"

    netloc = hostname
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{hostname}:{port}"

    userinfo, sep, _ = parts.netloc.rpartition("@")
    if sep:
        netloc = f"{userinfo}@{netloc}"

    path = parts.path
    if not path and scheme in DEFAULT_PORTS:
        path = "/"

    return urlunsplit((scheme, netloc, path, parts.query, ""))


def resolve_url(reference: str, base: str) -> Optional[str]:
    """Like :func:`parse_url`, but returns None for malformed references."""
    try:
        return parse_url(reference, base)
    except URLSyntaxError:
        return None


def url_host(url: str) -> Optional[str]:
    """Return the lower-cased host of ``url``, or None if it has none."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None
    return host or None


def unique(items: Iterable[str]) -> List[str]:
    """Drop duplicates, keeping first-seen order."""
    return list(dict.fromkeys(items))


class DomainPolicy:
    """
    Host allow-list with subdomain matching.

    A host is allowed when it equals an entry or is a proper subdomain of one
    ("a.b.example.com" matches "example.com", "notexample.com" does not).
    An empty allow-list denies every host.
    """

    def __init__(self, domains: Iterable[str] = ()) -> None:
        self.domains = domains

    @property
    def domains(self) -> Tuple[str, ...]:
        return self._domains

    @domains.setter
    def domains(self, domains: Iterable[str]) -> None:
        cleaned = (d.strip().rstrip(".").lower() for d in domains)
        self._domains = tuple(unique(d for d in cleaned if d))

    def allowed(self, host: Optional[str]) -> bool:
        if not host:
            return False
        host = host.rstrip(".").lower()
        return any(
            host == domain or host.endswith("." + domain)
            for domain in self._domains
        )

    def allows_url(self, url: str) -> bool:
        """Apply :meth:`allowed` to the host of ``url``."""
        return self.allowed(url_host(url))

    def __bool__(self) -> bool:
        return bool(self._domains)

    def __repr__(self) -> str:
        return f"DomainPolicy({list(self._domains)!r})"
