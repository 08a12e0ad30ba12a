"""
Error types raised while crawling.

Every error is local to the URL that produced it: fetch errors end up on the
registry entry, parse errors are logged, URL errors are dropped.
"""
from __future__ import annotations

from typing import Optional


class CrawlError(Exception):
    """Base class for crawler errors."""


class URLSyntaxError(CrawlError, ValueError):
    """A reference could not be parsed as a URL."""


class ConfigError(CrawlError, ValueError):
    """Invalid crawler configuration."""


class FetchError(CrawlError):
    """Base class for failures of a single GET."""


class TransportError(FetchError):
    """DNS, connect, TLS or timeout failure before a response arrived."""


class StatusError(FetchError):
    """Response status that is neither 2xx nor a handled redirect."""

    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        self.status_code = status_code
        super().__init__(message or f"{status_code} status code")


class BodyReadError(FetchError):
    """The response body could not be read to the end."""


class MarkupParseError(CrawlError):
    """The body was too malformed to parse at all."""
