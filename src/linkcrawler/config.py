"""
Crawler configuration, from code or from the environment.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Tuple
from urllib.parse import urlsplit

from linkcrawler.errors import ConfigError
from linkcrawler.fetcher import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT
from linkcrawler.urls import url_host

DEFAULT_MAX_CONCURRENCY = 5


def split_domains(values: Iterable[str]) -> Tuple[str, ...]:
    """Flatten comma-separated domain lists, dropping blanks."""
    return tuple(
        part.strip()
        for value in values
        for part in value.split(",")
        if part.strip()
    )


def _parse_number(name: str, raw: str, kind):
    try:
        return kind(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


@dataclass(slots=True)
class CrawlerConfig:
    """Settings for a single crawl run."""
    start_url: str = ""
    allowed_domains: Tuple[str, ...] = field(default_factory=tuple)
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    include_details: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CrawlerConfig":
        """
        Build a config from START_URL, ALLOWED_DOMAINS (comma-separated),
        MAX_CONCURRENCY and CRAWL_TIMEOUT.
        """
        env = os.environ if environ is None else environ
        config = cls(
            start_url=env.get("START_URL", "").strip(),
            allowed_domains=split_domains([env.get("ALLOWED_DOMAINS", "")]),
        )
        if env.get("MAX_CONCURRENCY"):
            config.max_concurrency = _parse_number("MAX_CONCURRENCY", env["MAX_CONCURRENCY"], int)
        if env.get("CRAWL_TIMEOUT"):
            config.timeout = _parse_number("CRAWL_TIMEOUT", env["CRAWL_TIMEOUT"], float)
        return config

    def validate(self) -> None:
        """Raise ConfigError unless the config can drive a crawl."""
        if not self.start_url:
            raise ConfigError("A start URL is required")
        try:
            parts = urlsplit(self.start_url)
        except ValueError as e:
            raise ConfigError(f"Invalid start URL: {self.start_url}") from e
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ConfigError(f"Invalid start URL: {self.start_url}")
        if self.max_concurrency < 1:
            raise ConfigError("max_concurrency must be at least 1")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")

    def effective_domains(self) -> Tuple[str, ...]:
        """The allow-list, or the start URL's host when none was given."""
        if self.allowed_domains:
            return self.allowed_domains
        host = url_host(self.start_url)
        return (host,) if host else ()
