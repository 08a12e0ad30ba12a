"""
Core crawling logic: the concurrent fetch-extract-enqueue loop.
"""
from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Iterable, List, Optional

from linkcrawler.errors import FetchError, MarkupParseError, StatusError
from linkcrawler.extractor import LinkExtractor
from linkcrawler.fetcher import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, Fetcher
from linkcrawler.registry import DiscoveredLink, VisitedRegistry
from linkcrawler.urls import DomainPolicy, resolve_url, unique

if TYPE_CHECKING:
    from linkcrawler.config import CrawlerConfig

logger = logging.getLogger(__name__)


class WorkTracker:
    """Counts scheduled-but-unfinished tasks; ``wait`` returns at zero."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._pending = 0

    def add(self, n: int = 1) -> None:
        with self._cond:
            self._pending += n

    def done(self) -> None:
        with self._cond:
            self._pending -= 1
            if self._pending < 0:
                raise RuntimeError("WorkTracker.done() called more often than add()")
            if self._pending == 0:
                self._cond.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._pending == 0, timeout=timeout)

    @property
    def pending(self) -> int:
        with self._cond:
            return self._pending


class Crawler:
    """
    Crawl every reachable URL within the allowed domains.

    Each admitted URL is handled by its own task (a thread) which may spawn
    further tasks for the links it discovers. At most ``max_concurrency``
    tasks fetch and extract at the same time; any number may be waiting.
    """

    def __init__(
        self,
        max_concurrency: int,
        allowed_domains: Iterable[str] = (),
        *,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        fetcher: Optional[Fetcher] = None,
        extractor: Optional[LinkExtractor] = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be positive, got {max_concurrency}")

        self.max_concurrency = max_concurrency
        self.policy = DomainPolicy(allowed_domains)
        self.registry = VisitedRegistry()
        self.extractor = extractor or LinkExtractor()

        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or Fetcher(
            timeout=timeout, user_agent=user_agent, pool_size=max_concurrency
        )

        self._slots = threading.BoundedSemaphore(max_concurrency)
        self._tracker = WorkTracker()

    @classmethod
    def from_config(cls, config: "CrawlerConfig") -> "Crawler":
        return cls(
            config.max_concurrency,
            config.effective_domains(),
            timeout=config.timeout,
            user_agent=config.user_agent,
        )

    def set_allowed_domains(self, allowed_domains: Iterable[str]) -> None:
        """Restrict crawling to these hosts and their subdomains."""
        self.policy.domains = allowed_domains

    def crawl(self, start_url: str) -> None:
        """
        Crawl from ``start_url`` and block until no work remains.

        Results are available in :attr:`registry` afterwards. A seed that is
        malformed or outside the allowed domains produces no entries.
        """
        logger.info("Starting crawl from %s (max concurrency %d)", start_url, self.max_concurrency)
        self._schedule(start_url)
        self._tracker.wait()
        logger.info("Crawl finished: %d unique links", len(self.registry))

    def close(self) -> None:
        if self._owns_fetcher:
            self.fetcher.close()

    def __enter__(self) -> "Crawler":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _schedule(self, url: str) -> None:
        """Admit ``url`` and start a task for it; duplicates are dropped here."""
        link = self._admit(url)
        if link is None:
            return

        self._tracker.add()
        try:
            worker = threading.Thread(
                target=self._crawl_url, args=(link,), name=f"crawl:{link.url}", daemon=True
            )
            worker.start()
        except RuntimeError as e:
            self._tracker.done()
            logger.error("Could not start a task for %s: %s", link.url, e)
            link.mark_errored(f"Could not start crawl task ({e})")

    def _admit(self, url: str) -> Optional[DiscoveredLink]:
        normalized = resolve_url(url, url)
        if normalized is None:
            logger.debug("Skipping malformed URL %r", url)
            return None
        if not self.policy.allows_url(normalized):
            logger.debug("Skipping %s: host not allowed", normalized)
            return None
        return self.registry.admit(normalized)

    def _crawl_url(self, link: DiscoveredLink) -> None:
        try:
            with self._slots:
                candidates = self._visit(link)
            for candidate in candidates:
                self._schedule(candidate)
        finally:
            self._tracker.done()

    def _visit(self, link: DiscoveredLink) -> List[str]:
        """Fetch one admitted URL, record its outcome and return traversal candidates."""
        try:
            result = self.fetcher.fetch(link.url)
        except FetchError as e:
            logger.info("Error fetching %s: %s", link.url, e)
            status_code = e.status_code if isinstance(e, StatusError) else None
            link.mark_errored(str(e), status_code)
            return []

        if result.is_redirect:
            target = resolve_url(result.redirect_target, link.url)
            if target is None:
                link.mark_errored(f"Invalid redirect location {result.redirect_target!r}")
                return []
            link.mark_redirected(target, result.content_type)
            logger.debug("%s redirects to %s", link.url, target)
            return self._candidates([target])

        link.mark_fetched(result.content_type)
        try:
            found = self.extractor.extract(link.url, result.body or "", result.content_type)
        except MarkupParseError as e:
            logger.warning("Could not extract links from %s: %s", link.url, e)
            return []

        pages = []
        for url, traverse in found.items():
            if traverse:
                pages.append(url)
            elif self.policy.allows_url(url):
                self.registry.admit_leaf(url)

        candidates = self._candidates(pages)
        logger.debug("Fetched %s: %d links, %d candidates", link.url, len(found), len(candidates))
        return candidates

    def _candidates(self, urls: Iterable[str]) -> List[str]:
        return [url for url in unique(urls) if self.policy.allows_url(url)]
