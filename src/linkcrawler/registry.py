"""
The visited registry: one entry per URL ever admitted into a crawl.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


class LinkStatus(str, Enum):
    PENDING = "pending"
    FETCHED = "fetched"
    REDIRECTED = "redirected"
    ERRORED = "errored"


@dataclass(slots=True)
class DiscoveredLink:
    """Outcome of a single discovered URL."""
    url: str
    status: LinkStatus = LinkStatus.PENDING
    content_type: Optional[str] = None
    redirect_target: Optional[str] = None
    error_message: Optional[str] = None
    status_code: Optional[int] = None
    leaf: bool = False

    def mark_fetched(self, content_type: str) -> None:
        self.status = LinkStatus.FETCHED
        self.content_type = content_type

    def mark_redirected(self, target: str, content_type: str) -> None:
        self.status = LinkStatus.REDIRECTED
        self.redirect_target = target
        self.content_type = content_type

    def mark_errored(self, message: str, status_code: Optional[int] = None) -> None:
        self.status = LinkStatus.ERRORED
        self.error_message = message
        self.status_code = status_code

    def to_dict(self) -> Dict[str, object]:
        return {
            "url": self.url,
            "status": self.status.value,
            "content_type": self.content_type,
            "redirect_target": self.redirect_target,
            "error_message": self.error_message,
            "status_code": self.status_code,
            "leaf": self.leaf,
        }


class VisitedRegistry:
    """
    Thread-safe table of discovered links keyed by normalized URL.

    Admission is a single locked check-and-insert, so concurrent discoveries
    of the same URL produce exactly one entry and exactly one owner. Entry
    fields are written only by the task that admitted the entry.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._links: Dict[str, DiscoveredLink] = {}

    def admit(self, url: str, leaf: bool = False) -> Optional[DiscoveredLink]:
        """Insert a pending entry for ``url``; None if it was already present."""
        with self._lock:
            if url in self._links:
                return None
            link = DiscoveredLink(url=url, leaf=leaf)
            self._links[url] = link
            return link

    def admit_leaf(self, url: str) -> Optional[DiscoveredLink]:
        """Record ``url`` as a leaf resource that is never fetched."""
        return self.admit(url, leaf=True)

    def get(self, url: str) -> Optional[DiscoveredLink]:
        with self._lock:
            return self._links.get(url)

    def entries(self) -> List[DiscoveredLink]:
        """Snapshot of all entries sorted by URL."""
        with self._lock:
            return [self._links[u] for u in sorted(self._links)]

    def urls(self) -> List[str]:
        with self._lock:
            return sorted(self._links)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._links

    def __len__(self) -> int:
        with self._lock:
            return len(self._links)
