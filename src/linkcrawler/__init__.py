"""
Bounded-concurrency web crawler that records every link reachable from a
start URL within a set of allowed domains.
"""
from linkcrawler.core import Crawler, WorkTracker
from linkcrawler.registry import DiscoveredLink, LinkStatus, VisitedRegistry
from linkcrawler.urls import DomainPolicy, resolve_url

__version__ = "1.0.0"
__all__ = [
    "Crawler",
    "WorkTracker",
    "DiscoveredLink",
    "LinkStatus",
    "VisitedRegistry",
    "DomainPolicy",
    "resolve_url",
]
