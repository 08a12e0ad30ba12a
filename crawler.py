#!/usr/bin/env python3
"""
Crawl every link reachable from a start URL within the allowed domains.

    START_URL=https://example.com ALLOWED_DOMAINS=example.com ./crawler.py
    ./crawler.py https://example.com --details
"""
from linkcrawler.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
