"""Shared fixtures: a local fixture site and an in-memory fetcher."""

import socket
import threading
import time
from collections import Counter
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from linkcrawler.errors import StatusError
from linkcrawler.fetcher import FetchResult


HTML = "text/html; charset=utf-8"


def _page(*hrefs, extra=""):
    links = "\n".join(f'<a href="{href}">{href}</a>' for href in hrefs)
    return f"<html><body>{links}{extra}</body></html>"


class SiteHandler(BaseHTTPRequestHandler):
    """Serves the fixture site and counts hits per path."""

    def log_message(self, format, *args):
        pass

    def do_GET(self):
        server = self.server
        with server.lock:
            server.hits[self.path] += 1
            server.user_agents.append(self.headers.get("User-Agent"))
            server.cookie_headers.append(self.headers.get("Cookie"))

        origin = f"http://127.0.0.1:{server.server_address[1]}"
        routes = {
            "/": (200, HTML, _page("/page1", "/page2", extra='<img src="/image.jpg" />')),
            "/page1": (200, HTML, _page("/", "/page3")),
            "/page2": (200, HTML, _page()),
            "/page3": (200, HTML, _page("/page1#top")),
            "/loop-a": (200, HTML, _page("/loop-b")),
            "/loop-b": (200, HTML, _page("/loop-a")),
            "/meta": (
                200,
                HTML,
                '<html><head><meta http-equiv="refresh" content="0; url=/page3"></head></html>',
            ),
            "/app.js": (200, "text/javascript", f'fetch("{origin}/from-js");'),
            "/from-js": (200, HTML, _page()),
            "/external": (200, HTML, _page("http://elsewhere.invalid/", "/page2")),
            "/form": (200, HTML, '<form action="/submit"></form><script src="/app.js"></script>'),
        }

        if self.path == "/redirect":
            self.send_response(301)
            self.send_header("Location", "/")
            self.end_headers()
        elif self.path.startswith("/redirect/"):
            self.send_response(int(self.path.rsplit("/", 1)[1]))
            self.send_header("Location", "/page2")
            self.end_headers()
        elif self.path == "/set-cookie":
            self.send_response(200)
            self.send_header("Content-Type", HTML)
            self.send_header("Set-Cookie", "sid=abc; Path=/")
            self.send_header("Content-Length", "0")
            self.end_headers()
        elif self.path == "/slow":
            self.send_response(200)
            self.send_header("Content-Type", HTML)
            self.send_header("Content-Length", "40")
            self.end_headers()
            # 40 bytes in 5-byte pieces, 0.4s apart
            try:
                for _ in range(8):
                    self.wfile.write(b"<br/>")
                    self.wfile.flush()
                    time.sleep(0.4)
            except (BrokenPipeError, ConnectionResetError):
                return
        elif self.path == "/redirect-away":
            self.send_response(302)
            self.send_header("Location", "http://elsewhere.invalid/landing")
            self.end_headers()
        elif self.path == "/error":
            self.send_response(500)
            self.end_headers()
        elif self.path == "/truncated":
            self.send_response(200)
            self.send_header("Content-Type", HTML)
            self.send_header("Transfer-Encoding", "chunked")
            self.end_headers()
            # One chunk, then the connection closes without the final chunk
            self.wfile.write(b"a\r\n<html><bod\r\n")
            self.wfile.flush()
        elif self.path in routes:
            status, content_type, body = routes[self.path]
            payload = body.encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)
        else:
            self.send_response(404)
            self.send_header("Content-Length", "0")
            self.end_headers()


@pytest.fixture
def site():
    """Run the fixture site on a free local port for one test."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), SiteHandler)
    server.daemon_threads = True
    server.lock = threading.Lock()
    server.hits = Counter()
    server.user_agents = []
    server.cookie_headers = []
    server.url = f"http://127.0.0.1:{server.server_address[1]}"

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def closed_port_url():
    """A URL on a local port with nothing listening."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}/"


class FakeFetcher:
    """
    In-memory fetcher for a static link graph.

    ``pages`` maps URL -> list of linked URLs (served as HTML), a
    FetchResult, or an exception to raise. Tracks how many fetches run at
    once and how often each URL was fetched.
    """

    def __init__(self, pages, delay=0.0):
        self.pages = pages
        self.delay = delay
        self.lock = threading.Lock()
        self.calls = Counter()
        self.active = 0
        self.max_active = 0
        self.closed = False

    def fetch(self, url):
        with self.lock:
            self.calls[url] += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            page = self.pages.get(url)
            if page is None:
                raise StatusError(404)
            if isinstance(page, Exception):
                raise page
            if isinstance(page, FetchResult):
                return page
            return FetchResult(status_code=200, content_type=HTML, body=_page(*page))
        finally:
            with self.lock:
                self.active -= 1

    def close(self):
        self.closed = True


@pytest.fixture
def make_fetcher():
    """Factory for FakeFetcher instances."""
    return FakeFetcher
