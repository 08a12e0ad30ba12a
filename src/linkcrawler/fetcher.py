"""
Single-request HTTP fetching with manual redirect handling.
"""
from __future__ import annotations

import logging
import socket
import threading
import time
from dataclasses import dataclass
from http.cookiejar import DefaultCookiePolicy
from typing import List, Optional

import requests
from requests.adapters import HTTPAdapter

from linkcrawler.errors import BodyReadError, StatusError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)
DEFAULT_TIMEOUT = 10.0
CHUNK_SIZE = 16 * 1024

REDIRECT_STATUSES: frozenset[int] = frozenset((301, 302, 303, 307, 308))


@dataclass(slots=True)
class FetchResult:
    """Successful outcome of a GET: either a body or a redirect target."""
    status_code: int
    content_type: str = ""
    body: Optional[str] = None
    redirect_target: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return self.redirect_target is not None


def _shutdown_socket(resp: requests.Response) -> None:
    """Unblock a read in progress on ``resp`` by shutting its socket down."""
    conn = getattr(resp.raw, "connection", None)
    sock = getattr(conn, "sock", None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        # Already closed by the reader
        return


def _decode(resp: requests.Response, content: bytes) -> str:
    if not content:
        return ""
    encoding = resp.encoding or resp.apparent_encoding
    try:
        return str(content, encoding, errors="replace")
    except (LookupError, TypeError):
        return str(content, errors="replace")


class Fetcher:
    """
    Issues plain GET requests without following redirects.

    One session is shared by all crawl tasks; its connection pool is sized to
    the crawl's concurrency limit. Cookies are never stored or sent.
    ``timeout`` bounds the whole exchange, body read included.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        pool_size: int = 10,
    ) -> None:
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.clear()
        self.session.headers["User-Agent"] = user_agent
        self.session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))

        adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def fetch(self, url: str) -> FetchResult:
        """
        GET ``url`` once.

        Returns:
            FetchResult with ``body`` set for 2xx responses, or with
            ``redirect_target`` (the raw Location value) for redirects.

        Raises:
            TransportError: the request could not be completed.
            StatusError: non-2xx, non-redirect status.
            BodyReadError: the body stream broke off, or was not complete
                before the timeout ran out.
        """
        deadline = time.monotonic() + self.timeout
        try:
            resp = self.session.get(
                url, timeout=self.timeout, allow_redirects=False, stream=True
            )
        except requests.RequestException as e:
            raise TransportError(str(e)) from e

        # Closing returns the connection to the pool on every path
        with resp:
            content_type = resp.headers.get("Content-Type", "")

            if resp.status_code in REDIRECT_STATUSES:
                location = resp.headers.get("Location")
                if not location:
                    raise StatusError(
                        resp.status_code,
                        f"{resp.status_code} status code without Location header",
                    )
                return FetchResult(
                    status_code=resp.status_code,
                    content_type=content_type,
                    redirect_target=location,
                )

            if not 200 <= resp.status_code < 300:
                raise StatusError(resp.status_code)

            body = self._read_body(resp, url, deadline)

        return FetchResult(
            status_code=resp.status_code,
            content_type=content_type,
            body=body,
        )

    def _read_body(self, resp: requests.Response, url: str, deadline: float) -> str:
        """Read and decode the body, giving up once ``deadline`` passes."""
        expired = threading.Event()

        def expire() -> None:
            expired.set()
            _shutdown_socket(resp)

        watchdog = threading.Timer(max(0.0, deadline - time.monotonic()), expire)
        watchdog.daemon = True
        watchdog.start()

        chunks: List[bytes] = []
        try:
            for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                if expired.is_set() or time.monotonic() > deadline:
                    break
                chunks.append(chunk)
        except requests.RequestException as e:
            if not expired.is_set():
                logger.debug("Body read failed for %s: %s", url, e)
                raise BodyReadError(f"Error reading URL body ({e})") from e
        finally:
            watchdog.cancel()

        if expired.is_set() or time.monotonic() > deadline:
            logger.debug("Body read timed out for %s", url)
            raise BodyReadError("Error reading URL body (timeout)")

        return _decode(resp, b"".join(chunks))

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
