"""HTTP retrieval over a pooled httpx client. No retries: a failed fetch is abandoned for the run."""

import threading

import httpx

from fotomirror.config import DEFAULT_TIMEOUT
from fotomirror.errors import TransportFailure

DEFAULT_USER_AGENT = "fotomirror/1.0 (+gallery backup; public content only)"
MAX_TIMEOUT = 300.0

DEFAULT_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "text/html,application/xml;q=0.9,*/*;q=0.8",
}


class Fetcher:
    """HTTP fetcher with connection pooling. One instance is shared by all worker threads."""

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
        max_connections: int | None = None,
    ) -> None:
        self._timeout = min(timeout, MAX_TIMEOUT)
        self._headers = {**DEFAULT_HEADERS, **(headers or {})}
        # Injected transport (tests use httpx.MockTransport)
        self._transport = transport
        self._max_connections = max_connections
        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()
        self._closed = False

    def _get_client(self) -> httpx.Client:
        """Shared client, created on first use. A closed fetcher is never reopened."""
        with self._client_lock:
            if self._closed:
                raise TransportFailure("Fetcher is closed")
            if self._client is None:
                limits = httpx.Limits(
                    max_connections=self._max_connections,
                    max_keepalive_connections=self._max_connections,
                )
                self._client = httpx.Client(
                    follow_redirects=True,
                    timeout=self._timeout,
                    headers=self._headers,
                    transport=self._transport,
                    limits=limits,
                )
            return self._client

    def close(self) -> None:
        with self._client_lock:
            self._closed = True
            client, self._client = self._client, None
        if client is not None:
            client.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def fetch_bytes(self, url: str) -> tuple[bytes, str]:
        """GET url and read the whole body. Returns (body, final URL after redirects)."""
        try:
            resp = self._get_client().get(url)
            resp.raise_for_status()
            return resp.content, str(resp.url)
        except httpx.HTTPStatusError as e:
            raise TransportFailure(
                f"Error fetching {url}: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportFailure(f"Error fetching {url}: {e}") from e

    def fetch_html(self, url: str) -> tuple[str, str]:
        """Fetch a page as text; returns (html, final URL)."""
        try:
            resp = self._get_client().get(url)
            resp.raise_for_status()
            return resp.text, str(resp.url)
        except httpx.HTTPStatusError as e:
            raise TransportFailure(
                f"Error fetching {url}: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportFailure(f"Error fetching {url}: {e}") from e
