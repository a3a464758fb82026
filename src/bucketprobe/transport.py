"""
HTTP transport for bucketprobe.

Wraps a single shared httpx.AsyncClient so every probe in a scan reuses the
same connection pool. The probes only see TransportOutcome values; anything
that fails below the HTTP layer is raised as TransportError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import httpx

from bucketprobe.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_USER_AGENT = "bucketprobe/0.1.0"

QueryParams = Mapping[str, str] | Sequence[tuple[str, str]]


@dataclass(frozen=True)
class TransportOutcome:
    """
    Raw outcome of one HTTP exchange.

    Attributes:
        status: HTTP status code
        headers: Response headers (lower-cased names)
        body: Raw response body
        url: Final request URL
    """

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


class HttpTransport:
    """
    Async HTTP transport shared by all probes of a scan.

    Redirects are never followed: a 301 is a meaningful answer for S3.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        """
        Initialize the transport.

        Args:
            client: Optional pre-built client (tests pass one with a MockTransport)
            timeout: Default request timeout in seconds
            user_agent: User-Agent header sent with every request
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=False,
            headers={"User-Agent": user_agent},
        )

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def send(
        self,
        method: str,
        url: str,
        *,
        params: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
        content: bytes | None = None,
        timeout: float | None = None,
    ) -> TransportOutcome:
        """
        Send one request and return its outcome.

        Args:
            method: HTTP method
            url: Absolute URL without query string
            params: Query parameters, repeated keys allowed as tuples
            headers: Extra request headers
            content: Request body
            timeout: Per-request timeout; None uses the client default

        Returns:
            TransportOutcome with status, headers and body

        Raises:
            TransportError: On timeout, connection, TLS or protocol failure
        """
        kwargs: dict[str, Any] = {
            "params": params,
            "headers": dict(headers or {}),
            "content": content,
        }
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"timeout: {type(e).__name__}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        logger.debug(f"{method} {response.url} -> {response.status_code}")

        return TransportOutcome(
            status=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            body=response.content,
            url=str(response.url),
        )

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def build_url(url: str, params: QueryParams | None = None) -> str:
    """Render a URL with its query string the way the transport sends it."""
    return str(httpx.URL(url, params=params))
