"""
Pytest configuration and fixtures for bucketprobe tests.

HTTP traffic is faked with httpx.MockTransport: FakeStorage maps
"METHOD url-without-query" to canned responses and records every request
it receives, so tests can assert both on verdicts and on what was sent.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

import httpx
import pytest

from bucketprobe.transport import HttpTransport

S3_GLOBAL = "https://s3.amazonaws.com"
S3_US_EAST_1 = "https://s3.us-east-1.amazonaws.com"
GCS_BUCKETS = "https://storage.googleapis.com/storage/v1/b"

PERMANENT_REDIRECT_XML = (
    b'<?xml version="1.0" encoding="UTF-8"?>\n'
    b"<Error>"
    b"<Code>PermanentRedirect</Code>"
    b"<Message>The bucket you are attempting to access must be addressed using "
    b"the specified endpoint.</Message>"
    b"<Endpoint>example-bucket.s3.eu-west-1.amazonaws.com</Endpoint>"
    b"<Bucket>example-bucket</Bucket>"
    b"<RequestId>4442587FB7D0A2F9</RequestId>"
    b"<HostId>Uuag1LuByRx9e6j5Onimru9pO4ZVKnJ2Qz7/C1NPcfTWAtRPfTaOFg==</HostId>"
    b"</Error>"
)

ACCESS_DENIED_XML = (
    b"<Error>"
    b"<Code>AccessDenied</Code>"
    b"<Message>Access Denied</Message>"
    b"<Endpoint>s3.amazonaws.com</Endpoint>"
    b"<Bucket>a-private-bucket</Bucket>"
    b"<RequestId>ABC123</RequestId>"
    b"<HostId>xyz</HostId>"
    b"</Error>"
)


def list_bucket_xml(name: str, keys: list[str]) -> bytes:
    """Build a ListObjectsV2 response body."""
    contents = "".join(f"<Contents><Key>{k}</Key><Size>1</Size></Contents>" for k in keys)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">'
        f"<Name>{name}</Name><KeyCount>{len(keys)}</KeyCount>{contents}"
        "</ListBucketResult>"
    ).encode()


class FakeStorage:
    """Canned HTTP responses keyed by method and URL without query string."""

    def __init__(self):
        self.routes: dict[tuple[str, str], Any] = {}
        self.requests: list[httpx.Request] = []

    def on(
        self,
        method: str,
        url: str,
        status: int = 200,
        *,
        content: bytes = b"",
        headers: dict[str, str] | None = None,
        json: Any = None,
        raises: type[Exception] | None = None,
        delay: float = 0.0,
    ) -> FakeStorage:
        """Register a response (or an exception class to raise) for a route."""
        self.routes[(method, url)] = {
            "status": status,
            "content": content,
            "headers": headers or {},
            "json": json,
            "raises": raises,
            "delay": delay,
        }
        return self

    def calls(self, method: str, url: str) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and str(r.url).split("?", 1)[0] == url
        ]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, str(request.url).split("?", 1)[0])
        if key not in self.routes:
            raise AssertionError(f"unexpected request: {request.method} {request.url}")
        route = self.routes[key]
        if route["delay"]:
            await asyncio.sleep(route["delay"])
        if route["raises"] is not None:
            raise route["raises"]("simulated failure", request=request)
        if route["json"] is not None:
            return httpx.Response(route["status"], json=route["json"], headers=route["headers"])
        return httpx.Response(
            route["status"], content=route["content"], headers=route["headers"]
        )

    def transport(self) -> HttpTransport:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return HttpTransport(client=client)


@pytest.fixture
def storage() -> FakeStorage:
    """Return an empty FakeStorage."""
    return FakeStorage()


class StaticTokenProvider:
    """Token provider returning a fixed token and counting calls."""

    def __init__(self, token: str = "test-token"):
        self.token = token
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        return self.token


@pytest.fixture
def token_provider() -> StaticTokenProvider:
    return StaticTokenProvider()


@pytest.fixture
def permanent_redirect_xml() -> bytes:
    """S3 PermanentRedirect error document naming eu-west-1."""
    return PERMANENT_REDIRECT_XML


@pytest.fixture
def access_denied_xml() -> bytes:
    return ACCESS_DENIED_XML


@pytest.fixture
def list_bucket_body() -> Callable[[str, list[str]], bytes]:
    """Return the ListBucketResult builder."""
    return list_bucket_xml


@pytest.fixture(autouse=True)
def reset_bucketprobe_logger():
    """Undo configure_logging() side effects between tests."""
    yield
    root = logging.getLogger("bucketprobe")
    root.handlers.clear()
    root.propagate = True
    root.setLevel(logging.NOTSET)
