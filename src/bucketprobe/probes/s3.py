"""
AWS S3 probe.

Checks, in protocol order:
1. existence via head-bucket on the region-less endpoint
2. anonymous listing (always attempted, the bucket may be region-pinned)
3. anonymous write of a fixed, deliberately unusual key
4. delete of that key, only after a successful write

Requests use path-style addressing so bucket names containing dots do not
break TLS host verification.
"""

from __future__ import annotations

import logging
from typing import Mapping
from urllib.parse import quote

from bucketprobe.auth.aws import S3RequestSigner
from bucketprobe.classifiers.s3 import S3Classifier
from bucketprobe.models import IdentityContext, ProbeKind, Verdict
from bucketprobe.probes.base import BaseProbe
from bucketprobe.transport import HttpTransport, QueryParams, build_url

logger = logging.getLogger(__name__)

GLOBAL_ENDPOINT = "https://s3.amazonaws.com"
GLOBAL_SIGNING_REGION = "us-east-1"

WRITE_PROBE_KEY = "really-long-name-that-is-definitely-not-used.txt"
WRITE_PROBE_PAYLOAD = b"it should not be possible to do this!"


def regional_endpoint(region: str) -> str:
    """Regional S3 endpoint, honouring the China partition's domain."""
    suffix = "amazonaws.com.cn" if region.startswith("cn-") else "amazonaws.com"
    return f"https://s3.{region}.{suffix}"


class S3Probe(BaseProbe):
    """Probe for AWS S3 buckets."""

    provider = "s3"
    capabilities = frozenset({
        ProbeKind.EXISTENCE,
        ProbeKind.LIST_OBJECTS,
        ProbeKind.ANONYMOUS_WRITE,
        ProbeKind.ANONYMOUS_DELETE,
    })
    list_requires_existence = False

    def __init__(
        self,
        transport: HttpTransport,
        region: str,
        signer: S3RequestSigner | None = None,
        timeout: float | None = None,
        list_max_keys: int = 100,
        write_key: str = WRITE_PROBE_KEY,
        write_payload: bytes = WRITE_PROBE_PAYLOAD,
    ):
        """
        Initialize the S3 probe.

        Args:
            transport: Shared HTTP transport
            region: Region capability requests are sent to
            signer: Request signer, anonymous when omitted
            timeout: Per-request timeout, None for the transport default
            list_max_keys: max-keys sent with the listing request
            write_key: Object key used by the write and delete probes
            write_payload: Body uploaded by the write probe
        """
        super().__init__(transport, S3Classifier(), timeout)
        self.region = region
        self._signer = signer or S3RequestSigner(None)
        self._list_max_keys = list_max_keys
        self.write_key = write_key
        self._write_payload = write_payload

    @property
    def identity(self) -> IdentityContext:
        if self._signer.is_anonymous:
            return IdentityContext.ANONYMOUS
        return IdentityContext.AUTHENTICATED

    def _bucket_url(self, base: str, name: str, key: str | None = None) -> str:
        url = f"{base}/{quote(name, safe='')}"
        if key is not None:
            url += f"/{quote(key, safe='')}"
        return url

    async def _send(
        self,
        probe: ProbeKind,
        method: str,
        url: str,
        region: str,
        params: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
        content: bytes | None = None,
    ) -> Verdict:
        full_url = build_url(url, params)
        signed = self._signer.sign(method, full_url, region, headers, content)
        return await self._request(
            probe,
            method,
            full_url,
            headers=signed,
            content=content,
            identity=self.identity,
        )

    async def check_existence(self, name: str) -> Verdict:
        url = self._bucket_url(GLOBAL_ENDPOINT, name)
        return await self._send(ProbeKind.EXISTENCE, "HEAD", url, GLOBAL_SIGNING_REGION)

    async def list_objects(self, name: str) -> Verdict:
        url = self._bucket_url(regional_endpoint(self.region), name)
        params = [("list-type", "2"), ("max-keys", str(self._list_max_keys))]
        return await self._send(
            ProbeKind.LIST_OBJECTS, "GET", url, self.region, params=params
        )

    async def attempt_write(self, name: str) -> Verdict:
        url = self._bucket_url(regional_endpoint(self.region), name, self.write_key)
        return await self._send(
            ProbeKind.ANONYMOUS_WRITE,
            "PUT",
            url,
            self.region,
            headers={"Content-Type": "text/plain"},
            content=self._write_payload,
        )

    async def attempt_delete(self, name: str) -> Verdict:
        url = self._bucket_url(regional_endpoint(self.region), name, self.write_key)
        return await self._send(ProbeKind.ANONYMOUS_DELETE, "DELETE", url, self.region)
