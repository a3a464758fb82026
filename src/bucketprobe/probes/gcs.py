"""
Google Cloud Storage probe.

Checks bucket existence through an unauthenticated metadata lookup, then
delegates permission checks to the PermissionEnumerator for the anonymous
and authenticated identities.
"""

from __future__ import annotations

from bucketprobe.auth.gcp import TokenProvider
from bucketprobe.classifiers.gcs import GCSClassifier
from bucketprobe.models import IdentityContext, ProbeKind, Verdict
from bucketprobe.probes.base import BaseProbe
from bucketprobe.probes.permissions import (
    CANDIDATE_PERMISSIONS,
    PermissionEnumerator,
    bucket_url,
)
from bucketprobe.transport import DEFAULT_TIMEOUT_SECONDS, HttpTransport


class GCSProbe(BaseProbe):
    """Probe for GCS buckets."""

    provider = "gcs"
    capabilities = frozenset({ProbeKind.EXISTENCE, ProbeKind.PERMISSIONS_CHECK})
    identities = (IdentityContext.ANONYMOUS, IdentityContext.AUTHENTICATED)

    def __init__(
        self,
        transport: HttpTransport,
        token_provider: TokenProvider | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        candidates: tuple[str, ...] = CANDIDATE_PERMISSIONS,
    ):
        """
        Args:
            transport: Shared HTTP transport
            token_provider: Bearer token source for the authenticated branch
            timeout: Per-request timeout in seconds
            candidates: Permissions to test
        """
        super().__init__(transport, GCSClassifier(candidates), timeout)
        self.enumerator = PermissionEnumerator(
            transport, token_provider, timeout=timeout, candidates=candidates
        )

    async def check_existence(self, name: str) -> Verdict:
        return await self._request(ProbeKind.EXISTENCE, "HEAD", bucket_url(name))

    async def check_permissions(
        self,
        name: str,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        return await self.enumerator.test_permissions(name, identity)
