"""
GCP permission enumerator.

Runs the IAM testPermissions call for a bucket as two identities: an
anonymous caller and an authenticated service account. The anonymous set
should be empty; anything in it is publicly granted. The authenticated set
is the operator baseline it is compared against.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

from bucketprobe.auth.gcp import TokenProvider
from bucketprobe.classifiers.gcs import GCSClassifier
from bucketprobe.errors import ConfigurationError, TransportError
from bucketprobe.models import IdentityContext, ProbeKind, Verdict
from bucketprobe.transport import DEFAULT_TIMEOUT_SECONDS, HttpTransport

logger = logging.getLogger(__name__)

GCS_API_BASE = "https://storage.googleapis.com/storage/v1/b"

CANDIDATE_PERMISSIONS: tuple[str, ...] = (
    "storage.buckets.delete",
    "storage.buckets.get",
    "storage.buckets.getIamPolicy",
    "storage.buckets.setIamPolicy",
    "storage.buckets.update",
    "storage.objects.create",
    "storage.objects.delete",
    "storage.objects.get",
    "storage.objects.list",
    "storage.objects.update",
)


def bucket_url(name: str) -> str:
    return f"{GCS_API_BASE}/{quote(name, safe='')}"


def iam_test_url(name: str) -> str:
    return f"{bucket_url(name)}/iam/testPermissions"


class PermissionEnumerator:
    """
    Two-identity IAM permission checker for GCS buckets.

    A token failure only affects the authenticated branch. Configuration
    problems (missing credentials) are logged once per enumerator; every
    affected bucket still gets a CONFIGURATION_ERROR verdict.
    """

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
            token_provider: Async callable returning a bearer token; without
                one the authenticated branch reports a configuration error
            timeout: Per-request timeout in seconds
            candidates: Permissions to test
        """
        self._transport = transport
        self._token_provider = token_provider
        self._timeout = timeout
        self.candidates = candidates
        self._classifier = GCSClassifier(candidates)
        self._config_error_reported = False

    def _query(self) -> list[tuple[str, str]]:
        return [("permissions", p) for p in self.candidates]

    async def test_permissions(
        self,
        name: str,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        """
        Run testPermissions for one bucket as one identity.

        Args:
            name: Bucket name
            identity: Identity to issue the request as

        Returns:
            PERMISSIONS_CHECK verdict carrying the PermissionSet
        """
        probe = ProbeKind.PERMISSIONS_CHECK
        headers: dict[str, str] = {}

        if identity == IdentityContext.AUTHENTICATED:
            try:
                token = await self._get_token()
            except ConfigurationError as e:
                self._report_config_error(e)
                return Verdict.configuration_error(probe, str(e), identity=identity)
            except TransportError as e:
                logger.error(f"bucket={name}: {e.cause}")
                return Verdict.transport_failure(probe, e.cause, identity=identity)
            headers["Authorization"] = f"Bearer {token}"

        try:
            outcome = await self._transport.send(
                "GET",
                iam_test_url(name),
                params=self._query(),
                headers=headers,
                timeout=self._timeout,
            )
        except TransportError as e:
            return self._classifier.classify_failure(probe, e, identity)
        return self._classifier.classify(probe, outcome, identity)

    async def _get_token(self) -> str:
        if self._token_provider is None:
            raise ConfigurationError("no token provider configured")
        return await self._token_provider()

    def _report_config_error(self, error: ConfigurationError) -> None:
        if self._config_error_reported:
            return
        self._config_error_reported = True
        logger.error(f"Authenticated permission checks disabled: {error}")
