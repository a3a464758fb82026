"""
Google Cloud Storage response classifier.

Existence comes from a bucket metadata lookup: only "not found" and "bad
request" mean the bucket is absent, every other status (including 401/403)
proves it exists. Permission checks decode the IAM testPermissions JSON
response into a PermissionSet.
"""

from __future__ import annotations

import json
import logging
from typing import Iterable

from bucketprobe.classifiers.base import ResponseClassifier
from bucketprobe.errors import DecodeError
from bucketprobe.models import (
    IdentityContext,
    PermissionSet,
    ProbeKind,
    Verdict,
)
from bucketprobe.transport import TransportOutcome

logger = logging.getLogger(__name__)

_NOT_FOUND_STATUSES = (400, 404)
_REFUSED_STATUSES = (401, 403, 404)


def decode_test_permissions(body: bytes) -> list[str]:
    """
    Decode a testPermissions response body.

    The response is {"kind": str, "permissions": [str, ...]}; an absent
    permissions field means no permission is held.

    Raises:
        DecodeError: If the body is not a valid testPermissions response
    """
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise DecodeError(f"malformed JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("kind"), str):
        raise DecodeError("missing 'kind' field")

    permissions = data.get("permissions")
    if permissions is None:
        return []
    if not isinstance(permissions, list) or not all(
        isinstance(p, str) for p in permissions
    ):
        raise DecodeError("'permissions' is not a list of strings")
    return permissions


class GCSClassifier(ResponseClassifier):
    """Classifier for GCS JSON API responses."""

    provider = "gcs"

    def __init__(self, candidate_permissions: Iterable[str] | None = None):
        """
        Args:
            candidate_permissions: Permissions that were asked for; results
                outside this list are dropped
        """
        self._candidates = tuple(candidate_permissions) if candidate_permissions else None

    def classify_existence(
        self,
        outcome: TransportOutcome,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        exists = outcome.status not in _NOT_FOUND_STATUSES
        return Verdict.confirmed(
            ProbeKind.EXISTENCE, exists, outcome.status, identity=identity
        )

    def classify_capability(
        self,
        probe: ProbeKind,
        outcome: TransportOutcome,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        if probe != ProbeKind.PERMISSIONS_CHECK:
            return super().classify_capability(probe, outcome, identity)

        if outcome.status in _REFUSED_STATUSES:
            return Verdict.denied(
                probe,
                outcome.status,
                identity=identity,
                permissions=PermissionSet(identity),
            )
        if not outcome.is_success:
            return self.classify_unexpected(probe, outcome, identity)

        try:
            granted = decode_test_permissions(outcome.body)
        except DecodeError as e:
            logger.warning(f"gcs: undecodable testPermissions response: {e}")
            return Verdict.ambiguous(probe, outcome.status, identity=identity, cause=str(e))

        if self._candidates is not None:
            granted = [p for p in granted if p in self._candidates]

        permissions = PermissionSet(identity, tuple(granted))
        if permissions.is_empty:
            return Verdict.denied(
                probe, outcome.status, identity=identity, permissions=permissions
            )
        return Verdict.allowed(
            probe, outcome.status, identity=identity, permissions=permissions
        )
