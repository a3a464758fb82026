"""
Azure Blob Storage response classifier.

Anonymous requests against a container that is not public come back as 404
whether or not the container exists, so existence is simply "2xx or not".
There is no redirect ambiguity analogous to S3.
"""

from __future__ import annotations

from bucketprobe.classifiers.base import ResponseClassifier
from bucketprobe.models import IdentityContext, ProbeKind, Verdict
from bucketprobe.transport import TransportOutcome


class AzureBlobClassifier(ResponseClassifier):
    """Classifier for Azure Blob container responses."""

    provider = "azure_blob"

    def classify_existence(
        self,
        outcome: TransportOutcome,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        return Verdict.confirmed(
            ProbeKind.EXISTENCE, outcome.is_success, outcome.status, identity=identity
        )

    def classify_capability(
        self,
        probe: ProbeKind,
        outcome: TransportOutcome,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        if outcome.is_success:
            return Verdict.allowed(probe, outcome.status, identity=identity)
        if outcome.status in (401, 403, 404):
            return Verdict.denied(probe, outcome.status, identity=identity)
        return self.classify_unexpected(probe, outcome, identity)
