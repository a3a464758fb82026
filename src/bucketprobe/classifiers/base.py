"""
Base response classifier.

Maps a raw transport outcome to exactly one Verdict for a given probe kind.
Provider classifiers override the hooks where their conventions differ from
plain REST semantics. Classification never raises.
"""

from __future__ import annotations

import logging

from bucketprobe.errors import TransportError
from bucketprobe.models import IdentityContext, ProbeKind, Verdict
from bucketprobe.transport import TransportOutcome

logger = logging.getLogger(__name__)


class ResponseClassifier:
    """
    Generic classifier implementing the provider-neutral rules.

    - 2xx: exists for existence probes, allowed for capability probes
    - 404: does not exist / denied
    - 403: denied
    - anything else: ambiguous, carrying the raw status
    """

    provider: str = "generic"

    def classify(
        self,
        probe: ProbeKind,
        outcome: TransportOutcome,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        """
        Classify a transport outcome.

        Args:
            probe: Probe the outcome belongs to
            outcome: Raw transport outcome
            identity: Identity the request was issued as

        Returns:
            Verdict for the probe
        """
        if probe == ProbeKind.EXISTENCE:
            return self.classify_existence(outcome, identity)
        return self.classify_capability(probe, outcome, identity)

    def classify_existence(
        self,
        outcome: TransportOutcome,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        probe = ProbeKind.EXISTENCE
        if outcome.is_success:
            return Verdict.confirmed(probe, True, outcome.status, identity=identity)
        if outcome.status == 404:
            return Verdict.confirmed(probe, False, outcome.status, identity=identity)
        if outcome.status == 403:
            return Verdict.denied(probe, outcome.status, identity=identity)
        return self.classify_unexpected(probe, outcome, identity)

    def classify_capability(
        self,
        probe: ProbeKind,
        outcome: TransportOutcome,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        if outcome.is_success:
            return Verdict.allowed(probe, outcome.status, identity=identity)
        if outcome.status in (403, 404):
            return Verdict.denied(probe, outcome.status, identity=identity)
        return self.classify_unexpected(probe, outcome, identity)

    def classify_unexpected(
        self,
        probe: ProbeKind,
        outcome: TransportOutcome,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        """Hook for statuses the generic rules do not cover."""
        logger.warning(
            f"{self.provider}: unrecognized status {outcome.status} for "
            f"{probe.value} ({outcome.url})"
        )
        return Verdict.ambiguous(probe, outcome.status, identity=identity)

    def classify_failure(
        self,
        probe: ProbeKind,
        error: TransportError,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        """Transport failures are never conflated with denial."""
        return Verdict.transport_failure(probe, error.cause, identity=identity)
