"""
Base class for provider probes.

A provider probe issues the provider-specific request for each capability
check and hands the outcome to its classifier. Probes hold no scan state:
each call returns a Verdict and nothing is remembered between calls.

Operations a provider does not implement return an UNSUPPORTED verdict
rather than raising, so the orchestrator can stay provider-agnostic.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping

from bucketprobe.classifiers.base import ResponseClassifier
from bucketprobe.errors import TransportError
from bucketprobe.models import IdentityContext, ProbeKind, Verdict
from bucketprobe.transport import HttpTransport, QueryParams

logger = logging.getLogger(__name__)


class BaseProbe(ABC):
    """
    Abstract capability probe.

    Class attributes:
        provider: Provider identifier used in records and log lines
        capabilities: Probe kinds this provider actually implements
        placeholders: Probe kinds the provider declares but cannot perform;
            the orchestrator records them as UNSUPPORTED
        list_requires_existence: Only list when existence was confirmed
        identities: Identities permission checks run as, in order
    """

    provider: str = "base"
    capabilities: frozenset[ProbeKind] = frozenset({ProbeKind.EXISTENCE})
    placeholders: frozenset[ProbeKind] = frozenset()
    list_requires_existence: bool = False
    identities: tuple[IdentityContext, ...] = ()

    def __init__(
        self,
        transport: HttpTransport,
        classifier: ResponseClassifier,
        timeout: float | None = None,
    ):
        """
        Args:
            transport: Shared HTTP transport
            classifier: Provider response classifier
            timeout: Per-request timeout, None for the transport default
        """
        self._transport = transport
        self._classifier = classifier
        self._timeout = timeout

    @property
    def classifier(self) -> ResponseClassifier:
        return self._classifier

    def supports(self, probe: ProbeKind) -> bool:
        return probe in self.capabilities

    async def _request(
        self,
        probe: ProbeKind,
        method: str,
        url: str,
        *,
        params: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
        content: bytes | None = None,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        """Send a request and classify whatever comes back."""
        try:
            outcome = await self._transport.send(
                method,
                url,
                params=params,
                headers=headers,
                content=content,
                timeout=self._timeout,
            )
        except TransportError as e:
            logger.debug(f"{self.provider}: {probe.value} transport failure: {e.cause}")
            return self._classifier.classify_failure(probe, e, identity)
        return self._classifier.classify(probe, outcome, identity)

    @abstractmethod
    async def check_existence(self, name: str) -> Verdict:
        """
        Check whether a resource exists.

        Args:
            name: Bucket or container name

        Returns:
            EXISTENCE verdict
        """
        pass

    async def list_objects(self, name: str) -> Verdict:
        """Check whether the resource contents can be listed."""
        return self._unsupported(ProbeKind.LIST_OBJECTS)

    async def attempt_write(self, name: str) -> Verdict:
        """Check whether an object can be written."""
        return self._unsupported(ProbeKind.ANONYMOUS_WRITE)

    async def attempt_delete(self, name: str) -> Verdict:
        """Check whether the object written by attempt_write can be deleted."""
        return self._unsupported(ProbeKind.ANONYMOUS_DELETE)

    async def check_permissions(
        self,
        name: str,
        identity: IdentityContext = IdentityContext.ANONYMOUS,
    ) -> Verdict:
        """Check which permissions an identity holds on the resource."""
        return self._unsupported(ProbeKind.PERMISSIONS_CHECK, identity=identity)

    def _unsupported(self, probe: ProbeKind, **kwargs: Any) -> Verdict:
        return Verdict.unsupported(
            probe, f"{probe.value} is not implemented for {self.provider}", **kwargs
        )
