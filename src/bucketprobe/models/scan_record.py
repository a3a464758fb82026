"""
Scan record model for bucketprobe.

One ScanRecord is created per resource per scan run. The orchestrator owns
it: verdicts are appended in protocol order as each probe completes, and the
record is emitted once the resource is done.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from bucketprobe.models.verdict import (
    IdentityContext,
    ProbeKind,
    Verdict,
    VerdictKind,
    diff_permissions,
)


@dataclass
class ScanRecord:
    """
    Verdicts collected for one resource.

    Attributes:
        resource: Bucket or container name
        provider: Provider identifier (s3, azure_blob, gcs)
        verdicts: Verdicts in the order the probes completed
        started_at: When processing of the resource started
        completed_at: When processing finished
        error: Unexpected failure that cut the pipeline short
    """

    resource: str
    provider: str
    verdicts: list[Verdict] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None
    error: str = ""

    def add(self, verdict: Verdict) -> Verdict:
        """Append a verdict and return it."""
        self.verdicts.append(verdict)
        return verdict

    def complete(self) -> None:
        self.completed_at = datetime.now(timezone.utc)

    def get(
        self,
        probe: ProbeKind,
        identity: IdentityContext | None = None,
    ) -> Verdict | None:
        """Get the verdict for a probe, optionally for one identity."""
        for verdict in self.verdicts:
            if verdict.probe != probe:
                continue
            if identity is not None and verdict.identity != identity:
                continue
            return verdict
        return None

    @property
    def existence(self) -> Verdict | None:
        return self.get(ProbeKind.EXISTENCE)

    @property
    def exists(self) -> bool | None:
        """Existence answer, None when the existence probe was inconclusive."""
        verdict = self.existence
        if verdict is None or verdict.kind != VerdictKind.CONFIRMED:
            return None
        return verdict.exists

    @property
    def capability_verdicts(self) -> list[Verdict]:
        return [v for v in self.verdicts if v.probe != ProbeKind.EXISTENCE]

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None

    @property
    def permission_diff(self) -> dict[str, list[str]] | None:
        """
        Anonymous vs authenticated permission comparison.

        None unless both identities produced a permission set.
        """
        anonymous = self.get(ProbeKind.PERMISSIONS_CHECK, IdentityContext.ANONYMOUS)
        authenticated = self.get(
            ProbeKind.PERMISSIONS_CHECK, IdentityContext.AUTHENTICATED
        )
        if anonymous is None or authenticated is None:
            return None
        if anonymous.permissions is None or authenticated.permissions is None:
            return None
        return diff_permissions(anonymous.permissions, authenticated.permissions)

    def to_dict(self) -> dict[str, Any]:
        """Convert record to dictionary."""
        return {
            "resource": self.resource,
            "provider": self.provider,
            "exists": self.exists,
            "verdicts": [v.to_dict() for v in self.verdicts],
            "permission_diff": self.permission_diff,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": self.error,
        }
