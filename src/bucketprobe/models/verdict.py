"""
Verdict models for bucketprobe.

A verdict is the classified outcome of one probe against one resource.
Verdicts are immutable and only built through the factory classmethods on
Verdict, which keeps the tagged-union shape consistent.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping


class ProbeKind(Enum):
    """Capability being tested by a probe."""

    EXISTENCE = "existence"
    LIST_OBJECTS = "list_objects"
    ANONYMOUS_WRITE = "anonymous_write"
    ANONYMOUS_DELETE = "anonymous_delete"
    PERMISSIONS_CHECK = "permissions_check"


class IdentityContext(Enum):
    """Identity a request was issued as."""

    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


class VerdictKind(Enum):
    """Tag of a verdict."""

    CONFIRMED = "confirmed"
    ALLOWED = "allowed"
    DENIED = "denied"
    AMBIGUOUS = "ambiguous"
    TRANSPORT_FAILURE = "transport_failure"
    UNSUPPORTED = "unsupported"
    CONFIGURATION_ERROR = "configuration_error"


_REGION_FROM_ENDPOINT = re.compile(
    r"(?:^|\.)s3[.-](?:dualstack\.)?([a-z]{2}(?:-gov)?-[a-z]+-\d)\.amazonaws\.com"
)


@dataclass(frozen=True)
class ProviderErrorBody:
    """
    Structured error document returned by a provider.

    Attributes:
        code: Provider error code (e.g. PermanentRedirect)
        message: Human readable message
        endpoint: Endpoint that owns the resource
        bucket: Bucket named in the error
        request_id: Provider request identifier
        host_id: Provider host identifier
    """

    code: str
    message: str
    endpoint: str
    bucket: str
    request_id: str
    host_id: str

    @property
    def region_hint(self) -> str | None:
        """Region of the owning endpoint, if the endpoint names one."""
        match = _REGION_FROM_ENDPOINT.search(self.endpoint)
        if match:
            return match.group(1)
        if self.endpoint.endswith(".s3.amazonaws.com") or self.endpoint == "s3.amazonaws.com":
            return "us-east-1"
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "code": self.code,
            "message": self.message,
            "endpoint": self.endpoint,
            "bucket": self.bucket,
            "request_id": self.request_id,
            "host_id": self.host_id,
        }

    def __str__(self) -> str:
        return f"{self.message} - {self.endpoint}"


@dataclass(frozen=True)
class PermissionSet:
    """
    Ordered set of permissions held by one identity.

    Duplicates are dropped on construction; the first occurrence wins.
    """

    identity: IdentityContext
    permissions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        seen: dict[str, None] = dict.fromkeys(self.permissions)
        object.__setattr__(self, "permissions", tuple(seen))

    def __iter__(self) -> Iterator[str]:
        return iter(self.permissions)

    def __len__(self) -> int:
        return len(self.permissions)

    def __contains__(self, permission: object) -> bool:
        return permission in self.permissions

    @property
    def is_empty(self) -> bool:
        return not self.permissions

    def difference(self, other: PermissionSet) -> tuple[str, ...]:
        """Permissions held here but not in other, in this set's order."""
        return tuple(p for p in self.permissions if p not in other.permissions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "identity": self.identity.value,
            "permissions": list(self.permissions),
        }


def diff_permissions(
    anonymous: PermissionSet, authenticated: PermissionSet
) -> dict[str, list[str]]:
    """
    Compare anonymous and authenticated permission sets.

    Returns:
        Dictionary with anonymous_only, authenticated_only and shared lists
    """
    return {
        "anonymous_only": list(anonymous.difference(authenticated)),
        "authenticated_only": list(authenticated.difference(anonymous)),
        "shared": [p for p in anonymous if p in authenticated],
    }


@dataclass(frozen=True)
class Verdict:
    """
    Classified outcome of a single probe.

    Attributes:
        probe: Probe that produced the verdict
        kind: Verdict tag
        exists: Existence answer, only set for CONFIRMED verdicts
        status: HTTP status code, when a response was received
        error_body: Structured provider error, when one was decoded
        cause: Failure description for transport and configuration errors
        permissions: Permission set for permission checks
        identity: Identity the probe ran as
        region_hint: Region the resource appears to live in
        detail: Extra probe-specific facts (e.g. listed key count)
    """

    probe: ProbeKind
    kind: VerdictKind
    exists: bool | None = None
    status: int | None = None
    error_body: ProviderErrorBody | None = None
    cause: str | None = None
    permissions: PermissionSet | None = None
    identity: IdentityContext = IdentityContext.ANONYMOUS
    region_hint: str | None = None
    detail: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "detail", MappingProxyType(dict(self.detail)))

    @classmethod
    def confirmed(
        cls,
        probe: ProbeKind,
        exists: bool,
        status: int | None = None,
        **kwargs: Any,
    ) -> Verdict:
        return cls(probe, VerdictKind.CONFIRMED, exists=exists, status=status, **kwargs)

    @classmethod
    def allowed(cls, probe: ProbeKind, status: int | None = None, **kwargs: Any) -> Verdict:
        return cls(probe, VerdictKind.ALLOWED, status=status, **kwargs)

    @classmethod
    def denied(cls, probe: ProbeKind, status: int | None = None, **kwargs: Any) -> Verdict:
        return cls(probe, VerdictKind.DENIED, status=status, **kwargs)

    @classmethod
    def ambiguous(cls, probe: ProbeKind, status: int, **kwargs: Any) -> Verdict:
        return cls(probe, VerdictKind.AMBIGUOUS, status=status, **kwargs)

    @classmethod
    def transport_failure(
        cls,
        probe: ProbeKind,
        cause: str,
        status: int | None = None,
        **kwargs: Any,
    ) -> Verdict:
        return cls(probe, VerdictKind.TRANSPORT_FAILURE, status=status, cause=cause, **kwargs)

    @classmethod
    def unsupported(cls, probe: ProbeKind, reason: str = "", **kwargs: Any) -> Verdict:
        return cls(probe, VerdictKind.UNSUPPORTED, cause=reason or None, **kwargs)

    @classmethod
    def configuration_error(cls, probe: ProbeKind, cause: str, **kwargs: Any) -> Verdict:
        return cls(probe, VerdictKind.CONFIGURATION_ERROR, cause=cause, **kwargs)

    @property
    def is_allowed(self) -> bool:
        return self.kind == VerdictKind.ALLOWED

    @property
    def is_failure(self) -> bool:
        """True for outcomes that say nothing about the resource itself."""
        return self.kind in (
            VerdictKind.TRANSPORT_FAILURE,
            VerdictKind.CONFIGURATION_ERROR,
        )

    def describe(self) -> str:
        """Short human readable description used in log lines."""
        if self.kind == VerdictKind.CONFIRMED:
            text = "exists" if self.exists else "does not exist"
        elif self.kind == VerdictKind.AMBIGUOUS:
            text = f"ambiguous (status {self.status})"
        elif self.kind == VerdictKind.TRANSPORT_FAILURE:
            text = f"transport failure: {self.cause}"
        elif self.kind == VerdictKind.CONFIGURATION_ERROR:
            text = f"configuration error: {self.cause}"
        elif self.kind == VerdictKind.UNSUPPORTED:
            text = "unsupported for this provider"
        else:
            text = self.kind.value
            if self.status is not None and self.kind == VerdictKind.DENIED:
                text += f" (status {self.status})"

        if self.error_body is not None:
            text += f" [{self.error_body.code}: {self.error_body}]"
        if self.region_hint:
            text += f" region={self.region_hint}"
        return text

    def to_dict(self) -> dict[str, Any]:
        """Convert verdict to dictionary."""
        return {
            "probe": self.probe.value,
            "verdict": self.kind.value,
            "exists": self.exists,
            "status": self.status,
            "identity": self.identity.value,
            "error_body": self.error_body.to_dict() if self.error_body else None,
            "cause": self.cause,
            "permissions": list(self.permissions) if self.permissions is not None else None,
            "region_hint": self.region_hint,
            "detail": dict(self.detail),
        }
