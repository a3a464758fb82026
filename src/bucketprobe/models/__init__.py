"""
Data models for bucketprobe.

This package contains the core data models:
- Verdict: classified outcome of one probe
- ProviderErrorBody: structured provider error document
- PermissionSet: permissions held by one identity
- ScanRecord: all verdicts collected for one resource
"""

from bucketprobe.models.verdict import (
    IdentityContext,
    PermissionSet,
    ProbeKind,
    ProviderErrorBody,
    Verdict,
    VerdictKind,
    diff_permissions,
)
from bucketprobe.models.scan_record import ScanRecord

__all__ = [
    "IdentityContext",
    "PermissionSet",
    "ProbeKind",
    "ProviderErrorBody",
    "ScanRecord",
    "Verdict",
    "VerdictKind",
    "diff_permissions",
]
