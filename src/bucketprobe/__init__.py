"""
bucketprobe - public access checks for cloud object storage

Probes S3 buckets, Azure Blob containers and GCS buckets the way an
anonymous caller would, and reports one verdict per probe:

- S3: existence, anonymous listing, anonymous write and delete
- Azure Blob: container existence and anonymous listing
- GCS: existence and an anonymous vs authenticated IAM permission diff

Quick Start:
    >>> import asyncio
    >>> from bucketprobe import HttpTransport, S3Probe, ScanOrchestrator
    >>>
    >>> async def scan(names):
    ...     async with HttpTransport() as transport:
    ...         orchestrator = ScanOrchestrator(S3Probe(transport, "us-east-1"))
    ...         return await orchestrator.run(names)
    >>>
    >>> records = asyncio.run(scan(["some-bucket"]))
"""

from __future__ import annotations

__version__ = "0.1.0"

from bucketprobe.errors import (
    BucketProbeError,
    ConfigurationError,
    DecodeError,
    TokenExchangeError,
    TransportError,
)
from bucketprobe.models import (
    IdentityContext,
    PermissionSet,
    ProbeKind,
    ProviderErrorBody,
    ScanRecord,
    Verdict,
    VerdictKind,
)
from bucketprobe.probes import AzureBlobProbe, BaseProbe, GCSProbe, S3Probe
from bucketprobe.scanning import ScanOrchestrator
from bucketprobe.transport import HttpTransport, TransportOutcome

__all__ = [
    "__version__",
    # Errors
    "BucketProbeError",
    "ConfigurationError",
    "DecodeError",
    "TokenExchangeError",
    "TransportError",
    # Models
    "IdentityContext",
    "PermissionSet",
    "ProbeKind",
    "ProviderErrorBody",
    "ScanRecord",
    "Verdict",
    "VerdictKind",
    # Probes
    "AzureBlobProbe",
    "BaseProbe",
    "GCSProbe",
    "S3Probe",
    # Scanning
    "ScanOrchestrator",
    # Transport
    "HttpTransport",
    "TransportOutcome",
]
