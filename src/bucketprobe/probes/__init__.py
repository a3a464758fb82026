"""
Provider probes for bucketprobe.

Supported storage services:
- AWS S3
- Azure Blob Storage
- Google Cloud Storage (with two-identity permission enumeration)
"""

from bucketprobe.probes.base import BaseProbe
from bucketprobe.probes.s3 import S3Probe, WRITE_PROBE_KEY, WRITE_PROBE_PAYLOAD
from bucketprobe.probes.azure_blob import AzureBlobProbe, validate_account
from bucketprobe.probes.gcs import GCSProbe
from bucketprobe.probes.permissions import CANDIDATE_PERMISSIONS, PermissionEnumerator

__all__ = [
    "BaseProbe",
    "S3Probe",
    "AzureBlobProbe",
    "GCSProbe",
    "PermissionEnumerator",
    "CANDIDATE_PERMISSIONS",
    "WRITE_PROBE_KEY",
    "WRITE_PROBE_PAYLOAD",
    "validate_account",
]
