"""
Credential helpers for bucketprobe.

- S3RequestSigner: SigV4 signing from the boto3 credential chain
- ServiceAccountTokenProvider: GCP service-account bearer tokens
"""

from bucketprobe.auth.aws import S3RequestSigner, available_regions, validate_region
from bucketprobe.auth.gcp import (
    CREDENTIALS_ENV_VAR,
    READ_ONLY_SCOPE,
    ServiceAccountTokenProvider,
    TokenProvider,
)

__all__ = [
    "CREDENTIALS_ENV_VAR",
    "READ_ONLY_SCOPE",
    "S3RequestSigner",
    "ServiceAccountTokenProvider",
    "TokenProvider",
    "available_regions",
    "validate_region",
]
