"""
AWS request signing for S3 probes.

Credentials come from the standard boto3 chain (environment, shared config,
instance metadata). When the chain yields nothing, requests are sent
unsigned, which is exactly the anonymous caller the probes are meant to
emulate.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import boto3
from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.exceptions import BotoCoreError

from bucketprobe.errors import ConfigurationError

logger = logging.getLogger(__name__)


class S3RequestSigner:
    """
    Signs S3 REST requests with SigV4.

    An instance built without credentials is a no-op signer.
    """

    def __init__(self, credentials: Any | None = None):
        """
        Args:
            credentials: botocore credentials (anything exposing access_key,
                secret_key and token), or None for anonymous requests
        """
        self._credentials = credentials

    @property
    def is_anonymous(self) -> bool:
        return self._credentials is None

    @classmethod
    def from_session(
        cls,
        profile: str | None = None,
        anonymous: bool = False,
        session: Any | None = None,
    ) -> S3RequestSigner:
        """
        Build a signer from the boto3 credential chain.

        Args:
            profile: Optional named profile
            anonymous: Force unsigned requests
            session: Optional pre-built boto3 Session

        Raises:
            ConfigurationError: If the named profile does not exist
        """
        if anonymous:
            return cls(None)

        try:
            session = session or boto3.Session(profile_name=profile)
            credentials = session.get_credentials()
        except BotoCoreError as e:
            raise ConfigurationError(f"AWS credentials: {e}") from e

        if credentials is None:
            logger.info("No AWS credentials found, sending unsigned requests")
            return cls(None)
        return cls(credentials.get_frozen_credentials())

    def sign(
        self,
        method: str,
        url: str,
        region: str,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
    ) -> dict[str, str]:
        """
        Compute the headers to send for a request.

        Args:
            method: HTTP method
            url: Full URL including query string
            region: Region the signature is scoped to
            headers: Headers that will be sent
            body: Request body

        Returns:
            Headers including the SigV4 authorization, or the input headers
            unchanged for anonymous signers
        """
        headers = dict(headers or {})
        if self._credentials is None:
            return headers

        request = AWSRequest(method=method, url=url, data=body or b"", headers=headers)
        S3SigV4Auth(self._credentials, "s3", region).add_auth(request)
        return dict(request.headers.items())


def available_regions(session: Any | None = None) -> set[str]:
    """All S3 regions known to botocore across partitions."""
    session = session or boto3.Session()
    regions: set[str] = set()
    for partition in session.get_available_partitions():
        regions.update(session.get_available_regions("s3", partition_name=partition))
    return regions


def validate_region(region: str, session: Any | None = None) -> str:
    """
    Check a region identifier against botocore's endpoint data.

    Raises:
        ConfigurationError: If the region is unknown
    """
    region = (region or "").strip()
    if not region:
        raise ConfigurationError("an S3 region is required")
    if region not in available_regions(session):
        raise ConfigurationError(f"unknown S3 region: {region!r}")
    return region
