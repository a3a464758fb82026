"""
Exceptions for bucketprobe.

Probes never let these escape a probe call: they are caught at the probe
boundary and converted into verdicts. Only configuration problems detected
before a scan starts reach the caller.
"""

from __future__ import annotations


class BucketProbeError(Exception):
    """Base exception for bucketprobe errors."""

    pass


class ConfigurationError(BucketProbeError):
    """Raised when required configuration is missing or invalid."""

    pass


class TransportError(BucketProbeError):
    """Raised when a request fails below the HTTP layer (timeout, DNS, TLS)."""

    def __init__(self, cause: str):
        super().__init__(cause)
        self.cause = cause


class TokenExchangeError(TransportError):
    """Raised when the OAuth2 token endpoint cannot be reached or refuses."""

    pass


class DecodeError(BucketProbeError):
    """Raised when a provider response body does not match its schema."""

    pass
