"""
Azure Blob Storage probe.

Checks container existence and anonymous listing against a storage
account's blob endpoint. Write and delete are not implemented for Azure;
they are reported as unsupported instead of being faked.
"""

from __future__ import annotations

import re
from urllib.parse import quote

from bucketprobe.classifiers.azure_blob import AzureBlobClassifier
from bucketprobe.errors import ConfigurationError
from bucketprobe.models import ProbeKind, Verdict
from bucketprobe.probes.base import BaseProbe
from bucketprobe.transport import DEFAULT_TIMEOUT_SECONDS, HttpTransport

_ACCOUNT_NAME = re.compile(r"^[a-z0-9]{3,24}$")


def validate_account(account: str) -> str:
    """
    Check a storage account name (3-24 lowercase letters and digits).

    Raises:
        ConfigurationError: If the name is not a valid account name
    """
    account = (account or "").strip()
    if not _ACCOUNT_NAME.match(account):
        raise ConfigurationError(f"invalid Azure storage account name: {account!r}")
    return account


class AzureBlobProbe(BaseProbe):
    """Probe for Azure Blob Storage containers."""

    provider = "azure_blob"
    capabilities = frozenset({ProbeKind.EXISTENCE, ProbeKind.LIST_OBJECTS})
    placeholders = frozenset({ProbeKind.ANONYMOUS_WRITE, ProbeKind.ANONYMOUS_DELETE})
    list_requires_existence = True

    def __init__(
        self,
        transport: HttpTransport,
        account: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Args:
            transport: Shared HTTP transport
            account: Storage account name
            timeout: Per-request timeout in seconds
        """
        super().__init__(transport, AzureBlobClassifier(), timeout)
        self.account = validate_account(account)

    def container_url(self, name: str) -> str:
        return f"https://{self.account}.blob.core.windows.net/{quote(name, safe='')}"

    async def check_existence(self, name: str) -> Verdict:
        return await self._request(
            ProbeKind.EXISTENCE,
            "GET",
            self.container_url(name),
            params={"restype": "container"},
        )

    async def list_objects(self, name: str) -> Verdict:
        return await self._request(
            ProbeKind.LIST_OBJECTS,
            "GET",
            self.container_url(name),
            params=[("restype", "container"), ("comp", "list")],
        )

    async def attempt_write(self, name: str) -> Verdict:
        return self._unsupported(ProbeKind.ANONYMOUS_WRITE)

    async def attempt_delete(self, name: str) -> Verdict:
        return self._unsupported(ProbeKind.ANONYMOUS_DELETE)
