"""
Unit tests for the Azure Blob probe.
"""

import asyncio

import pytest

from bucketprobe.errors import ConfigurationError
from bucketprobe.models import ProbeKind, VerdictKind
from bucketprobe.probes.azure_blob import AzureBlobProbe, validate_account

CONTAINER_URL = "https://acmestorage.blob.core.windows.net/backups"


def run_probe(storage, method_name, account="acmestorage"):
    async def go():
        async with storage.transport() as transport:
            probe = AzureBlobProbe(transport, account)
            return await getattr(probe, method_name)("backups")

    return asyncio.run(go())


class TestValidateAccount:
    """Tests for storage account name validation."""

    @pytest.mark.parametrize("name", ["abc", "acmestorage", "a1b2c3", "x" * 24])
    def test_valid_names(self, name):
        assert validate_account(name) == name

    @pytest.mark.parametrize("name", ["", "ab", "Acme", "acme-storage", "x" * 25, "acme.blob"])
    def test_invalid_names(self, name):
        with pytest.raises(ConfigurationError):
            validate_account(name)


class TestAzureBlobProbe:
    """Tests for AzureBlobProbe."""

    def test_declared_capabilities(self):
        assert AzureBlobProbe.capabilities == {ProbeKind.EXISTENCE, ProbeKind.LIST_OBJECTS}
        assert AzureBlobProbe.placeholders == {
            ProbeKind.ANONYMOUS_WRITE,
            ProbeKind.ANONYMOUS_DELETE,
        }
        assert AzureBlobProbe.list_requires_existence is True

    def test_existence_request(self, storage):
        storage.on("GET", CONTAINER_URL, 200)

        verdict = run_probe(storage, "check_existence")

        assert verdict.kind == VerdictKind.CONFIRMED
        assert verdict.exists is True
        request = storage.requests[0]
        assert dict(request.url.params) == {"restype": "container"}

    def test_private_container_reads_as_missing(self, storage):
        storage.on("GET", CONTAINER_URL, 404)

        verdict = run_probe(storage, "check_existence")

        assert verdict.exists is False

    def test_list_request(self, storage):
        storage.on("GET", CONTAINER_URL, 200, content=b"<EnumerationResults/>")

        verdict = run_probe(storage, "list_objects")

        assert verdict.kind == VerdictKind.ALLOWED
        assert storage.requests[0].url.params["comp"] == "list"
        assert storage.requests[0].url.params["restype"] == "container"

    @pytest.mark.parametrize("method_name", ["attempt_write", "attempt_delete"])
    def test_write_and_delete_are_unsupported(self, storage, method_name):
        """Test unsupported probes make no network call."""
        verdict = run_probe(storage, method_name)

        assert verdict.kind == VerdictKind.UNSUPPORTED
        assert storage.requests == []

    def test_permissions_unsupported(self, storage):
        verdict = run_probe(storage, "check_permissions")

        assert verdict.kind == VerdictKind.UNSUPPORTED
        assert verdict.probe == ProbeKind.PERMISSIONS_CHECK

    def test_invalid_account_rejected_at_construction(self, storage):
        with pytest.raises(ConfigurationError):
            run_probe(storage, "check_existence", account="Not_Valid")
