"""
Unit tests for the scan orchestrator.
"""

import asyncio
import logging

import pytest

from bucketprobe.auth.gcp import ServiceAccountTokenProvider
from bucketprobe.classifiers import ResponseClassifier
from bucketprobe.models import IdentityContext, ProbeKind, Verdict, VerdictKind
from bucketprobe.probes import AzureBlobProbe, BaseProbe, GCSProbe, S3Probe
from bucketprobe.probes.s3 import WRITE_PROBE_KEY
from bucketprobe.scanning import ScanOrchestrator

S3_GLOBAL = "https://s3.amazonaws.com"
S3_REGIONAL = "https://s3.us-east-1.amazonaws.com"
AZURE = "https://acmestorage.blob.core.windows.net"
GCS = "https://storage.googleapis.com/storage/v1/b"


def probes_of(record):
    return [v.probe for v in record.verdicts]


class StubProbe(BaseProbe):
    """In-memory probe used to drive the orchestrator without HTTP."""

    provider = "stub"
    capabilities = frozenset({
        ProbeKind.EXISTENCE,
        ProbeKind.ANONYMOUS_WRITE,
        ProbeKind.ANONYMOUS_DELETE,
    })

    def __init__(self, fail_on=(), delay=0.0, delete_delay=0.0):
        super().__init__(transport=None, classifier=ResponseClassifier())
        self.fail_on = set(fail_on)
        self.delay = delay
        self.delete_delay = delete_delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.delete_started = asyncio.Event()
        self.delete_finished = False

    async def check_existence(self, name):
        if name in self.fail_on:
            raise RuntimeError(f"boom for {name}")
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        return Verdict.confirmed(ProbeKind.EXISTENCE, True, 200)

    async def attempt_write(self, name):
        return Verdict.allowed(ProbeKind.ANONYMOUS_WRITE, 200)

    async def attempt_delete(self, name):
        self.delete_started.set()
        await asyncio.sleep(self.delete_delay)
        self.delete_finished = True
        return Verdict.allowed(ProbeKind.ANONYMOUS_DELETE, 204)


class TestS3Scan:
    """End-to-end S3 scans against a fake endpoint."""

    @pytest.fixture
    def s3_storage(self, storage, list_bucket_body, access_denied_xml):
        public = "a-public-bucket"
        private = "a-private-bucket"
        storage.on("HEAD", f"{S3_GLOBAL}/{public}", 200)
        storage.on(
            "GET",
            f"{S3_REGIONAL}/{public}",
            200,
            content=list_bucket_body(public, ["a.txt", "b.txt", "c.txt"]),
        )
        storage.on("PUT", f"{S3_REGIONAL}/{public}/{WRITE_PROBE_KEY}", 200)
        storage.on("DELETE", f"{S3_REGIONAL}/{public}/{WRITE_PROBE_KEY}", 204)

        storage.on("HEAD", f"{S3_GLOBAL}/{private}", 403)
        storage.on("GET", f"{S3_REGIONAL}/{private}", 403, content=access_denied_xml)
        storage.on(
            "PUT", f"{S3_REGIONAL}/{private}/{WRITE_PROBE_KEY}", 403, content=access_denied_xml
        )
        return storage

    def _scan(self, storage, names, **kwargs):
        async def go():
            async with storage.transport() as transport:
                orchestrator = ScanOrchestrator(S3Probe(transport, "us-east-1"), **kwargs)
                return await orchestrator.run(names)

        return asyncio.run(go())

    def test_public_and_private_bucket(self, s3_storage):
        """Test the full protocol over a public and a private bucket."""
        public, private = self._scan(s3_storage, ["a-public-bucket", "a-private-bucket"])

        assert public.resource == "a-public-bucket"
        assert probes_of(public) == [
            ProbeKind.EXISTENCE,
            ProbeKind.LIST_OBJECTS,
            ProbeKind.ANONYMOUS_WRITE,
            ProbeKind.ANONYMOUS_DELETE,
        ]
        assert public.exists is True
        assert all(v.is_allowed for v in public.capability_verdicts)
        assert public.get(ProbeKind.LIST_OBJECTS).detail["key_count"] == 3

        assert private.resource == "a-private-bucket"
        assert private.existence.kind == VerdictKind.DENIED
        assert probes_of(private) == [
            ProbeKind.EXISTENCE,
            ProbeKind.LIST_OBJECTS,
            ProbeKind.ANONYMOUS_WRITE,
        ]
        assert private.get(ProbeKind.LIST_OBJECTS).kind == VerdictKind.DENIED
        assert private.get(ProbeKind.ANONYMOUS_WRITE).kind == VerdictKind.DENIED

    def test_delete_only_after_successful_write(self, s3_storage):
        self._scan(s3_storage, ["a-private-bucket"])

        assert all(r.method != "DELETE" for r in s3_storage.requests)

    def test_listing_attempted_for_missing_bucket(self, storage):
        """Test S3 lists even when head-bucket says the bucket is absent."""
        storage.on("HEAD", f"{S3_GLOBAL}/gone", 404)
        storage.on("GET", f"{S3_REGIONAL}/gone", 404)
        storage.on("PUT", f"{S3_REGIONAL}/gone/{WRITE_PROBE_KEY}", 404)

        (record,) = self._scan(storage, ["gone"])

        assert record.exists is False
        assert record.get(ProbeKind.LIST_OBJECTS).kind == VerdictKind.DENIED

    def test_scan_is_repeatable(self, s3_storage):
        first = self._scan(s3_storage, ["a-public-bucket"])
        second = self._scan(s3_storage, ["a-public-bucket"])

        assert first[0].verdicts == second[0].verdicts

    def test_log_lines(self, s3_storage, caplog):
        with caplog.at_level(logging.DEBUG, logger="bucketprobe"):
            self._scan(s3_storage, ["a-public-bucket"])

        messages = [r.getMessage() for r in caplog.records]
        assert "bucket=a-public-bucket: existence -> exists" in messages
        assert "bucket=a-public-bucket: list_objects -> allowed keys=3" in messages
        completed = [r for r in caplog.records if getattr(r, "event_type", "") == "probe.completed"]
        assert len(completed) == 4
        assert completed[1].verdict == "allowed"


class TestAzureScan:
    """Orchestration rules for Azure Blob."""

    def _scan(self, storage, names):
        async def go():
            async with storage.transport() as transport:
                orchestrator = ScanOrchestrator(AzureBlobProbe(transport, "acmestorage"))
                return await orchestrator.run(names)

        return asyncio.run(go())

    def test_existing_container(self, storage):
        storage.on("GET", f"{AZURE}/public", 200)

        (record,) = self._scan(storage, ["public"])

        assert probes_of(record) == [
            ProbeKind.EXISTENCE,
            ProbeKind.LIST_OBJECTS,
            ProbeKind.ANONYMOUS_WRITE,
            ProbeKind.ANONYMOUS_DELETE,
        ]
        assert record.get(ProbeKind.LIST_OBJECTS).is_allowed
        assert record.get(ProbeKind.ANONYMOUS_WRITE).kind == VerdictKind.UNSUPPORTED
        assert record.get(ProbeKind.ANONYMOUS_DELETE).kind == VerdictKind.UNSUPPORTED
        assert len(storage.requests) == 2

    def test_missing_container_is_not_listed(self, storage):
        storage.on("GET", f"{AZURE}/private", 404)

        (record,) = self._scan(storage, ["private"])

        assert record.exists is False
        assert record.get(ProbeKind.LIST_OBJECTS) is None
        assert len(storage.requests) == 1


class TestGCSScan:
    """Orchestration rules for GCS."""

    def _scan(self, storage, names, token_provider):
        async def go():
            async with storage.transport() as transport:
                orchestrator = ScanOrchestrator(GCSProbe(transport, token_provider))
                return await orchestrator.run(names)

        return asyncio.run(go())

    def test_permissions_for_both_identities(self, storage, token_provider):
        storage.on("HEAD", f"{GCS}/media", 200)
        storage.on(
            "GET",
            f"{GCS}/media/iam/testPermissions",
            200,
            json={"kind": "storage#testIamPermissionsResponse"},
        )

        (record,) = self._scan(storage, ["media"], token_provider)

        anonymous = record.get(ProbeKind.PERMISSIONS_CHECK, IdentityContext.ANONYMOUS)
        authenticated = record.get(ProbeKind.PERMISSIONS_CHECK, IdentityContext.AUTHENTICATED)
        assert anonymous.permissions.is_empty
        assert authenticated.permissions.is_empty
        assert record.get(ProbeKind.LIST_OBJECTS) is None

    def test_missing_bucket_skips_permissions(self, storage, token_provider):
        storage.on("HEAD", f"{GCS}/gone", 404)

        (record,) = self._scan(storage, ["gone"], token_provider)

        assert probes_of(record) == [ProbeKind.EXISTENCE]
        assert token_provider.calls == 0

    def test_missing_credentials_keeps_anonymous_branch(self, storage):
        storage.on("HEAD", f"{GCS}/a", 200)
        storage.on("HEAD", f"{GCS}/b", 200)
        storage.on(
            "GET",
            f"{GCS}/a/iam/testPermissions",
            200,
            json={"kind": "k", "permissions": ["storage.objects.list"]},
        )
        storage.on("GET", f"{GCS}/b/iam/testPermissions", 200, json={"kind": "k"})
        provider = ServiceAccountTokenProvider(environ={})

        records = self._scan(storage, ["a", "b"], provider)

        for record in records:
            auth = record.get(ProbeKind.PERMISSIONS_CHECK, IdentityContext.AUTHENTICATED)
            assert auth.kind == VerdictKind.CONFIGURATION_ERROR
        anon = records[0].get(ProbeKind.PERMISSIONS_CHECK, IdentityContext.ANONYMOUS)
        assert anon.is_allowed
        assert list(anon.permissions) == ["storage.objects.list"]


class TestScanOrchestrator:
    """Provider-independent orchestrator behaviour."""

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            ScanOrchestrator(StubProbe(), concurrency=0)

    def test_failure_is_isolated_to_one_resource(self):
        """Test an unexpected exception only aborts its own resource."""

        async def go():
            orchestrator = ScanOrchestrator(StubProbe(fail_on={"bad"}))
            return await orchestrator.run(["good-1", "bad", "good-2"])

        records = asyncio.run(go())

        assert [r.resource for r in records] == ["good-1", "bad", "good-2"]
        assert records[1].error == "RuntimeError: boom for bad"
        assert records[1].verdicts == []
        assert records[0].error == ""
        assert len(records[2].verdicts) == 3
        assert all(r.is_complete for r in records)

    def test_on_record_callback(self):
        seen = []

        async def go():
            orchestrator = ScanOrchestrator(StubProbe())
            return await orchestrator.run(["x", "y"], on_record=seen.append)

        records = asyncio.run(go())

        assert seen == records

    def test_scan_streams_records(self):
        async def go():
            orchestrator = ScanOrchestrator(StubProbe())
            return [record.resource async for record in orchestrator.scan(["x", "y", "z"])]

        assert asyncio.run(go()) == ["x", "y", "z"]

    def test_bounded_concurrency(self):
        """Test resources overlap up to the worker limit and no further."""

        async def go():
            probe = StubProbe(delay=0.02)
            orchestrator = ScanOrchestrator(probe, concurrency=3)
            records = await orchestrator.run([f"bucket-{i}" for i in range(8)])
            return probe, records

        probe, records = asyncio.run(go())

        assert sorted(r.resource for r in records) == sorted(f"bucket-{i}" for i in range(8))
        assert probe.max_in_flight == 3
        for record in records:
            assert probes_of(record) == [
                ProbeKind.EXISTENCE,
                ProbeKind.ANONYMOUS_WRITE,
                ProbeKind.ANONYMOUS_DELETE,
            ]

    def test_sequential_by_default(self):
        async def go():
            probe = StubProbe(delay=0.01)
            await ScanOrchestrator(probe).run(["a", "b", "c"])
            return probe

        assert asyncio.run(go()).max_in_flight == 1

    def test_cleanup_survives_cancellation(self):
        """Test a started cleanup delete completes when the scan is cancelled."""

        async def go():
            probe = StubProbe(delete_delay=0.05)
            orchestrator = ScanOrchestrator(probe)
            task = asyncio.create_task(orchestrator.scan_resource("bucket"))
            await probe.delete_started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            return probe

        probe = asyncio.run(go())

        assert probe.delete_finished
