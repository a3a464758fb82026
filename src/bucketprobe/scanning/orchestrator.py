"""
Scan orchestrator for bucketprobe.

Runs a list of resource names through one provider probe. Each resource goes
through a strictly sequential pipeline (later probes depend on earlier
verdicts); resources themselves are independent and may be processed by a
bounded pool of workers. Records are streamed as soon as a resource is done.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import suppress
from typing import AsyncIterator, Callable, Sequence
from uuid import uuid4

from bucketprobe.models import ProbeKind, ScanRecord, Verdict
from bucketprobe.observability.logging import ProbeLogger, get_logger
from bucketprobe.probes.base import BaseProbe

logger = logging.getLogger(__name__)

RecordCallback = Callable[[ScanRecord], None]

# Upper bound on waiting for a shielded cleanup after cancellation
CLEANUP_GRACE_SECONDS = 10.0


class ScanOrchestrator:
    """
    Sequences the probe protocol over a list of resources.

    The orchestrator is provider-agnostic: the fixed order
    existence -> list -> write -> delete -> permissions is driven by the
    probe's declared capabilities, placeholders and identities.
    """

    def __init__(
        self,
        probe: BaseProbe,
        concurrency: int = 1,
        probe_logger: ProbeLogger | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            probe: Provider probe to run
            concurrency: Number of resources processed in parallel; 1 keeps
                input order
            probe_logger: Logger receiving one line per verdict
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._probe = probe
        self._concurrency = concurrency
        self._probe_logger = probe_logger or get_logger("scan")

    @property
    def probe(self) -> BaseProbe:
        return self._probe

    async def scan_resource(self, name: str) -> ScanRecord:
        """
        Run the full probe pipeline for one resource.

        Never raises for probe failures; an unexpected exception is stored
        on the record and the pipeline stops for this resource only.
        """
        record = ScanRecord(resource=name, provider=self._probe.provider)
        try:
            await self._run_pipeline(record)
        except asyncio.CancelledError:
            record.error = "cancelled"
            raise
        except Exception as e:
            record.error = f"{type(e).__name__}: {e}"
            self._probe_logger.resource_failed(name, record.error)
        finally:
            record.complete()
        return record

    async def _run_pipeline(self, record: ScanRecord) -> None:
        probe = self._probe
        name = record.resource

        existence = self._add(record, await probe.check_existence(name))
        exists = record.exists

        if probe.supports(ProbeKind.LIST_OBJECTS):
            if exists or not probe.list_requires_existence:
                self._add(record, await probe.list_objects(name))
            else:
                logger.debug(f"bucket={name}: skipping listing, {existence.describe()}")

        if probe.supports(ProbeKind.ANONYMOUS_WRITE):
            write = self._add(record, await probe.attempt_write(name))
            if write.is_allowed and probe.supports(ProbeKind.ANONYMOUS_DELETE):
                self._add(record, await self._cleanup(name))
        else:
            for kind in (ProbeKind.ANONYMOUS_WRITE, ProbeKind.ANONYMOUS_DELETE):
                if kind in probe.placeholders:
                    self._add(record, await self._placeholder(name, kind))

        if probe.supports(ProbeKind.PERMISSIONS_CHECK) and exists:
            for identity in probe.identities:
                self._add(record, await probe.check_permissions(name, identity))

    async def _placeholder(self, name: str, kind: ProbeKind) -> Verdict:
        if kind == ProbeKind.ANONYMOUS_WRITE:
            return await self._probe.attempt_write(name)
        return await self._probe.attempt_delete(name)

    async def _cleanup(self, name: str) -> Verdict:
        """
        Delete the object written by the write probe.

        The delete is shielded: if the scan is cancelled while it runs, it
        is still awaited (bounded) before the cancellation propagates.
        """
        task = asyncio.ensure_future(self._probe.attempt_delete(name))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            logger.warning(f"bucket={name}: scan cancelled, finishing cleanup delete")
            with suppress(Exception, asyncio.CancelledError):
                await asyncio.wait_for(task, CLEANUP_GRACE_SECONDS)
            raise

    def _add(self, record: ScanRecord, verdict: Verdict) -> Verdict:
        record.add(verdict)
        self._probe_logger.probe_completed(record, verdict)
        return verdict

    async def scan(self, names: Sequence[str]) -> AsyncIterator[ScanRecord]:
        """
        Scan resources, yielding each record as soon as it completes.

        With concurrency 1 records come out in input order; otherwise in
        completion order.
        """
        if self._concurrency == 1:
            for name in names:
                yield await self.scan_resource(name)
            return

        queue: asyncio.Queue[str] = asyncio.Queue()
        for name in names:
            queue.put_nowait(name)
        results: asyncio.Queue[ScanRecord | None] = asyncio.Queue()

        async def worker() -> None:
            try:
                while True:
                    try:
                        name = queue.get_nowait()
                    except asyncio.QueueEmpty:
                        return
                    await results.put(await self.scan_resource(name))
            finally:
                await results.put(None)

        workers_count = min(self._concurrency, len(names))
        workers = [asyncio.create_task(worker()) for _ in range(workers_count)]
        try:
            finished = 0
            while finished < workers_count:
                record = await results.get()
                if record is None:
                    finished += 1
                    continue
                yield record
        finally:
            for task in workers:
                task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

    async def run(
        self,
        names: Sequence[str],
        on_record: RecordCallback | None = None,
    ) -> list[ScanRecord]:
        """
        Scan all resources, passing each record to a callback as it lands.

        Args:
            names: Resource names
            on_record: Called once per completed record

        Returns:
            All records, in emission order
        """
        scan_id = str(uuid4())[:8]
        started = time.monotonic()
        self._probe_logger.scan_started(scan_id, self._probe.provider, len(names))

        records: list[ScanRecord] = []
        async for record in self.scan(names):
            records.append(record)
            if on_record is not None:
                on_record(record)

        self._probe_logger.scan_completed(
            scan_id, len(records), time.monotonic() - started
        )
        return records
