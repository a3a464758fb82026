"""
Scan orchestration for bucketprobe.
"""

from bucketprobe.scanning.orchestrator import RecordCallback, ScanOrchestrator

__all__ = [
    "RecordCallback",
    "ScanOrchestrator",
]
