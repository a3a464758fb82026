"""
Observability for bucketprobe.

Provides the logging setup and the probe logger that turns verdicts into
report lines.
"""

from bucketprobe.observability.logging import (
    HumanReadableFormatter,
    ProbeLogger,
    StructuredFormatter,
    configure_logging,
    get_logger,
)

__all__ = [
    "HumanReadableFormatter",
    "ProbeLogger",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
]
