"""
Logging configuration for bucketprobe.

Scan output is log lines: one per probe, carrying the resource, the probe
kind and the verdict. Two formats are supported, human readable for
terminals and structured JSON for log aggregation.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from bucketprobe.models import ScanRecord, Verdict, VerdictKind

ROOT_LOGGER = "bucketprobe"

_RESERVED_ATTRS = frozenset({
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "exc_info",
    "exc_text",
    "thread",
    "threadName",
    "taskName",
    "message",
})


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per log record."""

    def __init__(
        self,
        include_timestamp: bool = True,
        include_logger: bool = True,
        extra_fields: dict[str, Any] | None = None,
    ):
        """
        Args:
            include_timestamp: Include timestamp in output
            include_logger: Include logger name in output
            extra_fields: Additional fields to include in every log
        """
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_logger = include_logger
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {}

        if self.include_timestamp:
            log_data["timestamp"] = datetime.now(timezone.utc).isoformat()

        log_data["level"] = record.levelname.lower()

        if self.include_logger:
            log_data["logger"] = record.name

        log_data["message"] = record.getMessage()

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        log_data.update(self.extra_fields)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formatter for terminals, with ANSI colors when attached to a TTY."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True, include_timestamp: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        parts = []

        if self.include_timestamp:
            timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
            parts.append(f"[{timestamp}]")

        level = record.levelname
        if self.use_colors and level in self.COLORS:
            level = f"{self.COLORS[level]}{level}{self.RESET}"
        parts.append(f"{level:>8}")

        parts.append(record.getMessage())

        output = " ".join(parts)

        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)

        return output


class ProbeLogger:
    """
    Wrapper around a stdlib logger with scan event helpers.

    Each helper emits one line and attaches the same facts as structured
    fields, so JSON output can be filtered without parsing messages.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log(self, level: int, message: str, **kwargs: Any) -> None:
        self.logger.log(level, message, extra=kwargs)

    def scan_started(self, scan_id: str, provider: str, resource_count: int) -> None:
        self._log(
            logging.DEBUG,
            f"Scan {scan_id} started: provider={provider} resources={resource_count}",
            event_type="scan.started",
            scan_id=scan_id,
            provider=provider,
            resource_count=resource_count,
        )

    def probe_completed(self, record: ScanRecord, verdict: Verdict) -> None:
        """Log the verdict of one probe for one resource."""
        message = f"bucket={record.resource}: {verdict.probe.value}"
        if verdict.permissions is not None:
            message += f" as {verdict.identity.value}"
        message += f" -> {verdict.describe()}"
        if verdict.permissions is not None and not verdict.permissions.is_empty:
            message += f" permissions={list(verdict.permissions)}"
        if "key_count" in verdict.detail:
            message += f" keys={verdict.detail['key_count']}"

        self._log(
            _verdict_level(verdict),
            message,
            event_type="probe.completed",
            resource=record.resource,
            provider=record.provider,
            probe=verdict.probe.value,
            verdict=verdict.kind.value,
            identity=verdict.identity.value,
            exists=verdict.exists,
            status=verdict.status,
            permissions=list(verdict.permissions) if verdict.permissions is not None else None,
        )

    def resource_failed(self, resource: str, error: str) -> None:
        self._log(
            logging.ERROR,
            f"bucket={resource}: scan aborted: {error}",
            event_type="resource.failed",
            resource=resource,
            error=error,
        )

    def scan_completed(
        self,
        scan_id: str,
        resource_count: int,
        duration_seconds: float,
    ) -> None:
        self._log(
            logging.DEBUG,
            f"Scan {scan_id} completed: {resource_count} resources in {duration_seconds:.2f}s",
            event_type="scan.completed",
            scan_id=scan_id,
            resource_count=resource_count,
            duration_seconds=duration_seconds,
        )


def _verdict_level(verdict: Verdict) -> int:
    # Only failures and unrecognized statuses rise above INFO
    if verdict.kind == VerdictKind.CONFIRMED:
        return logging.INFO if verdict.exists else logging.ERROR
    if verdict.is_failure:
        return logging.ERROR
    if verdict.kind == VerdictKind.AMBIGUOUS:
        return logging.WARNING
    return logging.INFO


def configure_logging(
    level: str = "INFO",
    format: str = "human",
    output: str = "stderr",
    extra_fields: dict[str, Any] | None = None,
) -> None:
    """
    Configure logging for bucketprobe.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format (human, json)
        output: Output destination (stderr, stdout)
        extra_fields: Extra fields to include in structured logs
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()
    root_logger.propagate = False

    if output == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.StreamHandler(sys.stderr)

    if format == "json":
        formatter: logging.Formatter = StructuredFormatter(extra_fields=extra_fields)
    else:
        formatter = HumanReadableFormatter()

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def get_logger(name: str) -> ProbeLogger:
    """
    Get a ProbeLogger for a module.

    Args:
        name: Logger name (typically the module's short name)
    """
    return ProbeLogger(f"{ROOT_LOGGER}.{name}")
