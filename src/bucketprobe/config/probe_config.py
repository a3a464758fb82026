"""
Probe configuration for bucketprobe.

Provides configuration for scan parameters: timeouts, concurrency, logging
and the per-provider settings (S3 region and credentials, Azure storage
account, GCS credential source).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

from bucketprobe.auth.gcp import CREDENTIALS_ENV_VAR, READ_ONLY_SCOPE
from bucketprobe.errors import ConfigurationError
from bucketprobe.probes.s3 import WRITE_PROBE_KEY
from bucketprobe.transport import DEFAULT_TIMEOUT_SECONDS

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("human", "json")
OUTPUT_MODES = ("log", "json")


@dataclass
class S3Settings:
    """Settings for the S3 probe."""

    region: str = ""
    profile: str = ""
    anonymous: bool = False
    timeout: float | None = None  # None uses the global timeout
    list_max_keys: int = 100
    write_key: str = WRITE_PROBE_KEY

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "region": self.region,
            "profile": self.profile,
            "anonymous": self.anonymous,
            "timeout": self.timeout,
            "list_max_keys": self.list_max_keys,
            "write_key": self.write_key,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> S3Settings:
        """Create from dictionary."""
        timeout = data.get("timeout")
        return cls(
            region=data.get("region", ""),
            profile=data.get("profile", ""),
            anonymous=bool(data.get("anonymous", False)),
            timeout=float(timeout) if timeout is not None else None,
            list_max_keys=int(data.get("list_max_keys", 100)),
            write_key=data.get("write_key", WRITE_PROBE_KEY),
        )


@dataclass
class AzureSettings:
    """Settings for the Azure Blob probe."""

    account: str = ""
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    def to_dict(self) -> dict[str, Any]:
        return {"account": self.account, "timeout": self.timeout}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AzureSettings:
        return cls(
            account=data.get("account", ""),
            timeout=float(data.get("timeout", DEFAULT_TIMEOUT_SECONDS)),
        )


@dataclass
class GCSSettings:
    """Settings for the GCS probe and permission enumerator."""

    credentials_env: str = CREDENTIALS_ENV_VAR
    scopes: list[str] = field(default_factory=lambda: [READ_ONLY_SCOPE])
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    def to_dict(self) -> dict[str, Any]:
        return {
            "credentials_env": self.credentials_env,
            "scopes": list(self.scopes),
            "timeout": self.timeout,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GCSSettings:
        return cls(
            credentials_env=data.get("credentials_env", CREDENTIALS_ENV_VAR),
            scopes=list(data.get("scopes", [READ_ONLY_SCOPE])),
            timeout=float(data.get("timeout", DEFAULT_TIMEOUT_SECONDS)),
        )


@dataclass
class ProbeConfiguration:
    """
    Complete probe configuration.

    Values from a file or the environment are overridden by CLI flags;
    validate() is called once all sources are merged.
    """

    timeout: float = DEFAULT_TIMEOUT_SECONDS
    concurrency: int = 1
    log_level: str = "INFO"
    log_format: str = "human"
    output: str = "log"
    s3: S3Settings = field(default_factory=S3Settings)
    azure: AzureSettings = field(default_factory=AzureSettings)
    gcs: GCSSettings = field(default_factory=GCSSettings)

    @property
    def s3_timeout(self) -> float:
        """Effective timeout for S3 requests."""
        return self.s3.timeout if self.s3.timeout is not None else self.timeout

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ConfigurationError: If a value is out of range
        """
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        if self.concurrency < 1:
            raise ConfigurationError(
                f"concurrency must be at least 1, got {self.concurrency}"
            )
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(f"unknown log level: {self.log_level}")
        if self.log_format not in LOG_FORMATS:
            raise ConfigurationError(f"unknown log format: {self.log_format}")
        if self.output not in OUTPUT_MODES:
            raise ConfigurationError(f"unknown output mode: {self.output}")
        if self.s3.list_max_keys < 1:
            raise ConfigurationError("s3.list_max_keys must be at least 1")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "timeout": self.timeout,
            "concurrency": self.concurrency,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "output": self.output,
            "s3": self.s3.to_dict(),
            "azure": self.azure.to_dict(),
            "gcs": self.gcs.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProbeConfiguration:
        """Create from dictionary."""
        return cls(
            timeout=float(data.get("timeout", DEFAULT_TIMEOUT_SECONDS)),
            concurrency=int(data.get("concurrency", 1)),
            log_level=str(data.get("log_level", "INFO")),
            log_format=str(data.get("log_format", "human")),
            output=str(data.get("output", "log")),
            s3=S3Settings.from_dict(data.get("s3") or {}),
            azure=AzureSettings.from_dict(data.get("azure") or {}),
            gcs=GCSSettings.from_dict(data.get("gcs") or {}),
        )

    @classmethod
    def from_file(cls, path: str) -> ProbeConfiguration:
        """
        Load configuration from a JSON or YAML file.

        Raises:
            ConfigurationError: If the file cannot be read or parsed, or holds
                a value of the wrong type
        """
        path = os.path.expanduser(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.endswith(".json"):
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigurationError(f"cannot read config file {path}: {e}") from e
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"invalid config file {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"config file {path} must contain a mapping")
        try:
            return cls.from_dict(data)
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid value in config file {path}: {e}") from e


def load_config_from_env(environ: dict[str, str] | None = None) -> ProbeConfiguration:
    """
    Load configuration from environment variables.

    Environment variables:
        BUCKETPROBE_CONFIG_FILE: Path to configuration file (loaded first)
        BUCKETPROBE_LOG_LEVEL: Log level
        BUCKETPROBE_LOG_FORMAT: Log format (human, json)
        BUCKETPROBE_TIMEOUT: Request timeout in seconds
        BUCKETPROBE_CONCURRENCY: Number of resources probed in parallel

    Returns:
        ProbeConfiguration instance
    """
    env = os.environ if environ is None else environ

    config_file = env.get("BUCKETPROBE_CONFIG_FILE")
    if config_file:
        config = ProbeConfiguration.from_file(config_file)
    else:
        config = ProbeConfiguration()

    log_level = env.get("BUCKETPROBE_LOG_LEVEL")
    if log_level:
        config.log_level = log_level.upper()

    log_format = env.get("BUCKETPROBE_LOG_FORMAT")
    if log_format:
        config.log_format = log_format.lower()

    timeout = env.get("BUCKETPROBE_TIMEOUT")
    if timeout:
        try:
            config.timeout = float(timeout)
        except ValueError:
            raise ConfigurationError(f"BUCKETPROBE_TIMEOUT is not a number: {timeout}")

    concurrency = env.get("BUCKETPROBE_CONCURRENCY")
    if concurrency:
        try:
            config.concurrency = int(concurrency)
        except ValueError:
            raise ConfigurationError(
                f"BUCKETPROBE_CONCURRENCY is not an integer: {concurrency}"
            )

    return config
