"""
Configuration management for bucketprobe.
"""

from bucketprobe.config.probe_config import (
    AzureSettings,
    GCSSettings,
    ProbeConfiguration,
    S3Settings,
    load_config_from_env,
)

__all__ = [
    "AzureSettings",
    "GCSSettings",
    "ProbeConfiguration",
    "S3Settings",
    "load_config_from_env",
]
