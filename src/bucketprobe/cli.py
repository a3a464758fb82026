"""
bucketprobe CLI entry point.

Subcommands:
- s3       probe S3 buckets (existence, listing, write, delete)
- gcs      probe GCS buckets (existence, anonymous vs authenticated IAM)
- storage  probe Azure Blob containers of one storage account
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Awaitable, Callable, Sequence

from bucketprobe import __version__
from bucketprobe.auth.aws import S3RequestSigner, validate_region
from bucketprobe.auth.gcp import ServiceAccountTokenProvider
from bucketprobe.config import ProbeConfiguration, load_config_from_env
from bucketprobe.errors import ConfigurationError
from bucketprobe.models import ScanRecord
from bucketprobe.observability import configure_logging
from bucketprobe.probes import AzureBlobProbe, BaseProbe, GCSProbe, S3Probe
from bucketprobe.scanning import ScanOrchestrator
from bucketprobe.transport import HttpTransport

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_RESOURCE_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130

ProbeBuilder = Callable[[HttpTransport], Awaitable[BaseProbe]]


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="bucketprobe",
        description="bucketprobe - public access checks for cloud object storage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"bucketprobe {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (show denied probes and scan events)",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only show warnings and errors",
    )
    parser.add_argument(
        "--log-format",
        choices=["human", "json"],
        help="Log line format (default: human)",
    )
    parser.add_argument(
        "--config",
        help="Path to a JSON or YAML configuration file",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        help="Number of resources probed in parallel (default: 1)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Request timeout in seconds (default: 5)",
    )
    parser.add_argument(
        "--output",
        choices=["log", "json"],
        help="Report as log lines only, or also one JSON record per line on stdout",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    s3_parser = subparsers.add_parser("s3", help="Probe AWS S3 buckets")
    s3_parser.add_argument("buckets", nargs="+", help="Bucket names")
    s3_parser.add_argument(
        "-r",
        "--region",
        help="Region capability probes are sent to (e.g. us-east-1)",
    )
    s3_parser.add_argument(
        "--profile",
        help="AWS profile used to sign requests",
    )
    s3_parser.add_argument(
        "--anonymous",
        action="store_true",
        help="Send unsigned requests even when credentials are available",
    )
    s3_parser.add_argument(
        "--max-keys",
        type=int,
        help="max-keys for the listing probe (default: 100)",
    )

    gcs_parser = subparsers.add_parser("gcs", help="Probe Google Cloud Storage buckets")
    gcs_parser.add_argument("buckets", nargs="+", help="Bucket names")
    gcs_parser.add_argument(
        "--credentials-env",
        help="Environment variable holding the service-account key path "
        "(default: GOOGLE_APPLICATION_CREDENTIALS)",
    )

    storage_parser = subparsers.add_parser(
        "storage", help="Probe Azure Blob Storage containers"
    )
    storage_parser.add_argument("containers", nargs="+", help="Container names")
    storage_parser.add_argument(
        "-a",
        "--account",
        help="Storage account name",
    )

    return parser


def load_configuration(args: argparse.Namespace) -> ProbeConfiguration:
    """
    Merge configuration sources: file, then environment, then flags.

    Raises:
        ConfigurationError: If a source is unreadable or a value is invalid
    """
    environ = dict(os.environ)
    if args.config:
        environ["BUCKETPROBE_CONFIG_FILE"] = args.config
    config = load_config_from_env(environ)

    if args.verbose:
        config.log_level = "DEBUG"
    elif args.quiet:
        config.log_level = "WARNING"
    if args.log_format:
        config.log_format = args.log_format
    if args.concurrency is not None:
        config.concurrency = args.concurrency
    if args.timeout is not None:
        config.timeout = args.timeout
    if args.output:
        config.output = args.output

    if args.command == "s3":
        if args.region:
            config.s3.region = args.region
        if args.profile:
            config.s3.profile = args.profile
        if args.anonymous:
            config.s3.anonymous = True
        if args.max_keys is not None:
            config.s3.list_max_keys = args.max_keys
    elif args.command == "gcs":
        if args.credentials_env:
            config.gcs.credentials_env = args.credentials_env
    elif args.command == "storage":
        if args.account:
            config.azure.account = args.account

    config.validate()
    return config


def resource_names(names: Sequence[str]) -> list[str]:
    """
    Strip and check the resource list.

    Raises:
        ConfigurationError: If no usable name is given
    """
    cleaned = [n.strip() for n in names if n and n.strip()]
    if not cleaned:
        raise ConfigurationError("at least one resource name is required")
    return cleaned


def print_record(record: ScanRecord) -> None:
    """Write a record as one JSON line on stdout."""
    print(json.dumps(record.to_dict(), default=str), flush=True)


async def run_scan(
    build_probe: ProbeBuilder,
    names: list[str],
    config: ProbeConfiguration,
) -> list[ScanRecord]:
    """Run one scan over a shared HTTP client."""
    on_record = print_record if config.output == "json" else None
    async with HttpTransport(timeout=config.timeout) as transport:
        probe = await build_probe(transport)
        orchestrator = ScanOrchestrator(probe, concurrency=config.concurrency)
        return await orchestrator.run(names, on_record=on_record)


def _execute(
    args: argparse.Namespace,
    names: Sequence[str],
    make_builder: Callable[[ProbeConfiguration], ProbeBuilder],
) -> int:
    config = load_configuration(args)
    configure_logging(level=config.log_level, format=config.log_format)
    names = resource_names(names)
    builder = make_builder(config)

    records = asyncio.run(run_scan(builder, names, config))

    failed = [r for r in records if r.error]
    if failed:
        logger.error(f"{len(failed)} of {len(records)} resources could not be scanned")
        return EXIT_RESOURCE_FAILED
    return EXIT_OK


def cmd_s3(args: argparse.Namespace) -> int:
    """
    Probe S3 buckets.

    Returns:
        Exit code (0 success, 1 resource failure, 2 configuration error)
    """

    def make_builder(config: ProbeConfiguration) -> ProbeBuilder:
        region = validate_region(config.s3.region)

        async def build(transport: HttpTransport) -> BaseProbe:
            signer = await asyncio.to_thread(
                S3RequestSigner.from_session,
                config.s3.profile or None,
                config.s3.anonymous,
            )
            return S3Probe(
                transport,
                region,
                signer=signer,
                timeout=config.s3_timeout,
                list_max_keys=config.s3.list_max_keys,
                write_key=config.s3.write_key,
            )

        return build

    return _execute(args, args.buckets, make_builder)


def cmd_gcs(args: argparse.Namespace) -> int:
    """
    Probe GCS buckets.

    A missing credential variable does not stop the scan: the anonymous
    checks still run and the authenticated check reports a configuration
    error.
    """

    def make_builder(config: ProbeConfiguration) -> ProbeBuilder:
        async def build(transport: HttpTransport) -> BaseProbe:
            token_provider = ServiceAccountTokenProvider(
                env_var=config.gcs.credentials_env,
                scopes=config.gcs.scopes,
                timeout=config.gcs.timeout,
            )
            return GCSProbe(transport, token_provider, timeout=config.gcs.timeout)

        return build

    return _execute(args, args.buckets, make_builder)


def cmd_storage(args: argparse.Namespace) -> int:
    """Probe Azure Blob containers."""

    def make_builder(config: ProbeConfiguration) -> ProbeBuilder:
        if not config.azure.account:
            raise ConfigurationError("an Azure storage account is required (-a)")

        async def build(transport: HttpTransport) -> BaseProbe:
            return AzureBlobProbe(
                transport, config.azure.account, timeout=config.azure.timeout
            )

        return build

    return _execute(args, args.containers, make_builder)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    command_handlers = {
        "s3": cmd_s3,
        "gcs": cmd_gcs,
        "storage": cmd_storage,
    }

    handler = command_handlers[args.command]
    try:
        return handler(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
