"""
Sheet Migrator command line entry point.

Runs one migration pass over the configured spreadsheet and exits with a
status an external scheduler can act on: 0 success, 1 run aborted (store left
in a recoverable state), 2 configuration error.
"""

import argparse
import asyncio
import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .core.config_loader import DEFAULT_CONFIG_FILE, MigratorConfig, load_config
from .core.exceptions import ConfigurationError, MigrationAborted, RemoteStoreError
from .core.migration import MigrationManager
from .core.retry import RetryManager
from .core.store import BaseTabularStore, GoogleSheetsStore

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_CONFIG_ERROR = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    load_dotenv()

    default_log_level = os.getenv("LOG_LEVEL", "INFO")
    default_config = os.getenv("MIGRATOR_CONFIG", DEFAULT_CONFIG_FILE)

    parser = argparse.ArgumentParser(
        description="Classify spreadsheet rows and move them to their destination tabs"
    )
    parser.add_argument("--config", default=default_config, help="Configuration file path")
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Plan only; write nothing to the spreadsheet"
    )
    parser.add_argument(
        "--validate-config", action="store_true", help="Validate configuration and exit"
    )

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    log_dir = _setup_log_directory()
    logger = _setup_logging_system(args, log_dir)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        logger.error("Configuration invalid", config=args.config, error=str(e))
        return EXIT_CONFIG_ERROR

    if args.validate_config:
        logger.info("Configuration is valid", config=config.config_file)
        return EXIT_OK

    return asyncio.run(_run(config, args.dry_run, logger))


async def open_store(config: MigratorConfig) -> BaseTabularStore:
    """Connect to the configured remote store."""
    return await GoogleSheetsStore.connect(config.store, RetryManager(config.retry))


async def _run(config: MigratorConfig, dry_run: bool, logger: Any) -> int:
    """Run one pass and translate the outcome into an exit status."""
    try:
        store = await open_store(config)
        report = await MigrationManager(store, config).run(dry_run=dry_run)
    except ConfigurationError as e:
        logger.error("Configuration invalid", error=str(e))
        return EXIT_CONFIG_ERROR
    except MigrationAborted as e:
        logger.error(
            "Run failed; store left in a recoverable state",
            last_completed_stage=e.report.last_completed_stage,
            error=e.report.error,
        )
        _print_report(e.report.summary())
        return EXIT_ABORTED
    except RemoteStoreError as e:
        logger.error("Unable to reach the remote store", error=str(e))
        return EXIT_ABORTED

    _print_report(report.summary())
    return EXIT_OK


def _print_report(summary: dict[str, Any]) -> None:
    print(json.dumps(summary, sort_keys=True))


def _setup_log_directory() -> str | None:
    """Setup log directory with fallback options."""
    log_dir_candidates = [
        os.getenv("LOG_DIR"),  # Explicit environment override
        str(Path.home() / ".local" / "share" / "sheet-migrator" / "logs"),  # User default
        str(Path(tempfile.gettempdir()) / "sheet-migrator-logs"),  # System fallback
    ]

    for candidate in log_dir_candidates:
        if candidate:
            try:
                candidate_path = Path(candidate)
                candidate_path.mkdir(parents=True, exist_ok=True)
                if candidate_path.is_dir() and os.access(candidate_path, os.W_OK):
                    return str(candidate_path)
            except OSError:
                continue

    print("Warning: Unable to create log directory, using console-only logging", file=sys.stderr)
    return None


def _setup_logging_system(args: argparse.Namespace, log_dir: str | None) -> Any:
    """Setup logging system with error handling."""
    from .core.logging_config import get_migrator_logger, setup_logging

    try:
        max_file_size_mb = int(os.getenv("LOG_FILE_SIZE_MB", "10"))
        if max_file_size_mb < 1 or max_file_size_mb > 100:
            max_file_size_mb = 10  # Reset to default if out of range
    except ValueError:
        max_file_size_mb = 10

    try:
        setup_logging(log_dir=log_dir, log_level=args.log_level, max_file_size_mb=max_file_size_mb)
    except OSError as e:
        print(f"Logging setup failed ({e}), using console-only logging", file=sys.stderr)
        setup_logging(log_dir=None, log_level=args.log_level)
    return get_migrator_logger()


if __name__ == "__main__":
    sys.exit(main())
