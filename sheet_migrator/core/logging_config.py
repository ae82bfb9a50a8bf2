"""Logging configuration for the sheet migrator with dual output (console + files)."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

ENGINE_LOGGER = "sheet_migrator"
REMOTE_LOGGER = "remote"


def setup_logging(
    log_dir: Path | str | None = Path("logs"),
    log_level: str | None = None,
    max_file_size_mb: int = 10,
) -> None:
    """Setup dual logging system: console + files with automatic truncation.

    Creates two log files:
    - migrator.log: Engine stages, plan and run summaries
    - remote.log: Store client calls and retries

    Args:
        log_dir: Directory for log files, None for console-only logging
        log_level: Log level (defaults to LOG_LEVEL env var or INFO)
        max_file_size_mb: Max file size before truncation (no backup files kept)
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")

    log_level_num = getattr(logging, log_level.upper(), logging.INFO)
    max_bytes = max_file_size_mb * 1024 * 1024

    # Clear any existing handlers to prevent duplicates
    logging.getLogger().handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level_num)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level_num)
    root_logger.addHandler(console_handler)

    file_handlers: list[RotatingFileHandler] = []
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        targets = ((ENGINE_LOGGER, "migrator.log"), (REMOTE_LOGGER, "remote.log"))
        for logger_name, file_name in targets:
            handler = RotatingFileHandler(
                log_dir / file_name,
                maxBytes=max_bytes,
                backupCount=0,  # Don't keep old files, just truncate
                encoding="utf-8",
            )
            handler.setLevel(log_level_num)
            named_logger = logging.getLogger(logger_name)
            named_logger.handlers.clear()
            named_logger.addHandler(handler)
            named_logger.propagate = True  # Also send to console via root logger
            file_handlers.append(handler)

    from structlog.stdlib import BoundLogger, LoggerFactory, ProcessorFormatter

    renderer = (
        structlog.dev.ConsoleRenderer()
        if sys.stderr.isatty()
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=True,
    )
    console_handler.setFormatter(ProcessorFormatter(processor=renderer))
    for handler in file_handlers:
        handler.setFormatter(ProcessorFormatter(processor=structlog.processors.JSONRenderer()))

    get_migrator_logger().info(
        "Logging system initialized",
        log_dir=str(log_dir.absolute()) if isinstance(log_dir, Path) else None,
        log_level=log_level,
        max_file_size_mb=max_file_size_mb,
    )


def get_migrator_logger() -> Any:
    """Get logger for engine operations (writes to migrator.log)."""
    return structlog.get_logger(ENGINE_LOGGER)


def get_remote_logger() -> Any:
    """Get logger for store client operations (writes to remote.log)."""
    return structlog.get_logger(REMOTE_LOGGER)
