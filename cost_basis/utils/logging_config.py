"""
Ledger Logging Configuration

Provides the logging setup shared by every ledger module:
- Structured output for parsing audit trails, tagged with the lot involved
- Slow-replay tracking with a per-operation average
- Environment-based levels (LOG_LEVEL)

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Optional
import os


def lot_context(lot_id: str, account: str = "") -> Dict[str, str]:
    """
    Build the `extra` mapping that tags a log line with a lot.

    Usage:
        logger.debug("Transfer", extra=lot_context(lot.lot_id, lot.account))
    """
    context = f"lot={lot_id}"
    if account:
        context += f" account={account}"
    return {'lot_context': f"{{{context}}}"}


class StructuredFormatter(logging.Formatter):
    """
    Structured log formatter for ledger audit output.

    Format: [TIMESTAMP] [LEVEL] [MODULE:FUNCTION:LINE] MESSAGE {lot=ID account=NAME}
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        location = f"{record.module}:{record.funcName}:{record.lineno}"

        base_msg = f"[{timestamp}] [{record.levelname:8s}] [{location}] {record.getMessage()}"

        context = getattr(record, 'lot_context', '')
        if context:
            base_msg += f" {context}"

        if record.exc_info:
            base_msg += f"\n{self.formatException(record.exc_info)}"

        return base_msg


class PerformanceLogger:
    """
    Context manager that reports how long a batch of ledger operations took.

    With an operation count, the average per operation is reported too.
    """

    def __init__(
        self,
        logger: logging.Logger,
        operation: str,
        threshold_ms: float = 1000,
        count: Optional[int] = None
    ):
        self.logger = logger
        self.operation = operation
        self.threshold_ms = threshold_ms
        self.count = count
        self.start_time = None
        self.duration_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = datetime.now()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time:
            self.duration_ms = (datetime.now() - self.start_time).total_seconds() * 1000

            message = f"{self.operation} took {self.duration_ms:.1f}ms"
            if self.count:
                message += f" ({self.count} operations, {self.duration_ms / self.count:.2f}ms each)"

            if self.duration_ms > self.threshold_ms:
                self.logger.warning(f"SLOW: {message}")
            else:
                self.logger.debug(message)


def setup_logger(
    name: str,
    level: Optional[str] = None,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up a logger with structured formatting and optional file output.

    Args:
        name: Logger name (usually __name__)
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to env var or INFO
        log_file: Optional file path for logs

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    if level is None:
        level = os.getenv('LOG_LEVEL', 'INFO').upper()

    log_level = getattr(logging, level, logging.INFO)
    logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(StructuredFormatter())
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(log_level)
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def get_perf_logger(
    logger: logging.Logger,
    operation: str,
    threshold_ms: float = 1000,
    count: Optional[int] = None
) -> PerformanceLogger:
    """
    Get a performance logger context manager.

    Usage:
        with get_perf_logger(logger, "replay", threshold_ms=500, count=len(records)):
            ...

    Args:
        logger: Logger instance
        operation: Operation name for logging
        threshold_ms: Milliseconds threshold for SLOW warning
        count: Number of ledger operations in the batch, if known
    """
    return PerformanceLogger(logger, operation, threshold_ms, count)
