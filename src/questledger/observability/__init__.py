"""Observability module for questledger.

Provides structured logging with console and JSONL file output.
"""

from questledger.observability.logging import (
    JSONLFileHandler,
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
)

__all__ = [
    "JSONLFileHandler",
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "get_logs_dir",
]
