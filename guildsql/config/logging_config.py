"""
Database logging configuration.

This module sets up the ``db`` logger hierarchy used by every guildsql
component. The level comes from the ``logging`` section of guildsql.yaml;
formatting, handlers and credential redaction are configured here.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Any, Optional, Sequence

from ..security import SensitiveDataFilter, redact_params

DB_LOGGER_NAME = 'db'


class SafeFormatter(logging.Formatter):
    """Formatter that provides default values for missing context fields."""

    def format(self, record):
        if not hasattr(record, 'database_context'):
            record.database_context = 'db'
        return super().format(record)


def setup_db_logging(main_config: Dict[str, Any]) -> logging.Logger:
    """
    Setup database logging based on the main configuration.

    Args:
        main_config: Configuration dictionary with an optional ``logging`` section

    Returns:
        Configured ``db`` logger
    """
    logging_config = main_config.get('logging', {}) or {}
    log_level = str(logging_config.get('level', 'INFO')).upper()

    logger = logging.getLogger(DB_LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Remove any existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = SafeFormatter(
        '%(asctime)s.%(msecs)03d - [%(database_context)s] - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    sensitive_filter = SensitiveDataFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(sensitive_filter)
    logger.addHandler(console_handler)

    log_file = logging_config.get('file')
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(sensitive_filter)
        logger.addHandler(file_handler)

    # Prevent propagation to root logger to avoid duplicate messages
    logger.propagate = False

    return logger


def log_query(logger: logging.Logger, query: str, params: Optional[Sequence[Any]] = None,
              duration: Optional[float] = None) -> None:
    """
    Log an executed statement at DEBUG level.

    Args:
        logger: Database logger instance
        query: SQL query string
        params: Bound parameter values
        duration: Query execution time in seconds
    """
    if not logger.isEnabledFor(logging.DEBUG):
        return
    message = f"Query: {query}"
    if params:
        message += f" | Params: {redact_params(params)}"
    if duration is not None:
        message += f" | Duration: {duration:.3f}s"
    logger.debug(message)


def log_connection_event(logger: logging.Logger, event: str, details: Optional[str] = None) -> None:
    """
    Log connection pool events.

    Args:
        logger: Database logger instance
        event: Event type ('opened', 'closed', 'reconnect', 'error')
        details: Additional event details
    """
    message = f"Connection {event}"
    if details:
        message += f": {details}"
    if event == 'error':
        logger.error(message)
    elif event in ('opened', 'closed', 'reconnect'):
        logger.info(message)
    else:
        logger.debug(message)


class DatabaseLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds database context to log records.

    The ``database_context`` field shows the dialect and database the
    component talks to, e.g. ``single-file-engine:guildsql``.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg, kwargs):
        dialect = self.extra.get('dialect', 'db')
        database = self.extra.get('database')
        context = f"{dialect}:{database}" if database else str(dialect)

        kwargs.setdefault('extra', {})
        kwargs['extra']['database_context'] = context
        return msg, kwargs

    def query(self, query: str, params: Optional[Sequence[Any]] = None,
              duration: Optional[float] = None) -> None:
        """Log an executed statement."""
        log_query(self.logger, query, params, duration)

    def connection_event(self, event: str, details: Optional[str] = None) -> None:
        """Log a connection pool event."""
        log_connection_event(self.logger, event, details)
