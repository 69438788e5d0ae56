"""Security utilities for the guildsql persistence layer.

This module provides:
- Identifier validation for table and column names that end up in SQL text
- Redaction of bound parameters before they are logged
- Log sanitization for credentials
"""

import re
from typing import Any, Optional, Sequence, Tuple
import logging

logger = logging.getLogger(__name__)

_IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

# Longest parameter representation written to logs
MAX_LOGGED_PARAM_LENGTH = 64


class SecurityError(Exception):
    """Base exception for security-related errors."""
    pass


class QueryInjectionError(SecurityError, ValueError):
    """Raised when an identifier could smuggle SQL into a statement."""
    pass


def validate_identifier(identifier: str, kind: str = "identifier") -> str:
    """Validate a table or column name.

    Args:
        identifier: Name to validate
        kind: Human readable kind used in the error message

    Returns:
        The unchanged identifier

    Raises:
        QueryInjectionError: If the name contains anything but letters,
            digits and underscores, or starts with a digit
    """
    if not isinstance(identifier, str) or not _IDENTIFIER_PATTERN.match(identifier):
        raise QueryInjectionError(f"Invalid {kind} name: {identifier!r}")
    return identifier


def redact_params(params: Sequence[Any]) -> Tuple[str, ...]:
    """Render query parameters for logging.

    Long values are truncated so blobs and JSON documents do not flood the
    log, and the rendered values pass through the same sanitizer as log
    messages.
    """
    rendered = []
    for value in params:
        text = repr(value)
        if len(text) > MAX_LOGGED_PARAM_LENGTH:
            text = text[:MAX_LOGGED_PARAM_LENGTH] + f"...<{len(text)} chars>"
        rendered.append(sanitize_log_message(text))
    return tuple(rendered)


def sanitize_log_message(message: str) -> str:
    """Remove credentials from log messages.

    Args:
        message: Log message to sanitize

    Returns:
        Sanitized message
    """
    # key=value style secrets
    message = re.sub(
        r'(password|passwd|token|secret)\s*[=:]\s*[^\s&]+',
        r'\1=***REDACTED***',
        message,
        flags=re.IGNORECASE
    )

    # user:password@host in connection URLs
    message = re.sub(r'(://[^:/@\s]+):[^@\s]+@', r'\1:***@', message)

    return message


class SensitiveDataFilter(logging.Filter):
    """Logging filter that removes credentials from records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Sanitize the record in place; never drops it."""
        if isinstance(record.msg, str):
            try:
                message = record.getMessage()
            except (TypeError, ValueError):
                message = record.msg
            else:
                record.args = None
            record.msg = sanitize_log_message(message)
        return True


def setup_secure_logging(logger_name: Optional[str] = None) -> logging.Logger:
    """Attach the sensitive data filter to a logger and its handlers.

    Args:
        logger_name: Name of logger (None for root logger)

    Returns:
        Configured logger
    """
    target = logging.getLogger(logger_name)
    sensitive_filter = SensitiveDataFilter()

    for handler in target.handlers:
        handler.addFilter(sensitive_filter)

    target.addFilter(sensitive_filter)
    return target
