"""
Exception hierarchy for the guildsql persistence layer.

Most of these never reach callers of the public API: the executor catches
them, logs them and reports them through ``QueryOutcome``. They are raised
directly only where construction-time validation fails or a caller asks for
it explicitly (``QueryOutcome.unwrap()``).
"""


class GuildSQLError(Exception):
    """Base exception for all guildsql errors."""
    pass


class ConfigurationError(GuildSQLError, ValueError):
    """Raised when the database configuration is invalid."""
    pass


class ParameterError(GuildSQLError):
    """Raised when query arguments cannot be bound."""
    pass


class UnsupportedParameterError(ParameterError, TypeError):
    """Raised when an argument has a type the binder does not map."""
    pass


class ParameterCountError(ParameterError):
    """Raised when placeholders and arguments do not line up."""
    pass


class ConnectionClosedError(GuildSQLError):
    """Raised when an operation finds its pool handle already closed."""
    pass


class QueryFailedError(GuildSQLError):
    """Raised by ``QueryOutcome.unwrap()`` for calls that did not complete."""

    def __init__(self, message: str, sql: str = "", cause: Exception = None):
        super().__init__(message)
        self.sql = sql
        self.cause = cause


class MigrationError(GuildSQLError):
    """Raised when a migration or seed unit cannot be read or applied."""
    pass
