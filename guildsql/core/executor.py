"""
Query executor with reconnect-and-retry.

``QueryExecutor.execute`` runs one SQL statement with positional arguments
and reports the result as a ``QueryOutcome``. Statements starting with
``SELECT`` are materialized into a ``StoredResultSet``; everything else runs
as an update in its own transaction.

Failure policy:
- never connected: the call is skipped without any reconnect attempt
- transient disconnect after an earlier successful connect: one reconnect
  and one retry of the whole call
- anything else: logged with the SQL text and arguments, reported as FAILED

No exception escapes ``execute``, ``execute_batch`` or ``query_sql``.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Tuple
import logging

from sqlalchemy.exc import DBAPIError, DisconnectionError

from ..config.logging_config import DatabaseLoggerAdapter
from ..exceptions import ConnectionClosedError, QueryFailedError
from ..security import redact_params
from .binder import ParameterBinder
from .connection import ConnectionManager, PoolHandle
from .result_set import StoredResultSet

# Reconnect-and-retry cycles allowed per call
MAX_RETRIES = 1

Statement = Tuple[str, Sequence[Any]]


class OutcomeStatus(str, Enum):
    """How a call ended."""
    ROWS = "rows"          # SELECT completed, result_set holds the rows
    UPDATED = "updated"    # update/DDL completed
    SKIPPED = "skipped"    # database never reachable, nothing was sent
    FAILED = "failed"      # call did not complete, error holds the cause


@dataclass
class QueryOutcome:
    """Result-or-error value returned by the executor."""

    status: OutcomeStatus
    sql: str
    result_set: Optional[StoredResultSet] = None
    rowcount: Optional[int] = None
    error: Optional[BaseException] = None
    attempts: int = 1
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        """True when the statement completed."""
        return self.status in (OutcomeStatus.ROWS, OutcomeStatus.UPDATED)

    def unwrap(self) -> Optional[StoredResultSet]:
        """
        Return the result set of a completed call.

        Raises:
            QueryFailedError: If the call was skipped or failed
        """
        if not self.ok:
            reason = self.error or "database was never connected"
            raise QueryFailedError(f"Query did not complete: {reason}", self.sql, self.error)
        return self.result_set


def is_select(sql: str) -> bool:
    """Only a leading SELECT makes a statement a query."""
    return sql.lstrip().upper().startswith("SELECT")


def is_disconnect(error: BaseException) -> bool:
    """True for failures caused by a lost connection rather than the statement."""
    if isinstance(error, (DisconnectionError, ConnectionClosedError)):
        return True
    return isinstance(error, DBAPIError) and bool(error.connection_invalidated)


class QueryExecutor:
    """Executes statements through the connection manager's current handle."""

    def __init__(self, connection: ConnectionManager):
        """
        Initialize executor.

        Args:
            connection: Connection manager owning the pool handle
        """
        self.connection = connection
        self.slow_query_threshold = connection.config.slow_query_threshold
        self.logger = DatabaseLoggerAdapter(
            logging.getLogger('db.executor'),
            dict(connection.logger.extra)
        )

        self.query_stats = {
            'total_queries': 0,
            'failed_queries': 0,
            'skipped_queries': 0,
            'retries': 0,
            'slow_queries': 0,
            'total_query_time': 0.0,
        }

    def execute(self, sql: str, *args: Any) -> QueryOutcome:
        """
        Execute one statement.

        Args:
            sql: SQL text with ``?`` placeholders
            *args: Arguments in placeholder order (plain values or ``Param``)

        Returns:
            QueryOutcome describing the result
        """
        select = is_select(sql)
        if self._never_connected():
            return self._skipped(sql, select)
        try:
            statement = ParameterBinder.bind(sql, args)
        except Exception as e:
            return self._failed(sql, args, e, attempts=0)

        def work(handle: PoolHandle) -> QueryOutcome:
            if select:
                with handle.engine.connect() as conn:
                    result_set = StoredResultSet.from_cursor(conn.execute(statement))
                return QueryOutcome(OutcomeStatus.ROWS, sql, result_set=result_set,
                                    rowcount=result_set.row_count)
            with handle.engine.begin() as conn:
                result = conn.execute(statement)
                rowcount = result.rowcount if result.rowcount is not None and result.rowcount >= 0 else None
            return QueryOutcome(OutcomeStatus.UPDATED, sql, rowcount=rowcount)

        return self._with_retry(sql, args, select, work)

    def execute_batch(self, statements: Sequence[Statement]) -> QueryOutcome:
        """
        Execute several statements in one transaction.

        Either every statement commits or none does. Results of SELECTs in a
        batch are discarded.

        Args:
            statements: ``(sql, args)`` pairs

        Returns:
            QueryOutcome with status UPDATED and the summed rowcount
        """
        label = "; ".join(sql for sql, _ in statements)
        all_args = tuple(a for _, args in statements for a in args)
        if self._never_connected():
            return self._skipped(label, False)
        try:
            bound = [ParameterBinder.bind(sql, args) for sql, args in statements]
        except Exception as e:
            return self._failed(label, all_args, e, attempts=0)

        def work(handle: PoolHandle) -> QueryOutcome:
            total = 0
            with handle.engine.begin() as conn:
                for statement in bound:
                    result = conn.execute(statement)
                    if result.rowcount is not None and result.rowcount > 0:
                        total += result.rowcount
            return QueryOutcome(OutcomeStatus.UPDATED, label, rowcount=total)

        return self._with_retry(label, all_args, False, work)

    def query_sql(self, sql: str, *args: Any) -> Optional[StoredResultSet]:
        """
        Execute and return only the result set.

        ``None`` means either "update completed" or "call failed"; use
        ``execute`` when the difference matters.
        """
        return self.execute(sql, *args).result_set

    def _with_retry(self, sql: str, args: Sequence[Any], select: bool,
                    work: Callable[[PoolHandle], QueryOutcome]) -> QueryOutcome:
        start_time = time.time()
        retries = 0

        while True:
            handle = self.connection.current_handle()

            if handle is None or not handle.is_open():
                if not self.connection.connected_once:
                    return self._skipped(sql, select)
                if retries >= MAX_RETRIES:
                    return self._failed(sql, args, ConnectionClosedError("Not connected to the database"),
                                        attempts=retries + 1, start_time=start_time)
                retries += 1
                self.query_stats['retries'] += 1
                self.connection.reconnect(handle)
                continue

            try:
                if handle.closed:
                    raise ConnectionClosedError("Pool handle was closed")
                outcome = work(handle)
            except Exception as e:
                if is_disconnect(e) and self.connection.connected_once and retries < MAX_RETRIES:
                    self.logger.error(f"Couldn't send query, most likely a connection issue: {e}")
                    retries += 1
                    self.query_stats['retries'] += 1
                    self.connection.reconnect(handle)
                    continue
                return self._failed(sql, args, e, attempts=retries + 1, start_time=start_time)

            outcome.attempts = retries + 1
            outcome.duration = time.time() - start_time
            self._track_query_performance(sql, outcome.duration)
            self.logger.query(sql, args, outcome.duration)
            return outcome

    def _never_connected(self) -> bool:
        """True when no connect ever succeeded and there is no open handle."""
        if self.connection.connected_once:
            return False
        handle = self.connection.current_handle()
        return handle is None or not handle.is_open()

    def _skipped(self, sql: str, select: bool) -> QueryOutcome:
        self.query_stats['skipped_queries'] += 1
        self.logger.debug(f"Skipping query, database was never connected: {sql}")
        return QueryOutcome(
            OutcomeStatus.SKIPPED, sql,
            result_set=StoredResultSet.empty() if select else None,
            attempts=0,
        )

    def _failed(self, sql: str, args: Sequence[Any], error: BaseException,
                attempts: int, start_time: Optional[float] = None) -> QueryOutcome:
        duration = time.time() - start_time if start_time else 0.0
        self.query_stats['total_queries'] += 1
        self.query_stats['failed_queries'] += 1
        self.logger.error(
            f"Couldn't send query to database ( {sql} ) with params {redact_params(args)}: "
            f"{type(error).__name__}: {error}"
        )
        return QueryOutcome(OutcomeStatus.FAILED, sql, error=error, attempts=attempts, duration=duration)

    def _track_query_performance(self, sql: str, duration: float) -> None:
        self.query_stats['total_queries'] += 1
        self.query_stats['total_query_time'] += duration

        if duration > self.slow_query_threshold:
            self.query_stats['slow_queries'] += 1
            self.logger.warning(f"Slow query detected ({duration:.3f}s > {self.slow_query_threshold}s): {sql}")

    def get_performance_stats(self) -> Dict[str, Any]:
        """Query counters plus the average successful query time."""
        stats = dict(self.query_stats)
        completed = stats['total_queries'] - stats['failed_queries']
        stats['avg_query_time'] = stats['total_query_time'] / completed if completed > 0 else 0.0
        return stats
