"""Unit tests for the executor's failure and retry policy."""

from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import DisconnectionError, OperationalError, ProgrammingError

from guildsql.core.executor import OutcomeStatus, QueryExecutor, QueryOutcome, is_disconnect, is_select
from guildsql.core.result_set import StoredResultSet
from guildsql.exceptions import ConnectionClosedError, QueryFailedError, UnsupportedParameterError


def make_connection(connected_once=True):
    connection = MagicMock()
    connection.config.slow_query_threshold = 1.0
    connection.logger.extra = {'dialect': 'single-file-engine', 'database': 'test.db'}
    connection.connected_once = connected_once
    return connection


def make_handle(error=None, rowcount=1):
    """Open handle whose transactions either fail with ``error`` or report ``rowcount``."""
    handle = MagicMock()
    handle.is_open.return_value = True
    handle.closed = False
    if error is not None:
        handle.engine.begin.side_effect = error
        handle.engine.connect.side_effect = error
    else:
        handle.engine.begin.return_value.__enter__.return_value.execute.return_value.rowcount = rowcount
    return handle


def lost_connection():
    return OperationalError("UPDATE t SET a = 1", {}, Exception("server closed the connection"),
                            connection_invalidated=True)


class TestStatementClassification:
    """Test query detection and disconnect detection."""

    @pytest.mark.parametrize("sql,expected", [
        ("SELECT 1", True),
        ("  \n\tselect * FROM t", True),
        ("INSERT INTO t VALUES (1)", False),
        ("WITH x AS (SELECT 1) SELECT * FROM x", False),
        ("", False),
    ])
    def test_is_select(self, sql, expected):
        assert is_select(sql) is expected

    def test_is_disconnect(self):
        assert is_disconnect(lost_connection())
        assert is_disconnect(DisconnectionError("gone"))
        assert is_disconnect(ConnectionClosedError("closed"))
        assert not is_disconnect(ProgrammingError("SELECT", {}, Exception("syntax error")))
        assert not is_disconnect(ValueError("bad"))


class TestQueryOutcome:
    """Test the result-or-error value."""

    def test_unwrap_completed(self):
        result_set = StoredResultSet(["A"], [(1,)])
        outcome = QueryOutcome(OutcomeStatus.ROWS, "SELECT 1", result_set=result_set)
        assert outcome.ok
        assert outcome.unwrap() is result_set

    def test_unwrap_failed(self):
        error = RuntimeError("boom")
        outcome = QueryOutcome(OutcomeStatus.FAILED, "SELECT 1", error=error)
        with pytest.raises(QueryFailedError) as excinfo:
            outcome.unwrap()
        assert excinfo.value.cause is error
        assert excinfo.value.sql == "SELECT 1"

    def test_unwrap_skipped(self):
        with pytest.raises(QueryFailedError):
            QueryOutcome(OutcomeStatus.SKIPPED, "SELECT 1").unwrap()


class TestRetryPolicy:
    """Test reconnect-and-retry decisions."""

    def test_disconnect_retried_once(self):
        """Test that a lost connection gets one reconnect and one retry."""
        connection = make_connection()
        stale, fresh = make_handle(error=lost_connection()), make_handle(rowcount=3)
        connection.current_handle.side_effect = [stale, fresh]

        outcome = QueryExecutor(connection).execute("UPDATE t SET a = ?", 1)

        assert outcome.status is OutcomeStatus.UPDATED
        assert outcome.rowcount == 3
        assert outcome.attempts == 2
        connection.reconnect.assert_called_once_with(stale)

    def test_second_disconnect_fails(self):
        """Test that the retry is bounded to one."""
        connection = make_connection()
        first, second = make_handle(error=lost_connection()), make_handle(error=lost_connection())
        connection.current_handle.side_effect = [first, second]
        executor = QueryExecutor(connection)

        outcome = executor.execute("UPDATE t SET a = 1")

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.attempts == 2
        assert connection.reconnect.call_count == 1
        assert executor.get_performance_stats()['retries'] == 1

    def test_statement_error_not_retried(self):
        """Test that errors caused by the statement itself are not retried."""
        connection = make_connection()
        error = ProgrammingError("SELEC 1", {}, Exception("syntax error"))
        connection.current_handle.return_value = make_handle(error=error)

        outcome = QueryExecutor(connection).execute("SELEC 1")

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.error is error
        assert outcome.attempts == 1
        connection.reconnect.assert_not_called()

    def test_disconnect_without_prior_connect_not_retried(self):
        connection = make_connection(connected_once=False)
        connection.current_handle.return_value = make_handle(error=lost_connection())

        outcome = QueryExecutor(connection).execute("UPDATE t SET a = 1")

        assert outcome.status is OutcomeStatus.FAILED
        connection.reconnect.assert_not_called()

    def test_never_connected_is_skipped(self):
        """Test that calls are skipped without a reconnect when no connect ever succeeded."""
        connection = make_connection(connected_once=False)
        connection.current_handle.return_value = None
        executor = QueryExecutor(connection)

        query = executor.execute("SELECT * FROM Settings")
        update = executor.execute("DELETE FROM Settings")

        assert query.status is OutcomeStatus.SKIPPED
        assert query.result_set == StoredResultSet.empty()
        assert update.status is OutcomeStatus.SKIPPED
        assert update.result_set is None
        connection.reconnect.assert_not_called()
        assert executor.get_performance_stats()['skipped_queries'] == 2

    def test_closed_handle_reconnects(self):
        """Test that a handle closed underneath the call is replaced."""
        connection = make_connection()
        closed = MagicMock()
        closed.is_open.return_value = False
        fresh = make_handle()
        connection.current_handle.side_effect = [closed, fresh]

        outcome = QueryExecutor(connection).execute("DELETE FROM t")

        assert outcome.ok
        connection.reconnect.assert_called_once_with(closed)

    def test_failed_reconnect(self):
        """Test the outcome when the reconnect leaves no handle."""
        connection = make_connection()
        connection.current_handle.return_value = None

        outcome = QueryExecutor(connection).execute("DELETE FROM t")

        assert outcome.status is OutcomeStatus.FAILED
        assert isinstance(outcome.error, ConnectionClosedError)
        assert connection.reconnect.call_count == 1

    def test_bind_error_fails_before_execution(self):
        connection = make_connection()

        outcome = QueryExecutor(connection).execute("SELECT ?", object())

        assert outcome.status is OutcomeStatus.FAILED
        assert isinstance(outcome.error, UnsupportedParameterError)
        assert outcome.attempts == 0
        connection.current_handle.assert_not_called()

    def test_bad_arguments_skipped_when_never_connected(self):
        """Test that the never-connected check runs before argument binding."""
        connection = make_connection(connected_once=False)
        connection.current_handle.return_value = None
        executor = QueryExecutor(connection)

        query = executor.execute("SELECT ?", object())
        batch = executor.execute_batch([("INSERT INTO t VALUES (?)", (object(),))])

        assert query.status is OutcomeStatus.SKIPPED
        assert query.result_set == StoredResultSet.empty()
        assert batch.status is OutcomeStatus.SKIPPED
        assert executor.get_performance_stats()['failed_queries'] == 0


class TestPerformanceTracking:
    """Test query statistics."""

    def test_slow_query_counted(self):
        connection = make_connection()
        connection.current_handle.return_value = make_handle()
        executor = QueryExecutor(connection)

        with patch('guildsql.core.executor.time') as mock_time:
            mock_time.time.side_effect = [0.0, 5.0]
            outcome = executor.execute("DELETE FROM t")

        assert outcome.duration == 5.0
        stats = executor.get_performance_stats()
        assert stats['slow_queries'] == 1
        assert stats['total_queries'] == 1
        assert stats['avg_query_time'] == 5.0
