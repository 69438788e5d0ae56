"""
Tests against the embedded-file dialect (DuckDB)
"""

import pytest

from guildsql.connector import SQLConnector
from guildsql.core.executor import OutcomeStatus
from guildsql.repositories import OptOutRepository


@pytest.fixture
def connector(duckdb_config):
    connector = SQLConnector(duckdb_config)
    assert connector.start()
    yield connector
    connector.close()


class TestEmbeddedFile:
    """Test the full startup and query path on DuckDB"""

    def test_startup(self, connector):
        assert all(connector.tables.values())
        assert len(connector.applied_migrations) == 2
        assert len(connector.applied_seeds) == 1

        tables = {name.lower() for name in connector.schema.existing_tables()}
        assert {"opt_out", "migrations", "seeds", "settings", "chatlevel"} <= tables

    def test_seeded_settings(self, connector):
        result = connector.query_sql("SELECT NAME, VALUE FROM Settings WHERE GID = ? ORDER BY NAME", "default")
        assert result.row_count == 3
        assert result.get_value(1, "NAME") == "chatprefix"

    def test_levels(self, connector):
        connector.execute("INSERT INTO ChatLevel (GID, UID, XP) VALUES (?, ?, ?)", "1", "10", 2 ** 40).unwrap()
        connector.execute("UPDATE ChatLevel SET XP = XP + ? WHERE GID = ? AND UID = ?", 5, "1", "10").unwrap()

        result = connector.query_sql("SELECT XP FROM ChatLevel WHERE GID = ?", "1")
        assert result.get_value(1, 1) == 2 ** 40 + 5

    def test_primary_key_enforced(self, connector):
        connector.execute("INSERT INTO ChatLevel (GID, UID, XP) VALUES (?, ?, ?)", "1", "10", 1).unwrap()
        outcome = connector.execute("INSERT INTO ChatLevel (GID, UID, XP) VALUES (?, ?, ?)", "1", "10", 2)
        assert outcome.status is OutcomeStatus.FAILED

    def test_opt_out(self, connector):
        repository = OptOutRepository(connector.executor)
        repository.opt_out("100", "1")
        assert repository.is_opted_out("100", "1")

    def test_reconnect_after_close(self, connector):
        connector.connection.close()
        result = connector.query_sql("SELECT COUNT(*) FROM Migrations")
        assert result.get_value(1, 1) == 2
        assert connector.connection.reconnect_count == 1

    def test_restart_is_noop(self, connector, duckdb_config):
        connector.close()
        again = SQLConnector(duckdb_config)
        assert again.start()
        assert again.applied_migrations == []
        assert again.applied_seeds == []
        again.close()
