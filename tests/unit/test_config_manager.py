"""Unit tests for configuration loading and connection settings."""

import pytest
import yaml
from unittest.mock import patch
from pydantic import ValidationError

from guildsql.config.db_config import ConnectionConfig, Dialect, get_default_config, validate_config
from guildsql.config_manager import DatabaseConfigManager, load_config
from guildsql.core.engine_factory import DatabaseFactory
from guildsql.exceptions import ConfigurationError


class TestDialect:
    """Test dialect name resolution."""

    @pytest.mark.parametrize("name,dialect", [
        ("embedded-file", Dialect.EMBEDDED_FILE),
        ("DuckDB", Dialect.EMBEDDED_FILE),
        ("h2", Dialect.EMBEDDED_FILE),
        ("sqlite", Dialect.SINGLE_FILE_ENGINE),
        ("single-file-engine", Dialect.SINGLE_FILE_ENGINE),
        ("postgres", Dialect.NETWORKED_SERVER),
        (" PostgreSQL ", Dialect.NETWORKED_SERVER),
    ])
    def test_aliases(self, name, dialect):
        assert Dialect.parse(name) is dialect

    def test_unknown_dialect(self):
        """Test that unsupported engines are rejected."""
        with pytest.raises(ConfigurationError):
            Dialect.parse("mariadb")

    def test_file_based(self):
        assert Dialect.SINGLE_FILE_ENGINE.is_file_based
        assert not Dialect.NETWORKED_SERVER.is_file_based


class TestConnectionConfig:
    """Test the immutable connection configuration."""

    def test_defaults(self):
        config = ConnectionConfig()
        assert config.dialect is Dialect.EMBEDDED_FILE
        assert config.pool_size == 10
        assert config.storage_path == "storage/guildsql.db"

    def test_frozen(self):
        config = ConnectionConfig()
        with pytest.raises(ValidationError):
            config.pool_size = 3

    def test_password_hidden_from_repr(self):
        config = ConnectionConfig(password="hunter2")
        assert "hunter2" not in repr(config)

    def test_invalid_values(self):
        """Test that bad values fail at construction time."""
        with pytest.raises(ValueError):
            ConnectionConfig(pool_size=0)
        with pytest.raises(ValueError):
            ConnectionConfig(dialect="oracle")
        with pytest.raises(ValueError):
            ConnectionConfig(storage_path="  ")

    def test_from_section(self):
        """Test that the YAML 'name' key becomes the database name."""
        config = ConnectionConfig.from_section({'dialect': 'postgres', 'name': 'ree6', 'port': '5433'})
        assert config.database == 'ree6'
        assert config.port == 5433
        assert config.dialect is Dialect.NETWORKED_SERVER

    def test_networked_requires_host(self):
        config = ConnectionConfig(dialect='postgres', host='')
        with pytest.raises(ConfigurationError):
            validate_config(config)

    def test_default_config_layout(self):
        config = get_default_config('sqlite', storage_path='bot.db')
        assert config['database']['dialect'] == 'single-file-engine'
        assert config['database']['storage_path'] == 'bot.db'
        assert config['logging']['level'] == 'INFO'


class TestDatabaseFactory:
    """Test URL and engine argument construction."""

    def test_file_urls(self):
        duck = DatabaseFactory.build_url(ConnectionConfig(dialect='duckdb', storage_path='data/bot.db'))
        lite = DatabaseFactory.build_url(ConnectionConfig(dialect='sqlite', storage_path='data/bot.db'))
        assert duck.drivername == 'duckdb'
        assert lite.drivername == 'sqlite'
        assert lite.database == 'data/bot.db'

    def test_server_url_escapes_credentials(self):
        """Test that special characters in credentials are URL-escaped."""
        config = ConnectionConfig(dialect='postgres', user='bot', password='p@ss:word', host='db', port=5433,
                                  database='ree6')
        url = DatabaseFactory.build_url(config)
        assert url.drivername == 'postgresql+psycopg2'
        assert url.password == 'p@ss:word'
        rendered = url.render_as_string(hide_password=False)
        assert 'p%40ss%3Aword@db:5433/ree6' in rendered
        assert 'p@ss' not in url.render_as_string(hide_password=True)

    def test_pool_is_capped(self):
        args = DatabaseFactory.get_engine_args(ConnectionConfig(pool_size=4))
        assert args['pool_size'] == 4
        assert args['max_overflow'] == 0
        assert args['pool_pre_ping'] is True

    def test_engine_args_override(self):
        config = ConnectionConfig(dialect='sqlite', engine_args={'echo': True})
        args = DatabaseFactory.get_engine_args(config)
        assert args['echo'] is True
        assert args['connect_args'] == {'check_same_thread': False}

    def test_supported_dialects(self):
        assert set(DatabaseFactory.get_supported_dialects()) == {
            'embedded-file', 'single-file-engine', 'networked-server'
        }


class TestDatabaseConfigManager:
    """Test YAML loading, environment overrides and validation."""

    @pytest.fixture
    def config_file(self, tmp_path):
        path = tmp_path / 'guildsql.yaml'
        path.write_text(yaml.dump({
            'database': {'dialect': 'sqlite', 'storage_path': str(tmp_path / 'bot.db'), 'password': 'secret'},
            'logging': {'level': 'DEBUG'},
        }))
        return path

    def test_defaults_without_file(self):
        manager = DatabaseConfigManager()
        assert manager.get('database.dialect') == 'embedded-file'
        assert manager.get('database.pool_size') == 10
        assert manager.get('database.missing', 'x') == 'x'

    def test_file_merged_over_defaults(self, config_file):
        manager = DatabaseConfigManager(config_file)
        assert manager.get('database.dialect') == 'sqlite'
        assert manager.get('database.pool_size') == 10
        assert manager.get('logging.level') == 'DEBUG'

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            DatabaseConfigManager(tmp_path / 'nope.yaml')

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'broken.yaml'
        path.write_text("database: [unclosed")
        with pytest.raises(ConfigurationError):
            DatabaseConfigManager(path)

    def test_env_overrides(self, config_file):
        """Test that environment variables override file values."""
        with patch.dict('os.environ', {'GUILDSQL_DB_PASSWORD': 'from-env', 'GUILDSQL_DB_DIALECT': 'DUCKDB'}):
            manager = DatabaseConfigManager(config_file)
        assert manager.get('database.password') == 'from-env'
        config = manager.get_connection_config()
        assert config.dialect is Dialect.EMBEDDED_FILE
        assert config.password == 'from-env'

    def test_env_port_is_coerced(self, config_file):
        with patch.dict('os.environ', {'GUILDSQL_DB_PORT': '6543'}):
            manager = DatabaseConfigManager(config_file)
        assert manager.get_connection_config().port == 6543

    def test_validation_failure(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text(yaml.dump({'database': {'dialect': 'sqlite', 'pool_size': 0}}))
        manager = DatabaseConfigManager(path)
        with pytest.raises(ConfigurationError):
            manager.validate()

    def test_unsupported_dialect(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text(yaml.dump({'database': {'dialect': 'mariadb'}}))
        with pytest.raises(ConfigurationError):
            DatabaseConfigManager(path).get_connection_config()

    def test_redacted_config(self, config_file):
        manager = DatabaseConfigManager(config_file)
        assert manager.get_config()['database']['password'] == '***REDACTED***'
        assert manager.get_config(redact_secrets=False)['database']['password'] == 'secret'

    def test_load_config_finds_local_file(self, tmp_path, monkeypatch):
        (tmp_path / 'guildsql.yaml').write_text(yaml.dump({'database': {'dialect': 'sqlite'}}))
        monkeypatch.chdir(tmp_path)
        assert load_config().get('database.dialect') == 'sqlite'
