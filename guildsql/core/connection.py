"""
Connection manager with a single replaceable pool handle.

This module keeps exactly one live ``PoolHandle`` (an SQLAlchemy engine and
its connection pool) per manager. The handle is replaced wholesale on every
reconnect; readers fetch it through ``current_handle()`` at the start of an
operation and never hold on to it across calls. Failures never escape
``connect`` or ``close``: they are logged and reflected through
``is_connected()``.
"""

import threading
import time
from enum import Enum
from typing import Dict, Any, Optional
import logging

from sqlalchemy.engine import Engine

from ..config.db_config import ConnectionConfig
from ..config.logging_config import DatabaseLoggerAdapter
from .engine_factory import DatabaseFactory


class ConnectionState(str, Enum):
    """Lifecycle of the manager's handle."""
    UNINITIALIZED = "uninitialized"
    CONNECTED = "connected"
    CLOSED = "closed"
    FAILED = "failed"


class PoolHandle:
    """
    A live or closed connection pool.

    ``Engine.dispose()`` alone leaves an engine usable, so the handle keeps
    its own closed flag and refuses to hand out connections once closed.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.opened_at = time.time()
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def is_open(self) -> bool:
        return not self._closed

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def close(self) -> None:
        """Dispose the pool. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self.engine.dispose()

    def pool_status(self) -> Dict[str, Any]:
        pool = self.engine.pool
        return {
            'pool_size': getattr(pool, 'size', lambda: None)(),
            'checked_out': getattr(pool, 'checkedout', lambda: None)(),
            'checked_in': getattr(pool, 'checkedin', lambda: None)(),
            'overflow': getattr(pool, 'overflow', lambda: None)(),
        }


class ConnectionManager:
    """
    Owns the pooled connection handle.

    Keeps the sticky ``connected_once`` flag that decides whether the
    executor may try to reconnect after a failure.
    """

    def __init__(self, config: ConnectionConfig):
        """
        Initialize the manager. Does not connect.

        Args:
            config: Immutable connection configuration
        """
        self.config = config
        self._handle: Optional[PoolHandle] = None
        self._connected_once = False
        self._state = ConnectionState.UNINITIALIZED
        self._lock = threading.RLock()
        self.reconnect_count = 0

        self.logger = DatabaseLoggerAdapter(
            logging.getLogger('db.connection'),
            {'dialect': config.dialect.value, 'database': self._database_label()}
        )

    def _database_label(self) -> str:
        if self.config.dialect.is_file_based:
            return self.config.storage_path
        return f"{self.config.host}:{self.config.port}/{self.config.database}"

    @property
    def connected_once(self) -> bool:
        """True once any connect() succeeded. Never cleared."""
        return self._connected_once

    @property
    def state(self) -> ConnectionState:
        return self._state

    def current_handle(self) -> Optional[PoolHandle]:
        """Atomic read of the live handle."""
        with self._lock:
            return self._handle

    def connect(self) -> bool:
        """
        Open a new pool, closing any open one first.

        Returns:
            True if the new pool is usable
        """
        self.logger.info(f"Connecting to {self.config.dialect.value} database")

        with self._lock:
            previous, self._handle = self._handle, None
            if previous is not None and previous.is_open():
                self._close_handle(previous)

            engine = None
            try:
                engine = DatabaseFactory.create_engine(self.config)
                # Check one connection out so a bad target fails here
                with engine.connect():
                    pass
            except Exception as e:
                if engine is not None:
                    engine.dispose()
                self._state = ConnectionState.FAILED
                self.logger.connection_event('error', f"Service could not be started: {e}")
                self.logger.debug("Connection failure details", exc_info=True)
                return False

            self._handle = PoolHandle(engine)
            if self._connected_once:
                self.reconnect_count += 1
            self._connected_once = True
            self._state = ConnectionState.CONNECTED

        self.logger.connection_event('opened', f"pool size {self.config.pool_size}")
        return True

    def reconnect(self, stale: Optional[PoolHandle] = None) -> bool:
        """
        Replace the handle with a fresh pool.

        Args:
            stale: The handle the caller saw fail. If another caller already
                replaced it with an open handle, that handle is kept.

        Returns:
            True if an open handle is available afterwards
        """
        with self._lock:
            current = self._handle
            if stale is not None and current is not None and current is not stale and current.is_open():
                return True
            self.logger.connection_event('reconnect', "replacing pool handle")
            return self.connect()

    def is_connected(self) -> bool:
        """True iff a handle exists and reports itself open."""
        try:
            handle = self.current_handle()
            return handle is not None and handle.is_open()
        except Exception:
            return False

    def close(self) -> None:
        """Close the handle if open. Idempotent."""
        with self._lock:
            handle = self._handle
            if handle is None or handle.closed:
                return
            self._close_handle(handle)
            self._state = ConnectionState.CLOSED

    def _close_handle(self, handle: PoolHandle) -> None:
        try:
            handle.close()
            self.logger.connection_event('closed', "service has been stopped")
        except Exception as e:
            self.logger.error(f"Service could not be stopped: {e}")

    def connection_info(self) -> Dict[str, Any]:
        """Connection details for status output (password hidden)."""
        info: Dict[str, Any] = {
            'dialect': self.config.dialect.value,
            'database': self._database_label(),
            'state': self._state.value,
            'connected': self.is_connected(),
            'connected_once': self._connected_once,
            'reconnects': self.reconnect_count,
            'url': DatabaseFactory.build_url(self.config).render_as_string(hide_password=True),
        }
        handle = self.current_handle()
        if handle is not None and handle.is_open():
            info['driver'] = handle.engine.dialect.driver
            info.update(handle.pool_status())
        return info

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
