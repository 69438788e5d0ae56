"""
Base repository for table access through the query executor.

Repositories translate between pydantic row models and ``?``-parameterized
SQL. Failures are reported by the executor's outcome; repositories log them
and return an empty or negative answer instead of raising.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, List, Type, TypeVar
import logging

from ..config.logging_config import DatabaseLoggerAdapter
from ..core.executor import QueryExecutor, QueryOutcome

T = TypeVar('T')


class BaseRepository(ABC, Generic[T]):
    """Common helpers for repositories over a single table."""

    def __init__(self, executor: QueryExecutor):
        """
        Initialize repository.

        Args:
            executor: Query executor shared with the connector
        """
        self.executor = executor
        self.logger = DatabaseLoggerAdapter(
            logging.getLogger(f'db.{self.__class__.__name__.lower()}'),
            {'repository': self.__class__.__name__, **executor.connection.logger.extra}
        )

    @property
    @abstractmethod
    def table_name(self) -> str:
        """Table this repository reads and writes."""

    @property
    @abstractmethod
    def model_class(self) -> Type[T]:
        """Row model with a ``from_result`` constructor."""

    def _select(self, sql: str, *args: Any) -> List[T]:
        outcome = self.executor.execute(sql, *args)
        if not outcome.ok or outcome.result_set is None:
            return []
        return self.model_class.from_result(outcome.result_set)

    def _update(self, sql: str, *args: Any) -> QueryOutcome:
        outcome = self.executor.execute(sql, *args)
        if not outcome.ok:
            self.logger.warning(f"Update on {self.table_name} did not complete ({outcome.status.value})")
        return outcome

    def count(self) -> int:
        outcome = self.executor.execute(f"SELECT COUNT(*) FROM {self.table_name}")
        if not outcome.ok or outcome.result_set is None or not outcome.result_set.has_results():
            return 0
        return int(outcome.result_set.get_value(1, 1))
