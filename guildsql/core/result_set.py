"""
Stored result sets.

A ``StoredResultSet`` is a fully materialized snapshot of a query result:
the column names and every cell are copied out of the cursor, so the set
stays usable after the pooled connection went back to the pool.

Rows and columns are addressed 1-based, mirroring the cursor convention
the bot code was written against.
"""

from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import pandas as pd


def _normalize_cell(value: Any) -> Any:
    """Turn driver buffer types into plain bytes."""
    if isinstance(value, (memoryview, bytearray)):
        return bytes(value)
    return value


class StoredResultSet:
    """Immutable row x column grid with an ordered column name list."""

    __slots__ = ('_columns', '_rows', '_index')

    def __init__(self, columns: Sequence[str] = (), rows: Sequence[Sequence[Any]] = ()):
        """
        Build a result set.

        Args:
            columns: Ordered column names
            rows: Row values, each with exactly ``len(columns)`` cells

        Raises:
            ValueError: If a row does not match the column count
        """
        self._columns: Tuple[str, ...] = tuple(str(c) for c in columns)
        width = len(self._columns)

        materialized = []
        for number, row in enumerate(rows, start=1):
            cells = tuple(_normalize_cell(v) for v in row)
            if len(cells) != width:
                raise ValueError(f"Row {number} has {len(cells)} cells, expected {width}")
            materialized.append(cells)
        self._rows: Tuple[Tuple[Any, ...], ...] = tuple(materialized)

        # First occurrence wins for duplicate names (e.g. joins)
        self._index: Dict[str, int] = {}
        for position, name in enumerate(self._columns, start=1):
            self._index.setdefault(name.lower(), position)

    @classmethod
    def empty(cls, columns: Sequence[str] = ()) -> "StoredResultSet":
        """Result set without rows."""
        return cls(columns, ())

    @classmethod
    def from_cursor(cls, result: Any) -> "StoredResultSet":
        """
        Materialize a SQLAlchemy ``CursorResult``.

        Column names are captured before any row is fetched.
        """
        columns = list(result.keys())
        rows = result.fetchall()
        return cls(columns, rows)

    @property
    def column_count(self) -> int:
        return len(self._columns)

    @property
    def row_count(self) -> int:
        return len(self._rows)

    @property
    def column_names(self) -> Tuple[str, ...]:
        return self._columns

    def has_results(self) -> bool:
        """True when there is at least one row."""
        return bool(self._rows)

    def get_column_name(self, column: int) -> str:
        """Name of the 1-based column."""
        return self._columns[self._column_position(column) - 1]

    def get_value(self, row: int, column: Union[int, str]) -> Any:
        """
        Get a cell value.

        Args:
            row: 1-based row number
            column: 1-based column number or column name (case-insensitive)

        Returns:
            Cell value

        Raises:
            IndexError: If the row or column is out of range
            KeyError: If no column has the given name
        """
        if not 1 <= row <= len(self._rows):
            raise IndexError(f"Row {row} out of range 1..{len(self._rows)}")
        return self._rows[row - 1][self._column_position(column) - 1]

    def get_row(self, row: int) -> Dict[str, Any]:
        """1-based row as a column name -> value mapping."""
        if not 1 <= row <= len(self._rows):
            raise IndexError(f"Row {row} out of range 1..{len(self._rows)}")
        return dict(zip(self._columns, self._rows[row - 1]))

    def rows(self) -> List[Tuple[Any, ...]]:
        return list(self._rows)

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [dict(zip(self._columns, r)) for r in self._rows]

    def to_dataframe(self) -> pd.DataFrame:
        """Copy the result set into a pandas DataFrame."""
        return pd.DataFrame(list(self._rows), columns=list(self._columns))

    def _column_position(self, column: Union[int, str]) -> int:
        if isinstance(column, str):
            position: Optional[int] = self._index.get(column.lower())
            if position is None:
                raise KeyError(f"No column named '{column}'")
            return position
        if isinstance(column, bool) or not 1 <= column <= len(self._columns):
            raise IndexError(f"Column {column} out of range 1..{len(self._columns)}")
        return column

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Tuple[Any, ...]]:
        return iter(self._rows)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StoredResultSet):
            return NotImplemented
        return self._columns == other._columns and self._rows == other._rows

    def __repr__(self) -> str:
        return f"StoredResultSet(columns={list(self._columns)}, rows={len(self._rows)})"
