"""
Migration and seed runner.

Units are ``NNN_name.sql`` files applied in version order. Each unit runs
together with its bookkeeping insert in a single transaction, so a unit is
either applied and recorded or neither. A failed unit is logged and left
pending for the next startup; later units are still attempted.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union
import logging

from ..config.logging_config import DatabaseLoggerAdapter
from ..core.executor import QueryExecutor
from ..exceptions import MigrationError
from ..models.entities import MIGRATIONS_TABLE, SEEDS_TABLE

UNIT_PATTERN = re.compile(r'^(\d{3})_(.+)\.sql$')

MIGRATIONS_DIR = Path(__file__).parent
SEEDS_DIR = MIGRATIONS_DIR / 'seeds'


class UnitState(str, Enum):
    PENDING = "pending"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"


def split_statements(sql: str) -> List[str]:
    """
    Split a script into statements on ``;`` outside quoted text.

    ``--`` comments outside quoted text are dropped, whole-line or trailing.

    Args:
        sql: Script text

    Returns:
        Non-empty statements without the trailing semicolon
    """
    statements = []
    current = []
    quote = None
    i, n = 0, len(sql)
    while i < n:
        char = sql[i]
        i += 1
        if quote:
            if char == quote:
                quote = None
        elif char == '-' and sql.startswith('-', i):
            # skip to end of line
            end = sql.find('\n', i)
            i = n if end < 0 else end
            continue
        elif char in ("'", '"'):
            quote = char
        elif char == ';':
            statement = ''.join(current).strip()
            if statement:
                statements.append(statement)
            current = []
            continue
        current.append(char)

    statement = ''.join(current).strip()
    if statement:
        statements.append(statement)
    return statements


class Unit:
    """A single migration or seed file."""

    def __init__(self, version: int, name: str, path: Path):
        self.version = version
        self.name = name
        self.path = path
        self.state = UnitState.PENDING
        self.applied_at: Optional[str] = None

    @classmethod
    def from_path(cls, path: Path) -> Optional["Unit"]:
        match = UNIT_PATTERN.match(path.name)
        if not match:
            return None
        return cls(int(match.group(1)), match.group(2), path)

    @property
    def version_string(self) -> str:
        return f"{self.version:03d}"

    @property
    def full_name(self) -> str:
        return f"{self.version_string}_{self.name}"

    def statements(self) -> List[str]:
        """
        Statements of the unit file.

        Raises:
            MigrationError: If the file cannot be read
        """
        try:
            return split_statements(self.path.read_text(encoding='utf-8'))
        except OSError as e:
            raise MigrationError(f"Failed to read {self.path}: {e}") from e

    def __str__(self) -> str:
        return f"{self.version_string}: {self.name}"

    def __repr__(self) -> str:
        return f"Unit(version={self.version}, name='{self.name}', state={self.state.value})"


class UnitRunner:
    """
    Applies ``NNN_name.sql`` units from a directory.

    Subclasses choose the bookkeeping table, its key column and the key
    recorded for each unit.
    """

    table: str = ""
    key_column: str = ""
    kind: str = "unit"

    def __init__(self, executor: QueryExecutor, directory: Union[str, Path]):
        """
        Initialize runner.

        Args:
            executor: Executor used for all statements
            directory: Directory holding the unit files
        """
        self.executor = executor
        self.directory = Path(directory)
        self.logger = DatabaseLoggerAdapter(
            logging.getLogger(f'db.{self.__class__.__name__.lower()}'),
            dict(executor.connection.logger.extra)
        )
        self.logger.debug(f"{self.kind.title()} directory: {self.directory}")

    def key_for(self, unit: Unit) -> str:
        raise NotImplementedError

    def discover(self) -> List[Unit]:
        """
        Unit files in the directory sorted by version.

        Raises:
            MigrationError: If two files share a version number
        """
        if not self.directory.is_dir():
            self.logger.debug(f"No {self.kind} directory at {self.directory}")
            return []

        units = []
        for path in self.directory.glob('*.sql'):
            unit = Unit.from_path(path)
            if unit is None:
                self.logger.warning(f"Ignoring {path.name}, expected NNN_name.sql")
                continue
            units.append(unit)

        units.sort(key=lambda u: u.version)
        for previous, unit in zip(units, units[1:]):
            if previous.version == unit.version:
                raise MigrationError(
                    f"Duplicate {self.kind} version {unit.version_string}: "
                    f"{previous.path.name}, {unit.path.name}"
                )

        self.logger.debug(f"Discovered {len(units)} {self.kind} files")
        return units

    def get_applied(self) -> Optional[Set[str]]:
        """
        Keys recorded in the bookkeeping table.

        Returns:
            Recorded keys, or None if the table could not be read
        """
        outcome = self.executor.execute(f"SELECT {self.key_column} FROM {self.table}")
        if not outcome.ok or outcome.result_set is None:
            return None
        result_set = outcome.result_set
        return {str(result_set.get_value(row, 1)) for row in range(1, result_set.row_count + 1)}

    def get_pending(self) -> List[Unit]:
        applied = self.get_applied()
        if applied is None:
            return []
        return [unit for unit in self.discover() if self.key_for(unit) not in applied]

    def run(self) -> List[Unit]:
        """
        Apply every pending unit.

        Returns:
            Units applied by this call. Never raises.
        """
        try:
            units = self.discover()
        except MigrationError as e:
            self.logger.error(str(e))
            return []

        applied = self.get_applied()
        if applied is None:
            self.logger.warning(f"Couldn't read {self.table}, skipping {self.kind}s")
            return []

        pending = [unit for unit in units if self.key_for(unit) not in applied]
        if not pending:
            self.logger.info(f"No pending {self.kind}s to run")
            return []

        done = []
        for unit in pending:
            if self._apply(unit):
                done.append(unit)

        if done:
            self.logger.info(f"Applied {len(done)} of {len(pending)} pending {self.kind}s")
        return done

    def _apply(self, unit: Unit) -> bool:
        self.logger.info(f"Applying {self.kind} {unit}")
        unit.state = UnitState.APPLYING

        try:
            statements = [(sql, ()) for sql in unit.statements()]
        except MigrationError as e:
            unit.state = UnitState.FAILED
            self.logger.error(str(e))
            return False

        applied_at = datetime.now(timezone.utc).isoformat()
        statements.append((
            f"INSERT INTO {self.table} ({self.key_column}, DATE) VALUES (?, ?)",
            (self.key_for(unit), applied_at)
        ))

        outcome = self.executor.execute_batch(statements)
        if not outcome.ok:
            unit.state = UnitState.FAILED
            self.logger.error(f"Failed to apply {self.kind} {unit}: {outcome.error}")
            return False

        unit.state = UnitState.APPLIED
        unit.applied_at = applied_at
        self.logger.debug(f"✅ Applied {self.kind} {unit} in {outcome.duration * 1000:.1f}ms")
        return True

    def get_status(self) -> Dict[str, Any]:
        """
        Applied and pending units.

        Returns:
            Dictionary with status information
        """
        try:
            units = self.discover()
        except MigrationError as e:
            return {'available': False, 'error': str(e)}

        applied = self.get_applied()
        if applied is None:
            return {
                'available': False,
                'total': len(units),
                'pending_list': [unit.full_name for unit in units],
            }

        pending = [unit for unit in units if self.key_for(unit) not in applied]
        return {
            'available': True,
            'total': len(units),
            'applied': len(units) - len(pending),
            'pending': len(pending),
            'is_up_to_date': not pending,
            'applied_list': sorted(applied),
            'pending_list': [unit.full_name for unit in pending],
        }


class MigrationRunner(UnitRunner):
    """Schema migrations, recorded by name in the Migrations table."""

    table = MIGRATIONS_TABLE
    key_column = "NAME"
    kind = "migration"

    def __init__(self, executor: QueryExecutor, directory: Union[str, Path] = MIGRATIONS_DIR):
        super().__init__(executor, directory)

    def key_for(self, unit: Unit) -> str:
        return unit.full_name


class SeedRunner(UnitRunner):
    """Data seeds, recorded by version in the Seeds table."""

    table = SEEDS_TABLE
    key_column = "VERSION"
    kind = "seed"

    def __init__(self, executor: QueryExecutor, directory: Union[str, Path] = SEEDS_DIR):
        super().__init__(executor, directory)

    def key_for(self, unit: Unit) -> str:
        return unit.version_string
