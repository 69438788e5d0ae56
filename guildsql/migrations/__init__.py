"""
Versioned schema migrations and data seeds.

Migration files live next to this module, seed files in ``seeds/``.
"""

from .migration_runner import (
    MigrationRunner, SeedRunner, Unit, UnitRunner, UnitState,
    split_statements, MIGRATIONS_DIR, SEEDS_DIR
)

__all__ = [
    'MigrationRunner', 'SeedRunner', 'Unit', 'UnitRunner', 'UnitState',
    'split_statements', 'MIGRATIONS_DIR', 'SEEDS_DIR'
]
