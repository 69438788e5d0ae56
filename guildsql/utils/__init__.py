"""
Database utilities
"""

from .type_mapping import ColumnType, TypeMapper

__all__ = [
    'ColumnType',
    'TypeMapper'
]
