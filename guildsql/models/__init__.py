"""
Table declarations and row models.

This module contains:
- Entity declarations and the explicit entity registry
- The fixed bookkeeping tables
- Pydantic row models for the bot tables
"""

from .entity import ColumnDeclaration, EntityDeclaration, EntityRegistry, default_registry
from .entities import (
    OPT_OUT, MIGRATIONS, SEEDS, BOOKKEEPING_TABLES,
    OPT_OUT_TABLE, MIGRATIONS_TABLE, SEEDS_TABLE,
    SETTINGS, CHAT_PROTECTOR, CHAT_LEVEL, VOICE_LEVEL,
    OptOut, Setting, UserLevel
)

__all__ = [
    'ColumnDeclaration', 'EntityDeclaration', 'EntityRegistry', 'default_registry',
    'OPT_OUT', 'MIGRATIONS', 'SEEDS', 'BOOKKEEPING_TABLES',
    'OPT_OUT_TABLE', 'MIGRATIONS_TABLE', 'SEEDS_TABLE',
    'SETTINGS', 'CHAT_PROTECTOR', 'CHAT_LEVEL', 'VOICE_LEVEL',
    'OptOut', 'Setting', 'UserLevel'
]
