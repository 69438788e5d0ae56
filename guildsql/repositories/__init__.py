"""
Repositories over the bot tables.
"""

from .base_repository import BaseRepository
from .opt_out_repository import OptOutRepository

__all__ = [
    'BaseRepository',
    'OptOutRepository'
]
