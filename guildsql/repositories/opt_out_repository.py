"""
Opt-out repository.

Members listed in ``Opt_out`` asked the bot not to store data about them in
a guild. Feature code checks ``is_opted_out`` before writing anything
member related.
"""

from typing import List, Type

from ..models.entities import OPT_OUT_TABLE, OptOut
from .base_repository import BaseRepository


class OptOutRepository(BaseRepository[OptOut]):
    """Reads and writes the opt-out list."""

    @property
    def table_name(self) -> str:
        return OPT_OUT_TABLE

    @property
    def model_class(self) -> Type[OptOut]:
        return OptOut

    def is_opted_out(self, guild_id: str, user_id: str) -> bool:
        """
        Check whether a member opted out.

        Args:
            guild_id: Guild snowflake
            user_id: User snowflake

        Returns:
            True if a record exists. False also when the lookup failed.
        """
        rows = self._select(
            f"SELECT GID, UID FROM {self.table_name} WHERE GID = ? AND UID = ?",
            str(guild_id), str(user_id)
        )
        return bool(rows)

    def opt_out(self, guild_id: str, user_id: str) -> bool:
        """
        Record an opt-out. Recording the same member twice is a no-op.

        Returns:
            True if the member is opted out afterwards
        """
        if self.is_opted_out(guild_id, user_id):
            return True
        outcome = self._update(
            f"INSERT INTO {self.table_name} (GID, UID) VALUES (?, ?)",
            str(guild_id), str(user_id)
        )
        if outcome.ok:
            self.logger.info(f"Member {user_id} opted out in guild {guild_id}")
        return outcome.ok

    def opt_in(self, guild_id: str, user_id: str) -> bool:
        """Remove an opt-out record. Returns whether the delete completed."""
        outcome = self._update(
            f"DELETE FROM {self.table_name} WHERE GID = ? AND UID = ?",
            str(guild_id), str(user_id)
        )
        return outcome.ok

    def list_for_guild(self, guild_id: str) -> List[OptOut]:
        return self._select(
            f"SELECT GID, UID FROM {self.table_name} WHERE GID = ? ORDER BY UID",
            str(guild_id)
        )
