"""
Bot tables.

The bookkeeping tables (opt-out list, applied migrations, applied seeds)
are fixed and always created first. The entity tables below them are
registered with the default registry when this module is imported.

Discord ids are snowflakes larger than 32 bits; they are kept as text in
VARCHAR(40) columns so every dialect stores them losslessly.
"""

from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, Field

from .entity import ColumnDeclaration, EntityDeclaration, default_registry

if TYPE_CHECKING:
    from ..core.result_set import StoredResultSet

OPT_OUT_TABLE = "Opt_out"
MIGRATIONS_TABLE = "Migrations"
SEEDS_TABLE = "Seeds"


OPT_OUT = EntityDeclaration(
    table_name=OPT_OUT_TABLE,
    columns=(
        ColumnDeclaration.parse("GID", "VARCHAR(40)"),
        ColumnDeclaration.parse("UID", "VARCHAR(40)"),
    ),
)

MIGRATIONS = EntityDeclaration(
    table_name=MIGRATIONS_TABLE,
    columns=(
        ColumnDeclaration.parse("NAME", "VARCHAR(100)", primary_key=True, nullable=False),
        ColumnDeclaration.parse("DATE", "VARCHAR(100)"),
    ),
)

SEEDS = EntityDeclaration(
    table_name=SEEDS_TABLE,
    columns=(
        ColumnDeclaration.parse("VERSION", "VARCHAR(100)", primary_key=True, nullable=False),
        ColumnDeclaration.parse("DATE", "VARCHAR(100)"),
    ),
)

BOOKKEEPING_TABLES = (OPT_OUT, MIGRATIONS, SEEDS)


SETTINGS = default_registry.declare(
    "Settings",
    ColumnDeclaration.parse("GID", "VARCHAR(40)", nullable=False, primary_key=True),
    ColumnDeclaration.parse("NAME", "VARCHAR(100)", nullable=False, primary_key=True),
    ColumnDeclaration.parse("VALUE", "VARCHAR(500)"),
)

CHAT_PROTECTOR = default_registry.declare(
    "ChatProtector",
    ColumnDeclaration.parse("GID", "VARCHAR(40)", nullable=False),
    ColumnDeclaration.parse("WORD", "VARCHAR(500)", nullable=False),
)

CHAT_LEVEL = default_registry.declare(
    "ChatLevel",
    ColumnDeclaration.parse("GID", "VARCHAR(40)", nullable=False, primary_key=True),
    ColumnDeclaration.parse("UID", "VARCHAR(40)", nullable=False, primary_key=True),
    ColumnDeclaration.parse("XP", "BIGINT", nullable=False),
)

VOICE_LEVEL = default_registry.declare(
    "VoiceLevel",
    ColumnDeclaration.parse("GID", "VARCHAR(40)", nullable=False, primary_key=True),
    ColumnDeclaration.parse("UID", "VARCHAR(40)", nullable=False, primary_key=True),
    ColumnDeclaration.parse("XP", "BIGINT", nullable=False),
)


class OptOut(BaseModel):
    """A member who opted out of data collection in a guild."""

    guild_id: str = Field(..., description="Guild snowflake")
    user_id: str = Field(..., description="User snowflake")

    @classmethod
    def from_result(cls, result_set: "StoredResultSet") -> List["OptOut"]:
        return [
            cls(guild_id=str(result_set.get_value(row, "GID")), user_id=str(result_set.get_value(row, "UID")))
            for row in range(1, result_set.row_count + 1)
        ]


class Setting(BaseModel):
    """A per-guild setting."""

    guild_id: str
    name: str
    value: Optional[str] = None

    @classmethod
    def from_result(cls, result_set: "StoredResultSet") -> List["Setting"]:
        return [
            cls(
                guild_id=str(result_set.get_value(row, "GID")),
                name=result_set.get_value(row, "NAME"),
                value=result_set.get_value(row, "VALUE"),
            )
            for row in range(1, result_set.row_count + 1)
        ]


class UserLevel(BaseModel):
    """Chat or voice experience of a member."""

    guild_id: str
    user_id: str
    experience: int = Field(default=0, ge=0)

    @classmethod
    def from_result(cls, result_set: "StoredResultSet") -> List["UserLevel"]:
        return [
            cls(
                guild_id=str(result_set.get_value(row, "GID")),
                user_id=str(result_set.get_value(row, "UID")),
                experience=int(result_set.get_value(row, "XP")),
            )
            for row in range(1, result_set.row_count + 1)
        ]
