"""
Parameter binding for positional SQL statements.

Callers write SQL with ``?`` placeholders and pass plain Python values or
explicit ``Param`` objects. The binder classifies every argument into a
``ParamKind``, converts it to its wire representation and attaches an
explicit SQLAlchemy type, so drivers that infer types poorly still receive
a typed bind. Placeholders are rewritten into named SQLAlchemy bind
parameters, which lets one code path serve every dialect's paramstyle.
"""

import base64
import json
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Iterable, List, Tuple, Union

import numpy as np
from sqlalchemy import bindparam, text, types
from sqlalchemy.sql.elements import TextClause

from ..exceptions import ParameterCountError, UnsupportedParameterError

INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_WORD = re.compile(r'\w')


class ParamKind(str, Enum):
    """Argument kinds the binder understands."""
    TEXT = "text"
    BLOB = "blob"
    INTEGER = "integer"
    BIGINT = "bigint"
    FLOAT = "float"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    JSON = "json"
    BYTES = "bytes"
    TIMESTAMP = "timestamp"
    NULL = "null"


# Wire type attached to each kind
BIND_TYPES = {
    ParamKind.TEXT: types.String(),
    ParamKind.BLOB: types.LargeBinary(),
    ParamKind.INTEGER: types.Integer(),
    ParamKind.BIGINT: types.BigInteger(),
    ParamKind.FLOAT: types.Float(),
    ParamKind.DOUBLE: types.Double(),
    ParamKind.BOOLEAN: types.Boolean(),
    ParamKind.JSON: types.LargeBinary(),
    ParamKind.BYTES: types.String(),         # base64 text
    ParamKind.TIMESTAMP: types.BigInteger(), # epoch milliseconds
    ParamKind.NULL: types.NullType(),
}


@dataclass(frozen=True)
class Blob:
    """Binary payload bound as a native BLOB.

    Plain ``bytes`` are bound as base64 text instead; wrap them in ``Blob``
    when the column really is a BLOB.
    """
    data: bytes


@dataclass(frozen=True)
class Param:
    """A query argument tagged with its kind."""
    kind: ParamKind
    value: Any

    @classmethod
    def of(cls, value: Any) -> "Param":
        """
        Classify a Python value.

        Raises:
            UnsupportedParameterError: If the value's type has no mapping
        """
        if isinstance(value, Param):
            return value
        if value is None:
            return cls(ParamKind.NULL, None)
        if isinstance(value, Blob):
            return cls(ParamKind.BLOB, value)
        # bool before int: bool is an int subclass
        if isinstance(value, (bool, np.bool_)):
            return cls(ParamKind.BOOLEAN, value)
        if isinstance(value, (np.int8, np.int16, np.int32, np.uint8, np.uint16)):
            return cls(ParamKind.INTEGER, value)
        if isinstance(value, np.integer):
            return cls(ParamKind.BIGINT, value)
        if isinstance(value, int):
            kind = ParamKind.INTEGER if INT32_MIN <= value <= INT32_MAX else ParamKind.BIGINT
            return cls(kind, value)
        if isinstance(value, (np.float32, np.float16)):
            return cls(ParamKind.FLOAT, value)
        if isinstance(value, (float, np.floating)):
            return cls(ParamKind.DOUBLE, value)
        if isinstance(value, str):
            return cls(ParamKind.TEXT, value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls(ParamKind.BYTES, value)
        if isinstance(value, (dict, list)):
            return cls(ParamKind.JSON, value)
        if isinstance(value, (datetime, date)):
            return cls(ParamKind.TIMESTAMP, value)
        raise UnsupportedParameterError(
            f"Cannot bind argument of type {type(value).__name__}: {value!r}"
        )

    @classmethod
    def json(cls, value: Any) -> "Param":
        """Bind any JSON-serializable value (including scalars) as a JSON blob."""
        return cls(ParamKind.JSON, value)

    @classmethod
    def float32(cls, value: float) -> "Param":
        """Bind a Python float as single precision."""
        return cls(ParamKind.FLOAT, np.float32(value))

    @classmethod
    def bigint(cls, value: int) -> "Param":
        """Bind a small int as BIGINT, e.g. for Discord snowflakes."""
        return cls(ParamKind.BIGINT, value)

    @property
    def bind_type(self) -> types.TypeEngine:
        return BIND_TYPES[self.kind]

    def wire_value(self) -> Any:
        """Value handed to the driver."""
        kind, value = self.kind, self.value
        if kind is ParamKind.NULL:
            return None
        if kind is ParamKind.BLOB:
            return bytes(value.data) if isinstance(value, Blob) else bytes(value)
        if kind is ParamKind.BOOLEAN:
            return bool(value)
        if kind in (ParamKind.INTEGER, ParamKind.BIGINT):
            return int(value)
        if kind in (ParamKind.FLOAT, ParamKind.DOUBLE):
            return float(value)
        if kind is ParamKind.TEXT:
            return str(value)
        if kind is ParamKind.BYTES:
            return base64.b64encode(bytes(value)).decode('ascii')
        if kind is ParamKind.JSON:
            return encode_json(value)
        if kind is ParamKind.TIMESTAMP:
            return to_epoch_millis(value)
        raise UnsupportedParameterError(f"Unknown parameter kind {kind!r}")


def encode_json(value: Any) -> bytes:
    """Serialize a structured value to UTF-8 JSON bytes."""
    try:
        return json.dumps(value, separators=(',', ':'), ensure_ascii=False).encode('utf-8')
    except (TypeError, ValueError) as e:
        raise UnsupportedParameterError(f"Value is not JSON serializable: {e}") from e


def to_epoch_millis(value: Union[datetime, date]) -> int:
    """Milliseconds since the Unix epoch. Naive datetimes are taken as UTC."""
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // timedelta(milliseconds=1)


def decode_timestamp(millis: Any, naive: bool = False) -> datetime:
    """
    Inverse of the TIMESTAMP binding.

    Args:
        millis: Milliseconds since the Unix epoch
        naive: Return a naive UTC datetime instead of an aware one. A naive
            input only compares equal to the decoded value with ``naive=True``.

    Returns:
        UTC datetime, aware unless ``naive`` is set
    """
    value = EPOCH + timedelta(milliseconds=int(millis))
    if naive:
        return value.replace(tzinfo=None)
    return value


def decode_bytes(encoded: Any) -> bytes:
    """Inverse of the BYTES binding."""
    if isinstance(encoded, (bytes, bytearray, memoryview)):
        encoded = bytes(encoded).decode('ascii')
    return base64.b64decode(encoded)


def decode_json(raw: Any) -> Any:
    """Inverse of the JSON binding. Accepts blob bytes or text."""
    if isinstance(raw, (bytes, bytearray, memoryview)):
        raw = bytes(raw).decode('utf-8')
    return json.loads(raw)


def rewrite_placeholders(sql: str) -> Tuple[str, int]:
    """
    Rewrite ``?`` placeholders into ``:pN`` bind names.

    Placeholders inside quoted literals, quoted identifiers and comments are
    left alone. Colons that SQLAlchemy would read as bind names are escaped
    so literal text such as ``' :x'`` survives.

    Returns:
        (rewritten SQL, number of placeholders)
    """
    out: List[str] = []
    count = 0
    i, n = 0, len(sql)
    quote = None        # "'" or '"' while inside a quoted section
    comment = None      # '--' or '/*' while inside a comment

    while i < n:
        ch = sql[i]
        nxt = sql[i + 1] if i + 1 < n else ''

        if ch == ':' and _WORD.match(nxt):
            prev = sql[i - 1] if i > 0 else ''
            if prev != ':' and prev != '\\' and not _WORD.match(prev):
                out.append('\\:')
                i += 1
                continue

        if comment == '--':
            if ch == '\n':
                comment = None
        elif comment == '/*':
            if ch == '*' and nxt == '/':
                out.append('*/')
                i += 2
                comment = None
                continue
        elif quote:
            if ch == quote:
                # doubled quote is an escaped quote
                if nxt == quote:
                    out.append(ch + nxt)
                    i += 2
                    continue
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == '-' and nxt == '-':
            comment = '--'
        elif ch == '/' and nxt == '*':
            out.append('/*')
            i += 2
            comment = '/*'
            continue
        elif ch == '?':
            count += 1
            out.append(f':p{count}')
            i += 1
            continue

        out.append(ch)
        i += 1

    return ''.join(out), count


class ParameterBinder:
    """Binds positional arguments to a SQL statement."""

    @staticmethod
    def to_params(args: Iterable[Any]) -> List[Param]:
        return [Param.of(a) for a in args]

    @classmethod
    def bind(cls, sql: str, args: Iterable[Any] = ()) -> TextClause:
        """
        Build an executable statement with typed binds.

        Args:
            sql: SQL text with ``?`` placeholders
            args: Arguments in placeholder order

        Returns:
            SQLAlchemy ``TextClause`` ready for ``Connection.execute``

        Raises:
            UnsupportedParameterError: If an argument cannot be mapped
            ParameterCountError: If placeholder and argument counts differ
        """
        params = cls.to_params(args)
        rewritten, count = rewrite_placeholders(sql)

        if count != len(params):
            raise ParameterCountError(
                f"Statement has {count} placeholder(s) but {len(params)} argument(s) were given"
            )

        clause = text(rewritten)
        if params:
            clause = clause.bindparams(*[
                bindparam(f"p{position}", param.wire_value(), type_=param.bind_type)
                for position, param in enumerate(params, start=1)
            ])
        return clause
