"""Record — the unit of data flowing between nodes.

A ``Record`` is a named-field container.  Fields are read and written by
name; typed reads go through :meth:`Record.get_as`, which either returns a
value of the requested type or raises
:class:`~conduit.core.errors.RecordConversionError`.  There is no silent
coercion beyond the explicit conversion table below.

Records are poolable: :meth:`reset` clears every field so a pool can hand
the same instance out again, and :meth:`copy_to` / :meth:`clone` make
pool-safe duplicates.

Conversion table for ``get_as``:

==========  ==============================================================
Target      Accepted source values
==========  ==============================================================
str         anything (``str(value)``)
int         int, integral float, numeric str, Decimal
float       int, float, numeric str, Decimal
bool        bool, 0/1, "true"/"false"/"yes"/"no"/"1"/"0"
Decimal     int, float, str, Decimal
datetime    datetime, ISO-8601 str
date        date, datetime, ISO-8601 str
other       only instances of the target type
==========  ==============================================================
"""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

from conduit.core.errors import RecordConversionError

T = TypeVar("T")

_MISSING = object()
_TRUE = {"true", "yes", "y", "1", "t"}
_FALSE = {"false", "no", "n", "0", "f"}


def _to_int(value: Any) -> int:
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("non-integral float")
        return int(value)
    if isinstance(value, Decimal):
        if value != value.to_integral_value():
            raise ValueError("non-integral decimal")
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(type(value).__name__)


def _to_float(value: Any) -> float:
    if isinstance(value, (int, Decimal, str)):
        return float(value)
    raise TypeError(type(value).__name__)


def _to_bool(value: Any) -> bool:
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
    raise ValueError(repr(value))


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, (int, str)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    raise TypeError(type(value).__name__)


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise TypeError(type(value).__name__)


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise TypeError(type(value).__name__)


_CONVERTERS = {
    str: str,
    int: _to_int,
    float: _to_float,
    bool: _to_bool,
    Decimal: _to_decimal,
    datetime: _to_datetime,
    date: _to_date,
}


class Record:
    """Named-field container with typed accessors."""

    __slots__ = ("_fields",)

    def __init__(self, values: Mapping[str, Any] | None = None, **fields: Any) -> None:
        self._fields: dict[str, Any] = {}
        if values:
            self._fields.update(values)
        if fields:
            self._fields.update(fields)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> Record:
        return cls(values)

    # ── Field access ─────────────────────────────────────────────

    def __getitem__(self, name: str) -> Any:
        return self._fields[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self._fields[name] = value

    def __delitem__(self, name: str) -> None:
        del self._fields[name]

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def get(self, name: str, default: Any = None) -> Any:
        return self._fields.get(name, default)

    def get_as(self, name: str, target: type[T], default: Any = _MISSING) -> T:
        """Read *name* converted to *target*.

        Missing fields return *default* when one is given, otherwise raise
        ``KeyError``.  ``None`` values are returned as ``None``.

        Raises:
            RecordConversionError: The stored value cannot become *target*.
        """
        if name not in self._fields:
            if default is _MISSING:
                raise KeyError(name)
            return default

        value = self._fields[name]
        if value is None:
            return None
        # bool is an int subclass and datetime a date subclass; route both through the table
        if target is date and isinstance(value, datetime):
            return value.date()
        if isinstance(value, target) and not (target is int and isinstance(value, bool)):
            return value

        converter = _CONVERTERS.get(target)
        if converter is None:
            raise RecordConversionError(name, value, target)
        try:
            return converter(value)
        except (TypeError, ValueError, OverflowError, InvalidOperation) as e:
            raise RecordConversionError(name, value, target, cause=e) from e

    @property
    def field_names(self) -> list[str]:
        return list(self._fields)

    # ── Pool support ─────────────────────────────────────────────

    def reset(self) -> None:
        """Clear all fields."""
        self._fields.clear()

    def copy_to(self, other: Record) -> Record:
        """Deep-copy every field into *other*, replacing its contents."""
        other.reset()
        other._fields.update(copy.deepcopy(self._fields))
        return other

    def clone(self) -> Record:
        return self.copy_to(type(self)())

    # ── Conversion ───────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return dict(self._fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self._fields == other._fields

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._fields!r})"


__all__ = ["Record"]
