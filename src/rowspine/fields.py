"""
Field descriptors and the field type registry.

Each table field is described by an immutable :class:`FieldDescriptor`
(built from the schema provider's field info) and converted by a
:class:`Field` subclass chosen by :class:`FieldTypeRegistry`:

    ==============  ===========================================  ==============
    Field class     Declared types                               Python value
    ==============  ===========================================  ==============
    ``Integer``     int, integer, tinyint, smallint, bigint ...  ``int``
    ``Float``       decimal, numeric, float, double, real        ``float``
    ``Boolean``     boolean, bool, tinyint(1)                    ``bool``
    ``Date``        date                                         ``date``
    ``Datetime``    datetime, timestamp                          ``datetime``
    ``Set``         set                                          ``set[str]``
    ``Enum``        enum                                         ``str``
    ``Json``        json, jsonb                                  any JSON value
    ``Field``       everything else                              as stored
    ==============  ===========================================  ==============

Columns without a recognised type (SQLite allows typeless columns) fall
back to naming rules: ``id`` and ``*_id`` are integers, ``is_*`` /
``has_*`` booleans and ``*_at`` datetimes.

Examples:
    >>> registry = FieldTypeRegistry()
    >>> field = registry.create(FieldDescriptor("pubdate", "datetime"))
    >>> field.to_python("2024-05-01 10:30:00")
    datetime.datetime(2024, 5, 1, 10, 30)
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from rowspine.core.errors import FieldValueError


@dataclass(frozen=True)
class FieldDescriptor:
    """Immutable description of one table field."""

    name: str
    type: str = ""
    nullable: bool = True
    default: Any = None
    unsigned: bool = False
    length: int | None = None
    values: tuple[str, ...] | None = None

    @classmethod
    def from_info(cls, info: Mapping[str, Any]) -> FieldDescriptor:
        """Build from a schema provider field dict."""
        values = info.get("values")
        return cls(
            name=info["name"],
            type=(info.get("type") or "").lower(),
            nullable=bool(info.get("null", True)),
            default=info.get("default"),
            unsigned=bool(info.get("unsigned", False)),
            length=info.get("length"),
            values=tuple(values) if values else None,
        )


class Field:
    """Generic field: values pass through unchanged."""

    def __init__(self, descriptor: FieldDescriptor) -> None:
        self.descriptor = descriptor

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def default(self) -> Any:
        """Value a new row gets when none is given."""
        if self.descriptor.default is not None:
            return self.to_python(self.descriptor.default)
        if self.descriptor.nullable:
            return None
        return self.empty_value()

    def empty_value(self) -> Any:
        return None

    def to_python(self, value: Any) -> Any:
        """Convert a raw database value."""
        return value

    def to_database(self, value: Any) -> Any:
        """Convert an application value into something the driver binds."""
        return value

    def _fail(self, value: Any, reason: str) -> FieldValueError:
        return FieldValueError(
            f"Invalid value for the field {self.name}: {reason}",
            field=self.name,
            value=value,
        )

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r}, type={self.descriptor.type!r})"


class Integer(Field):
    def to_python(self, value: Any) -> int | None:
        if value is None or value == "":
            return None
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise self._fail(value, str(e)) from e

    def to_database(self, value: Any) -> int | None:
        value = self.to_python(value)
        if value is not None and self.descriptor.unsigned and value < 0:
            raise self._fail(value, "must not be negative")
        return value


class Float(Field):
    def to_python(self, value: Any) -> float | None:
        if value is None or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise self._fail(value, str(e)) from e

    to_database = to_python


class Boolean(Field):
    _TRUE = {"1", "true", "t", "yes", "y", "on"}
    _FALSE = {"0", "false", "f", "no", "n", "off", ""}

    def empty_value(self) -> bool:
        return False

    def to_python(self, value: Any) -> bool | None:
        if value is None:
            return None
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in self._TRUE:
                return True
            if lowered in self._FALSE:
                return False
            raise self._fail(value, "not a boolean")
        return bool(value)

    def to_database(self, value: Any) -> int | None:
        value = self.to_python(value)
        return None if value is None else int(value)


class Date(Field):
    def to_python(self, value: Any) -> date | None:
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value)[:10])
        except ValueError as e:
            raise self._fail(value, str(e)) from e

    def to_database(self, value: Any) -> str | None:
        value = self.to_python(value)
        return None if value is None else value.isoformat()


class Datetime(Field):
    def to_python(self, value: Any) -> datetime | None:
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        try:
            return datetime.fromisoformat(str(value))
        except ValueError as e:
            raise self._fail(value, str(e)) from e

    def to_database(self, value: Any) -> str | None:
        value = self.to_python(value)
        return None if value is None else value.isoformat(sep=" ")


class Set(Field):
    """Comma-separated set of enumerated values (MySQL ``SET``)."""

    def empty_value(self) -> set[str]:
        return set()

    def to_python(self, value: Any) -> set[str] | None:
        if value is None:
            return None
        if isinstance(value, str):
            return {item for item in value.split(",") if item}
        return {str(item) for item in value}

    def to_database(self, value: Any) -> str | None:
        items = self.to_python(value)
        if items is None:
            return None
        allowed = self.descriptor.values
        if allowed:
            unknown = items.difference(allowed)
            if unknown:
                raise self._fail(value, f"unknown values {sorted(unknown)}")
        return ",".join(sorted(items))


class Enum(Field):
    def to_database(self, value: Any) -> Any:
        allowed = self.descriptor.values
        if value is not None and allowed and value not in allowed:
            raise self._fail(value, f"expected one of {list(allowed)}")
        return value


class Json(Field):
    def to_python(self, value: Any) -> Any:
        if isinstance(value, (str, bytes)):
            if not value:
                return None
            try:
                return json.loads(value)
            except ValueError as e:
                raise self._fail(value, str(e)) from e
        return value

    def to_database(self, value: Any) -> str | None:
        if value is None:
            return None
        return json.dumps(value)


DEFAULT_TYPES: dict[str, type[Field]] = {
    **dict.fromkeys(
        ["int", "integer", "tinyint", "smallint", "mediumint", "bigint", "serial", "bigserial"],
        Integer,
    ),
    **dict.fromkeys(["decimal", "numeric", "float", "double", "double precision", "real"], Float),
    **dict.fromkeys(["boolean", "bool"], Boolean),
    "date": Date,
    **dict.fromkeys(
        ["datetime", "timestamp", "timestamp without time zone", "timestamp with time zone"],
        Datetime,
    ),
    "set": Set,
    "enum": Enum,
    **dict.fromkeys(["json", "jsonb"], Json),
}

DEFAULT_NAME_RULES: list[tuple[str, type[Field]]] = [
    (r"^id$", Integer),
    (r"_id$", Integer),
    (r"^(is|has)_", Boolean),
    (r"_at$", Datetime),
]


class FieldTypeRegistry:
    """Maps a field descriptor to its converter class.

    Lookup order: ``tinyint(1)`` as boolean, then the declared type.
    Naming rules only apply to columns declared without a type; any
    other unknown type is the generic :class:`Field`.
    """

    def __init__(
        self,
        types: Mapping[str, type[Field]] | None = None,
        name_rules: Iterable[tuple[str, type[Field]]] | None = None,
    ) -> None:
        self._types = dict(DEFAULT_TYPES if types is None else types)
        self._name_rules = [
            (re.compile(pattern), cls)
            for pattern, cls in (DEFAULT_NAME_RULES if name_rules is None else name_rules)
        ]

    def register(self, type_name: str, field_class: type[Field]) -> None:
        """Map a declared type (case-insensitive) to a field class."""
        self._types[type_name.lower()] = field_class

    def register_name(self, pattern: str, field_class: type[Field]) -> None:
        """Add a naming rule, checked before the built-in ones."""
        self._name_rules.insert(0, (re.compile(pattern), field_class))

    def field_class_for(self, descriptor: FieldDescriptor) -> type[Field]:
        if descriptor.type == "tinyint" and descriptor.length == 1:
            return Boolean
        if descriptor.type in self._types:
            return self._types[descriptor.type]
        if descriptor.type:
            return Field
        for pattern, cls in self._name_rules:
            if pattern.search(descriptor.name):
                return cls
        return Field

    def create(self, descriptor: FieldDescriptor) -> Field:
        return self.field_class_for(descriptor)(descriptor)


__all__ = [
    "FieldDescriptor",
    "Field",
    "Integer",
    "Float",
    "Boolean",
    "Date",
    "Datetime",
    "Set",
    "Enum",
    "Json",
    "FieldTypeRegistry",
]
