"""
Relation inference by naming convention.

No foreign keys are configured anywhere: two tables are related when
their field and table names say so.

    ===================  ================================================
    Kind                 Rule (A = this table, B = other table)
    ===================  ================================================
    ``HAS_ONE``          A has a field ``{B}_id``
    ``HAS_MANY``         B has a field ``{A}_id``
    ``HAS_MANY_TO_MANY`` a table named ``{A}_{B}`` (names sorted) exists
                         with the fields ``{A}_id`` and ``{B}_id``
    ===================  ================================================

The rules are checked in that order; the first one that applies wins.

Examples:
    >>> relation = db.relations.resolve(db["post"], db["category"])
    >>> relation.kind, relation.field
    (<RelationKind.HAS_ONE: 'has_one'>, 'category_id')
    >>> db.relations.resolve(db["category"], db["post"]).kind
    <RelationKind.HAS_MANY: 'has_many'>
    >>> db.relations.resolve(db["post"], db["tag"]).join_table
    'post_tag'
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from rowspine.core.errors import TablesNotRelatedError

if TYPE_CHECKING:
    from rowspine.database import Database
    from rowspine.table import Table


class RelationKind(str, Enum):
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    HAS_MANY_TO_MANY = "has_many_to_many"


class TableSchema(Protocol):
    """What inference needs to know about a table."""

    name: str
    fields: Mapping[str, Any]


@dataclass(frozen=True)
class Relation:
    """How ``table`` reaches ``related``.

    ``field`` is the join field: on ``table`` for ``HAS_ONE`` and on
    ``related`` for ``HAS_MANY``. Many-to-many relations name the
    ``join_table`` and its fields pointing at each side instead.
    """

    kind: RelationKind
    table: str
    related: str
    field: str | None = None
    join_table: str | None = None
    join_field: str | None = None
    related_join_field: str | None = None


def foreign_key(table_name: str) -> str:
    return f"{table_name}_id"


def join_table_name(a: str, b: str) -> str:
    """``post`` + ``tag`` -> ``post_tag`` (alphabetical order)."""
    return "_".join(sorted((a, b)))


def infer_relation(
    a: TableSchema,
    b: TableSchema,
    join_table: TableSchema | None = None,
) -> Relation | None:
    """Infer how ``a`` relates to ``b``; ``None`` when it does not."""
    key_a = foreign_key(a.name)
    key_b = foreign_key(b.name)

    if key_b in a.fields:
        return Relation(RelationKind.HAS_ONE, a.name, b.name, field=key_b)

    if key_a in b.fields:
        return Relation(RelationKind.HAS_MANY, a.name, b.name, field=key_a)

    if (
        join_table is not None
        and a.name != b.name
        and key_a in join_table.fields
        and key_b in join_table.fields
    ):
        return Relation(
            RelationKind.HAS_MANY_TO_MANY,
            a.name,
            b.name,
            join_table=join_table.name,
            join_field=key_a,
            related_join_field=key_b,
        )

    return None


class RelationResolver:
    """Resolves and caches the relation of each ordered table pair.

    Schemas do not change once loaded, so a pair is inferred once per
    database.
    """

    def __init__(self, database: Database) -> None:
        self._database = database
        self._cache: dict[tuple[str, str], Relation | None] = {}

    def resolve(self, a: Table, b: Table) -> Relation | None:
        key = (a.name, b.name)
        if key not in self._cache:
            name = join_table_name(a.name, b.name)
            join_table = self._database[name] if name in self._database else None
            self._cache[key] = infer_relation(a, b, join_table)
        return self._cache[key]

    def resolve_or_raise(self, a: Table, b: Table) -> Relation:
        relation = self.resolve(a, b)
        if relation is None:
            raise TablesNotRelatedError(a.name, b.name)
        return relation

    def clear(self) -> None:
        self._cache.clear()


__all__ = [
    "RelationKind",
    "Relation",
    "foreign_key",
    "join_table_name",
    "infer_relation",
    "RelationResolver",
]
