"""
Shared machinery of the query builders.

A builder accumulates clauses and compiles them lazily into SQL text
plus a positional list of bound values. Adding a clause drops the
compiled form, so the next ``compile()`` or ``run()`` rebuilds it.

Conditions use neutral ``?`` markers whatever the backend; the dialect
placeholder is only written at compile time:

    >>> query = db["post"].select().where("id > ?", 3).where("type IN ", ["text", "video"])
    >>> query.compile()
    ('SELECT "post".* FROM "post" WHERE id > ? AND type IN (?, ?)', [3, 'text', 'video'])

A condition without markers gets its single value appended
(``where("age > ", 18)`` -> ``age > ?``). Sequences expand to one
placeholder per item; an empty sequence compiles to ``(NULL)`` so that
``IN`` matches nothing.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rowspine.core.dialect import split_placeholders
from rowspine.core.errors import QueryError
from rowspine.core.logging import get_logger
from rowspine.relations import RelationKind
from rowspine.row import Row
from rowspine.row_collection import RowCollection

if TYPE_CHECKING:
    from rowspine.core.dialect import Dialect
    from rowspine.database import Database
    from rowspine.relations import Relation
    from rowspine.table import Table

logger = get_logger(__name__)

MARKER = "?"
_SEQUENCE_TYPES = (list, tuple, set, frozenset, RowCollection)


def _bindable(value: Any) -> Any:
    if isinstance(value, Row):
        return value.id
    if isinstance(value, RowCollection):
        return value.ids
    if isinstance(value, _SEQUENCE_TYPES):
        return [v.id if isinstance(v, Row) else v for v in value]
    return value


@dataclass(frozen=True)
class Condition:
    """A SQL fragment split around its markers.

    ``parts`` always has one more item than ``values``.
    """

    parts: tuple[str, ...]
    values: tuple[Any, ...]

    @classmethod
    def parse(cls, condition: str, values: Sequence[Any]) -> Condition:
        parts = split_placeholders(condition, MARKER)
        if len(parts) == 1 and len(values) == 1:
            parts = [condition.rstrip() + " ", ""]
        if len(parts) - 1 != len(values):
            raise QueryError(
                f"The condition {condition!r} has {len(parts) - 1} placeholders "
                f"but {len(values)} values were given"
            )
        return cls(tuple(parts), tuple(_bindable(v) for v in values))

    def render(self, dialect: Dialect, params: list[Any]) -> str:
        """Write the fragment, appending its values to ``params``."""
        sql = [self.parts[0]]
        for value, part in zip(self.values, self.parts[1:]):
            if isinstance(value, list):
                if value:
                    marks = [dialect.placeholder(len(params) + i) for i in range(len(value))]
                    sql.append("(" + ", ".join(marks) + ")")
                    params.extend(value)
                else:
                    sql.append("(NULL)")
            else:
                sql.append(dialect.placeholder(len(params)))
                params.append(value)
            sql.append(part)
        return "".join(sql)


class Query:
    """Base builder bound to one table."""

    def __init__(self, table: Table) -> None:
        self.table = table
        self._compiled: tuple[str, list[Any]] | None = None

    @property
    def database(self) -> Database:
        return self.table.database

    @property
    def dialect(self) -> Dialect:
        return self.table.database.dialect

    def quote(self, identifier: str) -> str:
        return self.dialect.quote(identifier)

    def _changed(self) -> None:
        self._compiled = None

    def compile(self) -> tuple[str, list[Any]]:
        """Return ``(sql, params)``, building them on first use."""
        if self._compiled is None:
            params: list[Any] = []
            sql = self._build(params)
            self._compiled = (sql, params)
        return self._compiled

    def _build(self, params: list[Any]) -> str:
        raise NotImplementedError

    @property
    def sql(self) -> str:
        return self.compile()[0]

    @property
    def params(self) -> list[Any]:
        return list(self.compile()[1])

    def run(self) -> Any:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.sql

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.table.name!r})"


class WhereMixin:
    """``where`` / ``or_where`` / ``related_with``.

    Conditions are kept as groups: groups are AND-ed together and the
    conditions inside a group are OR-ed.
    """

    _where: list[list[Condition]]

    def where(self, condition: str, *values: Any):
        """Add an AND-ed condition."""
        self._where.append([Condition.parse(condition, values)])
        self._changed()
        return self

    def or_where(self, condition: str, *values: Any):
        """OR the condition with the previous condition group."""
        parsed = Condition.parse(condition, values)
        if self._where:
            self._where[-1].append(parsed)
        else:
            self._where.append([parsed])
        self._changed()
        return self

    def related_with(self, target: Row | RowCollection | Table):
        """Keep the records related to a row, a collection or any row of a table.

        Raises:
            TablesNotRelatedError: No relation between the two tables.
        """
        other = target.table if isinstance(target, (Row, RowCollection)) else target
        relation = self.database.relations.resolve_or_raise(self.table, other)
        if isinstance(target, Row):
            self._relate_to_rows(relation, [target])
        elif isinstance(target, RowCollection):
            self._relate_to_rows(relation, list(target))
        else:
            self._relate_to_table(relation)
        return self

    def _relate_to_rows(self, relation: Relation, rows: list[Row]) -> None:
        q = self.quote
        me = q(self.table.name)
        ids = [row.id for row in rows if row.id is not None]

        match relation.kind:
            case RelationKind.HAS_ONE if relation.related == relation.table:
                # a table pointing at itself: the rows' join field names the parent
                keys = {row.get(relation.field) for row in rows} - {None}
                self.where(f"{me}.{q('id')} IN ?", sorted(keys))
            case RelationKind.HAS_ONE:
                self.where(f"{me}.{q(relation.field)} IN ?", ids)
            case RelationKind.HAS_MANY:
                keys = {row.get(relation.field) for row in rows} - {None}
                self.where(f"{me}.{q('id')} IN ?", sorted(keys))
            case RelationKind.HAS_MANY_TO_MANY:
                join = q(relation.join_table)
                self.where(
                    f"{me}.{q('id')} IN (SELECT {join}.{q(relation.join_field)} FROM {join} "
                    f"WHERE {join}.{q(relation.related_join_field)} IN ?)",
                    ids,
                )

    def _relate_to_table(self, relation: Relation) -> None:
        q = self.quote
        me = q(self.table.name)

        match relation.kind:
            case RelationKind.HAS_ONE:
                self.where(f"{me}.{q(relation.field)} IS NOT NULL")
            case RelationKind.HAS_MANY:
                other = q(relation.related)
                self.where(
                    f"{me}.{q('id')} IN (SELECT {other}.{q(relation.field)} FROM {other})"
                )
            case RelationKind.HAS_MANY_TO_MANY:
                join = q(relation.join_table)
                self.where(
                    f"{me}.{q('id')} IN (SELECT {join}.{q(relation.join_field)} FROM {join} "
                    f"WHERE {join}.{q(relation.related_join_field)} IS NOT NULL)"
                )

    def _where_sql(self, params: list[Any]) -> str:
        if not self._where:
            return ""
        groups = []
        for group in self._where:
            rendered = [c.render(self.dialect, params) for c in group]
            groups.append(rendered[0] if len(rendered) == 1 else "(" + " OR ".join(rendered) + ")")
        return " WHERE " + " AND ".join(groups)


class LimitMixin:
    """``order_by`` / ``limit`` / ``offset``.

    Builders that cannot always honour them override
    :meth:`_limit_allowed`; the clauses are then dropped at compile time
    and callers keep the same code.
    """

    _order: list[str]
    _limit: int | None
    _offset: int | None

    def order_by(self, *expressions: str):
        self._order.extend(expressions)
        self._changed()
        return self

    def limit(self, limit: int | None):
        self._limit = None if limit is None else int(limit)
        self._changed()
        return self

    def offset(self, offset: int | None):
        self._offset = None if offset is None else int(offset)
        self._changed()
        return self

    def _limit_allowed(self) -> bool:
        return True

    def _tail_sql(self, params: list[Any]) -> str:
        """``ORDER BY``, ``LIMIT`` and ``OFFSET`` in that order."""
        if not self._limit_allowed():
            if self._order or self._limit is not None or self._offset is not None:
                logger.debug(
                    "limit_suppressed",
                    table=self.table.name,
                    statement=self.__class__.__name__,
                    dialect=self.dialect.name,
                )
            return ""

        sql = ""
        if self._order:
            sql += " ORDER BY " + ", ".join(self._order)
        if self._limit is not None:
            sql += f" LIMIT {self.dialect.placeholder(len(params))}"
            params.append(self._limit)
        elif self._offset is not None and self.dialect.no_limit is not None:
            sql += f" LIMIT {self.dialect.no_limit}"
        if self._offset is not None:
            sql += f" OFFSET {self.dialect.placeholder(len(params))}"
            params.append(self._offset)
        return sql


__all__ = ["Condition", "Query", "WhereMixin", "LimitMixin"]
