"""SELECT builder."""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from rowspine.core.errors import QueryError
from rowspine.query.base import Condition, LimitMixin, Query, WhereMixin
from rowspine.relations import RelationKind
from rowspine.row import Row
from rowspine.row_collection import RowCollection

if TYPE_CHECKING:
    from rowspine.table import Table


class Select(WhereMixin, LimitMixin, Query):
    """Builds ``SELECT "table".* FROM "table" ...`` and hydrates the rows.

    ``run()`` returns a :class:`RowCollection`, or a single ``Row`` (or
    ``None``) after :meth:`one`.
    """

    def __init__(self, table: Table) -> None:
        super().__init__(table)
        self._where = []
        self._order = []
        self._limit = None
        self._offset = None
        self._group: list[str] = []
        self._joins: list[tuple[str, str, Condition]] = []
        self._one = False

    def one(self) -> Select:
        """Return a single row (or ``None``) from ``run()``."""
        self._one = True
        self._limit = 1
        self._changed()
        return self

    def group_by(self, *expressions: str) -> Select:
        self._group.extend(expressions)
        self._changed()
        return self

    def related_with(self, target):
        super().related_with(target)
        # the target row holds the join field: at most one match
        if isinstance(target, Row):
            relation = self.database.relations.resolve(self.table, target.table)
            parent = relation.kind is RelationKind.HAS_ONE and relation.related == relation.table
            if relation.kind is RelationKind.HAS_MANY or parent:
                self.one()
        return self

    def join(self, table: Table | str, condition: str | None = None, *values: Any) -> Select:
        """``INNER JOIN``; without ``condition`` it follows the relation."""
        return self._add_join("INNER JOIN", table, condition, values)

    def left_join(self, table: Table | str, condition: str | None = None, *values: Any) -> Select:
        return self._add_join("LEFT JOIN", table, condition, values)

    def _add_join(self, kind: str, table: Table | str, condition: str | None, values: tuple) -> Select:
        other = self.database[table] if isinstance(table, str) else table
        if condition is not None:
            self._joins.append((kind, other.name, Condition.parse(condition, values)))
            self._changed()
            return self

        q = self.quote
        me, them = q(self.table.name), q(other.name)
        relation = self.database.relations.resolve_or_raise(self.table, other)

        match relation.kind:
            case RelationKind.HAS_ONE:
                on = f"{them}.{q('id')} = {me}.{q(relation.field)}"
                self._joins.append((kind, other.name, Condition.parse(on, ())))
            case RelationKind.HAS_MANY:
                on = f"{them}.{q(relation.field)} = {me}.{q('id')}"
                self._joins.append((kind, other.name, Condition.parse(on, ())))
            case RelationKind.HAS_MANY_TO_MANY:
                link = q(relation.join_table)
                on_link = f"{link}.{q(relation.join_field)} = {me}.{q('id')}"
                on = f"{them}.{q('id')} = {link}.{q(relation.related_join_field)}"
                self._joins.append((kind, relation.join_table, Condition.parse(on_link, ())))
                self._joins.append((kind, other.name, Condition.parse(on, ())))
        self._changed()
        return self

    def _build(self, params: list[Any]) -> str:
        me = self.quote(self.table.name)
        sql = f"SELECT {me}.* FROM {me}"
        for kind, name, condition in self._joins:
            sql += f" {kind} {self.quote(name)} ON {condition.render(self.dialect, params)}"
        sql += self._where_sql(params)
        if self._group:
            sql += " GROUP BY " + ", ".join(self._group)
        return sql + self._tail_sql(params)

    def records(self) -> list[dict[str, Any]]:
        """Run the query and return the raw records as dicts."""
        sql, params = self.compile()
        with self.database.execute(sql, params) as cursor:
            columns = [d[0] for d in cursor.description or ()]
            return [dict(zip(columns, values)) for values in cursor.fetchall()]

    def run(self) -> RowCollection | Row | None:
        rows = [self.table.hydrate(record) for record in self.records()]
        if self._one:
            return rows[0] if rows else None
        return RowCollection(self.table, rows)

    def count(self) -> int:
        """Number of records this query would return."""
        sql, params = self.compile()
        with self.database.execute(f"SELECT COUNT(*) FROM ({sql}) AS counted", params) as cursor:
            row = cursor.fetchone()
        if row is None:
            raise QueryError("COUNT returned no row").with_context(table=self.table.name, sql=sql)
        return int(row[0])

    def __iter__(self) -> Iterator[Row]:
        result = self.run()
        if isinstance(result, RowCollection):
            return iter(result)
        return iter([] if result is None else [result])


__all__ = ["Select"]
