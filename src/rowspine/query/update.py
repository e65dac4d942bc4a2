"""UPDATE builder."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from rowspine.core.errors import QueryError
from rowspine.query.base import LimitMixin, Query, WhereMixin

if TYPE_CHECKING:
    from rowspine.table import Table


class Update(WhereMixin, LimitMixin, Query):
    """Builds ``UPDATE "table" SET ... WHERE ...``; ``run()`` returns the row count.

    ``limit``/``offset``/``order_by`` are dropped when the dialect does
    not accept them on UPDATE.
    """

    def __init__(self, table: Table, values: Mapping[str, Any] | None = None) -> None:
        super().__init__(table)
        self._where = []
        self._order = []
        self._limit = None
        self._offset = None
        self._values: dict[str, Any] = {}
        if values:
            self.set(values)

    def set(self, values: Mapping[str, Any]) -> Update:
        self._values.update(values)
        self._changed()
        return self

    def _limit_allowed(self) -> bool:
        return self.dialect.supports_update_delete_limit

    def _build(self, params: list[Any]) -> str:
        if not self._values:
            raise QueryError("UPDATE without values").with_context(table=self.table.name)

        assignments = []
        for name, value in self.table.to_database(self._values).items():
            assignments.append(f"{self.quote(name)} = {self.dialect.placeholder(len(params))}")
            params.append(value)

        sql = f"UPDATE {self.quote(self.table.name)} SET " + ", ".join(assignments)
        sql += self._where_sql(params)
        return sql + self._tail_sql(params)

    def run(self) -> int:
        sql, params = self.compile()
        with self.database.execute(sql, params) as cursor:
            return cursor.rowcount


__all__ = ["Update"]
