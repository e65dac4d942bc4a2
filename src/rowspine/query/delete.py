"""DELETE builder."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rowspine.query.base import LimitMixin, Query, WhereMixin

if TYPE_CHECKING:
    from rowspine.table import Table


class Delete(WhereMixin, LimitMixin, Query):
    """Builds ``DELETE FROM "table" WHERE ...``; ``run()`` returns the row count.

    Without ``where`` every record of the table is deleted.
    """

    def __init__(self, table: Table) -> None:
        super().__init__(table)
        self._where = []
        self._order = []
        self._limit = None
        self._offset = None

    def _limit_allowed(self) -> bool:
        return self.dialect.supports_update_delete_limit

    def _build(self, params: list[Any]) -> str:
        sql = f"DELETE FROM {self.quote(self.table.name)}"
        sql += self._where_sql(params)
        return sql + self._tail_sql(params)

    def run(self) -> int:
        sql, params = self.compile()
        with self.database.execute(sql, params) as cursor:
            return cursor.rowcount


__all__ = ["Delete"]
