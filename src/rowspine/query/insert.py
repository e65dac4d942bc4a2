"""INSERT builder."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from rowspine.query.base import Query

if TYPE_CHECKING:
    from rowspine.table import Table


class Insert(Query):
    """Builds ``INSERT INTO "table" (...) VALUES (...)``.

    ``run()`` returns the identity of the new record: the ``id`` given
    in the values, else the one the database generated.
    """

    def __init__(self, table: Table, values: Mapping[str, Any] | None = None) -> None:
        super().__init__(table)
        self._values: dict[str, Any] = {}
        if values:
            self.set(values)

    def set(self, values: Mapping[str, Any]) -> Insert:
        self._values.update(values)
        self._changed()
        return self

    def _build(self, params: list[Any]) -> str:
        values = self.table.to_database(self._values)
        if values.get("id") is None:
            values.pop("id", None)

        sql = f"INSERT INTO {self.quote(self.table.name)}"
        if values:
            columns = ", ".join(self.quote(name) for name in values)
            marks = ", ".join(self.dialect.placeholder(len(params) + i) for i in range(len(values)))
            params.extend(values.values())
            sql += f" ({columns}) VALUES ({marks})"
        else:
            sql += f" {self.dialect.default_values()}"

        returning = self.dialect.returning("id")
        if returning:
            sql += f" {returning}"
        return sql

    def run(self) -> Any:
        sql, params = self.compile()
        returning = self.dialect.returning("id")
        with self.database.execute(sql, params) as cursor:
            if returning:
                row = cursor.fetchone()
                generated = row[0] if row else None
            else:
                generated = cursor.lastrowid

        given = self._values.get("id")
        return self.table.fields["id"].to_python(given if given is not None else generated)


__all__ = ["Insert"]
