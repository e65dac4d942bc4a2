"""Ordered collection of rows of one table."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Sequence
from typing import TYPE_CHECKING, Any, overload

from rowspine.relations import RelationKind
from rowspine.row import Row, json_default

if TYPE_CHECKING:
    from rowspine.table import Table


class RowCollection(Sequence):
    """Rows returned by a select.

    Besides the sequence protocol it offers column helpers and
    :meth:`related`, which loads a relation for every row at once.
    """

    def __init__(self, table: Table, rows: Iterable[Row] = ()) -> None:
        self.table = table
        self._rows: list[Row] = list(rows)

    @overload
    def __getitem__(self, index: int) -> Row: ...

    @overload
    def __getitem__(self, index: slice) -> RowCollection: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return RowCollection(self.table, self._rows[index])
        return self._rows[index]

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self._rows)

    @property
    def ids(self) -> list[Any]:
        return [row.id for row in self._rows if row.id is not None]

    def column(self, name: str) -> list[Any]:
        return [row.get(name) for row in self._rows]

    def first(self) -> Row | None:
        return self._rows[0] if self._rows else None

    def index_by(self, name: str) -> dict[Any, Row]:
        return {row.get(name): row for row in self._rows}

    def group_by(self, name: str) -> dict[Any, RowCollection]:
        groups: dict[Any, RowCollection] = {}
        for row in self._rows:
            groups.setdefault(row.get(name), RowCollection(self.table))._rows.append(row)
        return groups

    def to_list(self) -> list[dict[str, Any]]:
        return [row.to_dict() for row in self._rows]

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self.to_list(), default=json_default, **kwargs)

    def related(self, name: str) -> RowCollection:
        """Load the rows of table ``name`` related to these rows and link them.

        Has-one and has-many relations take a single query; many-to-many
        relations are selected row by row.
        """
        db = self.table.database
        other = db[name]
        relation = db.relations.resolve_or_raise(self.table, other)

        if not self._rows:
            return RowCollection(other)

        match relation.kind:
            case RelationKind.HAS_ONE:
                keys = {row.get(relation.field) for row in self._rows} - {None}
                loaded = other.select().where(f"{other.quote('id')} IN ?", sorted(keys)).run()
                by_id = {row.id: row for row in loaded}
                for row in self._rows:
                    row.link(by_id.get(row.get(relation.field)), name)
            case RelationKind.HAS_MANY:
                loaded = other.select().related_with(self).run()
                groups = loaded.group_by(relation.field)
                for row in self._rows:
                    row.link(groups.get(row.id, RowCollection(other)), name)
            case _:
                seen: dict[Any, Row] = {}
                for row in self._rows:
                    linked = row.select(other).run()
                    row.link(linked, name)
                    seen.update((r.id, r) for r in linked)
                loaded = RowCollection(other, seen.values())
        return loaded

    def __repr__(self) -> str:
        return f"<RowCollection {self.table.name} ({len(self)} rows)>"


__all__ = ["RowCollection"]
