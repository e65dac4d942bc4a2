"""
Row: one mutable record of a table.

A row keeps its field values, a ``changed`` flag and the related rows
it has loaded (links). Reading a name resolves, in order:

    1. a field of the table                      row["title"]
    2. the field suffixed with the locale        row["title"] -> title_en
    3. a link already loaded                     row["category"]
    4. a table of that name, loaded lazily       row["comment"]

Writes follow steps 1-2 only; anything else raises
:class:`~rowspine.core.errors.UnknownFieldError`.

Examples:
    >>> post = db["post"].create({"title": "Hello"})
    >>> post.changed
    True
    >>> post.save().id
    1
    >>> post.relate(db["category"].create({"name": "News"})).changed
    False
    >>> post.category["name"]
    'News'
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from datetime import date
from typing import TYPE_CHECKING, Any

from rowspine.core.errors import RelationError, UnknownFieldError
from rowspine.core.logging import get_logger
from rowspine.relations import RelationKind

if TYPE_CHECKING:
    from rowspine.query.select import Select
    from rowspine.row_collection import RowCollection
    from rowspine.table import Table

logger = get_logger(__name__)

CONFIG_LOCALE = "locale"


def json_default(value: Any) -> Any:
    """``json.dumps`` fallback for dates and sets."""
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _empty(value: Any) -> bool:
    return value is None or value == ""


class Row:
    """A record of ``table``.

    Use ``row[name]`` / :meth:`get` / :meth:`set`; ``row.name`` is a
    read-only shortcut for :meth:`get`.
    """

    def __init__(self, table: Table, values: Mapping[str, Any] | None = None) -> None:
        self._table = table
        self._values: dict[str, Any] = table.get_defaults(values)
        self._changed = _empty(self._values.get("id"))
        self._dirty: set[str] = set()
        self._links: dict[str, Row | RowCollection | None] = {}

    # -- properties ----------------------------------------------------------

    @property
    def table(self) -> Table:
        return self._table

    @property
    def id(self) -> Any:
        value = self._values.get("id")
        return None if _empty(value) else value

    @property
    def changed(self) -> bool:
        return self._changed

    # -- values --------------------------------------------------------------

    def _value_name(self, name: str) -> str | None:
        if name in self._values:
            return name
        locale = self._table.database.get_config(CONFIG_LOCALE)
        if locale:
            localized = f"{name}_{locale}"
            if localized in self._values:
                return localized
        return None

    def get(self, name: str) -> Any:
        """Value of a field, or the related row(s) called ``name``."""
        value_name = self._value_name(name)
        if value_name is not None:
            return self._values[value_name]
        if name in self._links or name in self._table.database:
            return self.related(name)
        raise UnknownFieldError(self._table.name, name)

    def set(self, name: str, value: Any) -> Row:
        value_name = self._value_name(name)
        if value_name is None:
            raise UnknownFieldError(self._table.name, name)

        if self._values[value_name] != value or type(self._values[value_name]) is not type(value):
            self._values[value_name] = value
            self._changed = True
            self._dirty.add(value_name)
            if value_name == "id":
                self._links.clear()
            elif value_name.endswith("_id"):
                self._links.pop(value_name[:-3], None)
        return self

    def edit(self, values: Mapping[str, Any]) -> Row:
        for name, value in values.items():
            self.set(name, value)
        return self

    def related(self, name: str) -> Row | RowCollection | None:
        """Linked rows of the table ``name``, selected and cached on first use."""
        if name not in self._links:
            db = self._table.database
            self._links[name] = self.select(db[name]).run()
        return self._links[name]

    def link(self, rows: Row | RowCollection | None, name: str | None = None) -> Row:
        """Attach already loaded related rows under ``name`` (default: their table)."""
        if name is None:
            if rows is None:
                raise ValueError("A name is required to link None")
            name = rows.table.name
        self._links[name] = rows
        return self

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self._values, default=json_default, **kwargs)

    # -- persistence ---------------------------------------------------------

    def save(self) -> Row:
        """Insert or update the record when something changed."""
        if not self._changed:
            return self

        inserted = self.id is None
        if inserted:
            self._values["id"] = self._table.insert(self._values).run()
        elif self._dirty:
            values = {name: self._values[name] for name in self._dirty}
            self._table.update(values).where(f"{self._table.quote('id')} = ", self.id).run()

        self._table.cache(self)
        self._changed = False
        self._dirty.clear()
        logger.debug("row_saved", table=self._table.name, id=self.id, inserted=inserted)
        return self

    def delete(self) -> Row:
        """Delete the record and forget the identity."""
        if self.id is None:
            return self

        id = self.id
        self._table.delete().where(f"{self._table.quote('id')} = ", id).run()
        self._table.uncache(self)
        self._values["id"] = None
        self._changed = True
        logger.debug("row_deleted", table=self._table.name, id=id)
        return self

    def refresh(self) -> Row:
        """Reload the values from the database, dropping unsaved changes."""
        if self.id is None:
            return self

        records = self._table.select().where(f"{self._table.quote('id')} = ", self.id).limit(1).records()
        self._links.clear()
        if not records:
            self._table.uncache(self)
            self._values["id"] = None
            self._changed = True
            return self

        self._values.update(self._table.to_python(records[0]))
        self._changed = False
        self._dirty.clear()
        return self

    def _sync(self, values: Mapping[str, Any]) -> None:
        """Take the values of a record just read, unless there are unsaved edits."""
        if self._changed:
            return
        if any(self._values.get(name) != value for name, value in values.items()):
            self._values.update(values)
            self._links.clear()

    def _reset_value(self, name: str, value: Any) -> None:
        """Set a value already stored in the database."""
        self._values[name] = value
        self._dirty.discard(name)
        if name.endswith("_id"):
            self._links.pop(name[:-3], None)

    # -- relations -----------------------------------------------------------

    def select(self, table: Table | str) -> Select:
        """Select the rows of ``table`` related to this row."""
        if isinstance(table, str):
            table = self._table.database[table]
        return table.select().related_with(self)

    def _resolve(self, tables: Iterable[Table]) -> list:
        resolver = self._table.database.relations
        return [resolver.resolve_or_raise(self._table, table) for table in tables]

    def relate(self, *rows: Row) -> Row:
        """Relate this row with ``rows`` and save it.

        Raises:
            TablesNotRelatedError: Before anything is written.
        """
        relations = self._resolve(row.table for row in rows)
        db = self._table.database

        for row, relation in zip(rows, relations):
            match relation.kind:
                case RelationKind.HAS_ONE:
                    if row.id is None:
                        row.save()
                    self.set(relation.field, row.id)
                    self.link(row)
                case RelationKind.HAS_MANY:
                    if self.id is None:
                        self.save()
                    row.set(relation.field, self.id).save()
                    self._links.pop(row.table.name, None)
                case RelationKind.HAS_MANY_TO_MANY:
                    if self.id is None:
                        self.save()
                    if row.id is None:
                        row.save()
                    db[relation.join_table].insert(
                        {relation.join_field: self.id, relation.related_join_field: row.id}
                    ).run()
                    self._links.pop(row.table.name, None)

        logger.debug("rows_related", table=self._table.name, id=self.id, count=len(rows))
        return self.save()

    def unrelate(self, *rows: Row) -> Row:
        """Undo :meth:`relate` for ``rows`` and save this row."""
        relations = self._resolve(row.table for row in rows)
        db = self._table.database

        for row, relation in zip(rows, relations):
            match relation.kind:
                case RelationKind.HAS_ONE:
                    if self.get(relation.field) == row.id:
                        self.set(relation.field, None)
                case RelationKind.HAS_MANY:
                    if row.get(relation.field) == self.id:
                        row.set(relation.field, None).save()
                    self._links.pop(row.table.name, None)
                case RelationKind.HAS_MANY_TO_MANY:
                    if self.id is not None and row.id is not None:
                        join = db[relation.join_table]
                        join.delete().where(f"{join.quote(relation.join_field)} = ", self.id).where(
                            f"{join.quote(relation.related_join_field)} = ", row.id
                        ).run()
                    self._links.pop(row.table.name, None)

        return self.save()

    def unrelate_all(self, *tables: Table | str) -> Row:
        """Remove every relation of this row with the rows of ``tables``."""
        db = self._table.database
        tables = tuple(db[t] if isinstance(t, str) else t for t in tables)
        relations = self._resolve(tables)

        for table, relation in zip(tables, relations):
            self._links.pop(table.name, None)
            match relation.kind:
                case RelationKind.HAS_ONE:
                    self.set(relation.field, None)
                case RelationKind.HAS_MANY:
                    if self.id is not None:
                        table.update({relation.field: None}).where(
                            f"{table.quote(relation.field)} = ", self.id
                        ).run()
                        for row in db.identity_map.rows(table.name):
                            if row.get(relation.field) == self.id:
                                row._reset_value(relation.field, None)
                case RelationKind.HAS_MANY_TO_MANY:
                    if self.id is not None:
                        join = db[relation.join_table]
                        join.delete().where(f"{join.quote(relation.join_field)} = ", self.id).run()

        return self.save()

    # -- mapping protocol ----------------------------------------------------

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        had_link = name in self._links
        self._links.pop(name, None)
        if self._value_name(name) is not None:
            self.set(name, None)
        elif not had_link:
            raise UnknownFieldError(self._table.name, name)

    def __contains__(self, name: str) -> bool:
        value_name = self._value_name(name)
        if value_name is not None and self._values[value_name] is not None:
            return True
        return self._links.get(name) is not None

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self.get(name)
        except (UnknownFieldError, RelationError) as e:
            raise AttributeError(
                f"{type(self).__name__!r} object has no attribute {name!r}"
            ) from e

    def __setattr__(self, name: str, value: Any) -> None:
        if not name.startswith("_"):
            raise AttributeError(f"Use row[{name!r}] = value to change a field")
        super().__setattr__(name, value)

    def __repr__(self) -> str:
        state = " changed" if self._changed else ""
        return f"<Row {self._table.name}#{self.id}{state}>"
