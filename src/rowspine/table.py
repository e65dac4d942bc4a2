"""
Table: the fields of one table and the builders bound to it.

Examples:
    >>> post = db["post"]
    >>> post.foreign_key
    'post_id'
    >>> post.get_join_field(db["category"]).name
    'category_id'
    >>> post.get_join_table(db["tag"]).name
    'post_tag'
    >>> post.select().where("title LIKE ?", "%rowspine%").order_by("pubdate DESC").limit(10).run()
    <RowCollection post (2 rows)>
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from rowspine.core.errors import SchemaError, UnknownFieldError
from rowspine.fields import Field
from rowspine.query import Delete, Insert, Select, Update
from rowspine.relations import foreign_key, join_table_name
from rowspine.row import Row

if TYPE_CHECKING:
    from rowspine.database import Database


class Table:
    """One table of a :class:`~rowspine.database.Database`."""

    def __init__(self, database: Database, name: str, fields: Mapping[str, Field]) -> None:
        if "id" not in fields:
            raise SchemaError(f"The table {name} has no id field").with_context(table=name)
        self.database = database
        self.name = name
        self.fields: Mapping[str, Field] = MappingProxyType(dict(fields))

    @property
    def foreign_key(self) -> str:
        """Name other tables use to point at this one (``post_id``)."""
        return foreign_key(self.name)

    def quote(self, identifier: str) -> str:
        """Quote a field of this table, qualified with the table name."""
        dialect = self.database.dialect
        return f"{dialect.quote(self.name)}.{dialect.quote(identifier)}"

    def get_field(self, name: str) -> Field:
        try:
            return self.fields[name]
        except KeyError:
            raise UnknownFieldError(self.name, name) from None

    # -- values --------------------------------------------------------------

    def get_defaults(self, values: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Every field with its default, overridden by ``values``."""
        values = dict(values or {})
        for name in values:
            if name not in self.fields:
                raise UnknownFieldError(self.name, name)
        return {
            name: values[name] if name in values else field.default
            for name, field in self.fields.items()
        }

    def to_python(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Convert a raw record; columns of other tables are ignored."""
        return {
            name: self.fields[name].to_python(value)
            for name, value in values.items()
            if name in self.fields
        }

    def to_database(self, values: Mapping[str, Any]) -> dict[str, Any]:
        return {name: self.get_field(name).to_database(value) for name, value in values.items()}

    # -- builders ------------------------------------------------------------

    def select(self) -> Select:
        return Select(self)

    def insert(self, values: Mapping[str, Any] | None = None) -> Insert:
        return Insert(self, values)

    def update(self, values: Mapping[str, Any] | None = None) -> Update:
        return Update(self, values)

    def delete(self) -> Delete:
        return Delete(self)

    def count(self) -> int:
        return self.select().count()

    # -- relations -----------------------------------------------------------

    def get_join_field(self, other: Table) -> Field | None:
        """The field of this table pointing at ``other`` (``{other}_id``)."""
        return self.fields.get(other.foreign_key)

    def get_join_table(self, other: Table) -> Table | None:
        """The many-to-many join table between this table and ``other``."""
        name = join_table_name(self.name, other.name)
        if name not in self.database:
            return None
        table = self.database[name]
        if table.get_join_field(self) and table.get_join_field(other):
            return table
        return None

    # -- rows and identity cache ---------------------------------------------

    def create(self, values: Mapping[str, Any] | None = None) -> Row:
        """A new row; nothing is written until ``save()``."""
        return Row(self, values)

    def hydrate(self, record: Mapping[str, Any]) -> Row:
        """Row for a database record, reusing the cached instance if any.

        An unchanged cached row takes the values of the record; a row
        with unsaved edits keeps them.
        """
        values = self.to_python(record)
        cached = self.get_cached(values.get("id"))
        if cached is not None:
            cached._sync(values)
            return cached
        row = Row(self, values)
        self.cache(row)
        return row

    def cache(self, row: Row) -> None:
        if row.id is not None:
            self.database.identity_map.add(self.name, row.id, row)

    def uncache(self, row: Row) -> None:
        if row.id is not None:
            self.database.identity_map.remove(self.name, row.id)

    def get_cached(self, id: Any) -> Row | None:
        if id is None:
            return None
        return self.database.identity_map.get(self.name, id)

    def get(self, id: Any) -> Row | None:
        """Row by identity, from the cache or the database."""
        cached = self.get_cached(id)
        if cached is not None:
            return cached
        return self.select().where(f"{self.quote('id')} = ", id).one().run()

    def __getitem__(self, id: Any) -> Row:
        row = self.get(id)
        if row is None:
            raise KeyError(id)
        return row

    def __contains__(self, id: Any) -> bool:
        return self.get(id) is not None

    def __delitem__(self, id: Any) -> None:
        row = self[id]
        row.delete()

    def __iter__(self) -> Iterator[Row]:
        return iter(self.select())

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Table({self.name!r}, fields={list(self.fields)})"


__all__ = ["Table"]
