"""rowspine: a small relational database mapper.

Tables and fields are discovered at runtime, queries are built with a
fluent builder and relations between tables are inferred from their
names (``post.category_id`` -> ``category``, ``post_tag`` -> post/tag).

    >>> from rowspine import Database
    >>> db = Database.connect("blog.db")
    >>> post = db["post"].get(1)
    >>> post.category["name"]
    'News'
    >>> [tag["name"] for tag in post.tag]
    ['python', 'sql']
"""

from rowspine.core.errors import (
    QueryError,
    RowspineError,
    SchemaError,
    TablesNotRelatedError,
    UnknownFieldError,
    UnknownTableError,
)
from rowspine.database import Database
from rowspine.fields import Field, FieldDescriptor, FieldTypeRegistry
from rowspine.identity import IdentityMap
from rowspine.query import Delete, Insert, Select, Update
from rowspine.relations import Relation, RelationKind, RelationResolver, infer_relation
from rowspine.row import Row
from rowspine.row_collection import RowCollection
from rowspine.schema import SqlAlchemyScheme, SqliteScheme, StaticScheme
from rowspine.table import Table

__version__ = "0.1.0"

__all__ = [
    "Database",
    "Table",
    "Row",
    "RowCollection",
    "Select",
    "Insert",
    "Update",
    "Delete",
    "Field",
    "FieldDescriptor",
    "FieldTypeRegistry",
    "IdentityMap",
    "Relation",
    "RelationKind",
    "RelationResolver",
    "infer_relation",
    "SqliteScheme",
    "SqlAlchemyScheme",
    "StaticScheme",
    "RowspineError",
    "SchemaError",
    "UnknownTableError",
    "UnknownFieldError",
    "TablesNotRelatedError",
    "QueryError",
]
