"""
Structured error types for rowspine.

Every failure the library raises is a :class:`RowspineError` carrying a
category, a structured context (table, field, SQL) and, when it wraps a
driver failure, the original exception as ``cause``.

Manifesto:
    - **Typed hierarchy:** Schema, relation, database and config errors
      are distinct classes so callers can catch exactly what they handle
    - **Rich context:** Errors know which table/field/statement failed
    - **Error chaining:** Driver exceptions are preserved, never rewritten
    - **Lookup semantics:** Unknown tables/fields are also ``LookupError``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────┐
        │                     RowspineError                         │
        │            (category, context, cause)                     │
        ├──────────────────────────────────────────────────────────┤
        │  SchemaError          RelationError      DatabaseError    │
        │  (SCHEMA)             (RELATION)         (DATABASE)       │
        │     │                     │                  │            │
        │  UnknownTableError   TablesNotRelated    QueryError       │
        │  UnknownFieldError                       DatabaseConnec.. │
        │                                                           │
        │  ValidationError      ConfigError                         │
        │  (VALIDATION)         (CONFIG)                            │
        │     │                     │                               │
        │  FieldValueError     InvalidConfigError                   │
        └──────────────────────────────────────────────────────────┘

Examples:
    >>> error = UnknownFieldError("post", "titel")
    >>> error.context.table
    'post'
    >>> isinstance(error, LookupError)
    True

    >>> try:
    ...     raise sqlite3.IntegrityError("NOT NULL constraint failed")
    ... except sqlite3.Error as e:
    ...     raise QueryError("Statement rejected", cause=e)
    Traceback (most recent call last):
    ...
    QueryError: Statement rejected

Tags:
    error-handling, exception-hierarchy, error-context, rowspine
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification."""

    SCHEMA = "SCHEMA"             # Unknown table or field
    RELATION = "RELATION"         # Tables with no discoverable relation
    DATABASE = "DATABASE"         # Driver rejected the statement, connection
    VALIDATION = "VALIDATION"     # Value cannot be converted by its field
    CONFIG = "CONFIG"             # Missing or invalid settings
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only the fields that are set end up in :meth:`to_dict`, so the same
    context type serves schema lookups (``table``/``field``), relation
    failures (``table``/``related_table``) and execution failures
    (``sql``).

    Attributes:
        table: Table the operation was working on
        field: Field name involved
        related_table: Other side of a relation
        sql: Compiled statement that failed
        metadata: Additional key-value pairs
    """

    table: str | None = None
    field: str | None = None
    related_table: str | None = None
    sql: str | None = None

    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["table", "field", "related_table", "sql"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RowspineError(Exception):
    """
    Base exception for all rowspine errors.

    Subclasses set ``default_category``; instances may override it.
    ``cause`` is chained as ``__cause__`` so tracebacks show the driver
    error underneath.

    Examples:
        >>> error = RowspineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(table="post").context.table
        'post'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RowspineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise SchemaError("Bad default").with_context(table="post", field="type")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# SCHEMA ERRORS
# =============================================================================


class SchemaError(RowspineError):
    """Unknown table or field referenced."""

    default_category = ErrorCategory.SCHEMA


class UnknownTableError(SchemaError, LookupError):
    """The database exposes no table with this name."""

    def __init__(self, name: str, **kwargs: Any):
        self.table_name = name
        super().__init__(f"The table {name} does not exist", **kwargs)
        self.context.table = name


class UnknownFieldError(SchemaError, LookupError):
    """The table has no field (or relation) with this name."""

    def __init__(self, table: str, name: str, **kwargs: Any):
        self.table_name = table
        self.field_name = name
        super().__init__(f"The field {name} does not exist in the table {table}", **kwargs)
        self.context.table = table
        self.context.field = name


# =============================================================================
# RELATION ERRORS
# =============================================================================


class RelationError(RowspineError):
    """Relation operation between tables that cannot be related."""

    default_category = ErrorCategory.RELATION


class TablesNotRelatedError(RelationError):
    """No join field and no join table connect the two tables."""

    def __init__(self, table: str, related_table: str, **kwargs: Any):
        super().__init__(f"The tables {table} and {related_table} are not related", **kwargs)
        self.context.table = table
        self.context.related_table = related_table


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(RowspineError):
    """Value rejected before it reaches the database."""

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        if field is not None:
            self.context.field = field

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class FieldValueError(ValidationError):
    """A field converter could not convert the value."""


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(RowspineError):
    """Database query or connection error."""

    default_category = ErrorCategory.DATABASE


class QueryError(DatabaseError):
    """Invalid builder input, or a statement rejected by the driver."""


class DatabaseConnectionError(DatabaseError):
    """Could not open the database connection."""


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(RowspineError):
    """Configuration error."""

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RowspineError",
    "SchemaError",
    "UnknownTableError",
    "UnknownFieldError",
    "RelationError",
    "TablesNotRelatedError",
    "ValidationError",
    "FieldValueError",
    "DatabaseError",
    "QueryError",
    "DatabaseConnectionError",
    "ConfigError",
    "InvalidConfigError",
]
