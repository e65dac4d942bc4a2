"""Fluent SQL builders bound to a table.

    Select  -> RowCollection, or Row | None after one()
    Insert  -> generated identity
    Update  -> affected record count
    Delete  -> affected record count
"""

from rowspine.query.base import Condition, Query
from rowspine.query.delete import Delete
from rowspine.query.insert import Insert
from rowspine.query.select import Select
from rowspine.query.update import Update

__all__ = ["Condition", "Query", "Select", "Insert", "Update", "Delete"]
