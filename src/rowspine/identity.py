"""Identity map: one ``Row`` instance per ``(table, id)``.

Rows are held through weak references, so a row the application no
longer references drops out of the map on its own. Each ``Database``
owns its own map unless one is injected.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from weakref import WeakValueDictionary

if TYPE_CHECKING:
    from rowspine.row import Row


class IdentityMap:
    """Weak ``(table name, id) -> Row`` mapping. Not thread-safe."""

    def __init__(self) -> None:
        self._rows: WeakValueDictionary[tuple[str, Any], Row] = WeakValueDictionary()

    def get(self, table: str, id: Any) -> Row | None:
        return self._rows.get((table, id))

    def add(self, table: str, id: Any, row: Row) -> None:
        self._rows[(table, id)] = row

    def remove(self, table: str, id: Any) -> None:
        self._rows.pop((table, id), None)

    def rows(self, table: str) -> list[Row]:
        """The live rows of ``table``."""
        return [row for (name, _), row in list(self._rows.items()) if name == table]

    def clear(self, table: str | None = None) -> None:
        """Forget every row, or only the rows of ``table``."""
        if table is None:
            self._rows.clear()
            return
        for key in [k for k in self._rows.keys() if k[0] == table]:
            self._rows.pop(key, None)

    def __contains__(self, key: tuple[str, Any]) -> bool:
        return key in self._rows

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        return f"IdentityMap(size={len(self)})"


__all__ = ["IdentityMap"]
