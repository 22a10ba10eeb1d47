"""Table registry: per-table schemas and rows accumulated over one run.

Headers are append-only and kept in first-seen order. A row may be appended
before later rows introduce new columns; it is rendered against the final
header list at write time, with missing values as empty strings.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Mapping, Sequence, Tuple

Row = Dict[str, str]


class Table:
    """A named table with an ordered, growing column list.

    Parameters
    ----------
    name : str
        Table name, also used as the output file's base name.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.headers: List[str] = []
        self.rows: List[Row] = []
        self.primary_key: List[str] = []
        self._known = set()

    def __repr__(self) -> str:
        return f"Table({self.name!r}, headers={self.headers!r}, rows={len(self.rows)})"

    def add_columns(self, names: Sequence[str]) -> None:
        """Append columns not yet in the header list, keeping their order."""
        for name in names:
            if name not in self._known:
                self._known.add(name)
                self.headers.append(name)

    def append(self, row: Mapping[str, str]) -> None:
        """Register the row's new columns, then store a copy of the row."""
        self.add_columns(list(row))
        self.rows.append(dict(row))

    def mark_primary_key(self, column: str) -> None:
        if column not in self.primary_key:
            self.primary_key.append(column)

    def materialize(self, row: Mapping[str, str]) -> List[str]:
        """Return the row's values in header order (missing -> ``""``)."""
        return [row.get(header, "") for header in self.headers]

    def iter_records(self) -> Iterator[List[str]]:
        for row in self.rows:
            yield self.materialize(row)

    def truncate(self, headers: int, rows: int, primary_key: int) -> None:
        for name in self.headers[headers:]:
            self._known.discard(name)
        del self.headers[headers:]
        del self.rows[rows:]
        del self.primary_key[primary_key:]


Snapshot = Dict[str, Tuple[int, int, int]]


class TableRegistry:
    """Insertion-ordered collection of :class:`Table` objects.

    Tables are created lazily by :meth:`table` or :meth:`append`.
    """

    def __init__(self) -> None:
        self._tables: Dict[str, Table] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._tables

    def __iter__(self) -> Iterator[Table]:
        return iter(list(self._tables.values()))

    def __len__(self) -> int:
        return len(self._tables)

    def __getitem__(self, name: str) -> Table:
        return self._tables[name]

    def names(self) -> List[str]:
        return list(self._tables)

    def table(self, name: str) -> Table:
        """Return the table called *name*, creating it if needed."""
        table = self._tables.get(name)
        if table is None:
            table = self._tables[name] = Table(name)
        return table

    def append(self, name: str, row: Mapping[str, str]) -> None:
        self.table(name).append(row)

    def mark_primary_key(self, name: str, column: str) -> None:
        self.table(name).mark_primary_key(column)

    def snapshot(self) -> Snapshot:
        """Record table sizes so a failed document can be rolled back."""
        return {
            name: (len(t.headers), len(t.rows), len(t.primary_key))
            for name, t in self._tables.items()
        }

    def restore(self, snapshot: Snapshot) -> None:
        """Drop everything added since *snapshot* was taken."""
        for name in list(self._tables):
            if name not in snapshot:
                del self._tables[name]
            else:
                self._tables[name].truncate(*snapshot[name])
