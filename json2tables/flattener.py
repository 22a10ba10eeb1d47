"""Core flattening engine.

This module turns parsed JSON documents into rows of one or more relational
tables. Field-level behaviour is driven by a :class:`~json2tables.mapping.MappingModel`;
anything the mapping does not mention is handled by fixed rules:

- scalars become columns named after their key,
- nested objects are dropped,
- arrays of objects become an implicit child table named after their key,
  each child row carrying a ``JSON_parentId`` link such as ``items_0``.

Rows are accumulated in a shared :class:`~json2tables.registry.TableRegistry`
across all documents of a run and written out once at the end.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, List, Mapping, Optional

from .errors import DocumentParseError, MalformedMapping, RootNotFound
from .mapping import ColumnMapping, MappingModel, TableMapping
from .registry import Row, TableRegistry

logger = logging.getLogger(__name__)

PARENT_ID_COLUMN = "JSON_parentId"
FILE_NAME_COLUMN = "keboola_file_name_col"
DEFAULT_ROOT_TABLE = "root"

# repr() exponent "1e+16" / "1.5e-07" -> "1e16" / "1.5e-7"
_EXPONENT = re.compile(r"e\+?(-?)0*(\d)")


def render_value(value: Any) -> str:
    """Render a JSON value as the text stored in a table cell.

    Parameters
    ----------
    value : Any
        Parsed JSON value.

    Returns
    -------
    str
        ``""`` for null, ``true``/``false`` for booleans, the canonical number
        text for numbers, strings unchanged and compact JSON for containers.

    Examples
    --------
    >>> render_value(None), render_value(True), render_value(10), render_value(2.5)
    ('', 'true', '10', '2.5')
    >>> render_value(1e16), render_value(1.5e-07)
    ('1e16', '1.5e-7')
    >>> render_value({"a": [1, 2]})
    '{"a":[1,2]}'
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _EXPONENT.sub(r"e\1\2", repr(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Mapping, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return str(value)


def select_root(data: Any, path: str, sep: str = ".") -> Any:
    """Return the sub-value of *data* at the dotted *path*.

    Each segment is an object-key lookup; arrays are never indexed. An empty
    path returns *data* unchanged.

    Raises
    ------
    RootNotFound
        Naming the first segment whose parent is not an object or lacks the key.

    Examples
    --------
    >>> select_root({"data": {"items": [1]}}, "data.items")
    [1]
    """
    if not path:
        return data
    current = data
    for segment in path.split(sep):
        if not isinstance(current, Mapping) or segment not in current:
            raise RootNotFound(path, segment)
        current = current[segment]
    return current


@dataclass
class FlattenStats:
    """Counters collected while flattening."""

    documents: int = 0
    rows: int = 0
    skipped: int = 0


class Flattener:
    """Flatten JSON documents into a :class:`TableRegistry`.

    Parameters
    ----------
    registry : TableRegistry
        Registry receiving the rows. Exclusively owned by this flattener
        while a run is in progress.
    mapping : MappingModel | None, optional
        Field mappings. ``None`` means every table is unmapped.
    add_file_name : bool, optional
        Add a ``keboola_file_name_col`` column holding the document's file
        tag to every row of the root table (default: False).
    root_table : str, optional
        Name of the table receiving the document root (default: ``"root"``).
    """

    def __init__(
        self,
        registry: TableRegistry,
        mapping: Optional[MappingModel] = None,
        add_file_name: bool = False,
        root_table: str = DEFAULT_ROOT_TABLE,
    ) -> None:
        self.registry = registry
        self.mapping = mapping if mapping is not None else MappingModel(root_table=root_table)
        self.add_file_name = add_file_name
        self.root_table = root_table
        self.stats = FlattenStats()

    def flatten_document(self, data: Any, file_tag: Optional[str] = None, root_path: str = "") -> None:
        """Select the root of one document and flatten it into the root table.

        Contributions are all-or-nothing: if flattening raises, rows already
        added for this document are discarded before the error propagates.

        Raises
        ------
        RootNotFound
            If *root_path* does not resolve; nothing is added in that case.
        DocumentParseError
            If the document is nested too deeply to traverse.
        """
        root = select_root(data, root_path)
        snapshot = self.registry.snapshot()
        stats = replace(self.stats)
        try:
            self.flatten(root, self.root_table, file_tag=file_tag)
        except RecursionError as exc:
            self.registry.restore(snapshot)
            self.stats = stats
            raise DocumentParseError(f"document nested too deeply to flatten: {exc}") from exc
        except Exception:
            self.registry.restore(snapshot)
            self.stats = stats
            raise
        self.stats.documents += 1

    def flatten(
        self,
        value: Any,
        table_name: str,
        parent_link: Optional[str] = None,
        file_tag: Optional[str] = None,
    ) -> None:
        """Contribute the rows found in *value* to *table_name*.

        Parameters
        ----------
        value : Any
            Parsed JSON value. Scalars produce nothing.
        table_name : str
            Table receiving rows for objects found at this level.
        parent_link : str | None, optional
            Identifier of the enclosing row. ``None`` marks the document root.
        file_tag : str | None, optional
            Source file identifier for the file-name column.
        """
        self._visit(value, table_name, parent_link, PARENT_ID_COLUMN, file_tag, parent_link is None)

    def _visit(
        self,
        value: Any,
        table_name: str,
        link: Optional[str],
        link_column: str,
        file_tag: Optional[str],
        is_root: bool,
    ) -> None:
        if isinstance(value, list):
            for idx, item in enumerate(value):
                item_link = link if link is not None else f"{table_name}_{idx}"
                self._visit(item, table_name, item_link, link_column, file_tag, is_root)
        elif isinstance(value, Mapping):
            self._visit_object(value, table_name, link, link_column, file_tag, is_root)

    def _visit_object(
        self,
        obj: Mapping[str, Any],
        table_name: str,
        link: Optional[str],
        link_column: str,
        file_tag: Optional[str],
        is_root: bool,
    ) -> None:
        scope = self.mapping.scope_for(table_name)
        row: Row = {}
        primary_key: List[str] = []

        if self.add_file_name and is_root:
            row[FILE_NAME_COLUMN] = file_tag or ""

        for key, value in obj.items():
            node = scope.get(key)
            if node is None:
                if isinstance(value, Mapping):
                    continue
                if isinstance(value, list):
                    self._flatten_implicit(key, value, file_tag)
                    continue
                row[key] = render_value(value)
            elif isinstance(node, ColumnMapping):
                row[node.destination] = render_value(value)
                if node.primary_key:
                    primary_key.append(node.destination)
            elif isinstance(node, TableMapping):
                try:
                    self._flatten_relation(obj, value, node, file_tag)
                except MalformedMapping as exc:
                    logger.warning("Skipping field %r of table %r: %s", key, table_name, exc)
                    self.stats.skipped += 1

        if link is not None:
            row[link_column] = link
            parent_key = self.mapping.parent_key_for(table_name)
            if parent_key is not None and parent_key.primary_key and parent_key.destination == link_column:
                primary_key.append(link_column)

        self.registry.append(table_name, row)
        for column in primary_key:
            self.registry.mark_primary_key(table_name, column)
        self.stats.rows += 1

    def _flatten_implicit(self, key: str, items: List[Any], file_tag: Optional[str]) -> None:
        """Turn an unmapped array of objects into rows of table *key*."""
        for idx, item in enumerate(items):
            if isinstance(item, Mapping):
                self._visit_object(item, key, f"{key}_{idx}", PARENT_ID_COLUMN, file_tag, False)

    def _flatten_relation(
        self,
        parent: Mapping[str, Any],
        value: Any,
        node: TableMapping,
        file_tag: Optional[str],
    ) -> None:
        """Flatten a value described by a table mapping into its destination table.

        The child rows link to the parent's ``id`` value when it has one;
        otherwise each row gets a synthesized ``<destination>_<index>`` link.
        """
        if value is None:
            return
        if not isinstance(value, (Mapping, list)):
            raise MalformedMapping(node.destination, type(value).__name__)

        link_column = node.parent_key.destination if node.parent_key is not None else PARENT_ID_COLUMN
        ident = parent.get("id")
        link = render_value(ident) if ident is not None else None
        if link is None and isinstance(value, Mapping):
            link = f"{node.destination}_0"
        self._visit(value, node.destination, link, link_column, file_tag, False)
