"""Mapping model: how source fields map to output columns and tables.

A mapping is an ordered dictionary keyed by *field name*. Each value is one
of two variants:

- :class:`ColumnMapping` copies the field's value into the current row under
  ``destination``.
- :class:`TableMapping` treats the field's value as a nested relation whose
  rows go to the ``destination`` table, described by ``children``.

Mappings are scoped per table, not per document path: the scope used for a
row depends only on the table the row belongs to (see
:meth:`MappingModel.scope_for`).

Configuration shape
-------------------
The raw configuration accepted by :func:`parse_mapping`::

    {
        "id": {"type": "column", "mapping": {"destination": "order_id", "primary_key": true}},
        "note": "comment",
        "items": {
            "type": "table",
            "destination": "order_items",
            "parent_key": {"destination": "order_id"},
            "tableMapping": {
                "id": {"type": "column", "mapping": {"destination": "item_id"}}
            }
        }
    }

A bare string (``"note": "comment"``) is shorthand for a column mapping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from .errors import ConfigError


@dataclass(frozen=True)
class ColumnMapping:
    """Copy a value verbatim (rendered as text) into a column.

    Attributes
    ----------
    destination : str
        Output column name.
    primary_key : bool
        Whether the column is part of the table's primary key. Metadata only.
    """

    destination: str
    primary_key: bool = False


@dataclass(frozen=True)
class TableMapping:
    """Store a nested value as rows of a child table.

    Attributes
    ----------
    destination : str
        Name of the child table.
    parent_key : ColumnMapping | None
        Column holding the link back to the parent row. ``None`` means the
        default ``JSON_parentId`` column.
    children : Dict[str, MappingNode]
        Mapping scope for the child table's rows.
    """

    destination: str
    parent_key: Optional[ColumnMapping] = None
    children: Dict[str, "MappingNode"] = field(default_factory=dict)


MappingNode = Union[ColumnMapping, TableMapping]


def _require_destination(raw: Mapping[str, Any], where: str) -> str:
    destination = raw.get("destination")
    if not isinstance(destination, str) or not destination:
        raise ConfigError(f"mapping {where!r}: 'destination' must be a non-empty string")
    return destination


def _parse_column(raw: Any, where: str) -> ColumnMapping:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"mapping {where!r}: column mapping must be an object")
    return ColumnMapping(
        destination=_require_destination(raw, where),
        primary_key=bool(raw.get("primary_key", False)),
    )


def _parse_node(raw: Any, where: str) -> MappingNode:
    if isinstance(raw, str):
        if not raw:
            raise ConfigError(f"mapping {where!r}: destination must not be empty")
        return ColumnMapping(raw)
    if not isinstance(raw, Mapping):
        raise ConfigError(f"mapping {where!r}: expected an object or a string")

    kind = raw.get("type", "column")
    if kind == "column":
        return _parse_column(raw.get("mapping", raw), where)
    if kind == "table":
        parent_key = raw.get("parent_key")
        return TableMapping(
            destination=_require_destination(raw, where),
            parent_key=None if parent_key is None else _parse_column(parent_key, f"{where}.parent_key"),
            children=parse_mapping(raw.get("tableMapping", {}), prefix=where),
        )
    raise ConfigError(f"mapping {where!r}: unknown type {kind!r} (expected 'column' or 'table')")


def parse_mapping(raw: Any, prefix: str = "") -> Dict[str, MappingNode]:
    """Build a mapping scope from its configuration representation.

    Parameters
    ----------
    raw : Any
        Parsed configuration value (``None`` or an object keyed by field name).
    prefix : str, optional
        Dotted path of the enclosing field, used in error messages.

    Returns
    -------
    Dict[str, MappingNode]
        Field name to mapping node, in configuration order.

    Raises
    ------
    ConfigError
        If any node has an unknown type or lacks a destination.

    Examples
    --------
    >>> parse_mapping({"id": "order_id"})
    {'id': ColumnMapping(destination='order_id', primary_key=False)}
    """
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"mapping {prefix or '<root>'!r}: expected an object")
    scope: Dict[str, MappingNode] = {}
    for key, value in raw.items():
        where = f"{prefix}.{key}" if prefix else str(key)
        scope[str(key)] = _parse_node(value, where)
    return scope


def _walk_scope(scope: Mapping[str, MappingNode], prefix: str) -> Iterator[Tuple[str, MappingNode]]:
    for key, node in scope.items():
        path = f"{prefix}.{key}" if prefix else key
        yield path, node
        if isinstance(node, TableMapping):
            yield from _walk_scope(node.children, path)


class MappingModel:
    """Per-table view of a mapping tree.

    Parameters
    ----------
    root : Mapping[str, MappingNode] | None
        Mapping scope for rows of the root table.
    root_table : str, optional
        Name of the root table (default: ``"root"``).
    """

    def __init__(self, root: Optional[Mapping[str, MappingNode]] = None, root_table: str = "root") -> None:
        self.root: Dict[str, MappingNode] = dict(root or {})
        self.root_table = root_table
        self._scopes: Dict[str, Dict[str, MappingNode]] = {root_table: dict(self.root)}
        self._parent_keys: Dict[str, ColumnMapping] = {}
        for _, node in self.walk():
            if isinstance(node, TableMapping):
                scope = self._scopes.setdefault(node.destination, {})
                for key, child in node.children.items():
                    scope.setdefault(key, child)
                if node.parent_key is not None:
                    self._parent_keys.setdefault(node.destination, node.parent_key)

    @classmethod
    def from_config(cls, raw: Any, root_table: str = "root") -> "MappingModel":
        """Parse *raw* configuration into a model."""
        return cls(parse_mapping(raw), root_table=root_table)

    def __bool__(self) -> bool:
        return bool(self.root)

    def walk(self) -> Iterator[Tuple[str, MappingNode]]:
        """Yield ``(dotted_path, node)`` pairs depth first, in configuration order."""
        return _walk_scope(self.root, "")

    def scope_for(self, table_name: str) -> Dict[str, MappingNode]:
        """Return the mapping scope that applies to rows of *table_name*.

        Unmapped tables (implicit child relations) get an empty scope.
        """
        return self._scopes.get(table_name, {})

    def parent_key_for(self, table_name: str) -> Optional[ColumnMapping]:
        """Return the configured parent-key column of *table_name*, if any."""
        return self._parent_keys.get(table_name)

    def primary_keys_for(self, table_name: str) -> List[str]:
        """Return column names flagged as primary key for *table_name*."""
        keys: List[str] = []
        for node in self.scope_for(table_name).values():
            if isinstance(node, ColumnMapping) and node.primary_key and node.destination not in keys:
                keys.append(node.destination)
        parent_key = self.parent_key_for(table_name)
        if parent_key is not None and parent_key.primary_key and parent_key.destination not in keys:
            keys.append(parent_key.destination)
        return keys

    def tables(self) -> List[str]:
        """Return every explicitly mapped table name, root table first."""
        return list(self._scopes)
