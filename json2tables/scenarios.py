"""Scenario definitions for common document shapes.

This module defines documents and mappings that represent the typical cases
met when normalizing nested JSON records into relational tables. They are
used by ``scripts/run_scenarios.py`` and by the test-suite.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from .flattener import Flattener
from .mapping import MappingModel
from .registry import TableRegistry


@dataclass(frozen=True)
class Scenario:
    """A flattening scenario.

    Attributes
    ----------
    name : str
        Unique identifier for the scenario.
    description : str
        Human-readable description of what the scenario shows.
    documents : Sequence[Any]
        Documents flattened in order into one registry.
    mapping : Dict[str, Any]
        Raw mapping configuration (default: no mapping).
    root_node : str, optional
        Dotted root path applied to every document (default: "").
    add_file_name : bool, optional
        Whether to add the file name column (default: False).
    """

    name: str
    description: str
    documents: Sequence[Any]
    mapping: Dict[str, Any] = field(default_factory=dict)
    root_node: str = ""
    add_file_name: bool = False

    def run(self) -> TableRegistry:
        """Flatten the scenario's documents into a fresh registry."""
        registry = TableRegistry()
        flattener = Flattener(
            registry,
            MappingModel.from_config(self.mapping),
            add_file_name=self.add_file_name,
        )
        for idx, document in enumerate(self.documents):
            flattener.flatten_document(document, file_tag=f"{self.name}_{idx}.json", root_path=self.root_node)
        return registry


def get_scenarios() -> List[Scenario]:
    """Get all available flattening scenarios.

    Returns
    -------
    List[Scenario]
        List of scenario definitions covering various document shapes.
    """
    return [
        Scenario(
            name="scalar_fields",
            description="Flat object with scalar fields only.",
            documents=[{"id": "1", "name": "Test"}],
        ),
        Scenario(
            name="two_files",
            description="Two documents appended to the same root table.",
            documents=[{"id": "1", "name": "First"}, {"id": "2", "name": "Second"}],
        ),
        Scenario(
            name="implicit_child_table",
            description="Unmapped array of objects becomes a child table.",
            documents=[
                {
                    "id": "1",
                    "items": [
                        {"id": "A", "quantity": "10"},
                        {"id": "B", "quantity": "20"},
                    ],
                }
            ],
        ),
        Scenario(
            name="root_node",
            description="Only the subtree under the root path is flattened.",
            documents=[{"data": {"id": "1", "items": [{"id": "2"}]}}],
            root_node="data",
        ),
        Scenario(
            name="file_name_column",
            description="Root rows carry the source file name.",
            documents=[{"id": "1", "name": "Test", "items": [{"id": "A", "quantity": "10"}]}],
            add_file_name=True,
        ),
        Scenario(
            name="schema_accretion",
            description="Later documents add columns; earlier rows render them empty.",
            documents=[{"a": 1}, {"a": 1, "b": 2}],
        ),
        Scenario(
            name="mixed_types",
            description="Numbers, booleans and nulls rendered as text; nested objects dropped.",
            documents=[{"count": 3, "ratio": 0.5, "active": True, "note": None, "meta": {"x": 1}}],
        ),
        Scenario(
            name="explicit_table_mapping",
            description="Mapped relation linked to the parent's id with renamed columns.",
            documents=[
                {
                    "data": [
                        {"id": "1", "items": [{"id": "A", "quantity": "10"}, {"id": "B", "quantity": "20"}]},
                        {"id": "2", "items": [{"id": "C", "quantity": "30"}]},
                    ]
                }
            ],
            root_node="data",
            mapping={
                "id": {"type": "column", "mapping": {"destination": "order_id", "primary_key": True}},
                "items": {
                    "type": "table",
                    "destination": "order_items",
                    "parent_key": {"destination": "order_id", "primary_key": True},
                    "tableMapping": {
                        "id": {"type": "column", "mapping": {"destination": "item_id", "primary_key": True}},
                        "quantity": {"type": "column", "mapping": {"destination": "quantity"}},
                    },
                },
            },
        ),
    ]
