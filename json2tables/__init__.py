"""Convert nested JSON documents into relational CSV tables.

This package flattens JSON documents into one or more tables according to a
declarative mapping, linking child rows to their parents through synthetic
key columns, and writes each table as a quoted CSV file.
"""

from .csv_io import read_csv, write_registry, write_table
from .errors import (
    ConfigError,
    DocumentParseError,
    DocumentReadError,
    Json2TablesError,
    MalformedMapping,
    OutputError,
    RootNotFound,
)
from .flattener import Flattener, render_value, select_root
from .mapping import ColumnMapping, MappingModel, TableMapping, parse_mapping
from .registry import Table, TableRegistry

__all__ = [
    "ColumnMapping",
    "ConfigError",
    "DocumentParseError",
    "DocumentReadError",
    "Flattener",
    "Json2TablesError",
    "MalformedMapping",
    "MappingModel",
    "OutputError",
    "RootNotFound",
    "Table",
    "TableMapping",
    "TableRegistry",
    "parse_mapping",
    "read_csv",
    "render_value",
    "select_root",
    "write_registry",
    "write_table",
]
