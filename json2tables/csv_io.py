"""CSV output for flattened tables.

This module serializes the tables accumulated in a
:class:`~json2tables.registry.TableRegistry` to delimited text, one file per
table, plus an optional JSON manifest describing load options for the
storage that consumes the files.
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from .errors import OutputError
from .registry import Table, TableRegistry
from .utils import safe_name

logger = logging.getLogger(__name__)


def table_path(table: Table, output_dir: Path | str) -> Path:
    """Return the CSV path used for *table* inside *output_dir*."""
    return Path(output_dir) / f"{safe_name(table.name)}.csv"


def write_table(
    table: Table,
    output_dir: Path | str,
    delimiter: str = ",",
    encoding: str = "utf-8",
) -> Path:
    """Write one table as CSV with every field quoted.

    Parameters
    ----------
    table : Table
        Table to write. Its header list is the column order of the file.
    output_dir : Path | str
        Directory receiving ``<table name>.csv``. Created if missing.
    delimiter : str, optional
        CSV delimiter (default: ",").
    encoding : str, optional
        File encoding (default: "utf-8").

    Returns
    -------
    Path
        Path of the written file.

    Raises
    ------
    OSError
        If the file cannot be written.
    """
    output_path = table_path(table, output_dir)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", newline="", encoding=encoding) as handle:
        writer = csv.writer(handle, delimiter=delimiter, quoting=csv.QUOTE_ALL)
        writer.writerow(table.headers)
        for record in table.iter_records():
            writer.writerow(record)
    return output_path


def build_manifest(table: Table, incremental: bool = False) -> Dict[str, Any]:
    """Return the manifest describing how *table* should be loaded."""
    manifest: Dict[str, Any] = {"incremental": incremental}
    if table.primary_key:
        manifest["primary_key"] = list(table.primary_key)
    return manifest


def write_manifest(table: Table, output_dir: Path | str, incremental: bool = False) -> Path:
    """Write ``<table name>.csv.manifest`` next to the table's CSV file."""
    csv_path = table_path(table, output_dir)
    manifest_path = csv_path.with_name(csv_path.name + ".manifest")
    manifest_path.parent.mkdir(parents=True, exist_ok=True)
    manifest_path.write_text(json.dumps(build_manifest(table, incremental)), encoding="utf-8")
    return manifest_path


def write_registry(
    registry: TableRegistry,
    output_dir: Path | str,
    incremental: bool = False,
    manifests: bool = True,
    delimiter: str = ",",
) -> List[Path]:
    """Write every table of *registry* into *output_dir*.

    Parameters
    ----------
    registry : TableRegistry
        Finalized registry. It is only read.
    output_dir : Path | str
        Destination directory.
    incremental : bool, optional
        Value of the ``incremental`` flag written to manifests.
    manifests : bool, optional
        Whether to write ``.manifest`` files (default: True).
    delimiter : str, optional
        CSV delimiter (default: ",").

    Returns
    -------
    List[Path]
        CSV paths, in table creation order.

    Raises
    ------
    OutputError
        If any file cannot be written.
    """
    written: List[Path] = []
    if not len(registry):
        logger.info("No results parsed.")
        return written
    owners: Dict[Path, str] = {}
    for table in registry:
        path = table_path(table, output_dir)
        if path in owners:
            raise OutputError(
                f"tables {owners[path]!r} and {table.name!r} would both be written to {path.name}"
            )
        owners[path] = table.name
    for table in registry:
        logger.info("Writing table %s.csv (%d rows)", table.name, len(table.rows))
        try:
            written.append(write_table(table, output_dir, delimiter=delimiter))
            if manifests:
                write_manifest(table, output_dir, incremental=incremental)
        except (OSError, UnicodeError) as exc:
            raise OutputError(f"cannot write table {table.name!r} to {output_dir}: {exc}") from exc
    return written


def read_csv(
    input_path: Path | str,
    delimiter: str = ",",
    encoding: str = "utf-8",
) -> List[Dict[str, Any]]:
    """Read CSV file into list of dictionaries.

    Parameters
    ----------
    input_path : Path | str
        Path to input CSV file.
    delimiter : str, optional
        CSV delimiter (default: ",").
    encoding : str, optional
        File encoding (default: "utf-8").

    Returns
    -------
    List[Dict[str, Any]]
        List of dictionaries, one per row.

    Raises
    ------
    FileNotFoundError
        If the file doesn't exist.
    """
    if isinstance(input_path, str):
        input_path = Path(input_path)

    if not input_path.exists():
        raise FileNotFoundError(f"CSV file not found: {input_path}")

    with input_path.open("r", newline="", encoding=encoding) as handle:
        reader = csv.DictReader(handle, delimiter=delimiter)
        return list(reader)
