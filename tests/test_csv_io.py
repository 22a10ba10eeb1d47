"""Tests for CSV output."""

import json
from pathlib import Path

import pytest

from json2tables.csv_io import read_csv, write_manifest, write_registry, write_table
from json2tables.errors import OutputError
from json2tables.registry import Table, TableRegistry


def _table() -> Table:
    table = Table("root")
    table.append({"id": "1", "name": "Test"})
    table.append({"id": "2", "note": 'He said "Hi", twice'})
    return table


def test_write_table_quotes_every_field(tmp_path: Path) -> None:
    """Test header and rows are fully quoted and rendered in header order."""
    path = write_table(_table(), tmp_path)
    assert path == tmp_path / "root.csv"
    assert path.read_text(encoding="utf-8").splitlines() == [
        '"id","name","note"',
        '"1","Test",""',
        '"2","","He said ""Hi"", twice"',
    ]


def test_write_table_creates_directories(tmp_path: Path) -> None:
    """Test the writer creates the output directory."""
    path = write_table(_table(), tmp_path / "nested" / "dir")
    assert path.exists()


def test_write_table_sanitizes_file_name(tmp_path: Path) -> None:
    """Test table names cannot escape the output directory."""
    table = Table("../escape")
    table.append({"a": "1"})
    path = write_table(table, tmp_path)
    assert path.parent == tmp_path
    assert path.name == ".._escape.csv"


def test_write_manifest(tmp_path: Path) -> None:
    """Test manifests carry the incremental flag and primary key."""
    table = _table()
    table.mark_primary_key("id")
    path = write_manifest(table, tmp_path, incremental=True)
    assert path.name == "root.csv.manifest"
    assert json.loads(path.read_text(encoding="utf-8")) == {"incremental": True, "primary_key": ["id"]}


def test_write_manifest_without_primary_key(tmp_path: Path) -> None:
    """Test primary_key is omitted when no column is flagged."""
    path = write_manifest(_table(), tmp_path)
    assert json.loads(path.read_text(encoding="utf-8")) == {"incremental": False}


def test_write_registry(tmp_path: Path) -> None:
    """Test every table is written with its manifest."""
    registry = TableRegistry()
    registry.append("root", {"id": "1"})
    registry.append("items", {"id": "A", "JSON_parentId": "items_0"})
    written = write_registry(registry, tmp_path)
    assert [path.name for path in written] == ["root.csv", "items.csv"]
    assert (tmp_path / "items.csv.manifest").exists()


def test_write_registry_without_manifests(tmp_path: Path) -> None:
    """Test manifests can be disabled."""
    registry = TableRegistry()
    registry.append("root", {"id": "1"})
    write_registry(registry, tmp_path, manifests=False)
    assert not (tmp_path / "root.csv.manifest").exists()


def test_write_registry_empty(tmp_path: Path) -> None:
    """Test an empty registry writes nothing."""
    assert write_registry(TableRegistry(), tmp_path / "out") == []
    assert not (tmp_path / "out").exists()


def test_write_registry_failure_raises_output_error(tmp_path: Path) -> None:
    """Test I/O failures become OutputError."""
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    registry = TableRegistry()
    registry.append("root", {"id": "1"})
    with pytest.raises(OutputError, match="root"):
        write_registry(registry, blocker / "tables")


def test_read_csv(tmp_path: Path) -> None:
    """Test reading back a written table."""
    records = read_csv(write_table(_table(), tmp_path))
    assert records[0] == {"id": "1", "name": "Test", "note": ""}


def test_read_csv_nonexistent(tmp_path: Path) -> None:
    """Test that reading nonexistent CSV raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        read_csv(tmp_path / "nonexistent.csv")


def test_write_registry_rejects_colliding_file_names(tmp_path: Path) -> None:
    """Test two tables mapping to one file name fail before anything is written."""
    registry = TableRegistry()
    registry.append("a/b", {"x": "1"})
    registry.append("a_b", {"x": "2"})
    with pytest.raises(OutputError, match="a_b.csv"):
        write_registry(registry, tmp_path / "out")
    assert not (tmp_path / "out").exists()


def test_write_registry_unencodable_value_raises_output_error(tmp_path: Path) -> None:
    """Test encoding failures in the writer become OutputError."""
    registry = TableRegistry()
    registry.append("root", {"id": "\ud800"})
    with pytest.raises(OutputError, match="root"):
        write_registry(registry, tmp_path)
