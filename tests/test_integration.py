"""Integration tests: data directory in, CSV tables and manifests out.

These tests verify end-to-end workflows including:
- directory enumeration and deterministic ordering
- per-document failure isolation
- mapping-driven output through the CLI
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

from json2tables.cli import EXIT_ERROR, EXIT_FAILED_DOCUMENTS, EXIT_OK, main
from json2tables.config import build_settings
from json2tables.csv_io import read_csv
from json2tables.runner import iter_input_files, load_document, run
from json2tables.errors import DocumentParseError, DocumentReadError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove environment overrides that would leak into tests."""
    for name in ("ROOT_NODE", "IN_TYPE", "ADD_FILE_NAME", "INCREMENTAL", "ROOT_TABLE"):
        monkeypatch.delenv(f"JSON2TABLES_{name}", raising=False)


def _data_dir(tmp_path: Path, parameters: Dict[str, Any], files: Dict[str, Any]) -> Path:
    data_dir = tmp_path / "data"
    in_type = parameters.get("in_type", "files")
    input_dir = data_dir / "in" / in_type
    input_dir.mkdir(parents=True)
    (data_dir / "config.json").write_text(json.dumps({"parameters": parameters}), encoding="utf-8")
    for name, content in files.items():
        text = content if isinstance(content, str) else json.dumps(content)
        (input_dir / name).write_text(text, encoding="utf-8")
    return data_dir


def _lines(path: Path) -> List[str]:
    return path.read_text(encoding="utf-8").splitlines()


class TestDirectoryInput:
    """Tests for document enumeration and loading."""

    def test_iter_input_files_sorted_without_manifests(self, tmp_path: Path) -> None:
        """Test files are sorted by name and manifests are skipped."""
        for name in ("b.json", "a.json", "a.json.manifest", "c.json"):
            (tmp_path / name).write_text("{}", encoding="utf-8")
        (tmp_path / "sub").mkdir()
        assert [p.name for p in iter_input_files(tmp_path)] == ["a.json", "b.json", "c.json"]

    def test_iter_input_files_missing_dir(self, tmp_path: Path) -> None:
        """Test a missing input directory yields nothing."""
        assert iter_input_files(tmp_path / "missing") == []

    def test_load_document_errors(self, tmp_path: Path) -> None:
        """Test read and parse failures raise distinct errors."""
        with pytest.raises(DocumentReadError):
            load_document(tmp_path / "missing.json")
        bad = tmp_path / "bad.json"
        bad.write_text("{oops", encoding="utf-8")
        with pytest.raises(DocumentParseError, match="bad.json"):
            load_document(bad)


class TestRun:
    """End-to-end tests through runner.run."""

    def test_two_files_append_to_root(self, tmp_path: Path) -> None:
        """Test documents are processed in name order into one table."""
        data_dir = _data_dir(
            tmp_path,
            {},
            {"sample2.json": {"id": "2", "name": "Second"}, "sample1.json": {"id": "1", "name": "First"}},
        )
        out = data_dir / "out" / "tables"
        result = run(build_settings({}), data_dir / "in" / "files", out)
        assert result.ok
        assert result.processed == ["sample1.json", "sample2.json"]
        assert _lines(out / "root.csv") == ['"id","name"', '"1","First"', '"2","Second"']

    def test_bad_documents_are_skipped(self, tmp_path: Path) -> None:
        """Test unreadable JSON and missing roots do not stop the run."""
        data_dir = _data_dir(
            tmp_path,
            {"root_node": "data"},
            {
                "a.json": {"data": {"id": "1"}},
                "b.json": "{broken",
                "c.json": {"other": {"id": "x"}},
                "d.json": {"data": {"id": "2", "extra": "y"}},
            },
        )
        out = data_dir / "out" / "tables"
        result = run(build_settings({"parameters": {"root_node": "data"}}), data_dir / "in" / "files", out)
        assert not result.ok
        assert result.processed == ["a.json", "d.json"]
        assert [name for name, _ in result.failed] == ["b.json", "c.json"]
        assert "'data'" in result.failed[1][1]
        assert _lines(out / "root.csv") == ['"id","extra"', '"1",""', '"2","y"']

    def test_deeply_nested_document_is_skipped(self, tmp_path: Path) -> None:
        """Test a document too deep to parse does not abort the run."""
        deep = '{"a":[' * 5000 + '{"x":1}' + "]}" * 5000
        data_dir = _data_dir(tmp_path, {}, {"a.json": {"id": "1"}, "b.json": deep, "c.json": {"id": "3"}})
        out = data_dir / "out" / "tables"
        result = run(build_settings({}), data_dir / "in" / "files", out)
        assert result.processed == ["a.json", "c.json"]
        assert [name for name, _ in result.failed] == ["b.json"]
        assert result.rows == 2
        assert _lines(out / "root.csv") == ['"id"', '"1"', '"3"']

    def test_lone_surrogate_document_is_skipped(self, tmp_path: Path) -> None:
        """Test strings that cannot be written as UTF-8 reject their document."""
        data_dir = _data_dir(tmp_path, {}, {"a.json": {"id": "1"}, "b.json": '{"id": "\\ud800"}'})
        out = data_dir / "out" / "tables"
        result = run(build_settings({}), data_dir / "in" / "files", out)
        assert result.processed == ["a.json"]
        assert "invalid unicode" in result.failed[0][1]
        assert _lines(out / "root.csv") == ['"id"', '"1"']
        assert main(["--data-dir", str(data_dir)]) == EXIT_OK

    def test_output_is_reproducible(self, tmp_path: Path) -> None:
        """Test two runs over the same input produce identical bytes."""
        files = {
            "a.json": {"id": "1", "items": [{"id": "A", "quantity": "10"}]},
            "b.json": [{"id": "2", "tags": ["x"], "items": [{"id": "B", "note": None}]}],
        }
        data_dir = _data_dir(tmp_path, {}, files)
        settings = build_settings({})
        first = data_dir / "out1"
        second = data_dir / "out2"
        run(settings, data_dir / "in" / "files", first)
        run(settings, data_dir / "in" / "files", second)
        for name in ("root.csv", "items.csv", "root.csv.manifest", "items.csv.manifest"):
            assert (first / name).read_bytes() == (second / name).read_bytes()


class TestCli:
    """End-to-end tests through the command-line entry point."""

    def test_implicit_child_table_with_file_name(self, tmp_path: Path) -> None:
        """Test the file name column and implicit child table outputs."""
        data_dir = _data_dir(
            tmp_path,
            {"in_type": "tables", "add_file_name": True},
            {"sample.json": {"id": "1", "name": "Test", "items": [{"id": "A", "quantity": "10"}, {"id": "B", "quantity": "20"}]}},
        )
        assert main(["--data-dir", str(data_dir)]) == EXIT_OK
        out = data_dir / "out" / "tables"
        assert _lines(out / "root.csv") == [
            '"keboola_file_name_col","id","name"',
            '"sample.json","1","Test"',
        ]
        assert _lines(out / "items.csv") == [
            '"id","quantity","JSON_parentId"',
            '"A","10","items_0"',
            '"B","20","items_1"',
        ]

    def test_mapping_with_root_node(self, tmp_path: Path) -> None:
        """Test mapped relations, renamed columns and manifests."""
        parameters = {
            "in_type": "tables",
            "root_node": "data",
            "incremental": True,
            "mapping": {
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
        }
        document = {
            "data": [
                {"id": "1", "items": [{"id": "A", "quantity": "10"}, {"id": "B", "quantity": "20"}]},
                {"id": "2", "items": [{"id": "C", "quantity": "30"}]},
            ]
        }
        data_dir = _data_dir(tmp_path, parameters, {"sample.json": document})
        assert main(["--data-dir", str(data_dir)]) == EXIT_OK

        out = data_dir / "out" / "tables"
        assert read_csv(out / "order_items.csv") == [
            {"item_id": "A", "quantity": "10", "order_id": "1"},
            {"item_id": "B", "quantity": "20", "order_id": "1"},
            {"item_id": "C", "quantity": "30", "order_id": "2"},
        ]
        manifest = json.loads((out / "order_items.csv.manifest").read_text(encoding="utf-8"))
        assert manifest == {"incremental": True, "primary_key": ["item_id", "order_id"]}
        assert not (out / "items.csv").exists()

    def test_cli_overrides_root_node(self, tmp_path: Path) -> None:
        """Test --root-node overrides the config file."""
        data_dir = _data_dir(tmp_path, {}, {"a.json": {"payload": {"id": "1"}}})
        assert main(["--data-dir", str(data_dir), "--root-node", "payload", "--no-manifest"]) == EXIT_OK
        out = data_dir / "out" / "tables"
        assert _lines(out / "root.csv") == ['"id"', '"1"']
        assert not (out / "root.csv.manifest").exists()

    def test_strict_reports_failed_documents(self, tmp_path: Path) -> None:
        """Test --strict turns skipped documents into a non-zero exit."""
        data_dir = _data_dir(tmp_path, {}, {"a.json": {"id": "1"}, "b.json": "nope"})
        assert main(["--data-dir", str(data_dir)]) == EXIT_OK
        assert main(["--data-dir", str(data_dir), "--strict"]) == EXIT_FAILED_DOCUMENTS

    def test_missing_config_fails(self, tmp_path: Path) -> None:
        """Test a data dir without config exits with an error."""
        assert main(["--data-dir", str(tmp_path)]) == EXIT_ERROR

    def test_data_dir_from_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test KBC_DATADIR locates the data directory."""
        data_dir = _data_dir(tmp_path, {}, {"a.json": {"id": "1"}})
        monkeypatch.setenv("KBC_DATADIR", str(data_dir))
        assert main([]) == EXIT_OK
        assert (data_dir / "out" / "tables" / "root.csv").exists()
