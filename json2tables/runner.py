"""Drive one processing run over a directory of JSON documents.

Documents are read in file-name order, flattened into one shared registry
and written once at the end. A document that cannot be read, parsed or whose
root path does not resolve is reported and skipped; the run continues. Only
a failure to write output ends the run.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

from .config import Settings
from .csv_io import write_registry
from .errors import DocumentError, DocumentParseError, DocumentReadError
from .flattener import Flattener
from .registry import TableRegistry

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = ".manifest"


@dataclass
class RunResult:
    """Outcome of a run.

    Attributes
    ----------
    processed : List[str]
        File names flattened successfully.
    failed : List[Tuple[str, str]]
        ``(file name, error message)`` for every skipped document.
    tables : List[Path]
        CSV files written.
    rows : int
        Rows contributed across all tables.
    """

    processed: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)
    tables: List[Path] = field(default_factory=list)
    rows: int = 0

    @property
    def ok(self) -> bool:
        return not self.failed


def iter_input_files(input_dir: Path) -> List[Path]:
    """Return input documents in *input_dir*, sorted by file name.

    Manifest files are skipped. A missing directory yields no documents.
    """
    if not input_dir.is_dir():
        logger.warning("Input directory %s does not exist", input_dir)
        return []
    files = [
        path
        for path in input_dir.iterdir()
        if path.is_file() and not path.name.endswith(MANIFEST_SUFFIX)
    ]
    return sorted(files, key=lambda p: p.name)


def _find_unencodable(data: Any) -> Optional[str]:
    """Return the first string in *data* that cannot be written as UTF-8."""
    stack = [data]
    while stack:
        value = stack.pop()
        if isinstance(value, dict):
            stack.extend(value.keys())
            stack.extend(value.values())
        elif isinstance(value, list):
            stack.extend(value)
        elif isinstance(value, str):
            try:
                value.encode("utf-8")
            except UnicodeEncodeError:
                return value
    return None


def load_document(path: Path) -> Any:
    """Read and parse one JSON document.

    Raises
    ------
    DocumentReadError
        If the file cannot be read.
    DocumentParseError
        If the content is not valid JSON, is nested too deeply to parse, or
        holds strings with unpaired surrogate escapes.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentReadError(f"cannot read {path.name}: {exc}", path=path) from exc
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as exc:
        raise DocumentParseError(f"invalid JSON in {path.name}: {exc}", path=path) from exc
    bad = _find_unencodable(data)
    if bad is not None:
        raise DocumentParseError(f"invalid unicode string in {path.name}: {bad!r}", path=path)
    return data


def flatten_documents(
    flattener: Flattener,
    paths: Iterable[Path],
    root_path: str = "",
    result: Optional[RunResult] = None,
) -> RunResult:
    """Flatten each document in *paths*, isolating per-document failures."""
    result = result if result is not None else RunResult()
    for path in paths:
        logger.info("Processing file %s", path.name)
        try:
            flattener.flatten_document(load_document(path), file_tag=path.name, root_path=root_path)
        except DocumentError as exc:
            logger.error("Skipping file %s: %s", path.name, exc)
            result.failed.append((path.name, str(exc)))
            continue
        result.processed.append(path.name)
    result.rows = flattener.stats.rows
    return result


def run(settings: Settings, input_dir: Path, output_dir: Path, manifests: bool = True) -> RunResult:
    """Flatten every document in *input_dir* and write tables to *output_dir*.

    Raises
    ------
    OutputError
        If the output tables cannot be written.
    """
    registry = TableRegistry()
    flattener = Flattener(
        registry,
        settings.mapping,
        add_file_name=settings.add_file_name,
        root_table=settings.root_table,
    )
    result = flatten_documents(flattener, iter_input_files(input_dir), root_path=settings.root_node)

    logger.info("Writing results..")
    result.tables = write_registry(
        registry,
        output_dir,
        incremental=settings.incremental,
        manifests=manifests,
    )
    logger.info(
        "Processed %d file(s), %d failed, %d row(s) in %d table(s)",
        len(result.processed),
        len(result.failed),
        result.rows,
        len(result.tables),
    )
    for name, message in result.failed:
        logger.warning("Failed file %s: %s", name, message)
    return result
