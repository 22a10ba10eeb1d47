"""Exception hierarchy for json2tables.

Every error raised on purpose by the package derives from
:class:`Json2TablesError`, so callers can catch the whole family at once.

Document-level errors (:class:`DocumentError` and subclasses) only abort the
document being processed; the run continues with the next one. Output errors
abort the whole run.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class Json2TablesError(Exception):
    """Base class for all json2tables errors."""


class ConfigError(Json2TablesError, ValueError):
    """Configuration is missing, unreadable or structurally invalid."""


class MalformedMapping(Json2TablesError):
    """A table mapping met a value that is neither an object nor an array.

    Parameters
    ----------
    destination : str
        Destination table of the offending mapping.
    value_type : str
        Name of the Python type actually found.
    """

    def __init__(self, destination: str, value_type: str) -> None:
        self.destination = destination
        self.value_type = value_type
        super().__init__(
            f"table mapping {destination!r} expects an object or array, got {value_type}"
        )


class DocumentError(Json2TablesError):
    """A single input document could not be processed."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        self.path = path
        super().__init__(message)


class DocumentReadError(DocumentError):
    """The document file could not be read."""


class DocumentParseError(DocumentError):
    """The document is not valid JSON."""


class RootNotFound(DocumentError):
    """The configured root path does not resolve inside a document.

    Parameters
    ----------
    root_path : str
        The full dotted root path that was requested.
    segment : str
        The first path segment that could not be resolved.
    """

    def __init__(self, root_path: str, segment: str, path: Optional[Path] = None) -> None:
        self.root_path = root_path
        self.segment = segment
        super().__init__(
            f"root path {root_path!r} not found: cannot resolve segment {segment!r}",
            path=path,
        )


class OutputError(Json2TablesError):
    """Output tables could not be written."""
