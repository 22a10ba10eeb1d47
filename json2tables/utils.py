"""
utils
=====

Small, shared utilities used across the codebase.

This module intentionally contains only low-level helpers that are safe to
import from anywhere.

Functions
---------
- :func:`safe_name`:
  Convert a table name into a filesystem-safe filename component.
"""

from __future__ import annotations

import re


def safe_name(value: str) -> str:
    """Return a filesystem-safe version of table name *value*.

    Only characters that would change the meaning of a path are replaced:
    path separators and control characters become underscores, and a name
    made of dots only is rejected. Everything else is kept so table names
    map to file names verbatim.

    Parameters
    ----------
    value:
        The table name to sanitize.

    Returns
    -------
    str
        The sanitized name, or ``"unnamed"`` if nothing usable remains.

    Examples
    --------
    >>> safe_name("order_items")
    'order_items'
    >>> safe_name("../etc/passwd")
    '.._etc_passwd'
    >>> safe_name("")
    'unnamed'
    """
    out = re.sub(r"[\\/\x00-\x1f]+", "_", value)
    if not out.strip("."):
        return "unnamed"
    return out
