"""
config
======

Load and resolve run settings.

Configuration
-------------

The configuration file lives in the data directory as ``config.json``
(or ``config.yml`` / ``config.yaml``)::

    {
      "parameters": {
        "in_type": "files",
        "root_node": "data",
        "add_file_name": false,
        "incremental": false,
        "mapping": {
          "id": {"type": "column", "mapping": {"destination": "order_id", "primary_key": true}}
        }
      }
    }

Precedence
----------

For scalar parameters, highest first:

1. environment variables ``JSON2TABLES_<PARAM>`` (e.g. ``JSON2TABLES_ROOT_NODE``)
2. CLI overrides
3. the configuration file
4. defaults

The data directory itself comes from ``--data-dir``, else ``KBC_DATADIR``,
else ``/data``.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .errors import ConfigError
from .flattener import DEFAULT_ROOT_TABLE
from .mapping import MappingModel

ENV_PREFIX = "JSON2TABLES"
DEFAULT_DATA_DIR = "/data"
CONFIG_FILE_NAMES = ("config.json", "config.yml", "config.yaml")
IN_TYPES = ("files", "tables")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    """Resolved settings for one run.

    Attributes:
        mapping: Field mappings, scoped per table.
        in_type: Input sub-directory under ``<data_dir>/in`` (``files`` or ``tables``).
        root_node: Dotted path selecting the part of each document to flatten.
        add_file_name: Add the source file name column to root table rows.
        incremental: ``incremental`` flag written to output manifests.
        root_table: Name of the table receiving document roots.
    """

    mapping: MappingModel = field(default_factory=MappingModel)
    in_type: str = "files"
    root_node: str = ""
    add_file_name: bool = False
    incremental: bool = False
    root_table: str = DEFAULT_ROOT_TABLE


def resolve_data_dir(cli_value: Optional[str] = None) -> Path:
    """Return the data directory from CLI, ``KBC_DATADIR`` or the default."""
    if cli_value:
        return Path(cli_value)
    return Path(os.environ.get("KBC_DATADIR") or DEFAULT_DATA_DIR)


def find_config(data_dir: Path) -> Path:
    """Return the first existing config file in *data_dir*."""
    for name in CONFIG_FILE_NAMES:
        candidate = data_dir / name
        if candidate.exists():
            return candidate
    raise ConfigError(f"config file not found in {data_dir} (tried {', '.join(CONFIG_FILE_NAMES)})")


def load_config(path: Path) -> Dict[str, Any]:
    """Load a JSON or YAML configuration file.

    Files ending in ``.json`` are parsed as JSON, anything else as YAML.
    An empty YAML file yields an empty dict.

    Raises
    ------
    ConfigError
        If the file is missing, unreadable or not a mapping.
    """
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot parse config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain an object at the top level")
    return data


def deep_get(d: Mapping[str, Any], keys: List[str], default: Any = None) -> Any:
    """Safely get nested dict value with default."""
    cur: Any = d
    for k in keys:
        if not isinstance(cur, Mapping) or k not in cur:
            return default
        cur = cur[k]
    return cur


def get_env_var(param: str) -> Optional[str]:
    """Return ``JSON2TABLES_<PARAM>`` from the environment, if set."""
    return os.environ.get(f"{ENV_PREFIX}_{param.upper()}")


def parse_bool(value: Any, name: str) -> bool:
    """Interpret config/env/CLI values as booleans."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise ConfigError(f"invalid boolean for {name}: {value!r}")


def _pick(param: str, overrides: Mapping[str, Any], params: Mapping[str, Any], default: Any) -> Any:
    env = get_env_var(param)
    if env is not None:
        return env
    cli = overrides.get(param)
    if cli is not None:
        return cli
    value = params.get(param)
    return default if value is None else value


def build_settings(cfg: Mapping[str, Any], overrides: Optional[Mapping[str, Any]] = None) -> Settings:
    """Build :class:`Settings` from a loaded config and CLI overrides.

    Parameters
    ----------
    cfg:
        Parsed configuration file (top-level object with ``parameters``).
    overrides:
        CLI values keyed by parameter name; ``None`` values are ignored.

    Raises
    ------
    ConfigError
        On an invalid ``in_type``, boolean, or mapping.
    """
    overrides = overrides or {}
    params = deep_get(cfg, ["parameters"], {})
    if not isinstance(params, Mapping):
        raise ConfigError("'parameters' must be an object")

    in_type = str(_pick("in_type", overrides, params, "files")).strip().lower()
    if in_type not in IN_TYPES:
        raise ConfigError(f"invalid in_type {in_type!r}: expected one of {', '.join(IN_TYPES)}")

    root_table = str(_pick("root_table", overrides, params, DEFAULT_ROOT_TABLE)) or DEFAULT_ROOT_TABLE
    return Settings(
        mapping=MappingModel.from_config(params.get("mapping"), root_table=root_table),
        in_type=in_type,
        root_node=str(_pick("root_node", overrides, params, "") or ""),
        add_file_name=parse_bool(_pick("add_file_name", overrides, params, False), "add_file_name"),
        incremental=parse_bool(_pick("incremental", overrides, params, False), "incremental"),
        root_table=root_table,
    )
