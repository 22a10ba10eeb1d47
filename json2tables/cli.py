"""Command-line interface for json2tables."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Sequence

from .config import build_settings, find_config, load_config, resolve_data_dir
from .errors import ConfigError, OutputError
from .runner import run

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_FAILED_DOCUMENTS = 2


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="json2tables",
        description="Convert JSON documents into relational CSV tables.",
    )
    parser.add_argument("--data-dir", help="Data directory (default: $KBC_DATADIR or /data)")
    parser.add_argument("--config", type=Path, help="Config file (default: <data-dir>/config.json)")
    parser.add_argument("--root-node", help="Dotted path of the part of each document to flatten")
    parser.add_argument("--in-type", choices=["files", "tables"], help="Input sub-directory under <data-dir>/in")
    parser.add_argument(
        "--add-file-name",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Add the source file name column to root table rows",
    )
    parser.add_argument("--incremental", action="store_true", default=None, help="Mark output manifests incremental")
    parser.add_argument("--no-manifest", action="store_true", help="Do not write .manifest files")
    parser.add_argument("--strict", action="store_true", help="Exit with status 2 if any document failed")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def read_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Collect CLI values that override the config file."""
    return {
        "root_node": args.root_node,
        "in_type": args.in_type,
        "add_file_name": args.add_file_name,
        "incremental": args.incremental,
    }


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    data_dir = resolve_data_dir(args.data_dir)
    try:
        config_path = args.config if args.config is not None else find_config(data_dir)
        settings = build_settings(load_config(config_path), read_overrides(args))
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_ERROR

    input_dir = data_dir / "in" / settings.in_type
    output_dir = data_dir / "out" / "tables"
    logger.debug("Reading %s, writing %s", input_dir, output_dir)

    try:
        result = run(settings, input_dir, output_dir, manifests=not args.no_manifest)
    except OutputError as exc:
        logger.error("%s", exc)
        return EXIT_ERROR

    if args.strict and not result.ok:
        return EXIT_FAILED_DOCUMENTS
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
