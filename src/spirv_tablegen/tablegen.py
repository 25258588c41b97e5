#!/usr/bin/env python3
"""Generate SPIR-V backend lookup tables from a grammar record store."""

from __future__ import annotations

import argparse
import pathlib
import sys
from typing import List, Optional

from .builder import build_tables
from .emitter import emit_tables
from .errors import TableGenError
from .records import load_grammar

PACKAGE_DIR = pathlib.Path(__file__).resolve().parent
GRAMMAR_DEFAULT = PACKAGE_DIR / "schema" / "spirv.yaml"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate SPIR-V grammar tables")
    parser.add_argument(
        "--grammar", type=pathlib.Path, default=GRAMMAR_DEFAULT, help="YAML grammar record store"
    )
    parser.add_argument(
        "--out", required=True, type=pathlib.Path, help="Destination for the generated include"
    )
    return parser.parse_args(argv)


def generate(grammar_path: pathlib.Path) -> str:
    return emit_tables(build_tables(load_grammar(grammar_path)))


def write_file(path: pathlib.Path, content: str) -> bool:
    """Write ``content`` unless the file already holds it; return True if written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and path.read_text(encoding="utf-8") == content:
        return False
    path.write_text(content, encoding="utf-8")
    return True


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        content = generate(args.grammar)
    except TableGenError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    if write_file(args.out, content):
        print(f"wrote {args.out}")
    else:
        print(f"{args.out} is up to date")
    return 0


if __name__ == "__main__":
    sys.exit(main())
