#!/usr/bin/env python3
from __future__ import annotations

import argparse
import os
import sys
import textwrap
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from radiusedge_api.db import store_from_url
from radiusedge_api.schema import SCHEMA_STATEMENTS, ensure_schema


def _resolve_database_url(arg_url: str | None) -> str:
    if arg_url:
        return arg_url
    value = os.getenv("DATABASE_URL")
    if not value:
        raise SystemExit("Missing --database-url (or env DATABASE_URL)")
    return value


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the record tables if they do not exist.")
    parser.add_argument("--database-url", help="postgresql://... or sqlite:///path (or env DATABASE_URL).")
    parser.add_argument("--yes", action="store_true", help="Actually run the DDL.")
    args = parser.parse_args()

    for statement in SCHEMA_STATEMENTS:
        print(textwrap.dedent(statement).strip() + ";\n")

    if not args.yes:
        print("Dry-run: add --yes to apply.")
        return 0

    store = store_from_url(_resolve_database_url(args.database_url))
    ensure_schema(store)
    print(f"Schema applied ({store.backend}).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
