#!/usr/bin/env python
"""Export generated type artifacts.

Usage:
    python scripts/export_schemas.py --out-dir build/schemas

Outputs:
    subsonic_types.py         Generated pydantic module
    response_schema.json      JSON Schema of every Response payload, keyed by wire name
"""
from __future__ import annotations

import argparse
import json
from pathlib import Path

from subsonic_schema_api.cache import get_compiled_schema
from subsonic_schema_api.codegen import write_module
from subsonic_schema_api.registry import TypeRegistry


def export_module(registry: TypeRegistry, out_dir: Path) -> Path:
    return write_module(registry.plan, out_dir / "subsonic_types.py")


def export_json_schema(registry: TypeRegistry, out_dir: Path) -> Path:
    schemas = {
        variant.wire_name: variant.payload_type.model_json_schema(by_alias=True)
        for variant in registry.response
    }
    path = out_dir / "response_schema.json"
    path.write_text(json.dumps({"version": registry.version, "variants": schemas}, indent=2))
    return path


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--out-dir", default="build/schemas", help="Output directory")
    parser.add_argument("--schema", default=None, help="Schema file (default: bundled)")
    args = parser.parse_args()

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    registry = get_compiled_schema(Path(args.schema) if args.schema else None)
    module_path = export_module(registry, out_dir)
    schema_path = export_json_schema(registry, out_dir)

    print(f"Exported generated module -> {module_path}")
    print(f"Exported JSON Schema -> {schema_path}")


if __name__ == "__main__":  # pragma: no cover
    main()
