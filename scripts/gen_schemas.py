# scripts/gen_schemas.py
"""
Generate JSON Schemas for the Alchemist data models.

This script exports JSON Schema files for:
    - Client, Worker, Task (upload sheets)
    - Rule (discriminated union of all rule variants)
    - Finding
    - Config

Output directory: schemas/
"""

import json
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from alchemist.schemas.models import Client, Config, Finding, Task, Worker
from alchemist.schemas.rules import Rule


def write_schema(schema: dict[str, Any], name: str, out_dir: Path) -> Path:
    """
    @brief
    Writes one JSON schema document to `<out_dir>/<name>.schema.json`.

    @raises
        OSError
            If the schema file cannot be written.
    """
    # (1) Ensure output directory exists
    out_dir.mkdir(parents=True, exist_ok=True)
    schema_path = (out_dir / f"{name}.schema.json").resolve()

    # (2) Serialize with indentation and final newline
    with schema_path.open("w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
        f.write("\n")

    try:
        rel = schema_path.relative_to(Path.cwd())
    except ValueError:
        rel = schema_path
    print(f"Generated {rel}")
    return schema_path


def main() -> None:
    out_dir = Path("schemas").resolve()

    # Entity schemas use column names, as uploaded
    for model_cls, name in ((Client, "client"), (Worker, "worker"), (Task, "task")):
        write_schema(model_cls.model_json_schema(by_alias=True), name, out_dir)

    write_schema(TypeAdapter(Rule).json_schema(by_alias=True), "rule", out_dir)
    write_schema(Finding.model_json_schema(by_alias=True), "finding", out_dir)
    write_schema(Config.model_json_schema(), "config", out_dir)


if __name__ == "__main__":
    main()
