# scripts/gen_schemas.py
"""
Generate JSON Schemas for CleanSheet data models.

Covers the row models (Client, Worker, Task), validation output (Finding),
the exported rules document (RulesConfig) and the runtime Config.

Output directory: schemas/
"""

import json
from pathlib import Path

from pydantic import BaseModel

from cleansheet.schemas.models import Client, Config, Finding, Task, Worker
from cleansheet.schemas.rules import RulesConfig

SCHEMA_MODELS: dict[str, type[BaseModel]] = {
    "client": Client,
    "worker": Worker,
    "task": Task,
    "finding": Finding,
    "rules": RulesConfig,
    "config": Config,
}


def export_schema(model_cls: type[BaseModel], name: str, out_dir: Path) -> Path:
    """
    @brief
    Exports the JSON schema of a given Pydantic model.

    @details
    Aliased models are described by their alias (column / camelCase) names,
    which is what appears in spreadsheets and rules.json.

    @returns
        Path of the written "<name>.schema.json" file.
    """
    out_dir.mkdir(parents=True, exist_ok=True)

    schema_path = (out_dir / f"{name}.schema.json").resolve()
    schema = model_cls.model_json_schema(by_alias=True)

    with schema_path.open("w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
        f.write("\n")

    try:
        rel = schema_path.relative_to(Path.cwd())
    except ValueError:
        rel = schema_path
    print(f"✅  Generated {rel}")
    return schema_path


def main(out_dir: Path | None = None) -> None:
    out_dir = (out_dir or Path("schemas")).resolve()
    for name, model_cls in SCHEMA_MODELS.items():
        export_schema(model_cls, name, out_dir)


if __name__ == "__main__":
    main()
