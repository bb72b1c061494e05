"""Generated smoke tests for entity schemas."""

from __future__ import annotations

import json
from typing import Any

from ..engine.dag import ArtifactDescriptor
from ..models import EntityDef, FieldDef
from .schema import schema_path
from .types import GENERATED_NOTICE, ArtifactContext, join_posix, relative_import


_SAMPLES: dict[str, Any] = {
    "string": "example",
    "number": 1.5,
    "integer": 1,
    "boolean": True,
    "date": "2024-01-01T00:00:00.000Z",
    "json": {},
}

SECRET_PLACEHOLDER = "********"


def generated_test_path(entity: EntityDef, tests_dir: str) -> str:
    return join_posix(tests_dir, f"{entity.name}.test.ts")


def sample_value(f: FieldDef) -> Any:
    if f.is_secret:
        return SECRET_PLACEHOLDER if f.type == "string" else _SAMPLES.get(f.type, [])
    if f.example is not None:
        return f.example
    if f.type == "array":
        return [_SAMPLES[f.items or "string"]]
    return _SAMPLES[f.type]


def render_smoke_test(entity: EntityDef, test_file: str, schema_file: str) -> str:
    name = entity.name
    sample = {f.name: sample_value(f) for f in entity.fields if not f.optional}
    sample_json = json.dumps(sample, indent=2, default=str).replace("\n", "\n  ")
    spec = relative_import(test_file, schema_file)

    lines = [
        f"// {GENERATED_NOTICE}",
        'import { assert } from "std/assert";',
        f'import {{ {name}PublicSchema, {name}Schema }} from "{spec}";',
        "",
        f"const sample = {sample_json};",
        "",
        f'Deno.test("{name} schema accepts a sample payload", () => {{',
        f"  const result = {name}Schema.safeParse(sample);",
        "  assert(result.success);",
        "});",
    ]

    if entity.test == "full":
        hidden = [f.name for f in entity.fields if not f.is_public]
        lines.extend(
            [
                "",
                f'Deno.test("{name} public schema strips non-public fields", () => {{',
                f"  const projected = {name}PublicSchema.parse(sample) as Record<string, unknown>;",
                f"  for (const key of {json.dumps(hidden)}) {{",
                "    assert(!(key in projected));",
                "  }",
                "});",
            ]
        )

    lines.append("")
    return "\n".join(lines)


def build_test_artifacts(context: ArtifactContext) -> list[ArtifactDescriptor]:
    entity = context.entity
    config = context.config
    if not (config.tests and entity.test and entity.schema):
        return []

    path = generated_test_path(entity, config.paths.tests)
    return [
        ArtifactDescriptor(
            kind="test",
            path=path,
            content=render_smoke_test(entity, path, schema_path(entity, config.paths.schemas)),
            label=f"{entity.name} {entity.test} test",
            data={"mode": entity.test},
        )
    ]
