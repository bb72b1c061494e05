"""Zod validation schema modules."""

from __future__ import annotations

import json

from ..engine.dag import ArtifactDescriptor
from ..models import EntityDef, FieldDef, public_fields
from .types import GENERATED_NOTICE, ArtifactContext, join_posix


_BASE_TYPES = {
    "string": "z.string()",
    "number": "z.number()",
    "integer": "z.number().int()",
    "boolean": "z.boolean()",
    "date": "z.coerce.date()",
    "json": "z.any()",
}


def schema_path(entity: EntityDef, schemas_dir: str) -> str:
    return join_posix(schemas_dir, f"{entity.name}.schema.ts")


def zod_expression(f: FieldDef) -> str:
    if f.type == "array":
        expr = f"z.array({_BASE_TYPES[f.items or 'string']})"
    else:
        expr = _BASE_TYPES[f.type]

    if f.nullable:
        expr += ".nullable()"
    if f.has_default:
        expr += f".default({json.dumps(f.default, default=str)})"
    elif f.optional:
        expr += ".optional()"
    if f.description:
        expr += f".describe({json.dumps(f.description)})"
    return expr


def _mask(names: list[str]) -> str:
    return "{ " + ", ".join(f"{name}: true" for name in names) + " }" if names else "{}"


def render_schema_module(entity: EntityDef) -> str:
    name = entity.name
    lines = [
        f"// {GENERATED_NOTICE}",
        'import { z } from "zod";',
        "",
        f"export const {name}Schema = z.object({{",
    ]
    for f in entity.fields:
        lines.append(f"  {f.name}: {zod_expression(f)},")
    lines.append("});")
    lines.append("")

    public = [f.name for f in public_fields(entity)]
    lines.append(f"export const {name}PublicSchema = {name}Schema.pick({_mask(public)});")

    # Server-managed columns never appear in create inputs
    managed = [f.name for f in entity.fields if f.db.primary or f.db.default_now or not f.stored]
    lines.append(f"export const {name}CreateInput = {name}Schema.omit({_mask(managed)});")

    frozen = [f.name for f in entity.fields if f.name in managed or f.immutable]
    lines.append(f"export const {name}UpdateInput = {name}Schema.omit({_mask(frozen)}).partial();")
    lines.append("")
    lines.append(f"export type {name} = z.infer<typeof {name}Schema>;")
    lines.append(f"export type {name}Public = z.infer<typeof {name}PublicSchema>;")
    lines.append("")
    return "\n".join(lines)


def build_schema_artifacts(context: ArtifactContext) -> list[ArtifactDescriptor]:
    entity = context.entity
    if not entity.schema:
        return []
    return [
        ArtifactDescriptor(
            kind="schema",
            path=schema_path(entity, context.config.paths.schemas),
            content=render_schema_module(entity),
            label=f"{entity.name} schema",
            data={"fields": [f.name for f in entity.fields]},
        )
    ]
