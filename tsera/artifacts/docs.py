"""Markdown documentation for entities."""

from __future__ import annotations

import json
from typing import Any

from ..engine.dag import ArtifactDescriptor
from ..models import EntityDef, FieldDef
from .types import GENERATED_NOTICE, ArtifactContext, join_posix


def docs_path(entity: EntityDef, docs_dir: str) -> str:
    return join_posix(docs_dir, "entities", f"{entity.name}.md")


def type_label(f: FieldDef) -> str:
    labels = {"date": "Date", "json": "any"}
    if f.type == "array":
        base = f"Array<{labels.get(f.items or 'string', f.items)}>"
    else:
        base = labels.get(f.type, f.type)
    return f"{base} | null" if f.nullable else base


def format_default(f: FieldDef) -> str:
    if f.db.default_now:
        return "`CURRENT_TIMESTAMP`"
    if not f.has_default:
        return ""
    value: Any = f.default
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return f"`{value}`"
    return "`" + json.dumps(value, default=str) + "`"


def _table(fields: list[FieldDef]) -> list[str]:
    rows = [
        "| Property | Type | Optional | Nullable | Default | Description |",
        "| --- | --- | --- | --- | --- | --- |",
    ]
    for f in fields:
        rows.append(
            "| "
            + " | ".join(
                [
                    f.name,
                    type_label(f),
                    "yes" if f.optional else "no",
                    "yes" if f.nullable else "no",
                    format_default(f),
                    (f.description or "").replace("|", "\\|"),
                ]
            )
            + " |"
        )
    return rows


def render_entity_doc(entity: EntityDef) -> str:
    lines = [f"<!-- {GENERATED_NOTICE} -->", f"# {entity.name}", ""]

    description = entity.description or entity.openapi.description
    if description:
        lines.extend([description, ""])

    public = [f for f in entity.fields if f.visibility == "public"]
    internal = [f for f in entity.fields if f.visibility == "internal"]

    if public:
        lines.extend(["## Public Fields", "", *_table(public), ""])
    if internal:
        lines.extend(
            [
                "## Internal Fields",
                "",
                "> These fields are not exposed through the public API.",
                "",
                *_table(internal),
                "",
            ]
        )
    if entity.table:
        lines.extend(["## Storage", "", "Persisted as a relational table.", ""])
    return "\n".join(lines)


def build_docs_artifacts(context: ArtifactContext) -> list[ArtifactDescriptor]:
    entity = context.entity
    if not (context.config.docs and entity.doc):
        return []
    return [
        ArtifactDescriptor(
            kind="doc",
            path=docs_path(entity, context.config.paths.docs),
            content=render_entity_doc(entity),
            label=f"{entity.name} documentation",
        )
    ]
