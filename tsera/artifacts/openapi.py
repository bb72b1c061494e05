"""Project-level OpenAPI document aggregated from every entity."""

from __future__ import annotations

import json
from typing import Any, Sequence

from ..config import TseraConfig
from ..engine.dag import ArtifactDescriptor, artifact_node_id, slugify
from ..models import EntityDef, FieldDef, public_fields
from .schema import schema_path
from .types import GENERATED_NOTICE, join_posix


_PROPERTY_TYPES: dict[str, dict[str, Any]] = {
    "string": {"type": "string"},
    "number": {"type": "number"},
    "integer": {"type": "integer"},
    "boolean": {"type": "boolean"},
    "date": {"type": "string", "format": "date-time"},
    "json": {},
}


def openapi_path(config: TseraConfig) -> str:
    return join_posix(config.paths.docs, "openapi.json")


def property_schema(f: FieldDef) -> dict[str, Any]:
    if f.type == "array":
        schema: dict[str, Any] = {"type": "array", "items": dict(_PROPERTY_TYPES[f.items or "string"])}
    else:
        schema = dict(_PROPERTY_TYPES[f.type])

    if f.nullable and "type" in schema:
        schema["type"] = [schema["type"], "null"]
    if f.description:
        schema["description"] = f.description
    if f.example is not None:
        schema["example"] = f.example
    if f.has_default:
        schema["default"] = f.default
    return schema


def component_schema(entity: EntityDef) -> dict[str, Any]:
    fields = public_fields(entity)
    component: dict[str, Any] = {
        "type": "object",
        "properties": {f.name: property_schema(f) for f in fields},
    }
    required = [f.name for f in fields if not f.optional and not f.has_default]
    if required:
        component["required"] = required
    description = entity.openapi.description or entity.description
    if description:
        component["description"] = description
    return component


def render_openapi_document(entities: Sequence[EntityDef], config: TseraConfig) -> str:
    paths: dict[str, Any] = {}
    schemas: dict[str, Any] = {}
    tags: dict[str, dict[str, str]] = {}

    for entity in entities:
        schemas[entity.name] = component_schema(entity)
        entity_tags = list(entity.openapi.tags) or [entity.name]
        for tag in entity_tags:
            tags.setdefault(tag, {"name": tag})

        ref = {"$ref": f"#/components/schemas/{entity.name}"}
        paths[f"/{slugify(entity.name)}s"] = {
            "get": {
                "tags": entity_tags,
                "summary": entity.openapi.summary or f"List {entity.name} records",
                "operationId": f"list{entity.name}",
                "responses": {
                    "200": {
                        "description": "OK",
                        "content": {"application/json": {"schema": {"type": "array", "items": ref}}},
                    }
                },
            }
        }

    document = {
        "openapi": "3.1.0",
        "info": {
            "title": config.openapi_info.title,
            "version": config.openapi_info.version,
            "description": GENERATED_NOTICE,
        },
        "tags": list(tags.values()),
        "paths": paths,
        "components": {"schemas": schemas},
    }
    return json.dumps(document, indent=2, default=str) + "\n"


def build_project_openapi_artifact(
    entities: Sequence[EntityDef],
    config: TseraConfig,
) -> ArtifactDescriptor | None:
    """
    Build the aggregate document, depending on each entity's schema node.

    Returns None when OpenAPI output is disabled or no entity opts in.
    """
    if not config.openapi:
        return None
    included = [e for e in entities if e.openapi.enabled and e.schema]
    if not included:
        return None

    depends_on = tuple(
        artifact_node_id("schema", e.name, schema_path(e, config.paths.schemas)) for e in included
    )
    return ArtifactDescriptor(
        kind="openapi",
        path=openapi_path(config),
        content=render_openapi_document(included, config),
        label="OpenAPI document",
        data={"entities": [e.name for e in included]},
        depends_on=depends_on,
    )
