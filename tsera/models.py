"""Data models for entity definitions."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Mapping

# Field visibility:
# - public:   exposed in the API, OpenAPI and public docs
# - internal: backend/DB only, documented as internal
# - secret:   never exposed, never documented, masked in generated tests
Visibility = Literal["public", "internal", "secret"]

FieldType = Literal["string", "number", "integer", "boolean", "date", "json", "array"]

TestMode = Literal["smoke", "full"]

VISIBILITIES = ("public", "internal", "secret")
FIELD_TYPES = ("string", "number", "integer", "boolean", "date", "json", "array")
TEST_MODES = ("smoke", "full")

_PASCAL_CASE = re.compile(r"^[A-Z][A-Za-z0-9]*$")
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class DbMetadata:
    primary: bool = False
    unique: bool = False
    index: bool = False
    default_now: bool = False


@dataclass(frozen=True)
class FieldDef:
    """A single entity field."""

    name: str
    type: str = "string"
    items: str | None = None  # element type for arrays
    optional: bool = False
    nullable: bool = False
    default: Any = None
    has_default: bool = False
    visibility: str = "public"
    immutable: bool = False
    stored: bool = True
    description: str | None = None
    example: Any = None
    db: DbMetadata = field(default_factory=DbMetadata)

    @property
    def is_public(self) -> bool:
        return self.visibility == "public"

    @property
    def is_secret(self) -> bool:
        return self.visibility == "secret"


@dataclass(frozen=True)
class OpenAPISettings:
    enabled: bool = True
    tags: tuple[str, ...] = ()
    summary: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class EntityDef:
    """
    An entity definition.

    Instances are built once by ``define_entity`` and never mutated; the
    field tuple preserves declaration order.
    """

    name: str
    fields: tuple[FieldDef, ...]
    table: bool = False
    schema: bool = True
    doc: bool = False
    test: str | None = None
    active: bool = True
    description: str = ""
    openapi: OpenAPISettings = field(default_factory=OpenAPISettings)
    source_path: Path | None = None

    def field_map(self) -> dict[str, FieldDef]:
        return {f.name: f for f in self.fields}

    def to_dict(self) -> dict[str, Any]:
        """Stable representation (used for hashing and diagnostics)."""
        return {
            "name": self.name,
            "table": self.table,
            "schema": self.schema,
            "doc": self.doc,
            "test": self.test,
            "active": self.active,
            "description": self.description,
            "fields": [
                {
                    "name": f.name,
                    "type": f.type,
                    "items": f.items,
                    "optional": f.optional,
                    "nullable": f.nullable,
                    "default": f.default if f.has_default else None,
                    "visibility": f.visibility,
                    "immutable": f.immutable,
                    "stored": f.stored,
                }
                for f in self.fields
            ],
        }


def public_fields(entity: EntityDef) -> list[FieldDef]:
    return [f for f in entity.fields if f.visibility == "public"]


def non_secret_fields(entity: EntityDef) -> list[FieldDef]:
    return [f for f in entity.fields if f.visibility != "secret"]


def stored_fields(entity: EntityDef) -> list[FieldDef]:
    return [f for f in entity.fields if f.stored]


def _flag(raw: Mapping[str, Any], key: str, default: bool, where: str) -> bool:
    value = raw.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{where}: {key} must be true or false")
    return value


def define_field(name: str, raw: Mapping[str, Any] | str, entity_name: str) -> FieldDef:
    """Validate a raw field mapping (or a bare type string)."""
    where = f"{entity_name}.{name}"
    if not _IDENTIFIER.match(name):
        raise ValueError(f"{where}: invalid field name")
    if isinstance(raw, str):
        raw = {"type": raw}
    if not isinstance(raw, Mapping):
        raise ValueError(f"{where}: field definition must be a mapping or a type name")

    field_type = str(raw.get("type", "string"))
    if field_type not in FIELD_TYPES:
        raise ValueError(f"{where}: unknown type {field_type!r}")

    items = raw.get("items")
    if field_type == "array":
        items = str(items or "string")
        if items not in FIELD_TYPES or items == "array":
            raise ValueError(f"{where}: unsupported array item type {items!r}")
    elif items is not None:
        raise ValueError(f"{where}: items is only valid for arrays")

    visibility = str(raw.get("visibility", "public"))
    if visibility not in VISIBILITIES:
        raise ValueError(f"{where}: visibility must be one of {', '.join(VISIBILITIES)}")

    db_raw = raw.get("db") or {}
    if not isinstance(db_raw, Mapping):
        raise ValueError(f"{where}: db must be a mapping")

    description = raw.get("description")
    return FieldDef(
        name=name,
        type=field_type,
        items=items,
        optional=_flag(raw, "optional", False, where),
        nullable=_flag(raw, "nullable", False, where),
        default=raw.get("default"),
        has_default="default" in raw,
        visibility=visibility,
        immutable=_flag(raw, "immutable", False, where),
        stored=_flag(raw, "stored", True, where),
        description=str(description) if description is not None else None,
        example=raw.get("example"),
        db=DbMetadata(
            primary=_flag(db_raw, "primary", False, where),
            unique=_flag(db_raw, "unique", False, where),
            index=_flag(db_raw, "index", False, where),
            default_now=_flag(db_raw, "default_now", False, where),
        ),
    )


def define_entity(
    name: str,
    fields: Mapping[str, Any],
    *,
    table: bool = False,
    schema: bool = True,
    doc: bool = False,
    test: str | bool | None = None,
    active: bool = True,
    description: str = "",
    openapi: Mapping[str, Any] | None = None,
    source_path: Path | None = None,
) -> EntityDef:
    """Validate and freeze an entity definition."""
    if not isinstance(name, str) or not _PASCAL_CASE.match(name):
        raise ValueError(f"Entity name must be PascalCase (got {name!r})")
    if not isinstance(fields, Mapping) or not fields:
        raise ValueError(f"{name}: an entity needs at least one field")

    if test is False or test is None:
        test_mode = None
    elif test in TEST_MODES:
        test_mode = str(test)
    else:
        raise ValueError(f"{name}: test must be one of {', '.join(TEST_MODES)} or false")

    openapi_raw = openapi or {}
    if not isinstance(openapi_raw, Mapping):
        raise ValueError(f"{name}: openapi must be a mapping")
    tags = openapi_raw.get("tags") or ()
    if isinstance(tags, str):
        tags = (tags,)

    return EntityDef(
        name=name,
        fields=tuple(define_field(str(k), v, name) for k, v in fields.items()),
        table=bool(table),
        schema=bool(schema),
        doc=bool(doc),
        test=test_mode,
        active=bool(active),
        description=description.strip(),
        openapi=OpenAPISettings(
            enabled=bool(openapi_raw.get("enabled", True)),
            tags=tuple(str(t) for t in tags),
            summary=openapi_raw.get("summary"),
            description=openapi_raw.get("description"),
        ),
        source_path=source_path,
    )
