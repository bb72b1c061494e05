"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest


USER_ENTITY = """\
---
name: User
table: true
doc: true
test: smoke
openapi:
  tags: [accounts]
fields:
  id:
    type: string
    db:
      primary: true
  email:
    type: string
    description: Login address
    db:
      unique: true
  displayName:
    type: string
    optional: true
  passwordHash:
    type: string
    visibility: secret
  createdAt:
    type: date
    immutable: true
    db:
      default_now: true
---
A registered user of the application.
"""

SCHEMA_ONLY_CONFIG = """\
docs = false
tests = false
openapi = false

[paths]
entities = ["domain"]
schemas = "schemas"
"""


def write_entity(project: Path, name: str, body: str) -> Path:
    """Write ``domain/<name>.entity.md`` and return its path."""
    path = project / "domain" / f"{name}.entity.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")
    return path


def simple_entity(name: str, *field_names: str) -> str:
    """Minimal entity with string fields and nothing but a schema."""
    fields = "\n".join(f"  {f}: string" for f in field_names or ("id",))
    return f"---\nname: {name}\nfields:\n{fields}\n---\n"


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project with default configuration and one fully featured entity."""
    root = tmp_path / "app"
    root.mkdir()
    (root / "tsera.toml").write_text('[db]\ndialect = "postgres"\n', encoding="utf-8")
    write_entity(root, "User", USER_ENTITY)
    return root


@pytest.fixture
def schema_project(tmp_path: Path) -> Path:
    """A project where every entity yields exactly one artifact (its schema)."""
    root = tmp_path / "schema-app"
    root.mkdir()
    (root / "tsera.toml").write_text(SCHEMA_ONLY_CONFIG, encoding="utf-8")
    write_entity(root, "User", simple_entity("User", "id", "email"))
    return root
