"""Entity discovery and loading from ``*.entity.md`` files."""

from __future__ import annotations

from pathlib import Path

import frontmatter
import yaml

from .config import TseraConfig
from .models import EntityDef, define_entity


ENTITY_SUFFIX = ".entity.md"


def load_entity(path: Path) -> EntityDef:
    """
    Load a single entity file.

    Front matter holds the definition; the Markdown body is the entity
    description used by the documentation and OpenAPI builders.
    """
    try:
        post = frontmatter.load(path)
    except yaml.YAMLError as e:
        raise ValueError(f"{path.name}: invalid front matter: {e}") from e
    fm = post.metadata

    name = fm.get("name") or path.name[: -len(ENTITY_SUFFIX)]
    fields = fm.get("fields")
    if not isinstance(fields, dict):
        raise ValueError(f"{path.name}: 'fields' must be a mapping")

    return define_entity(
        str(name),
        fields,
        table=fm.get("table", False),
        schema=fm.get("schema", True),
        doc=fm.get("doc", False),
        test=fm.get("test"),
        active=fm.get("active", True),
        description=post.content,
        openapi=fm.get("openapi"),
        source_path=path,
    )


def _gather_entity_paths(project_dir: Path, config: TseraConfig) -> list[Path]:
    collected: list[Path] = []
    for entry in config.paths.entities:
        candidate = project_dir / entry
        if not candidate.exists():
            raise ValueError(f"Configured entity path {entry} does not exist.")
        if candidate.is_file():
            collected.append(candidate)
            continue
        for path in sorted(candidate.rglob(f"*{ENTITY_SUFFIX}")):
            rel_parts = path.relative_to(candidate).parts
            if any(part.startswith(".") for part in rel_parts):
                continue
            collected.append(path)

    # Deduplicate overlapping configured paths, keep first occurrence
    seen: set[Path] = set()
    unique = []
    for path in collected:
        resolved = path.resolve()
        if resolved not in seen:
            seen.add(resolved)
            unique.append(path)
    return unique


def to_project_relative(project_dir: Path, path: Path) -> str:
    try:
        return path.resolve().relative_to(project_dir.resolve()).as_posix()
    except ValueError:
        return path.as_posix()


def discover_entities(project_dir: Path, config: TseraConfig) -> list[EntityDef]:
    """
    Load every active entity under the configured paths.

    Returns entities sorted by (source path, name) so that graph
    construction is deterministic.
    """
    project_dir = Path(project_dir)
    entities: list[EntityDef] = []
    by_name: dict[str, str] = {}

    for path in _gather_entity_paths(project_dir, config):
        entity = load_entity(path)
        if not entity.active:
            continue
        rel = to_project_relative(project_dir, path)
        if entity.name in by_name:
            raise ValueError(f"Entity {entity.name} is defined twice ({by_name[entity.name]}, {rel})")
        by_name[entity.name] = rel
        entities.append(entity)

    entities.sort(key=lambda e: (to_project_relative(project_dir, e.source_path), e.name))
    return entities
