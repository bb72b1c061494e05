"""
Artifact builders.

Each builder turns one entity (plus project configuration) into artifact
descriptors. Builders only produce text; writing is the applier's job.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from ..config import CONFIG_FILENAME, TseraConfig
from ..engine.dag import ArtifactDescriptor, EntityInput, artifact_node_id
from ..entities import to_project_relative
from ..models import EntityDef
from .dialects import Dialect, get_dialect
from .docs import build_docs_artifacts
from .migration import make_migration_builder
from .openapi import build_project_openapi_artifact
from .schema import build_schema_artifacts
from .tests import build_test_artifacts
from .types import ArtifactBuilder, ArtifactContext


# Entity names are PascalCase, so this input never collides with one
PROJECT_INPUT = "project"


def entity_stages(dialect: Dialect) -> list[ArtifactBuilder]:
    """Builders in stage order; each stage depends on the previous one."""
    return [
        build_schema_artifacts,
        make_migration_builder(dialect),
        build_docs_artifacts,
        build_test_artifacts,
    ]


def build_entity_artifacts(
    entity: EntityDef,
    config: TseraConfig,
    project_dir: Path,
    dialect: Dialect | None = None,
) -> list[ArtifactDescriptor]:
    """Run every stage for one entity, chaining stage dependencies."""
    dialect = dialect or get_dialect(config.db.dialect)
    context = ArtifactContext(entity=entity, config=config, project_dir=Path(project_dir))
    descriptors: list[ArtifactDescriptor] = []
    previous_stage: list[str] = []

    for builder in entity_stages(dialect):
        artifacts = builder(context)
        if not artifacts:
            continue

        stage_ids = []
        for artifact in artifacts:
            stage_ids.append(artifact_node_id(artifact.kind, entity.name, artifact.path))
            merged = list(dict.fromkeys([*artifact.depends_on, *previous_stage]))
            descriptors.append(
                ArtifactDescriptor(
                    kind=artifact.kind,
                    path=artifact.path,
                    content=artifact.content,
                    label=artifact.label,
                    data=artifact.data,
                    depends_on=tuple(merged),
                )
            )
        previous_stage = stage_ids

    return descriptors


def prepare_inputs(
    entities: Sequence[EntityDef],
    config: TseraConfig,
    project_dir: Path,
) -> list[EntityInput]:
    """
    Build graph inputs, one per entity.

    Project-wide aggregates (the OpenAPI document) hang off a separate
    ``project`` input appended last, so their node ids do not depend on
    which entity happens to sort first.
    """
    dialect = get_dialect(config.db.dialect)
    project_dir = Path(project_dir)

    inputs = []
    for entity in entities:
        source_rel = to_project_relative(project_dir, entity.source_path) if entity.source_path else None
        artifacts = build_entity_artifacts(entity, config, project_dir, dialect)
        inputs.append(EntityInput(entity=entity, artifacts=tuple(artifacts), source_path=source_rel))

    openapi = build_project_openapi_artifact(entities, config)
    if openapi is not None:
        inputs.append(EntityInput(entity=PROJECT_INPUT, artifacts=(openapi,), source_path=CONFIG_FILENAME))
    return inputs


__all__ = [
    "ArtifactBuilder",
    "ArtifactContext",
    "Dialect",
    "PROJECT_INPUT",
    "build_entity_artifacts",
    "entity_stages",
    "get_dialect",
    "prepare_inputs",
]
