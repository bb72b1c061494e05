"""SQL migration artifacts with content-derived filenames."""

from __future__ import annotations

from ..engine.dag import ArtifactDescriptor, slugify
from ..engine.hash import deterministic_timestamp
from .dialects import Dialect
from .types import GENERATED_NOTICE, ArtifactBuilder, ArtifactContext, join_posix


# Version of the filename stamp scheme; bumping it renames every migration
MIGRATION_STAMP_VERSION = "1"


def migration_filename(entity_name: str, ddl: str) -> str:
    slug = slugify(entity_name)
    stamp = deterministic_timestamp(ddl, version=MIGRATION_STAMP_VERSION, salt=slug)
    return f"{stamp}_{slug}.sql"


def render_migration(entity_name: str, dialect: Dialect, ddl: str) -> str:
    return "\n".join(
        [
            f"-- {GENERATED_NOTICE}",
            f"-- Entity: {entity_name} ({dialect.name})",
            "",
            ddl,
            "",
        ]
    )


def make_migration_builder(dialect: Dialect) -> ArtifactBuilder:
    """Return a builder bound to one dialect."""

    def build_migration_artifacts(context: ArtifactContext) -> list[ArtifactDescriptor]:
        entity = context.entity
        if not entity.table:
            return []

        ddl = dialect.create_table(entity)
        return [
            ArtifactDescriptor(
                kind="migration",
                path=join_posix(context.config.paths.migrations, migration_filename(entity.name, ddl)),
                content=render_migration(entity.name, dialect, ddl),
                label=f"{entity.name} migration",
                data={"dialect": dialect.name, "table": slugify(entity.name)},
            )
        ]

    return build_migration_artifacts
