"""Project configuration loaded from ``tsera.toml``."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


CONFIG_FILENAME = "tsera.toml"

DIALECTS = ("postgres", "sqlite", "mysql")


@dataclass(frozen=True)
class PathsConfig:
    entities: tuple[str, ...] = ("domain",)
    schemas: str = ".tsera/schemas"
    migrations: str = "drizzle"
    docs: str = "docs"
    tests: str = "tests/generated"


@dataclass(frozen=True)
class DbConfig:
    dialect: str = "postgres"


@dataclass(frozen=True)
class OpenAPIInfo:
    title: str = "TSERA API"
    version: str = "1.0.0"


@dataclass(frozen=True)
class TseraConfig:
    docs: bool = True
    tests: bool = True
    openapi: bool = True
    paths: PathsConfig = field(default_factory=PathsConfig)
    db: DbConfig = field(default_factory=DbConfig)
    openapi_info: OpenAPIInfo = field(default_factory=OpenAPIInfo)


def _coerce_dict(value: Any, key: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"[{key}] must be a table")
    return value


def _bool(data: dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false")
    return value


def _str(data: dict[str, Any], key: str, default: str, prefix: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{prefix}.{key} must be a non-empty string")
    return value.strip()


def parse_config(data: dict[str, Any]) -> TseraConfig:
    """
    Build a TseraConfig from parsed TOML data.

    The schema is small and validated by hand: every key has a default,
    and a wrong type is an error naming the key.
    """
    defaults = TseraConfig()

    paths_raw = _coerce_dict(data.get("paths"), "paths")
    entities = paths_raw.get("entities", list(defaults.paths.entities))
    if isinstance(entities, str):
        entities = [entities]
    if not isinstance(entities, list) or not all(isinstance(e, str) and e.strip() for e in entities):
        raise ValueError("paths.entities must be a list of paths")
    if not entities:
        raise ValueError("paths.entities must not be empty")

    paths = PathsConfig(
        entities=tuple(e.strip() for e in entities),
        schemas=_str(paths_raw, "schemas", defaults.paths.schemas, "paths"),
        migrations=_str(paths_raw, "migrations", defaults.paths.migrations, "paths"),
        docs=_str(paths_raw, "docs", defaults.paths.docs, "paths"),
        tests=_str(paths_raw, "tests", defaults.paths.tests, "paths"),
    )

    db_raw = _coerce_dict(data.get("db"), "db")
    dialect = _str(db_raw, "dialect", defaults.db.dialect, "db").lower()
    if dialect not in DIALECTS:
        raise ValueError(f"db.dialect must be one of {', '.join(DIALECTS)} (got {dialect!r})")

    info_raw = _coerce_dict(data.get("openapi_info"), "openapi_info")
    info = OpenAPIInfo(
        title=_str(info_raw, "title", defaults.openapi_info.title, "openapi_info"),
        version=_str(info_raw, "version", defaults.openapi_info.version, "openapi_info"),
    )

    return TseraConfig(
        docs=_bool(data, "docs", defaults.docs),
        tests=_bool(data, "tests", defaults.tests),
        openapi=_bool(data, "openapi", defaults.openapi),
        paths=paths,
        db=DbConfig(dialect=dialect),
        openapi_info=info,
    )


def load_config(project_dir: Path) -> TseraConfig:
    """Load ``tsera.toml`` from the project root (defaults if absent)."""
    import tomllib

    config_path = Path(project_dir) / CONFIG_FILENAME
    if not config_path.exists():
        return TseraConfig()

    try:
        data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"{CONFIG_FILENAME}: {e}") from e
    return parse_config(data)


def find_project_root(start: Path) -> Path | None:
    """Find the nearest directory containing tsera.toml by walking up from ``start``."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if (p / CONFIG_FILENAME).is_file():
            return p
    return None
