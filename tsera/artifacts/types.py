"""Shared types for artifact builders."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from ..config import TseraConfig
from ..engine.dag import ArtifactDescriptor
from ..models import EntityDef


GENERATED_NOTICE = "Generated by tsera. Do not edit manually."


@dataclass(frozen=True)
class ArtifactContext:
    entity: EntityDef
    config: TseraConfig
    project_dir: Path


ArtifactBuilder = Callable[[ArtifactContext], list[ArtifactDescriptor]]


def join_posix(*parts: str) -> str:
    """Join project-relative path segments with POSIX separators."""
    return posixpath.normpath(posixpath.join(*(p.replace("\\", "/") for p in parts)))


def relative_import(from_file: str, to_file: str) -> str:
    """Relative module specifier from one generated file to another."""
    rel = posixpath.relpath(to_file, posixpath.dirname(from_file) or ".")
    return rel if rel.startswith(".") else f"./{rel}"
