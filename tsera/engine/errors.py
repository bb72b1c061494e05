"""
Error taxonomy for the build/apply engine.

All of these are fatal to the current invocation. The engine never retries;
re-running the command is the recovery path because planning is idempotent.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class EngineError(Exception):
    """Base class for engine failures."""


class GraphValidationError(EngineError, ValueError):
    """A node or edge of the graph under construction is invalid."""

    def __init__(
        self,
        message: str,
        *,
        node_id: str | None = None,
        edge: tuple[str, str] | None = None,
    ):
        super().__init__(message)
        self.node_id = node_id
        self.edge = edge


class CycleError(EngineError, ValueError):
    """The dependency relation cannot be topologically ordered."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")


class HashError(EngineError, TypeError):
    """A value cannot be serialized deterministically."""

    def __init__(self, value: Any, location: str):
        self.value_type = type(value).__name__
        self.location = location
        super().__init__(f"Cannot hash value of type {self.value_type!r} at {location}")


class ApplyIOError(EngineError, OSError):
    """A file write or delete failed while applying a plan."""

    def __init__(self, message: str, *, step: Any = None, path: Path | None = None):
        super().__init__(message)
        self.step = step
        self.path = path


class StateReadError(EngineError, ValueError):
    """The manifest exists but does not have the expected shape."""

    def __init__(self, message: str, *, path: Path):
        super().__init__(f"{message} ({path})")
        self.path = path
