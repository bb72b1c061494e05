"""
Persistent engine state.

The manifest (``.tsera/manifest.json``) records, for every output node of the
last successfully applied generation, its content hash, path and kind. It is
the only thing that survives between runs. ``graph.json`` is a diagnostic
snapshot of the last built graph and is never read back for planning.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Iterable, Literal

from ..fsx import safe_write
from .dag import Dag, unsafe_path_reason
from .errors import StateReadError


STATE_DIR = ".tsera"
MANIFEST_FILENAME = "manifest.json"
GRAPH_FILENAME = "graph.json"
GRAPH_SNAPSHOT_VERSION = 1

SnapshotAction = Literal["create", "update", "delete"]


@dataclass(frozen=True)
class Snapshot:
    """Manifest entry for one applied output node."""

    hash: str
    path: str
    kind: str


@dataclass
class EngineState:
    """Map of node id -> snapshot for the last applied generation."""

    snapshots: dict[str, Snapshot] = field(default_factory=dict)

    def copy(self) -> "EngineState":
        return EngineState(snapshots=dict(self.snapshots))

    def get(self, node_id: str) -> Snapshot | None:
        return self.snapshots.get(node_id)

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {node_id: asdict(self.snapshots[node_id]) for node_id in sorted(self.snapshots)}

    @classmethod
    def from_dict(cls, data: Any, *, source: Path) -> "EngineState":
        """Validate and load a manifest mapping."""
        if not isinstance(data, dict):
            raise StateReadError("Manifest root must be a JSON object", path=source)

        snapshots: dict[str, Snapshot] = {}
        for node_id, entry in data.items():
            if not isinstance(entry, dict):
                raise StateReadError(f"Manifest entry {node_id!r} must be an object", path=source)
            values = {}
            for key in ("hash", "path", "kind"):
                value = entry.get(key)
                if not isinstance(value, str) or not value:
                    raise StateReadError(
                        f"Manifest entry {node_id!r} is missing a string {key!r}",
                        path=source,
                    )
                values[key] = value
            reason = unsafe_path_reason(values["path"])
            if reason:
                raise StateReadError(
                    f"Manifest entry {node_id!r} has a path that {reason}: {values['path']!r}",
                    path=source,
                )
            snapshots[node_id] = Snapshot(**values)
        return cls(snapshots=snapshots)


def create_empty_state() -> EngineState:
    return EngineState()


def get_state_dir(project_dir: Path) -> Path:
    return Path(project_dir) / STATE_DIR


def get_manifest_path(project_dir: Path) -> Path:
    return get_state_dir(project_dir) / MANIFEST_FILENAME


def get_graph_path(project_dir: Path) -> Path:
    return get_state_dir(project_dir) / GRAPH_FILENAME


def read_state(project_dir: Path) -> EngineState:
    """
    Read the manifest.

    A missing manifest (first run) is the empty state. A manifest that
    exists but cannot be parsed raises StateReadError rather than being
    silently discarded.
    """
    manifest_path = get_manifest_path(project_dir)
    try:
        raw = manifest_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return create_empty_state()
    except UnicodeDecodeError as e:
        raise StateReadError(f"Manifest is not valid UTF-8: {e.reason}", path=manifest_path) from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StateReadError(f"Manifest is not valid JSON: {e.msg}", path=manifest_path) from e

    return EngineState.from_dict(data, source=manifest_path)


def write_state(project_dir: Path, state: EngineState) -> Path:
    """Replace the manifest with exactly ``state``."""
    manifest_path = get_manifest_path(project_dir)
    payload = json.dumps(state.to_dict(), indent=2, sort_keys=True) + "\n"
    safe_write(manifest_path, payload)
    return manifest_path


def write_graph_snapshot(project_dir: Path, dag: Dag) -> Path:
    """Write the diagnostic graph snapshot."""
    graph_path = get_graph_path(project_dir)
    document = {"version": GRAPH_SNAPSHOT_VERSION, **dag.to_dict()}
    safe_write(graph_path, json.dumps(document, indent=2) + "\n")
    return graph_path


def apply_snapshots(
    state: EngineState,
    updates: Iterable[tuple[SnapshotAction, str, Snapshot | None]],
) -> EngineState:
    """Return a new state with create/update/delete updates folded in."""
    next_state = state.copy()
    for action, node_id, snapshot in updates:
        if action == "delete":
            next_state.snapshots.pop(node_id, None)
            continue
        if snapshot is None:
            raise ValueError(f"{action} update for {node_id!r} requires a snapshot")
        next_state.snapshots[node_id] = snapshot
    return next_state
