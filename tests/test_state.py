"""Tests for manifest persistence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tsera.engine.dag import ArtifactDescriptor, EntityInput, build_graph
from tsera.engine.errors import StateReadError
from tsera.engine.state import (
    EngineState,
    Snapshot,
    apply_snapshots,
    create_empty_state,
    get_graph_path,
    get_manifest_path,
    read_state,
    write_graph_snapshot,
    write_state,
)


def test_missing_manifest_is_empty_state(tmp_path: Path):
    assert read_state(tmp_path).snapshots == {}


def test_round_trip(tmp_path: Path):
    state = EngineState(
        snapshots={
            "schema:user:s/User.ts": Snapshot("abc", "s/User.ts", "schema"),
            "doc:user:docs/User.md": Snapshot("def", "docs/User.md", "doc"),
        }
    )
    write_state(tmp_path, state)
    assert read_state(tmp_path) == state


def test_empty_map_round_trips(tmp_path: Path):
    path = write_state(tmp_path, create_empty_state())
    assert path.read_text(encoding="utf-8") == "{}\n"
    assert read_state(tmp_path).snapshots == {}


def test_manifest_layout_is_sorted_flat_map(tmp_path: Path):
    state = EngineState(
        snapshots={
            "b": Snapshot("h2", "b.ts", "schema"),
            "a": Snapshot("h1", "a.ts", "doc"),
        }
    )
    text = write_state(tmp_path, state).read_text(encoding="utf-8")

    assert text.endswith("\n")
    assert text.index('"a"') < text.index('"b"')
    assert json.loads(text) == {
        "a": {"hash": "h1", "kind": "doc", "path": "a.ts"},
        "b": {"hash": "h2", "kind": "schema", "path": "b.ts"},
    }
    assert '\n  "a": {' in text


def test_write_replaces_previous_manifest(tmp_path: Path):
    write_state(tmp_path, EngineState(snapshots={"old": Snapshot("h", "old.ts", "schema")}))
    write_state(tmp_path, EngineState(snapshots={"new": Snapshot("h", "new.ts", "schema")}))
    assert list(read_state(tmp_path).snapshots) == ["new"]


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[]",
        '{"a": "not an object"}',
        '{"a": {"hash": "h", "path": "p"}}',
        '{"a": {"hash": 1, "path": "p", "kind": "k"}}',
        '{"a": {"hash": "h", "path": "../victim.txt", "kind": "doc"}}',
        '{"a": {"hash": "h", "path": "/etc/passwd", "kind": "doc"}}',
        b"\xff\xfe{}",
    ],
)
def test_corrupt_manifest_raises(tmp_path: Path, content: str | bytes):
    manifest = get_manifest_path(tmp_path)
    manifest.parent.mkdir(parents=True)
    manifest.write_bytes(content if isinstance(content, bytes) else content.encode("utf-8"))

    with pytest.raises(StateReadError) as excinfo:
        read_state(tmp_path)
    assert excinfo.value.path == manifest


def test_apply_snapshots_returns_new_state():
    state = EngineState(snapshots={"a": Snapshot("1", "a", "k"), "b": Snapshot("1", "b", "k")})
    updated = apply_snapshots(
        state,
        [
            ("update", "a", Snapshot("2", "a", "k")),
            ("delete", "b", None),
            ("create", "c", Snapshot("1", "c", "k")),
        ],
    )

    assert updated.to_dict() == {
        "a": {"hash": "2", "path": "a", "kind": "k"},
        "c": {"hash": "1", "path": "c", "kind": "k"},
    }
    assert state.get("a").hash == "1"
    assert "b" in state.snapshots


def test_graph_snapshot(tmp_path: Path):
    dag = build_graph([EntityInput("User", [ArtifactDescriptor(kind="schema", path="s/User.ts", content="body")])])
    path = write_graph_snapshot(tmp_path, dag)

    assert path == get_graph_path(tmp_path)
    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["version"] == 1
    assert [n["id"] for n in document["nodes"]] == ["entity:User", "schema:user:s/User.ts"]
    assert "body" not in path.read_text(encoding="utf-8")
