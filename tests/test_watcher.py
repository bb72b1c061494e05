"""Tests for watch-mode event filtering and debouncing."""

from __future__ import annotations

from pathlib import Path

from watchdog.events import DirCreatedEvent, FileModifiedEvent, FileMovedEvent

from tsera.watcher import ProjectEventHandler


def make_handler(project: Path, batches: list) -> ProjectEventHandler:
    return ProjectEventHandler(project_dir=project, on_change=batches.append, debounce_seconds=0.5)


def test_relevant_files(tmp_path: Path):
    handler = make_handler(tmp_path, [])

    assert handler.is_relevant(str(tmp_path / "tsera.toml"))
    assert handler.is_relevant(str(tmp_path / "domain" / "User.entity.md"))
    assert not handler.is_relevant(str(tmp_path / "domain" / "README.md"))
    assert not handler.is_relevant(str(tmp_path / ".tsera" / "manifest.json"))
    assert not handler.is_relevant(str(tmp_path / "domain" / ".User.entity.md.swp"))
    assert not handler.is_relevant(str(tmp_path / ".git" / "x" / "User.entity.md"))
    assert not handler.is_relevant(str(tmp_path.parent / "User.entity.md"))


def test_events_are_debounced_into_one_batch(tmp_path: Path):
    batches: list = []
    handler = make_handler(tmp_path, batches)
    user = tmp_path / "domain" / "User.entity.md"
    config = tmp_path / "tsera.toml"

    handler.on_any_event(FileModifiedEvent(str(user)))
    handler.on_any_event(FileModifiedEvent(str(user)))
    handler.on_any_event(FileModifiedEvent(str(config)))

    # Within the debounce window nothing is emitted
    assert handler.flush_pending(now=handler.last_event_at + 0.1) is False
    assert batches == []

    assert handler.flush_pending(now=handler.last_event_at + 0.6) is True
    assert batches == [sorted([user, config])]
    assert handler.pending == set()


def test_irrelevant_events_are_ignored(tmp_path: Path):
    batches: list = []
    handler = make_handler(tmp_path, batches)

    handler.on_any_event(DirCreatedEvent(str(tmp_path / "domain")))
    handler.on_any_event(FileModifiedEvent(str(tmp_path / ".tsera" / "graph.json")))
    handler.on_any_event(FileModifiedEvent(str(tmp_path / "docs" / "openapi.json")))

    assert handler.pending == set()
    assert handler.flush_pending(now=10**9) is False


def test_moves_record_destination(tmp_path: Path):
    batches: list = []
    handler = make_handler(tmp_path, batches)
    src = tmp_path / "domain" / ".User.entity.md.tmp"
    dest = tmp_path / "domain" / "User.entity.md"

    handler.on_any_event(FileMovedEvent(str(src), str(dest)))

    assert handler.pending == {dest}
