"""End-to-end engine cycles against a project on disk."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import simple_entity, write_entity
from tsera.audit_log import read_audit_log
from tsera.engine.errors import ApplyIOError
from tsera.engine.state import get_graph_path, get_manifest_path, read_state
from tsera.pipeline import compute_generate_plan, run_cycle


USER_SCHEMA_ID = "schema:user:schemas/User.schema.ts"


def manifest(project: Path) -> dict:
    return json.loads(get_manifest_path(project).read_text(encoding="utf-8"))


def test_first_run_creates_then_second_run_is_noop(schema_project: Path):
    first = run_cycle(schema_project)

    assert first.applied
    assert first.plan.plan.summary.create == 1
    assert (schema_project / "schemas" / "User.schema.ts").exists()
    assert list(manifest(schema_project)) == [USER_SCHEMA_ID]

    second = run_cycle(schema_project)
    summary = second.plan.plan.summary
    assert (summary.create, summary.update, summary.delete, summary.noop) == (0, 0, 0, 1)
    assert second.plan.plan.steps == []
    assert not summary.changed


def test_changed_entity_updates_one_artifact(schema_project: Path):
    run_cycle(schema_project)
    before = manifest(schema_project)[USER_SCHEMA_ID]["hash"]

    write_entity(schema_project, "User", simple_entity("User", "id", "email", "name"))
    cycle = run_cycle(schema_project)

    assert [(s.kind, s.node.id) for s in cycle.plan.plan.steps] == [("update", USER_SCHEMA_ID)]
    assert manifest(schema_project)[USER_SCHEMA_ID]["hash"] != before
    assert "name: z.string()" in (schema_project / "schemas" / "User.schema.ts").read_text(encoding="utf-8")


def test_removed_entity_deletes_its_artifact(schema_project: Path):
    write_entity(schema_project, "Post", simple_entity("Post", "id", "title"))
    run_cycle(schema_project)
    assert len(manifest(schema_project)) == 2

    (schema_project / "domain" / "Post.entity.md").unlink()
    cycle = run_cycle(schema_project)

    steps = [(s.kind, s.node.id) for s in cycle.plan.plan.steps]
    assert steps == [("delete", "schema:post:schemas/Post.schema.ts")]
    assert "schema:post:schemas/Post.schema.ts" not in manifest(schema_project)
    assert not (schema_project / "schemas" / "Post.schema.ts").exists()
    assert (schema_project / "schemas" / "User.schema.ts").exists()


def test_dry_run_writes_nothing(schema_project: Path):
    cycle = run_cycle(schema_project, dry_run=True)

    assert not cycle.applied
    assert cycle.plan.plan.summary.create == 1
    assert not get_manifest_path(schema_project).exists()
    assert not get_graph_path(schema_project).exists()
    assert not (schema_project / "schemas").exists()


def test_full_project_generates_every_artifact_kind(project: Path):
    cycle = run_cycle(project)
    dag = cycle.plan.dag

    kinds = sorted(node.kind for node in dag.outputs())
    assert kinds == ["doc", "migration", "openapi", "schema", "test"]
    assert len(dag.nodes) == len(dag.inputs()) + len(dag.outputs())

    for step in cycle.plan.plan.steps:
        assert (project / step.path).is_file()
    assert get_graph_path(project).is_file()
    assert sorted(manifest(project)) == sorted(node.id for node in dag.outputs())


def test_full_project_second_run_is_noop(project: Path):
    run_cycle(project)
    cycle = run_cycle(project)
    assert not cycle.plan.plan.summary.changed
    assert cycle.plan.plan.summary.noop == 5


def test_migration_name_is_stable_across_runs(project: Path):
    first = [n.path for n in run_cycle(project).plan.dag.outputs() if n.kind == "migration"]
    second = [n.path for n in compute_generate_plan(project).dag.outputs() if n.kind == "migration"]
    assert first == second
    assert first[0].startswith("drizzle/")
    assert first[0].endswith("_user.sql")


def test_new_first_entity_keeps_openapi_document(project: Path):
    first = run_cycle(project)
    openapi_ids = [n.id for n in first.plan.dag.outputs() if n.kind == "openapi"]
    assert openapi_ids == ["openapi:project:docs/openapi.json"]

    # Sorts ahead of User
    write_entity(project, "Account", simple_entity("Account", "id"))
    cycle = run_cycle(project)

    assert [n.id for n in cycle.plan.dag.outputs() if n.kind == "openapi"] == openapi_ids
    assert "Account" in (project / "docs" / "openapi.json").read_text(encoding="utf-8")
    assert not run_cycle(project).plan.plan.summary.changed


def test_manifest_entry_moved_to_new_id_keeps_file(project: Path):
    run_cycle(project)
    openapi_id = "openapi:project:docs/openapi.json"
    entries = manifest(project)
    # A manifest written when the document was keyed by its first entity
    entries["openapi:user:docs/openapi.json"] = entries.pop(openapi_id)
    get_manifest_path(project).write_text(json.dumps(entries, indent=2, sort_keys=True) + "\n", encoding="utf-8")

    cycle = run_cycle(project)

    steps = [(s.kind, s.node.id) for s in cycle.plan.plan.steps]
    assert steps == [("create", openapi_id), ("delete", "openapi:user:docs/openapi.json")]
    assert (project / "docs" / "openapi.json").is_file()
    assert openapi_id in manifest(project)
    assert "openapi:user:docs/openapi.json" not in manifest(project)
    assert not run_cycle(project).plan.plan.summary.changed


def test_applied_cycle_is_audited(schema_project: Path):
    run_cycle(schema_project)
    run_cycle(schema_project)

    entries = read_audit_log(schema_project)
    assert len(entries) == 1
    assert entries[0].operation == "generate"
    assert entries[0].written.paths == ["schemas/User.schema.ts"]
    assert entries[0].plan["create"] == 1


def test_failed_apply_leaves_manifest_untouched(schema_project: Path):
    run_cycle(schema_project)
    before = get_manifest_path(schema_project).read_text(encoding="utf-8")

    write_entity(schema_project, "Post", simple_entity("Post", "id"))
    # A regular file where the output directory should be
    (schema_project / "schemas").rename(schema_project / "schemas-moved")
    (schema_project / "schemas").write_text("", encoding="utf-8")

    with pytest.raises(ApplyIOError):
        run_cycle(schema_project)

    assert get_manifest_path(schema_project).read_text(encoding="utf-8") == before
    assert len(read_audit_log(schema_project)) == 1


def test_run_does_not_depend_on_previous_graph_snapshot(schema_project: Path):
    run_cycle(schema_project)
    get_graph_path(schema_project).write_text("garbage", encoding="utf-8")

    cycle = run_cycle(schema_project)
    assert not cycle.plan.plan.summary.changed
    assert read_state(schema_project).get(USER_SCHEMA_ID) is not None
