"""
Plan application: the action phase.

Steps are executed strictly in order. The caller receives the new state only
when every step succeeded; on failure nothing is returned, so the manifest on
disk still describes the last good generation and the next run re-plans the
same work.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from ..fsx import prune_empty_dirs, remove_file_if_exists, safe_write
from .errors import ApplyIOError
from .planner import Plan, PlanStep, PlanStepKind
from .state import EngineState, Snapshot, SnapshotAction, apply_snapshots


@dataclass(frozen=True)
class ApplyStepResult:
    kind: PlanStepKind
    path: str | None
    changed: bool
    bytes_written: int = 0
    bytes_erased: int = 0


StepCallback = Callable[[PlanStep, ApplyStepResult], object]


def apply_plan(
    plan: Plan,
    state: EngineState,
    *,
    project_dir: Path,
    on_step: StepCallback | None = None,
) -> EngineState:
    """
    Execute a plan against the project directory.

    Args:
        plan: Plan produced by ``plan_dag``
        state: State the plan was computed against (not mutated)
        project_dir: Root that artifact paths are relative to
        on_step: Progress callback; its return value is ignored

    Returns:
        The new state to persist

    Raises:
        ApplyIOError: a write or delete failed; remaining steps are skipped
    """
    project_dir = Path(project_dir)
    updates: list[tuple[SnapshotAction, str, Snapshot | None]] = []

    for step in plan.steps:
        if step.node.mode == "input":
            result = ApplyStepResult(kind=step.kind, path=None, changed=False)
        elif step.kind in ("create", "update"):
            result = _apply_write(step, project_dir)
            updates.append((step.kind, step.node.id, Snapshot(step.hash, step.node.path, step.node.kind)))
        elif step.kind == "delete":
            result = _apply_delete(step, project_dir)
            updates.append(("delete", step.node.id, None))
        else:
            result = ApplyStepResult(kind="noop", path=step.path, changed=False)

        if on_step is not None:
            on_step(step, result)

    return apply_snapshots(state, updates)


def _apply_write(step: PlanStep, project_dir: Path) -> ApplyStepResult:
    path = step.node.path
    if not path or step.node.content is None or step.hash is None:
        raise ApplyIOError(f"Step {step.node.id} has no path or content to write", step=step)

    target = project_dir / path
    try:
        changed, written = safe_write(target, step.node.content)
    except OSError as e:
        raise ApplyIOError(f"Failed to write {path}: {e}", step=step, path=target) from e

    return ApplyStepResult(kind=step.kind, path=path, changed=changed, bytes_written=written)


def _apply_delete(step: PlanStep, project_dir: Path) -> ApplyStepResult:
    path = step.previous.path if step.previous else step.node.path
    if not path:
        raise ApplyIOError(f"Step {step.node.id} has no recorded path to delete", step=step)

    if step.keep_file:
        return ApplyStepResult(kind="delete", path=path, changed=False)

    target = project_dir / path
    root = project_dir.resolve()
    if root not in target.resolve().parents:
        raise ApplyIOError(f"Refusing to delete {path}: outside the project", step=step, path=target)

    try:
        erased = remove_file_if_exists(target)
        prune_empty_dirs(target.parent, project_dir)
    except OSError as e:
        raise ApplyIOError(f"Failed to delete {path}: {e}", step=step, path=target) from e

    return ApplyStepResult(kind="delete", path=path, changed=erased > 0, bytes_erased=erased)
