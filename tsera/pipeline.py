"""
One engine cycle: entities -> graph -> plan -> apply -> persisted state.

The manifest is written exactly once per cycle, after every step of the plan
has been applied. If applying fails the manifest is left untouched, so the
next run plans the same work again.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .artifacts import prepare_inputs
from .config import TseraConfig, load_config
from .engine.applier import ApplyStepResult, StepCallback, apply_plan
from .engine.dag import build_graph
from .engine.planner import ENGINE_VERSION, PlanStep, plan_dag
from .engine.state import read_state, write_graph_snapshot, write_state
from .entities import discover_entities
from .planning import GeneratePlan, GenerateResult


@dataclass
class CycleResult:
    plan: GeneratePlan
    result: GenerateResult | None = None

    @property
    def applied(self) -> bool:
        return self.result is not None


def compute_generate_plan(
    project_dir: Path,
    config: TseraConfig | None = None,
    *,
    include_unchanged: bool = False,
) -> GeneratePlan:
    """
    Compute the plan for the current entity definitions without writing.

    This is the diagnostic phase - pure computation, no side effects.
    """
    project_dir = Path(project_dir)
    config = config or load_config(project_dir)

    entities = discover_entities(project_dir, config)
    inputs = prepare_inputs(entities, config, project_dir)
    dag = build_graph(inputs, version=ENGINE_VERSION)
    previous = read_state(project_dir)
    plan = plan_dag(dag, previous, include_unchanged=include_unchanged)

    return GeneratePlan(
        project_dir=project_dir,
        dag=dag,
        previous_state=previous,
        plan=plan,
        entities=entities,
    )


def execute_generate_plan(
    generate_plan: GeneratePlan,
    *,
    on_step: StepCallback | None = None,
    operation: str = "generate",
) -> GenerateResult:
    """
    Apply a computed plan and persist the resulting state.

    This is the action phase. Engine errors propagate unchanged; in that case
    neither the manifest nor the audit log is written.
    """
    project_dir = generate_plan.project_dir
    result = GenerateResult()

    def record(step: PlanStep, step_result: ApplyStepResult) -> None:
        result.record(step, step_result)
        if on_step is not None:
            on_step(step, step_result)

    write_graph_snapshot(project_dir, generate_plan.dag)
    new_state = apply_plan(
        generate_plan.plan,
        generate_plan.previous_state,
        project_dir=project_dir,
        on_step=record,
    )

    result.state = new_state
    result.manifest_path = write_state(project_dir, new_state)

    summary = generate_plan.plan.summary
    if summary.changed:
        result.log_to_audit(project_dir, operation, plan=summary.to_dict())
    return result


def run_cycle(
    project_dir: Path,
    config: TseraConfig | None = None,
    *,
    dry_run: bool = False,
    include_unchanged: bool = False,
    on_step: StepCallback | None = None,
    operation: str = "generate",
) -> CycleResult:
    """Compute a plan and, unless ``dry_run``, apply and persist it."""
    generate_plan = compute_generate_plan(project_dir, config, include_unchanged=include_unchanged)
    if dry_run:
        return CycleResult(plan=generate_plan)

    result = execute_generate_plan(generate_plan, on_step=on_step, operation=operation)
    return CycleResult(plan=generate_plan, result=result)
