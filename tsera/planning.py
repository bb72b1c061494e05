"""
Plan/Result containers for commands that write to the project.

Computing a plan is pure and safe for dry runs; executing it produces a
result that can be appended to the audit log.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from .audit_log import FileTally, log_operation
from .engine.applier import ApplyStepResult
from .engine.dag import Dag
from .engine.planner import Plan, PlanStep
from .engine.state import EngineState
from .models import EntityDef


@dataclass
class BasePlan(ABC):
    """Diagnostic output: what a command would do."""
    project_dir: Path

    @abstractmethod
    def summary(self) -> str:
        ...


@dataclass
class BaseResult:
    """Action output: what a command did to the file system."""
    written: FileTally = field(default_factory=FileTally)
    erased: FileTally = field(default_factory=FileTally)

    def log_to_audit(self, project_dir: Path, operation: str, plan: dict[str, int] | None = None) -> None:
        log_operation(project_dir, operation, self.written, self.erased, plan)


@dataclass
class GeneratePlan(BasePlan):
    """Everything computed for one cycle before touching the disk."""
    dag: Dag = field(default_factory=Dag)
    previous_state: EngineState = field(default_factory=EngineState)
    plan: Plan = field(default_factory=Plan)
    entities: list[EntityDef] = field(default_factory=list)

    def summary(self) -> str:
        s = self.plan.summary
        lines = [
            f"Project: {self.project_dir}",
            f"  {len(self.entities)} entities, {len(self.dag.outputs())} artifacts",
            f"  create {s.create}, update {s.update}, delete {s.delete}, unchanged {s.noop}",
        ]
        if not s.changed:
            lines.append("  Up to date.")
        return "\n".join(lines)


@dataclass
class GenerateResult(BaseResult):
    """Outcome of applying a GeneratePlan."""
    state: EngineState = field(default_factory=EngineState)
    steps: list[tuple[PlanStep, ApplyStepResult]] = field(default_factory=list)
    manifest_path: Path | None = None

    def record(self, step: PlanStep, result: ApplyStepResult) -> None:
        """Tally one applied step."""
        self.steps.append((step, result))
        if step.kind in ("create", "update") and result.changed and result.path:
            self.written.add(result.path, result.bytes_written)
        elif step.kind == "delete" and result.changed and result.path:
            self.erased.add(result.path, result.bytes_erased)
