"""
Plan computation: diff the freshly built graph against the manifest.

This is the diagnostic phase - pure computation, no side effects. Every
output node is classified as create, update or noop; manifest entries with
no counterpart in the graph become deletions. Input nodes are never planned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from .dag import Dag, Node
from .hash import hash_value
from .state import EngineState, Snapshot


# Logical version of the hashing scheme for node payloads
ENGINE_VERSION = "1"

PlanStepKind = Literal["create", "update", "delete", "noop"]


@dataclass(frozen=True)
class PlanStep:
    kind: PlanStepKind
    node: Node
    hash: str | None = None  # freshly computed; None for deletions
    previous: Snapshot | None = None
    keep_file: bool = False  # delete drops the manifest entry only

    @property
    def path(self) -> str | None:
        if self.node.path:
            return self.node.path
        return self.previous.path if self.previous else None

    @property
    def previous_hash(self) -> str | None:
        return self.previous.hash if self.previous else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.node.id,
            "nodeKind": self.node.kind,
            "path": self.path,
            "hash": self.hash,
            "previousHash": self.previous_hash,
            "keepFile": self.keep_file,
        }


@dataclass(frozen=True)
class PlanSummary:
    create: int = 0
    update: int = 0
    delete: int = 0
    noop: int = 0
    total: int = 0
    changed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "create": self.create,
            "update": self.update,
            "delete": self.delete,
            "noop": self.noop,
            "total": self.total,
            "changed": self.changed,
        }


@dataclass(frozen=True)
class Plan:
    steps: list[PlanStep] = field(default_factory=list)
    summary: PlanSummary = field(default_factory=PlanSummary)

    def changed_steps(self) -> list[PlanStep]:
        return [step for step in self.steps if step.kind != "noop"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "steps": [step.to_dict() for step in self.steps],
        }


def node_payload(node: Node) -> dict[str, Any]:
    """The part of a node that invalidates it when changed (not its id)."""
    return {"content": node.content, "data": dict(node.data or {})}


def compute_node_hash(node: Node, *, version: str = ENGINE_VERSION) -> str:
    return hash_value(node_payload(node), version=version, salt=node.kind)


def plan_dag(dag: Dag, state: EngineState, *, include_unchanged: bool = False) -> Plan:
    """
    Classify every output node against the previous state.

    Create/update/noop steps follow ``dag.order``; deletions come last,
    sorted by node id. A deletion whose recorded path is still produced by
    a current output node keeps the file on disk. Running twice on the same
    inputs yields an identical plan.
    """
    version = dag.version or ENGINE_VERSION
    steps: list[PlanStep] = []
    seen: set[str] = set()
    owned_paths = {node.path for node in dag.outputs()}
    counts = {"create": 0, "update": 0, "delete": 0, "noop": 0}

    for node in dag.order:
        if node.mode != "output":
            continue
        seen.add(node.id)

        current = compute_node_hash(node, version=version)
        previous = state.get(node.id)

        if previous is None:
            kind: PlanStepKind = "create"
        elif previous.hash != current:
            kind = "update"
        else:
            kind = "noop"

        counts[kind] += 1
        if kind == "noop" and not include_unchanged:
            continue
        steps.append(PlanStep(kind=kind, node=node, hash=current, previous=previous))

    for node_id in sorted(state.snapshots):
        if node_id in seen:
            continue
        snapshot = state.snapshots[node_id]
        orphan = Node(
            id=node_id,
            kind=snapshot.kind,
            mode="output",
            label=node_id,
            path=snapshot.path,
        )
        counts["delete"] += 1
        steps.append(
            PlanStep(kind="delete", node=orphan, previous=snapshot, keep_file=snapshot.path in owned_paths)
        )

    summary = PlanSummary(
        create=counts["create"],
        update=counts["update"],
        delete=counts["delete"],
        noop=counts["noop"],
        total=sum(counts.values()),
        changed=(counts["create"] + counts["update"] + counts["delete"]) > 0,
    )
    return Plan(steps=steps, summary=summary)
