"""
Incremental, content-addressed build/apply engine.

- Hasher: deterministic hashing of node payloads
- Graph builder: entities + artifact descriptors -> validated DAG
- Planner: create/update/delete/noop classification against the manifest
- Applier: sequential, idempotent application of a plan
- State store: manifest and graph snapshot persistence
"""

from .applier import ApplyStepResult, apply_plan
from .dag import (
    ArtifactDescriptor,
    Dag,
    Edge,
    EntityInput,
    Node,
    artifact_node_id,
    build_graph,
    entity_node_id,
    slugify,
)
from .errors import (
    ApplyIOError,
    CycleError,
    EngineError,
    GraphValidationError,
    HashError,
    StateReadError,
)
from .hash import deterministic_timestamp, hash_bytes, hash_text, hash_value, stable_stringify
from .planner import ENGINE_VERSION, Plan, PlanStep, PlanSummary, compute_node_hash, plan_dag
from .state import (
    EngineState,
    Snapshot,
    apply_snapshots,
    create_empty_state,
    read_state,
    write_graph_snapshot,
    write_state,
)

__all__ = [
    # Graph
    "ArtifactDescriptor",
    "Dag",
    "Edge",
    "EntityInput",
    "Node",
    "artifact_node_id",
    "build_graph",
    "entity_node_id",
    "slugify",
    # Hashing
    "deterministic_timestamp",
    "hash_bytes",
    "hash_text",
    "hash_value",
    "stable_stringify",
    # Planning
    "ENGINE_VERSION",
    "Plan",
    "PlanStep",
    "PlanSummary",
    "compute_node_hash",
    "plan_dag",
    # Applying
    "ApplyStepResult",
    "apply_plan",
    # State
    "EngineState",
    "Snapshot",
    "apply_snapshots",
    "create_empty_state",
    "read_state",
    "write_graph_snapshot",
    "write_state",
    # Errors
    "ApplyIOError",
    "CycleError",
    "EngineError",
    "GraphValidationError",
    "HashError",
    "StateReadError",
]
