"""
Dependency graph of entities and the artifacts derived from them.

Entities become ``input`` nodes; every artifact descriptor becomes an
``output`` node. Each artifact implicitly depends on its entity, and
explicitly on whatever node ids it lists in ``depends_on``. The graph is
rebuilt from scratch on every run and is a pure function of its inputs.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Literal, Mapping, Sequence

from .errors import CycleError, GraphValidationError


NodeMode = Literal["input", "output"]

ENTITY_KIND = "entity"


@dataclass(frozen=True)
class ArtifactDescriptor:
    """A generated file as described by an artifact builder."""

    kind: str
    path: str  # project-relative, POSIX separators
    content: str | bytes
    label: str = ""
    data: Mapping[str, Any] | None = None  # included in hashing
    depends_on: tuple[str, ...] = ()


@dataclass(frozen=True)
class EntityInput:
    """One entity together with the artifacts produced for it."""

    entity: Any  # anything with a ``name``, or the name itself
    artifacts: Sequence[ArtifactDescriptor] = ()
    source_path: str | None = None

    @property
    def name(self) -> str:
        if isinstance(self.entity, str):
            return self.entity
        return self.entity.name


@dataclass(frozen=True)
class Node:
    """A vertex of the graph."""

    id: str
    kind: str
    mode: NodeMode
    label: str = ""
    path: str | None = None  # outputs only
    source_path: str | None = None  # inputs only
    content: str | bytes | None = None
    data: Mapping[str, Any] | None = None
    depends_on: tuple[str, ...] = ()
    entity: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Diagnostic representation (content omitted)."""
        return {
            "id": self.id,
            "kind": self.kind,
            "mode": self.mode,
            "label": self.label,
            "path": self.path,
            "sourcePath": self.source_path,
            "entity": self.entity,
            "dependsOn": list(self.depends_on),
        }


@dataclass(frozen=True)
class Edge:
    """``to_id`` depends on ``from_id``."""

    from_id: str
    to_id: str

    def to_dict(self) -> dict[str, str]:
        return {"from": self.from_id, "to": self.to_id}


@dataclass
class Dag:
    """Nodes, dependency edges and a topological order (producers first)."""

    nodes: dict[str, Node] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)
    order: list[Node] = field(default_factory=list)
    version: str = ""

    def outputs(self) -> list[Node]:
        return [node for node in self.order if node.mode == "output"]

    def inputs(self) -> list[Node]:
        return [node for node in self.order if node.mode == "input"]

    def dependencies_of(self, node_id: str) -> list[str]:
        """Ids this node depends on, in edge order."""
        return [edge.from_id for edge in self.edges if edge.to_id == node_id]

    def dependents_of(self, node_id: str) -> list[str]:
        """Ids that depend on this node, in edge order."""
        return [edge.to_id for edge in self.edges if edge.from_id == node_id]

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.order],
            "edges": [edge.to_dict() for edge in self.edges],
        }


_SLUG_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_SLUG_ACRONYM = re.compile(r"([A-Z])([A-Z][a-z])")


def slugify(name: str) -> str:
    """``UserProfile`` -> ``user_profile``, ``HTTPRequest`` -> ``http_request``."""
    slug = _SLUG_LOWER_UPPER.sub(r"\1_\2", name)
    slug = _SLUG_ACRONYM.sub(r"\1_\2", slug)
    return slug.lower()


def normalize_artifact_path(path: str) -> str:
    """Normalize separators to POSIX."""
    return path.replace("\\", "/")


def entity_node_id(name: str) -> str:
    return f"{ENTITY_KIND}:{name}"


def artifact_node_id(kind: str, entity_name: str, path: str) -> str:
    return f"{kind}:{slugify(entity_name)}:{normalize_artifact_path(path)}"


def build_graph(inputs: Sequence[EntityInput], *, version: str = "") -> Dag:
    """
    Build and validate the dependency graph.

    Raises:
        GraphValidationError: duplicate ids, unsafe or clashing paths, or an
            edge referencing a node that does not exist.
        CycleError: the dependency relation is not acyclic.
    """
    dag = Dag(version=version)
    output_paths: dict[str, str] = {}

    # Add all nodes first so cross-entity references can resolve
    for item in inputs:
        entity_name = item.name
        entity_id = entity_node_id(entity_name)
        _add_node(
            dag,
            Node(
                id=entity_id,
                kind=ENTITY_KIND,
                mode="input",
                label=entity_name,
                source_path=item.source_path,
                entity=entity_name,
            ),
        )

        for artifact in item.artifacts:
            _check_kind(artifact.kind, entity_name)
            path = normalize_artifact_path(artifact.path)
            node_id = artifact_node_id(artifact.kind, entity_name, path)
            _check_path(path, node_id)

            if path in output_paths:
                raise GraphValidationError(
                    f"Nodes {output_paths[path]!r} and {node_id!r} both target {path!r}",
                    node_id=node_id,
                )
            output_paths[path] = node_id

            _add_node(
                dag,
                Node(
                    id=node_id,
                    kind=artifact.kind,
                    mode="output",
                    label=artifact.label or node_id,
                    path=path,
                    content=artifact.content,
                    data=artifact.data,
                    depends_on=tuple(artifact.depends_on),
                    entity=entity_name,
                ),
            )
            dag.edges.append(Edge(entity_id, node_id))

    # Explicit dependencies
    seen_edges = set(dag.edges)
    for node in list(dag.nodes.values()):
        for dependency in node.depends_on:
            if dependency == node.id:
                raise CycleError([node.id, node.id])
            edge = Edge(dependency, node.id)
            if edge not in seen_edges:
                seen_edges.add(edge)
                dag.edges.append(edge)

    for edge in dag.edges:
        for endpoint in (edge.from_id, edge.to_id):
            if endpoint not in dag.nodes:
                raise GraphValidationError(
                    f"Edge {edge.from_id} -> {edge.to_id} references unknown node {endpoint!r}",
                    node_id=endpoint,
                    edge=(edge.from_id, edge.to_id),
                )

    dag.order = _topological_order(dag)
    return dag


def _add_node(dag: Dag, node: Node) -> None:
    if node.id in dag.nodes:
        raise GraphValidationError(f"Duplicate node id {node.id!r}", node_id=node.id)
    dag.nodes[node.id] = node


def _check_kind(kind: str, entity_name: str) -> None:
    if not kind or ":" in kind or kind == ENTITY_KIND:
        raise GraphValidationError(
            f"Invalid artifact kind {kind!r} for entity {entity_name!r}",
            node_id=entity_node_id(entity_name),
        )


def unsafe_path_reason(path: str) -> str | None:
    """Why ``path`` is not a safe project-relative path, or None when it is."""
    pure = PurePosixPath(path)
    if not path or pure.is_absolute() or re.match(r"^[A-Za-z]:", path):
        return "must be project-relative"
    if ".." in pure.parts:
        return "escapes the project"
    return None


def _check_path(path: str, node_id: str) -> None:
    reason = unsafe_path_reason(path)
    if reason:
        raise GraphValidationError(f"Artifact path {reason}: {path!r}", node_id=node_id)


def _topological_order(dag: Dag) -> list[Node]:
    """Kahn's algorithm; ties resolved by node insertion order."""
    position = {node_id: index for index, node_id in enumerate(dag.nodes)}
    dependents: dict[str, set[str]] = defaultdict(set)
    in_degree = {node_id: 0 for node_id in dag.nodes}

    for edge in dag.edges:
        dependents[edge.from_id].add(edge.to_id)
        in_degree[edge.to_id] += 1

    ready = sorted((n for n, d in in_degree.items() if d == 0), key=position.__getitem__)
    order: list[Node] = []

    while ready:
        current = ready.pop(0)
        order.append(dag.nodes[current])
        released = []
        for dependent in dependents.get(current, ()):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                released.append(dependent)
        if released:
            ready = sorted(ready + released, key=position.__getitem__)

    if len(order) != len(dag.nodes):
        remaining = {n for n, d in in_degree.items() if d > 0}
        raise CycleError(_find_cycle(remaining, dependents, position))

    return order


def _find_cycle(
    remaining: set[str],
    dependents: Mapping[str, set[str]],
    position: Mapping[str, int],
) -> list[str]:
    """Return one concrete cycle ``A -> B -> ... -> A`` among blocked nodes."""
    key = position.__getitem__

    def successors(node: str) -> list[str]:
        return sorted((n for n in dependents.get(node, ()) if n in remaining), key=key)

    visited: set[str] = set()
    for start in sorted(remaining, key=key):
        if start in visited:
            continue
        visited.add(start)
        path = [start]
        on_path = {start: 0}
        stack = [iter(successors(start))]

        while stack:
            nxt = next(stack[-1], None)
            if nxt is None:
                stack.pop()
                del on_path[path.pop()]
                continue
            if nxt in on_path:
                return path[on_path[nxt]:] + [nxt]
            if nxt in visited:
                continue
            visited.add(nxt)
            on_path[nxt] = len(path)
            path.append(nxt)
            stack.append(iter(successors(nxt)))

    return sorted(remaining, key=key)
