# src/batchplan/plan/nodes.py
"""Compiled execution nodes and the arena that owns them.

A job's execution tree is stored in a NodeArena: nodes live in a list and
are referred to by index. Stage-backed nodes are also indexed by stage id,
so a stage reached by several NodePaths compiles to exactly one node and
later paths splice onto it. Structural nodes (outputs, the shuffle emitter,
combiner nodes) are added without a stage key.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from batchplan.contracts.enums import NodeRole, StageKind
from batchplan.contracts.job import CombinerSpec
from batchplan.contracts.types import OutputName, StageID
from batchplan.plan.stages import FileSource, Stage

_STAGE_ROLES = {
    StageKind.SOURCE: NodeRole.INPUT,
    StageKind.TRANSFORM: NodeRole.TRANSFORM,
    StageKind.GROUP: NodeRole.GROUPED_INPUT,
}


@dataclass(slots=True)
class ExecutionNode:
    """One node of an execution tree. Children receive this node's output."""

    name: str
    role: NodeRole
    record_type: str
    stage_id: StageID | None = None
    fn_ref: str | None = None
    source: FileSource | None = None
    output_name: OutputName | None = None
    children: list[int] = field(default_factory=list)

    @classmethod
    def for_stage(cls, stage: Stage) -> ExecutionNode:
        return cls(
            name=stage.name,
            role=_STAGE_ROLES[stage.kind],
            record_type=stage.record_type,
            stage_id=stage.stage_id,
            fn_ref=stage.fn_ref,
            source=stage.source,
        )

    @classmethod
    def output(cls, target_name: str, record_type: str) -> ExecutionNode:
        """Node writing records to a target. Named later by the multiplexer."""
        return cls(name=target_name, role=NodeRole.OUTPUT, record_type=record_type)

    @classmethod
    def shuffle(cls, group: Stage) -> ExecutionNode:
        """Map-side emitter for the grouping stage. Unnamed, so it is hidden from job names."""
        return cls(name="", role=NodeRole.SHUFFLE, record_type=group.record_type, stage_id=group.stage_id)

    @classmethod
    def grouped_input(cls, group: Stage) -> ExecutionNode:
        return cls(name=group.name, role=NodeRole.GROUPED_INPUT, record_type=group.record_type, stage_id=group.stage_id)

    @classmethod
    def combine(cls, spec: CombinerSpec, group: Stage) -> ExecutionNode:
        """Combiner node; emits the records the shuffle of ``group`` takes."""
        return cls(
            name=spec.name,
            role=NodeRole.COMBINE,
            record_type=group.record_type,
            stage_id=spec.stage_id,
            fn_ref=spec.combine_fn_ref,
        )

    def to_dict(self) -> dict[str, Any]:
        """Node fields without children, for serialization."""
        data: dict[str, Any] = {
            "name": self.name,
            "role": self.role,
            "record_type": self.record_type,
            "stage_id": self.stage_id,
            "fn_ref": self.fn_ref,
            "output_name": self.output_name,
        }
        if self.source is not None:
            data["source"] = {"path": self.source.path, "format": self.source.format}
        return data


class NodeArena:
    """Owns the execution nodes of one job."""

    def __init__(self) -> None:
        self._nodes: list[ExecutionNode] = []
        self._by_stage: dict[StageID, int] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __getitem__(self, index: int) -> ExecutionNode:
        return self._nodes[index]

    def __iter__(self) -> Iterator[ExecutionNode]:
        return iter(self._nodes)

    def add(self, node: ExecutionNode) -> int:
        """Add a structural node (not keyed by stage). Returns its index."""
        self._nodes.append(node)
        return len(self._nodes) - 1

    def node_for_stage(self, stage: Stage) -> int:
        """Index of the node compiled for ``stage``, creating it on first use."""
        index = self._by_stage.get(stage.stage_id)
        if index is None:
            index = self.add(ExecutionNode.for_stage(stage))
            self._by_stage[stage.stage_id] = index
        return index

    def has_stage(self, stage_id: StageID) -> bool:
        return stage_id in self._by_stage

    def add_child(self, parent: int, child: int) -> None:
        """Wire ``child`` under ``parent``. Adding the same child twice is a no-op."""
        children = self._nodes[parent].children
        if child not in children:
            children.append(child)

    def to_tree(self, root: int) -> dict[str, Any]:
        """Nested dict of the subtree rooted at ``root``."""
        node = self._nodes[root]
        data = node.to_dict()
        data["children"] = [self.to_tree(child) for child in node.children]
        return data

    def to_forest(self, roots: Sequence[int]) -> list[dict[str, Any]]:
        return [self.to_tree(root) for root in roots]


def walk_path(arena: NodeArena, stages: Iterable[Stage], working: int) -> int:
    """Chain ``stages`` (tail toward source) above ``working``.

    Each stage's node becomes the parent of the node built before it.
    Nodes already in the arena are reused, which splices this path onto
    chains built by earlier paths.

    Returns:
        Index of the topmost node (the source-side end of the chain).
    """
    for stage in stages:
        parent = arena.node_for_stage(stage)
        arena.add_child(parent, working)
        working = parent
    return working
