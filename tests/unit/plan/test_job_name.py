# tests/unit/plan/test_job_name.py
"""Tests for operator-visible job names."""

from __future__ import annotations

from batchplan.contracts import NodeRole
from batchplan.plan.job_name import JobNameBuilder
from batchplan.plan.node_path import NodePath
from batchplan.plan.nodes import ExecutionNode, NodeArena, walk_path
from batchplan.plan.stages import FileSource, source_stage, transform_stage


def _chain_arena() -> tuple[NodeArena, int]:
    arena = NodeArena()
    out = arena.add(ExecutionNode.output("text(/out)", "str"))
    source = source_stage("s", FileSource("/in"), name="Read")
    top = walk_path(arena, NodePath.of(source, transform_stage("t", name="Upper")).descending(), out)
    return arena, top


class TestJobNameBuilder:
    def test_chain_joined_with_plus(self) -> None:
        arena, top = _chain_arena()
        builder = JobNameBuilder("wordcount")
        builder.visit(arena, [top])
        assert builder.build() == "wordcount: Read+Upper+text(/out)"

    def test_branches_rendered_as_groups(self) -> None:
        arena = NodeArena()
        source = source_stage("s", FileSource("/in"), name="Read")
        left = arena.add(ExecutionNode.output("L", "str"))
        right = arena.add(ExecutionNode.output("R", "str"))
        top = walk_path(arena, [transform_stage("a", name="A"), source], left)
        walk_path(arena, [transform_stage("b", name="B"), source], right)

        builder = JobNameBuilder("p")
        builder.visit(arena, [top])
        assert builder.build() == "p: Read+[A+L]/[B+R]"

    def test_multiple_roots_are_siblings(self) -> None:
        arena = NodeArena()
        a = arena.add(ExecutionNode.output("A", "str"))
        b = arena.add(ExecutionNode.output("B", "str"))
        builder = JobNameBuilder("p")
        builder.visit(arena, [a, b])
        assert builder.build() == "p: [A]/[B]"

    def test_unnamed_nodes_skipped(self) -> None:
        arena = NodeArena()
        hidden = arena.add(ExecutionNode(name="", role=NodeRole.SHUFFLE, record_type="str"))
        visible = arena.add(ExecutionNode.output("Out", "str"))
        arena.add_child(hidden, visible)
        builder = JobNameBuilder("p")
        builder.visit(arena, [hidden])
        assert builder.build() == "p: Out"

    def test_one_segment_per_visit(self) -> None:
        arena, top = _chain_arena()
        builder = JobNameBuilder("p")
        builder.visit(arena, [top])
        builder.visit(arena, [top])
        assert builder.build() == "p: Read+Upper+text(/out): Read+Upper+text(/out)"

    def test_deterministic(self) -> None:
        names = set()
        for _ in range(3):
            arena, top = _chain_arena()
            builder = JobNameBuilder("p")
            builder.visit(arena, [top])
            names.add(builder.build())
        assert len(names) == 1
