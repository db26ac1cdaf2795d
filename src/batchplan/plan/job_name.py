# src/batchplan/plan/job_name.py
"""Operator-visible job names.

A job name lists the stage names of its map side and, for grouped jobs, its
reduce side: ``"<pipeline>: <map names>: <reduce names>"``. Along a chain
names are joined with ``+``; where the tree branches, each branch is
rendered in brackets and the branches are joined with ``/``. Unnamed nodes
(such as the shuffle emitter) are skipped. Names only identify a job to
humans; nothing parses them.
"""

from __future__ import annotations

from collections.abc import Sequence

from batchplan.plan.nodes import NodeArena


class JobNameBuilder:
    """Accumulates one name segment per visited tree."""

    def __init__(self, pipeline_name: str) -> None:
        self._pipeline_name = pipeline_name
        self._segments: list[str] = []

    def visit(self, arena: NodeArena, roots: Sequence[int]) -> None:
        """Add the segment describing the trees under ``roots``."""
        if len(roots) == 1:
            segment = self._describe(arena, roots[0])
        else:
            segment = self._siblings(arena, roots)
        if segment:
            self._segments.append(segment)

    def build(self) -> str:
        return ": ".join([self._pipeline_name, *self._segments])

    def _describe(self, arena: NodeArena, index: int) -> str:
        parts: list[str] = []
        node = arena[index]
        while True:
            if node.name:
                parts.append(node.name)
            if len(node.children) == 1:
                node = arena[node.children[0]]
                continue
            if node.children:
                parts.append(self._siblings(arena, node.children))
            break
        return "+".join(parts)

    def _siblings(self, arena: NodeArena, indices: Sequence[int]) -> str:
        return "/".join(f"[{self._describe(arena, index)}]" for index in indices)
