# src/batchplan/plan/node_path.py
"""NodePath: an ordered chain of stages from a source to a sink-side tail.

The planner's unit of traversal. Stored source-first: ``head`` is the stage
nearest the source, ``tail`` the stage whose output is written. The compiler
walks paths with ``descending()``, from the tail back toward the source.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from batchplan.contracts.errors import PlanConfigurationError
from batchplan.plan.stages import Stage


class NodePath:
    """Immutable sequence of stages. Hashable and comparable by content."""

    __slots__ = ("_stages",)

    def __init__(self, stages: Sequence[Stage]) -> None:
        if not stages:
            raise PlanConfigurationError("NodePath must contain at least one stage")
        self._stages: tuple[Stage, ...] = tuple(stages)

    @classmethod
    def of(cls, *stages: Stage) -> NodePath:
        """Path through ``stages``, given source first."""
        return cls(stages)

    def push(self, stage: Stage) -> NodePath:
        """New path with ``stage`` prepended (one step further toward the source)."""
        return NodePath((stage, *self._stages))

    @property
    def head(self) -> Stage:
        return self._stages[0]

    @property
    def tail(self) -> Stage:
        return self._stages[-1]

    @property
    def stages(self) -> tuple[Stage, ...]:
        return self._stages

    def descending(self) -> Iterator[Stage]:
        """Iterate from the tail back toward the source."""
        return reversed(self._stages)

    def __iter__(self) -> Iterator[Stage]:
        return iter(self._stages)

    def __len__(self) -> int:
        return len(self._stages)

    def __contains__(self, stage: object) -> bool:
        return stage in self._stages

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NodePath):
            return NotImplemented
        return self._stages == other._stages

    def __hash__(self) -> int:
        return hash(self._stages)

    def __repr__(self) -> str:
        return "NodePath(" + " -> ".join(s.stage_id for s in self._stages) + ")"
