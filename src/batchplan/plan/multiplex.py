# src/batchplan/plan/multiplex.py
"""Output multiplexer: many logical sinks in one physical job.

Each target of a job gets a distinct multiplex index. Its output node is
named ``partition-<index>`` and the engine writes that output's partial
files as ``<output_dir>/partition-<index>-*``. Path targets are remembered
in ``multi_paths`` so the reconciler can relocate their files afterwards.
"""

from __future__ import annotations

import posixpath
from typing import Any

from batchplan.contracts.errors import PlanConfigurationError, PlanInvariantError
from batchplan.contracts.job import JobDefinition, NamedOutput, output_name
from batchplan.contracts.protocols import PathTarget, Target
from batchplan.contracts.types import OutputName
from batchplan.plan.nodes import ExecutionNode


class OutputMultiplexer:
    """Assigns multiplex indices to the targets of one job."""

    def __init__(self, definition: JobDefinition) -> None:
        self._definition = definition
        self._working_node: ExecutionNode | None = None
        self._next_index = 0
        self.multi_paths: dict[int, PathTarget] = {}

    @property
    def output_count(self) -> int:
        return self._next_index

    def configure_node(self, node: ExecutionNode, target: Target) -> None:
        """Let ``target`` register itself as the output written by ``node``.

        Raises:
            PlanConfigurationError: If the target refuses the node's record type.
        """
        self._working_node = node
        try:
            accepted = target.accept(self, node.record_type)
        finally:
            self._working_node = None
        if not accepted:
            raise PlanConfigurationError(f"Target {target.name} cannot handle records of type '{node.record_type}'")

    def configure_path_output(self, target: PathTarget, record_type: str) -> None:
        """Called back by path targets: partial files, relocated after the job."""
        index, name = self._claim()
        self.multi_paths[index] = target
        self._definition.outputs.append(
            NamedOutput(
                name=name,
                index=index,
                format=target.format,
                record_type=record_type,
                target=target.name,
                options={"prefix": posixpath.join(self._definition.output_dir, f"{name}-")},
            )
        )

    def configure_named_output(
        self,
        target: Target,
        record_type: str,
        *,
        format: str,
        options: dict[str, Any],
    ) -> None:
        """Called back by targets the engine writes directly (e.g., tables)."""
        index, name = self._claim()
        self._definition.outputs.append(
            NamedOutput(name=name, index=index, format=format, record_type=record_type, target=target.name, options=dict(options))
        )

    def _claim(self) -> tuple[int, OutputName]:
        if self._working_node is None:
            raise PlanInvariantError("Targets may only register outputs from within configure_node()")
        index = self._next_index
        self._next_index += 1
        name = output_name(index)
        self._working_node.output_name = name
        return index, name
