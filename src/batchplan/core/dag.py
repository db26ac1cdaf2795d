# src/batchplan/core/dag.py
"""Job dependency graph: validation and ordering for the scheduler.

Wraps a NetworkX DiGraph whose nodes are job ids and whose edges run from a
dependency to the job that waits on it. The scheduler uses it to reject
cyclic or dangling dependency sets before any job is submitted, and to poll
controllers in a stable dependency-first order.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

import networkx as nx

from batchplan.contracts.types import JobID

if TYPE_CHECKING:
    from batchplan.engine.controller import JobController


class GraphValidationError(ValueError):
    """Raised when graph validation fails."""

    pass


class JobGraph:
    """Dependency graph over physical jobs."""

    def __init__(self) -> None:
        self._graph: nx.DiGraph[int] = nx.DiGraph()

    @classmethod
    def from_controllers(cls, controllers: Iterable[JobController]) -> JobGraph:
        """Build the graph from controllers and their dependency lists.

        Dependencies that were not themselves passed in still become nodes
        (flagged as unregistered) so validate() can report them.
        """
        graph = cls()
        controllers = list(controllers)
        for controller in controllers:
            graph.add_job(controller.job_id, name=controller.name)
        for controller in controllers:
            for dependency in controller.dependencies:
                if not graph.has_job(dependency.job_id):
                    graph.add_job(dependency.job_id, name=dependency.name, registered=False)
                graph.add_dependency(controller.job_id, dependency.job_id)
        return graph

    @property
    def job_count(self) -> int:
        return self._graph.number_of_nodes()

    def has_job(self, job_id: int) -> bool:
        return self._graph.has_node(job_id)

    def add_job(self, job_id: int, *, name: str = "", registered: bool = True) -> None:
        self._graph.add_node(job_id, name=name, registered=registered)

    def add_dependency(self, job_id: int, depends_on: int) -> None:
        """Record that ``job_id`` may only run after ``depends_on`` succeeds."""
        self._graph.add_edge(depends_on, job_id)

    def dependencies(self, job_id: int) -> list[JobID]:
        return sorted(JobID(n) for n in self._graph.predecessors(job_id))

    def dependents(self, job_id: int) -> list[JobID]:
        return sorted(JobID(n) for n in self._graph.successors(job_id))

    def validate(self) -> None:
        """Validate the dependency graph.

        Validates:
        1. Graph is acyclic
        2. Every dependency is itself a registered job

        Raises:
            GraphValidationError: If validation fails
        """
        if not nx.is_directed_acyclic_graph(self._graph):
            try:
                cycle = nx.find_cycle(self._graph)
                cycle_str = " -> ".join(f"job {edge[0]}" for edge in cycle)
                raise GraphValidationError(f"Job dependencies contain a cycle: {cycle_str}")
            except nx.NetworkXNoCycle:
                raise GraphValidationError("Job dependencies contain a cycle") from None

        unregistered = sorted(n for n, data in self._graph.nodes(data=True) if not data["registered"])
        if unregistered:
            details = ", ".join(f"job {n} ({self._graph.nodes[n]['name']})" for n in unregistered)
            raise GraphValidationError(
                f"{len(unregistered)} dependency job(s) are not scheduled: {details}. "
                "Every dependency must be added to the same JobControl."
            )

    def topological_order(self) -> list[JobID]:
        """Return job ids dependency-first, ties broken by ascending id.

        Raises:
            GraphValidationError: If graph has cycles
        """
        try:
            return [JobID(n) for n in nx.lexicographical_topological_sort(self._graph)]
        except nx.NetworkXUnfeasible as e:
            raise GraphValidationError(f"Cannot sort job graph: {e}") from e
