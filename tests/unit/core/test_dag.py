# tests/unit/core/test_dag.py
"""Tests for the job dependency graph."""

from __future__ import annotations

import pytest

from batchplan.core.dag import GraphValidationError, JobGraph
from batchplan.testing import ScriptedEngine, make_controller


class TestJobGraph:
    def test_edges_run_from_dependency_to_dependent(self) -> None:
        graph = JobGraph()
        graph.add_job(1)
        graph.add_job(2)
        graph.add_dependency(2, depends_on=1)

        assert graph.dependencies(2) == [1]
        assert graph.dependents(1) == [2]
        assert graph.job_count == 2

    def test_topological_order_breaks_ties_by_id(self) -> None:
        graph = JobGraph()
        for job_id in (5, 3, 4, 1):
            graph.add_job(job_id)
        graph.add_dependency(1, depends_on=5)

        assert graph.topological_order() == [3, 4, 5, 1]

    def test_cycle_reported_with_jobs(self) -> None:
        graph = JobGraph()
        graph.add_job(1)
        graph.add_job(2)
        graph.add_dependency(1, depends_on=2)
        graph.add_dependency(2, depends_on=1)

        with pytest.raises(GraphValidationError, match="cycle: job"):
            graph.validate()

    def test_valid_graph_passes(self) -> None:
        graph = JobGraph()
        graph.add_job(1)
        graph.add_job(2)
        graph.add_dependency(2, depends_on=1)
        graph.validate()


class TestFromControllers:
    def test_unregistered_dependency_flagged(self, engine: ScriptedEngine) -> None:
        upstream = make_controller(1, engine)
        downstream = make_controller(2, engine, dependencies=(upstream,))

        graph = JobGraph.from_controllers([downstream])

        assert graph.has_job(1)
        with pytest.raises(GraphValidationError, match=r"job 1 \(job-1\)"):
            graph.validate()

    def test_registered_dependencies(self, engine: ScriptedEngine) -> None:
        a = make_controller(1, engine)
        b = make_controller(2, engine, dependencies=(a,))
        c = make_controller(3, engine, dependencies=(a, b))

        graph = JobGraph.from_controllers([c, b, a])
        graph.validate()

        assert graph.dependencies(3) == [1, 2]
        assert graph.topological_order() == [1, 2, 3]
