# src/batchplan/contracts/results.py
"""Results of a scheduler run.

StageResult is a snapshot of one JobController after the run; PipelineResult
aggregates them. Both are immutable.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

from batchplan.contracts.enums import FailureKind, JobState, RunStatus
from batchplan.contracts.types import JobID


@dataclass(frozen=True, slots=True)
class StageResult:
    """Outcome of one physical job.

    failed_dependency is set for DEPENDENT_FAILED jobs and names the
    dependency whose failure was observed first. counters holds the
    engine counters of a job that ran to completion (group -> name -> value),
    and is empty for jobs that never ran or lost contact with the engine.
    """

    job_id: JobID
    name: str
    state: JobState
    message: str
    failure_kind: FailureKind | None = None
    failed_dependency: JobID | None = None
    warnings: tuple[str, ...] = ()
    counters: Mapping[str, Mapping[str, int]] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.state == JobState.SUCCESS

    def counter(self, group: str, name: str) -> int:
        """Value of one counter, 0 if the job did not report it."""
        return self.counters.get(group, {}).get(name, 0)


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of a whole scheduler run."""

    pipeline_name: str
    status: RunStatus
    stages: tuple[StageResult, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        """True only if every job reached SUCCESS."""
        return self.status == RunStatus.SUCCEEDED

    def stage(self, job_id: JobID) -> StageResult:
        """Look up the result of one job.

        Raises:
            KeyError: If no job with this id took part in the run.
        """
        for stage in self.stages:
            if stage.job_id == job_id:
                return stage
        raise KeyError(f"No job {job_id} in pipeline '{self.pipeline_name}'")

    @property
    def failed_stages(self) -> tuple[StageResult, ...]:
        """Jobs that ended FAILED or DEPENDENT_FAILED."""
        return tuple(s for s in self.stages if s.state.is_failure)

    @property
    def warnings(self) -> tuple[str, ...]:
        """All warnings attached to jobs, in job order."""
        return tuple(w for s in self.stages for w in s.warnings)

    def counter_totals(self, group: str) -> dict[str, int]:
        """Sum one counter group over every job of the run.

        Example:
            Two jobs reporting records/read 1000 and 2000 give
            ``counter_totals("records") == {"read": 3000}``.
        """
        totals: dict[str, int] = {}
        for stage in self.stages:
            for name, value in stage.counters.get(group, {}).items():
                totals[name] = totals.get(name, 0) + value
        return totals

    def failure_chain(self, job_id: JobID) -> list[StageResult]:
        """Follow DEPENDENT_FAILED links from ``job_id`` to the originating failure.

        Returns:
            Results from the given job to the job that actually FAILED.
            Empty if the job did not fail.
        """
        chain: list[StageResult] = []
        current: JobID | None = job_id
        while current is not None:
            stage = self.stage(current)
            if not stage.state.is_failure:
                break
            chain.append(stage)
            current = stage.failed_dependency
        return chain
