# src/batchplan/engine/job_control.py
"""JobControl: the scheduler loop driving a set of JobControllers.

Each poll checks every unfinished controller in dependency order, then
submits READY controllers while fewer than ``max_running_jobs`` are
running. run() polls until every controller is terminal, sleeping
``poll_interval_seconds`` between polls.

Before the first poll the dependency graph is validated: it must be
acyclic and every dependency must itself be registered, otherwise a
dependent could wait forever.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

import structlog

from batchplan.contracts.enums import JobState, RunStatus
from batchplan.contracts.errors import PlanInvariantError
from batchplan.contracts.results import PipelineResult
from batchplan.contracts.types import JobID
from batchplan.core.config import PlannerSettings
from batchplan.core.dag import JobGraph
from batchplan.core.logging import pipeline_log_context
from batchplan.engine.clock import DEFAULT_CLOCK, Clock
from batchplan.engine.controller import POLLING_FAULTS, JobController

logger = logging.getLogger(__name__)
slog = structlog.get_logger(__name__)


class JobControl:
    """Runs registered jobs to completion, respecting their dependencies."""

    def __init__(
        self,
        settings: PlannerSettings,
        *,
        pipeline_name: str = "",
        clock: Clock | None = None,
    ) -> None:
        self._settings = settings
        self._pipeline_name = pipeline_name
        self._clock = clock if clock is not None else DEFAULT_CLOCK
        self._controllers: dict[JobID, JobController] = {}
        self._order: list[JobID] | None = None

    def add_job(self, controller: JobController) -> None:
        """Register a controller. Registering the same controller twice is a no-op.

        Raises:
            PlanInvariantError: If another controller already uses the job id.
        """
        existing = self._controllers.get(controller.job_id)
        if existing is controller:
            return
        if existing is not None:
            raise PlanInvariantError(f"Job id {controller.job_id} is already registered for '{existing.name}'")
        self._controllers[controller.job_id] = controller
        self._order = None

    def add_jobs(self, controllers: Iterable[JobController]) -> None:
        for controller in controllers:
            self.add_job(controller)

    @property
    def jobs(self) -> list[JobController]:
        """Registered controllers in job id order."""
        return [self._controllers[job_id] for job_id in sorted(self._controllers)]

    def _in_state(self, *states: JobState) -> list[JobController]:
        return [c for c in self.jobs if c.state in states]

    @property
    def waiting_jobs(self) -> list[JobController]:
        return self._in_state(JobState.WAITING)

    @property
    def ready_jobs(self) -> list[JobController]:
        return self._in_state(JobState.READY)

    @property
    def running_jobs(self) -> list[JobController]:
        return self._in_state(JobState.RUNNING)

    @property
    def successful_jobs(self) -> list[JobController]:
        return self._in_state(JobState.SUCCESS)

    @property
    def failed_jobs(self) -> list[JobController]:
        return self._in_state(JobState.FAILED, JobState.DEPENDENT_FAILED)

    def all_finished(self) -> bool:
        return all(c.is_completed() for c in self._controllers.values())

    def validate(self) -> list[JobID]:
        """Validate the dependency graph and return the polling order.

        Raises:
            GraphValidationError: If dependencies are cyclic or unregistered.
        """
        graph = JobGraph.from_controllers(self.jobs)
        graph.validate()
        self._order = graph.topological_order()
        return self._order

    def poll(self) -> None:
        """One scheduler iteration: update states, then submit READY jobs.

        Raises:
            GraphValidationError: If the dependency graph is invalid.
            PlanConfigurationError: If a completed job's outputs cannot be reconciled.
        """
        order = self._order if self._order is not None else self.validate()
        for job_id in order:
            controller = self._controllers[job_id]
            if not controller.is_completed():
                controller.check_state()

        running = len(self.running_jobs)
        for job_id in order:
            if running >= self._settings.max_running_jobs:
                break
            controller = self._controllers[job_id]
            if controller.is_ready():
                controller.submit()
                if controller.state == JobState.RUNNING:
                    running += 1

    def run(self, stop_event: threading.Event | None = None) -> PipelineResult:
        """Poll until every job is terminal, or until ``stop_event`` is set.

        When stopped, running jobs are killed and the result is INTERRUPTED.
        If an exception escapes a poll, running jobs are killed before it
        propagates. Every record logged during the run carries the
        pipeline name.

        Raises:
            GraphValidationError: If the dependency graph is invalid.
            PlanConfigurationError: If a completed job's outputs cannot be reconciled.
        """
        with pipeline_log_context(self._pipeline_name):
            return self._run(stop_event)

    def _run(self, stop_event: threading.Event | None) -> PipelineResult:
        self.validate()
        slog.info("pipeline_started", pipeline=self._pipeline_name, jobs=len(self._controllers))
        started = self._clock.monotonic()

        interrupted = False
        try:
            while True:
                if stop_event is not None and stop_event.is_set():
                    logger.warning("Stop requested; killing %d running job(s)", len(self.running_jobs))
                    self.kill_all()
                    interrupted = True
                    break
                self.poll()
                if self.all_finished():
                    break
                self._clock.sleep(self._settings.poll_interval_seconds)
        except BaseException:
            self.kill_all()
            raise

        if interrupted:
            status = RunStatus.INTERRUPTED
        elif all(c.state == JobState.SUCCESS for c in self._controllers.values()):
            status = RunStatus.SUCCEEDED
        else:
            status = RunStatus.FAILED

        result = PipelineResult(
            pipeline_name=self._pipeline_name,
            status=status,
            stages=tuple(c.to_result() for c in self.jobs),
        )
        slog.info(
            "pipeline_finished",
            pipeline=self._pipeline_name,
            status=status.value,
            succeeded=len(self.successful_jobs),
            failed=len(self.failed_jobs),
            warnings=len(result.warnings),
            duration_seconds=round(self._clock.monotonic() - started, 3),
        )
        return result

    def kill_all(self) -> None:
        """Best-effort kill of every running job."""
        for controller in self.running_jobs:
            try:
                controller.kill_job()
            except POLLING_FAULTS:
                logger.warning("Failed to kill job %s", controller.job_id, exc_info=True)
