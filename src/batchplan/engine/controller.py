# src/batchplan/engine/controller.py
"""JobController: dependency-aware state machine around one physical job.

States (see JobState):
    WAITING -> READY -> RUNNING -> {SUCCESS, FAILED}
    WAITING -> DEPENDENT_FAILED

A scheduler drives controllers by calling check_state() and submit(). The
controller polls the execution engine only while RUNNING; everything else
is derived from its dependencies. Terminal states never change again, and
the completion hook runs exactly once, on the first terminal transition.

State lives behind one re-entrant lock per controller, held only while
state is read or changed. Engine polls, dependency checks and the
completion hook run outside it, so readers and kill_job() on other threads
never wait for a poll or for output reconciliation. Each transition
re-checks the state it started from under the lock before applying.
"""

from __future__ import annotations

import logging
import threading
import traceback
from collections.abc import Mapping
from typing import Any

import structlog

from batchplan.contracts.enums import FailureKind, JobState
from batchplan.contracts.errors import EngineError, ExecutionError, PlanInvariantError
from batchplan.contracts.job import JobDefinition
from batchplan.contracts.protocols import CompletionHook, ExecutionEngine, PrepareHook
from batchplan.contracts.results import StageResult
from batchplan.contracts.types import JobID
from batchplan.core.logging import job_log_context

logger = logging.getLogger(__name__)
slog = structlog.get_logger(__name__)

# Engine faults that end a running job instead of propagating
POLLING_FAULTS: tuple[type[Exception], ...] = (EngineError, OSError)

Counters = dict[str, dict[str, int]]


def _describe_exception(exc: BaseException) -> ExecutionError:
    return ExecutionError(
        exception=str(exc),
        type=type(exc).__name__,
        traceback="".join(traceback.format_exception(exc)),
    )


class JobController:
    """Controls one compiled job: readiness, submission, polling, failure propagation."""

    def __init__(
        self,
        definition: JobDefinition,
        engine: ExecutionEngine,
        *,
        prepare_hook: PrepareHook | None = None,
        completion_hook: CompletionHook | None = None,
        log_progress: bool = False,
    ) -> None:
        self._definition = definition
        self._engine = engine
        self._prepare_hook = prepare_hook
        self._completion_hook = completion_hook
        self._log_progress = log_progress

        self._lock = threading.RLock()
        self._dependencies: list[JobController] = []
        self._state = JobState.WAITING
        self._message = "just initialized"
        self._handle: Any = None
        self._last_progress: str | None = None
        self._warnings: list[str] = []
        self._failure_kind: FailureKind | None = None
        self._failed_dependency: JobID | None = None
        self._error: ExecutionError | None = None
        self._counters: Counters = {}
        self._completion_fired = False

    # --- read-only views -------------------------------------------------

    @property
    def job_id(self) -> JobID:
        return self._definition.job_id

    @property
    def name(self) -> str:
        return self._definition.name

    @property
    def definition(self) -> JobDefinition:
        return self._definition

    @property
    def state(self) -> JobState:
        with self._lock:
            return self._state

    @property
    def message(self) -> str:
        with self._lock:
            return self._message

    @property
    def dependencies(self) -> tuple[JobController, ...]:
        with self._lock:
            return tuple(self._dependencies)

    @property
    def warnings(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._warnings)

    @property
    def failure_kind(self) -> FailureKind | None:
        with self._lock:
            return self._failure_kind

    @property
    def failed_dependency(self) -> JobID | None:
        with self._lock:
            return self._failed_dependency

    @property
    def error(self) -> ExecutionError | None:
        """Diagnostics of the exception that failed the job, if one did."""
        with self._lock:
            return self._error

    @property
    def counters(self) -> Counters:
        """Engine counters captured when the running job completed."""
        with self._lock:
            return {group: dict(values) for group, values in self._counters.items()}

    @property
    def handle(self) -> Any:
        """Engine handle of the submitted job (None before submission)."""
        with self._lock:
            return self._handle

    @property
    def last_progress(self) -> str | None:
        with self._lock:
            return self._last_progress

    def is_ready(self) -> bool:
        with self._lock:
            return self._state == JobState.READY

    def is_completed(self) -> bool:
        with self._lock:
            return self._state.is_terminal

    # --- transitions -----------------------------------------------------

    def add_dependency(self, dependency: JobController) -> bool:
        """Make this job wait for ``dependency``.

        Returns:
            True if added. False once the job has left WAITING, in which
            case the dependency set is left unchanged.
        """
        with self._lock:
            if self._state != JobState.WAITING:
                return False
            if dependency is self:
                raise PlanInvariantError(f"Job {self.job_id} cannot depend on itself")
            if dependency not in self._dependencies:
                self._dependencies.append(dependency)
            return True

    def check_state(self) -> JobState:
        """Advance the state machine as far as current facts allow.

        RUNNING jobs are polled. WAITING jobs check their dependencies in
        order: the first unfinished dependency stops the scan, the first
        failed one makes this job DEPENDENT_FAILED, and only when all have
        succeeded does this job become READY. Checking a dependency
        advances it too, so a RUNNING dependency is polled once for each
        dependent checked after it.

        Raises:
            PlanConfigurationError: If the completion hook finds output it cannot
                reconcile (e.g., an unparseable partition suffix).
        """
        with job_log_context(self.job_id, self.name):
            state = self.state
            if state == JobState.RUNNING:
                self._poll_running()
            elif state == JobState.WAITING:
                self._check_dependencies()
            return self.state

    def submit(self) -> None:
        """Run the prepare hook and submit the job to the engine.

        On success the job is RUNNING. Any exception from the prepare hook
        or the engine marks it FAILED; it is not retried. The lock is held
        until the engine has answered, so a concurrent kill_job() sees the
        handle.

        Raises:
            PlanInvariantError: If the job is not READY.
        """
        with job_log_context(self.job_id, self.name):
            failure: Exception | None = None
            with self._lock:
                if self._state != JobState.READY:
                    raise PlanInvariantError(f"Job {self.job_id} cannot be submitted from state {self._state}")
                try:
                    if self._prepare_hook is not None:
                        self._prepare_hook.run()
                    handle = self._engine.submit(self._definition)
                except Exception as e:
                    logger.info('Error occurred starting job "%s": %s', self.name, e)
                    failure = e
                else:
                    self._handle = handle
                    self._state = JobState.RUNNING
                    self._message = "running"

            if failure is None:
                slog.info("job_submitted", job_id=self.job_id, job_name=self.name)
                return
            self._complete(
                JobState.READY,
                JobState.FAILED,
                f"{type(failure).__name__}: {failure}",
                FailureKind.SUBMISSION,
                error=failure,
            )

    def kill_job(self) -> None:
        """Ask the engine to cancel the job.

        Local state is unchanged; the next check_state() observes the
        result. Safe to call from any thread. Does nothing before submission.

        Raises:
            EngineError: If the engine cannot be reached.
        """
        with self._lock:
            handle = self._handle
        if handle is None:
            logger.debug("Job %s was never submitted, nothing to kill", self.job_id)
            return
        self._engine.kill(handle)

    def to_result(self) -> StageResult:
        """Snapshot of this job for a PipelineResult."""
        with self._lock:
            return StageResult(
                job_id=self.job_id,
                name=self.name,
                state=self._state,
                message=self._message,
                failure_kind=self._failure_kind,
                failed_dependency=self._failed_dependency,
                warnings=tuple(self._warnings),
                counters={group: dict(values) for group, values in self._counters.items()},
            )

    # --- internals -------------------------------------------------------

    def _check_dependencies(self) -> None:
        dependencies = self.dependencies
        for position, dependency in enumerate(dependencies):
            dependency_state = dependency.check_state()
            if not dependency_state.is_terminal:
                return
            if dependency_state.is_failure:
                self._complete(
                    JobState.WAITING,
                    JobState.DEPENDENT_FAILED,
                    f"depending job {position} with jobID {dependency.job_id} failed. {dependency.message}",
                    FailureKind.DEPENDENCY,
                    failed_dependency=dependency.job_id,
                )
                return

        with self._lock:
            # A dependency added during the scan is checked on the next call
            if self._state == JobState.WAITING and tuple(self._dependencies) == dependencies:
                self._state = JobState.READY

    def _poll_running(self) -> None:
        handle = self.handle
        try:
            if not self._engine.is_complete(handle):
                if self._log_progress:
                    self._log_job_progress(handle)
                return
            succeeded = self._engine.is_successful(handle)
        except POLLING_FAULTS as e:
            logger.warning("Lost contact with job %s while polling: %s", self.job_id, e)
            self._kill_quietly(handle)
            self._complete(JobState.RUNNING, JobState.FAILED, f"{type(e).__name__}: {e}", FailureKind.POLLING, error=e)
            return

        counters = self._fetch_counters(handle)
        if succeeded:
            self._complete(JobState.RUNNING, JobState.SUCCESS, "job succeeded", counters=counters)
        else:
            self._complete(JobState.RUNNING, JobState.FAILED, "Job failed!", FailureKind.EXECUTION, counters=counters)

    def _fetch_counters(self, handle: Any) -> Counters:
        """Counters of a completed job. Unreadable counters do not change its outcome."""
        try:
            counters: Mapping[str, Mapping[str, int]] = self._engine.counters(handle)
        except POLLING_FAULTS:
            logger.warning("Could not read counters of job %s", self.job_id, exc_info=True)
            return {}
        return {group: dict(values) for group, values in counters.items()}

    def _log_job_progress(self, handle: Any) -> None:
        progress = "map {:.0f}% reduce {:.0f}%".format(
            100.0 * self._engine.map_progress(handle),
            100.0 * self._engine.reduce_progress(handle),
        )
        with self._lock:
            if progress == self._last_progress:
                return
            self._last_progress = progress
        logger.info("%s progress: %s", self.name, progress)

    def _kill_quietly(self, handle: Any) -> None:
        try:
            self._engine.kill(handle)
        except POLLING_FAULTS:
            logger.warning("Failed to kill job %s after polling fault", self.job_id, exc_info=True)

    def _complete(
        self,
        expected: JobState,
        state: JobState,
        message: str,
        failure_kind: FailureKind | None = None,
        *,
        failed_dependency: JobID | None = None,
        error: Exception | None = None,
        counters: Counters | None = None,
    ) -> None:
        """Move from ``expected`` to terminal ``state``, then fire the completion hook once.

        Does nothing if another caller already moved the job on from
        ``expected``. The hook runs after the lock is released.
        """
        with self._lock:
            if self._state != expected:
                logger.debug("Job %s left %s before it could become %s", self.job_id, expected, state)
                return
            self._state = state
            self._message = message
            self._failure_kind = failure_kind
            self._failed_dependency = failed_dependency
            if error is not None:
                self._error = _describe_exception(error)
            if counters is not None:
                self._counters = counters
            fire = not self._completion_fired
            self._completion_fired = True

        slog.info(
            "job_finished",
            job_id=self.job_id,
            job_name=self.name,
            state=state.value,
            failure_kind=failure_kind.value if failure_kind else None,
            message=message,
        )

        if fire and self._completion_hook is not None:
            warnings = self._completion_hook.run(state)
            with self._lock:
                self._warnings.extend(warnings)

    def __repr__(self) -> str:
        return f"JobController(job_id={self.job_id}, name={self.name!r}, state={self.state})"
