# src/batchplan/engine/executor.py
"""PlanExecutor: compile prototypes and run them as one pipeline."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING

from batchplan.contracts.protocols import Target
from batchplan.contracts.results import PipelineResult
from batchplan.core.config import PlannerSettings
from batchplan.engine.clock import Clock
from batchplan.engine.job_control import JobControl

if TYPE_CHECKING:
    from batchplan.plan.prototype import JobPrototype, RuntimeContext


class PlanExecutor:
    """Runs a set of JobPrototypes end to end.

    1. Applies each target's write mode to existing output
    2. Compiles every prototype, including transitive dependencies
    3. Runs the resulting controllers under a JobControl

    Example:
        executor = PlanExecutor(runtime, settings, "wordcount")
        result = executor.run([count_job])
        if not result.succeeded:
            for stage in result.failure_chain(count_job.job_id):
                print(stage.message)
    """

    def __init__(
        self,
        runtime: RuntimeContext,
        settings: PlannerSettings,
        pipeline_name: str,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._runtime = runtime
        self._settings = settings
        self._pipeline_name = pipeline_name
        self._clock = clock

    def run(self, prototypes: Iterable[JobPrototype], stop_event: threading.Event | None = None) -> PipelineResult:
        """Compile and run ``prototypes``.

        Raises:
            OutputExistsError: If a DEFAULT-mode target already holds data.
            PlanConfigurationError: If a prototype cannot be compiled.
            GraphValidationError: If the job graph is invalid.
        """
        ordered = _with_dependencies(prototypes)
        for target in _distinct_targets(ordered):
            target.handle_existing(self._runtime.storage)

        control = JobControl(self._settings, pipeline_name=self._pipeline_name, clock=self._clock)
        control.add_jobs(p.get_job(self._runtime, self._settings, self._pipeline_name) for p in ordered)
        return control.run(stop_event)


def _with_dependencies(prototypes: Iterable[JobPrototype]) -> list[JobPrototype]:
    """Prototypes plus everything they depend on, in job id order."""
    seen: dict[int, JobPrototype] = {}
    pending = list(prototypes)
    while pending:
        prototype = pending.pop()
        if prototype.job_id in seen:
            continue
        seen[prototype.job_id] = prototype
        pending.extend(prototype.dependencies)
    return [seen[job_id] for job_id in sorted(seen)]


def _distinct_targets(prototypes: list[JobPrototype]) -> list[Target]:
    targets: dict[str, Target] = {}
    for prototype in prototypes:
        for target in prototype.targets:
            targets.setdefault(target.name, target)
    return [targets[name] for name in sorted(targets)]
