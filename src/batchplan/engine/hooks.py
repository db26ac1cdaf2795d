# src/batchplan/engine/hooks.py
"""Prepare and completion hooks attached to compiled jobs."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from batchplan.contracts.enums import JobState
from batchplan.contracts.job import JobDefinition
from batchplan.contracts.protocols import Storage
from batchplan.core.config import PlannerSettings
from batchplan.engine.reconcile import OutputReconciler

logger = logging.getLogger(__name__)


class InputDirectoriesHook:
    """Prepare hook: create missing input directories when configured to.

    With ``create_input_dirs`` off this does nothing and a missing input
    is left for the engine to report.
    """

    def __init__(self, storage: Storage, definition: JobDefinition, settings: PlannerSettings) -> None:
        self._storage = storage
        self._definition = definition
        self._enabled = settings.create_input_dirs

    def run(self) -> None:
        if not self._enabled:
            return
        for path in self._definition.input_paths:
            if not self._storage.exists(path):
                logger.info("Creating missing input directory %s for job %s", path, self._definition.job_id)
                self._storage.mkdirs(path)


class ReconcileHook:
    """Completion hook: relocate partial outputs once the job has ended.

    Outputs of a successful job are always relocated. Outputs of a failed
    job stay in the working directory unless ``reconcile_failed_jobs`` is set.
    """

    def __init__(self, reconciler: OutputReconciler, settings: PlannerSettings) -> None:
        self._reconciler = reconciler
        self._reconcile_failed = settings.reconcile_failed_jobs

    def run(self, state: JobState) -> Sequence[str]:
        if state == JobState.SUCCESS or self._reconcile_failed:
            return self._reconciler.reconcile()
        logger.info("Job ended %s; leaving partial outputs in the working directory", state)
        return []
