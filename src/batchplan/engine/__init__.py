# src/batchplan/engine/__init__.py
"""Job execution: controllers, hooks, reconciliation and the scheduler loop.

Example:
    control = JobControl(settings)
    control.add_jobs(controllers)
    result = control.run()
"""

from batchplan.engine.clock import DEFAULT_CLOCK, Clock, MockClock, SystemClock
from batchplan.engine.controller import JobController
from batchplan.engine.executor import PlanExecutor
from batchplan.engine.hooks import InputDirectoriesHook, ReconcileHook
from batchplan.engine.job_control import JobControl
from batchplan.engine.reconcile import OutputReconciler, extract_partition_number

__all__ = [
    "DEFAULT_CLOCK",
    "Clock",
    "InputDirectoriesHook",
    "JobControl",
    "JobController",
    "MockClock",
    "OutputReconciler",
    "PlanExecutor",
    "ReconcileHook",
    "SystemClock",
    "extract_partition_number",
]
