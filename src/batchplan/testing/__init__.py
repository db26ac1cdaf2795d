# src/batchplan/testing/__init__.py
"""Test infrastructure for batchplan.

Factories for constructing production types with sensible defaults, plus
collaborator doubles:
- MemoryStorage: in-memory Storage with scheme-based locations and fault injection
- ScriptedEngine: ExecutionEngine whose jobs follow JobScripts

Usage:
    from batchplan.testing import MemoryStorage, ScriptedEngine, make_runtime
    runtime = make_runtime()
    controller = make_controller(1, runtime.engine)
"""

from __future__ import annotations

from typing import Any

from batchplan.contracts.job import JobDefinition
from batchplan.contracts.protocols import CompletionHook, ExecutionEngine, PrepareHook
from batchplan.contracts.types import JobID
from batchplan.engine.controller import JobController
from batchplan.plan.prototype import RuntimeContext
from batchplan.testing.engine import JobScript, RunningJob, ScriptedEngine
from batchplan.testing.storage import MemoryStorage, location_of


def make_definition(job_id: int = 1, *, name: str | None = None, map_only: bool = True, **kwargs: Any) -> JobDefinition:
    """JobDefinition with working directory ``/work/job-<id>``."""
    working_dir = kwargs.pop("working_dir", f"/work/job-{job_id}")
    return JobDefinition(
        job_id=JobID(job_id),
        working_dir=working_dir,
        output_dir=kwargs.pop("output_dir", f"{working_dir}/output"),
        map_only=map_only,
        name=f"job-{job_id}" if name is None else name,
        **kwargs,
    )


def make_controller(
    job_id: int,
    engine: ExecutionEngine,
    *,
    dependencies: tuple[JobController, ...] = (),
    prepare_hook: PrepareHook | None = None,
    completion_hook: CompletionHook | None = None,
    log_progress: bool = False,
) -> JobController:
    """Controller for a bare definition, with dependencies already added."""
    controller = JobController(
        make_definition(job_id),
        engine,
        prepare_hook=prepare_hook,
        completion_hook=completion_hook,
        log_progress=log_progress,
    )
    for dependency in dependencies:
        controller.add_dependency(dependency)
    return controller


def make_runtime(storage: MemoryStorage | None = None, engine: ScriptedEngine | None = None) -> RuntimeContext:
    """RuntimeContext over in-memory storage and a scripted engine."""
    storage = storage if storage is not None else MemoryStorage()
    engine = engine if engine is not None else ScriptedEngine(storage)
    return RuntimeContext(engine=engine, storage=storage, bundle="test-bundle")


__all__ = [
    "JobScript",
    "MemoryStorage",
    "RunningJob",
    "ScriptedEngine",
    "location_of",
    "make_controller",
    "make_definition",
    "make_runtime",
]
