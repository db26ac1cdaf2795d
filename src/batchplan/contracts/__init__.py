# src/batchplan/contracts/__init__.py
"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core, plan or
engine at runtime. Settings classes are NOT re-exported here - import them
from batchplan.core.config.

Import patterns:
    from batchplan.contracts import JobState, JobDefinition, Storage
    from batchplan.core.config import PlannerSettings
"""

from batchplan.contracts.enums import (
    ExecutionPhase,
    FailureKind,
    InputFormat,
    JobState,
    NodeRole,
    RunStatus,
    StageKind,
    WriteMode,
)
from batchplan.contracts.errors import (
    EngineError,
    ExecutionError,
    OutputExistsError,
    PlanConfigurationError,
    PlanInvariantError,
)
from batchplan.contracts.job import (
    MULTI_OUTPUT_PREFIX,
    CombinerSpec,
    InputSpec,
    JobDefinition,
    NamedOutput,
    output_name,
    partial_file_glob,
)
from batchplan.contracts.protocols import (
    CompletionHook,
    ExecutionEngine,
    FileNamingScheme,
    PathTarget,
    PlanSerializer,
    PrepareHook,
    Storage,
    Target,
)
from batchplan.contracts.results import PipelineResult, StageResult
from batchplan.contracts.types import JobID, OutputName, StageID

__all__ = [
    "MULTI_OUTPUT_PREFIX",
    "CombinerSpec",
    "CompletionHook",
    "EngineError",
    "ExecutionEngine",
    "ExecutionError",
    "ExecutionPhase",
    "FailureKind",
    "FileNamingScheme",
    "InputFormat",
    "InputSpec",
    "JobDefinition",
    "JobID",
    "JobState",
    "NamedOutput",
    "NodeRole",
    "OutputExistsError",
    "OutputName",
    "PathTarget",
    "PipelineResult",
    "PlanConfigurationError",
    "PlanInvariantError",
    "PlanSerializer",
    "PrepareHook",
    "RunStatus",
    "StageID",
    "StageKind",
    "StageResult",
    "Storage",
    "Target",
    "WriteMode",
    "output_name",
    "partial_file_glob",
]
