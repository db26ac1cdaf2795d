# src/batchplan/contracts/protocols.py
"""Collaborator protocols consumed by the planner and the job controllers.

These protocols define what the external systems must implement:
- ExecutionEngine: submits physical jobs, reports completion, progress and counters
- Storage: path existence, listing, rename/copy/delete
- FileNamingScheme: final names for relocated output files
- PlanSerializer: persists a job's execution tree for worker processes

They're used for type checking; the shipped implementations live in
batchplan.storage, batchplan.plan and batchplan.testing.
"""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from batchplan.contracts.enums import JobState, WriteMode

if TYPE_CHECKING:
    from batchplan.contracts.job import JobDefinition
    from batchplan.plan.multiplex import OutputMultiplexer
    from batchplan.plan.nodes import NodeArena
    from batchplan.plan.stages import FileSource


@runtime_checkable
class ExecutionEngine(Protocol):
    """Protocol for the batch execution engine.

    Every call is synchronous and may block. Implementations raise
    EngineError (or OSError) when the engine cannot be contacted.
    """

    def submit(self, definition: "JobDefinition") -> Any:
        """Submit a compiled job and return an opaque handle for it."""
        ...

    def is_complete(self, handle: Any) -> bool:
        """Whether the job has stopped running (successfully or not)."""
        ...

    def is_successful(self, handle: Any) -> bool:
        """Whether a completed job succeeded."""
        ...

    def map_progress(self, handle: Any) -> float:
        """Fraction of map work done, in [0, 1]."""
        ...

    def reduce_progress(self, handle: Any) -> float:
        """Fraction of reduce work done, in [0, 1]."""
        ...

    def kill(self, handle: Any) -> None:
        """Request cancellation of the job."""
        ...

    def counters(self, handle: Any) -> Mapping[str, Mapping[str, int]]:
        """Counter values of a completed job, keyed by group then counter name.

        Engines that keep no counters return an empty mapping.
        """
        ...


@runtime_checkable
class Storage(Protocol):
    """Protocol for the storage layer holding inputs, plans and outputs.

    Paths are plain strings. Implementations raise OSError on failures.
    """

    def exists(self, path: str) -> bool: ...

    def mkdirs(self, path: str) -> None: ...

    def list(self, pattern: str) -> list[str]:
        """Return paths matching a glob pattern, sorted."""
        ...

    def rename(self, src: str, dst: str) -> None: ...

    def copy(self, src: str, dst: str) -> None: ...

    def delete(self, path: str, recursive: bool = False) -> None: ...

    def is_same_location(self, a: str, b: str) -> bool:
        """Whether a rename from a to b is possible (same filesystem/bucket)."""
        ...

    def write_bytes(self, path: str, data: bytes) -> None: ...

    def read_bytes(self, path: str) -> bytes: ...


class FileNamingScheme(Protocol):
    """Protocol for naming output files when they are relocated to a target."""

    name: str

    def map_output_name(self, storage: Storage, dest_dir: str) -> str:
        """Name for a file produced by a map-only job."""
        ...

    def reduce_output_name(self, storage: Storage, dest_dir: str, partition: int) -> str:
        """Name for a file produced by reduce partition ``partition``."""
        ...


class Target(Protocol):
    """Protocol for a logical sink.

    A target configures itself on the job's OutputMultiplexer via accept(),
    and applies its write mode before the pipeline runs.
    """

    write_mode: WriteMode

    @property
    def name(self) -> str:
        """Stable, human-readable identity (e.g., 'text(/out/counts)')."""
        ...

    def accept(self, multiplexer: "OutputMultiplexer", record_type: str) -> bool:
        """Register this target on the multiplexer. False if record_type is unsupported."""
        ...

    def handle_existing(self, storage: Storage) -> None:
        """Apply write_mode to any data already at the target location."""
        ...

    def as_source(self, record_type: str) -> "FileSource | None":
        """A source reading this target's output, or None if it cannot be read back."""
        ...


@runtime_checkable
class PathTarget(Target, Protocol):
    """A target addressed by a storage path; its files are relocated after the job."""

    path: str
    format: str
    naming: FileNamingScheme


class PlanSerializer(Protocol):
    """Protocol for persisting a job's execution tree for one phase."""

    def write(self, path: str, arena: "NodeArena", roots: Sequence[int]) -> None: ...


class PrepareHook(Protocol):
    """Runs before a job is submitted. Any exception fails the submission."""

    def run(self) -> None: ...


class CompletionHook(Protocol):
    """Runs exactly once when a job first reaches a terminal state.

    Returns human-readable warnings to attach to the job (e.g., files that
    could not be relocated).
    """

    def run(self, state: JobState) -> Sequence[str]: ...
