# src/batchplan/contracts/errors.py
"""Error types and diagnostic payload schemas.

Configuration errors are raised at compile or reconcile time and are never
retried. Collaborator faults (EngineError, OSError) are converted into job
states by the JobController rather than propagated.
"""

from typing import NotRequired, TypedDict


class ExecutionError(TypedDict):
    """Schema for job failure diagnostics.

    Recorded on a JobController when a submission or polling fault occurs.
    """

    exception: str  # String representation of the exception
    type: str  # Exception class name (e.g., "EngineError")
    traceback: NotRequired[str]  # Optional full traceback


class PlanConfigurationError(ValueError):
    """Raised when a job cannot be compiled or reconciled as configured.

    Examples: compiling a prototype with no outputs, a target that refuses
    the record type it is given, a reduce output file whose name carries no
    parseable partition number.
    """

    pass


class OutputExistsError(Exception):
    """Raised when a target already holds data under WriteMode.DEFAULT."""

    def __init__(self, location: str) -> None:
        self.location = location
        super().__init__(f"Output already exists: {location}")


class PlanInvariantError(Exception):
    """Raised when the planning API is used in an order it does not support.

    This indicates a bug in the caller (e.g., adding a dependency to a
    prototype whose job was already built), not a configuration problem.
    """

    pass


class EngineError(Exception):
    """Raised by execution engine collaborators when the engine cannot be reached.

    JobController treats this (and OSError) as a polling fault: the job is
    killed best-effort and marked FAILED. It is never retried.
    """

    pass
