# src/batchplan/contracts/enums.py
"""All status codes, modes, and kinds used across subsystem boundaries."""

from enum import StrEnum


class JobState(StrEnum):
    """State of a physical job under a JobController.

    WAITING -> READY -> RUNNING -> {SUCCESS, FAILED}
    WAITING -> DEPENDENT_FAILED

    SUCCESS, FAILED and DEPENDENT_FAILED are terminal: once reached the
    state never changes again.
    """

    WAITING = "waiting"
    READY = "ready"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    DEPENDENT_FAILED = "dependent_failed"

    @property
    def is_terminal(self) -> bool:
        """Check if this state is final for the job."""
        return self in (JobState.SUCCESS, JobState.FAILED, JobState.DEPENDENT_FAILED)

    @property
    def is_failure(self) -> bool:
        """Check if this state is one of the two failure outcomes."""
        return self in (JobState.FAILED, JobState.DEPENDENT_FAILED)


class FailureKind(StrEnum):
    """Why a job ended in a failure state.

    Values:
        SUBMISSION: Prepare hook or engine submit raised
        EXECUTION: Engine reports the job ran but was not successful
        POLLING: Engine could not be contacted while polling (job was killed)
        DEPENDENCY: A dependency failed, so the job never ran
    """

    SUBMISSION = "submission"
    EXECUTION = "execution"
    POLLING = "polling"
    DEPENDENCY = "dependency"


class WriteMode(StrEnum):
    """Policy for a target whose output location already holds data.

    Values:
        DEFAULT: Fail before the pipeline runs
        OVERWRITE: Delete the existing data, then write
        APPEND: Write new files alongside the existing data
    """

    DEFAULT = "default"
    OVERWRITE = "overwrite"
    APPEND = "append"


class StageKind(StrEnum):
    """Kind of logical stage in a pipeline."""

    SOURCE = "source"
    TRANSFORM = "transform"
    GROUP = "group"


class NodeRole(StrEnum):
    """Role of a compiled node in a job's execution tree.

    Values:
        INPUT: Reads records from a source
        TRANSFORM: Applies a stage function
        SHUFFLE: Map-side emitter feeding the grouping stage
        GROUPED_INPUT: Reduce-side (or combine-side) reader of grouped records
        COMBINE: Pre-aggregation applied before the shuffle
        OUTPUT: Writes records to a multiplexed output
    """

    INPUT = "input"
    TRANSFORM = "transform"
    SHUFFLE = "shuffle"
    GROUPED_INPUT = "grouped_input"
    COMBINE = "combine"
    OUTPUT = "output"


class ExecutionPhase(StrEnum):
    """Execution phase of a physical job. Values double as plan file names."""

    MAP = "map"
    COMBINE = "combine"
    REDUCE = "reduce"


class InputFormat(StrEnum):
    """How a job reads its inputs.

    PLAIN: exactly one input chain, read through the source directly.
    TAGGED: several input chains; each record is tagged with its input index
    so the matching transform chain receives it.
    """

    PLAIN = "plain"
    TAGGED = "tagged"


class RunStatus(StrEnum):
    """Overall status of a scheduler run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    INTERRUPTED = "interrupted"
