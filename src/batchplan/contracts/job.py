# src/batchplan/contracts/job.py
"""Compiled physical job definition handed to the execution engine.

JobDefinition is filled in by JobPrototype during compilation and is not
modified after the JobController wrapping it is created.
"""

import posixpath
from dataclasses import dataclass, field
from typing import Any

from batchplan.contracts.enums import ExecutionPhase, InputFormat
from batchplan.contracts.types import JobID, OutputName, StageID


@dataclass(frozen=True, slots=True)
class InputSpec:
    """One input of a job.

    index is -1 for a PLAIN job (single input), otherwise the tag that
    routes each record to its transform chain.
    """

    index: int
    path: str
    format: str


@dataclass(frozen=True, slots=True)
class NamedOutput:
    """One multiplexed output of a job.

    Path outputs are written as ``<output_dir>/<name>-*`` partial files and
    relocated after the job; other outputs (e.g., tables) are written by the
    engine directly using ``options``.
    """

    name: OutputName
    index: int
    format: str
    record_type: str
    target: str
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CombinerSpec:
    """The combine stage applied to map output before the shuffle."""

    stage_id: StageID
    name: str
    combine_fn_ref: str


@dataclass
class JobDefinition:
    """A physical batch job: what the engine needs to run it."""

    job_id: JobID
    working_dir: str
    output_dir: str
    map_only: bool
    name: str = ""
    bundle: str | None = None
    num_reduce_tasks: int = 0
    input_format: InputFormat = InputFormat.PLAIN
    inputs: list[InputSpec] = field(default_factory=list)
    outputs: list[NamedOutput] = field(default_factory=list)
    combiner: CombinerSpec | None = None
    phase_files: dict[ExecutionPhase, str] = field(default_factory=dict)
    plan_hash: str | None = None
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def input_paths(self) -> list[str]:
        """Paths of all inputs, in input order."""
        return [spec.path for spec in self.inputs]


MULTI_OUTPUT_PREFIX = "partition-"


def output_name(index: int) -> OutputName:
    """Name of the multiplexed output with this index."""
    return OutputName(f"{MULTI_OUTPUT_PREFIX}{index}")


def partial_file_glob(output_dir: str, index: int) -> str:
    """Glob matching every partial file of one multiplexed output."""
    return posixpath.join(output_dir, f"{output_name(index)}-*")
