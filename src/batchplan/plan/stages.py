# src/batchplan/plan/stages.py
"""Logical pipeline stages.

A Stage is one transformation step of the logical pipeline. Stages are
frozen and compared by ``stage_id`` only, so the compiler can key its node
arena by stage identity regardless of which NodePath reached the stage.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from batchplan.contracts.enums import StageKind
from batchplan.contracts.errors import PlanConfigurationError
from batchplan.contracts.job import InputSpec
from batchplan.contracts.types import StageID


@dataclass(frozen=True, slots=True)
class FileSource:
    """Records read from files at ``path`` in ``format``."""

    path: str
    format: str = "text"
    record_type: str = "str"

    def configure(self, input_index: int) -> InputSpec:
        """Input entry for a job reading this source.

        Args:
            input_index: -1 when the job has a single input, otherwise the tag
                assigned to this input chain.
        """
        return InputSpec(index=input_index, path=self.path, format=self.format)

    def __str__(self) -> str:
        return f"{self.format}({self.path})"


@dataclass(frozen=True, slots=True)
class GroupingOptions:
    """Shuffle options of a grouping stage."""

    num_partitions: int | None = None

    def __post_init__(self) -> None:
        if self.num_partitions is not None and self.num_partitions < 1:
            raise PlanConfigurationError(f"num_partitions must be >= 1, got {self.num_partitions}")


@dataclass(frozen=True, eq=False, slots=True)
class Stage:
    """One logical stage of a pipeline.

    Attributes:
        stage_id: Unique identity; arena key during compilation
        name: Description shown in job names (empty string hides the stage)
        kind: SOURCE, TRANSFORM or GROUP
        record_type: Opaque descriptor of the records the stage emits
        fn_ref: Reference to the transform function workers resolve
        combine_fn_ref: Associative/commutative combine function; marks a
            grouped-aggregation stage usable as a combiner
        passthrough: Forwards the grouped representation unchanged
        source: Input of a SOURCE stage
        grouping: Shuffle options of a GROUP stage
    """

    stage_id: StageID
    name: str
    kind: StageKind
    record_type: str = "str"
    fn_ref: str | None = None
    combine_fn_ref: str | None = None
    passthrough: bool = False
    source: FileSource | None = None
    grouping: GroupingOptions | None = field(default=None)

    def __post_init__(self) -> None:
        if not self.stage_id:
            raise PlanConfigurationError("stage_id must be a non-empty string")
        if self.kind == StageKind.SOURCE and self.source is None:
            raise PlanConfigurationError(f"Source stage '{self.stage_id}' has no source")
        if self.kind != StageKind.SOURCE and self.source is not None:
            raise PlanConfigurationError(f"Only source stages carry a source, '{self.stage_id}' is {self.kind}")
        if self.combine_fn_ref is not None and self.kind != StageKind.TRANSFORM:
            raise PlanConfigurationError(f"Only transform stages can combine, '{self.stage_id}' is {self.kind}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Stage):
            return NotImplemented
        return self.stage_id == other.stage_id

    def __hash__(self) -> int:
        return hash(self.stage_id)

    @property
    def is_grouping(self) -> bool:
        return self.kind == StageKind.GROUP

    @property
    def is_combinable(self) -> bool:
        """Grouped-aggregation stage with a combine function."""
        return self.combine_fn_ref is not None


def source_stage(stage_id: str, source: FileSource, *, name: str | None = None) -> Stage:
    """Stage reading records from ``source``."""
    return Stage(
        stage_id=StageID(stage_id),
        name=str(source) if name is None else name,
        kind=StageKind.SOURCE,
        record_type=source.record_type,
        source=source,
    )


def transform_stage(
    stage_id: str,
    *,
    name: str | None = None,
    fn_ref: str | None = None,
    record_type: str = "str",
    passthrough: bool = False,
) -> Stage:
    """Stage applying a per-record function."""
    return Stage(
        stage_id=StageID(stage_id),
        name=stage_id if name is None else name,
        kind=StageKind.TRANSFORM,
        record_type=record_type,
        fn_ref=fn_ref,
        passthrough=passthrough,
    )


def combine_stage(
    stage_id: str,
    combine_fn_ref: str,
    *,
    name: str | None = None,
    record_type: str = "pair",
) -> Stage:
    """Grouped-aggregation stage whose function may also run as a combiner."""
    return Stage(
        stage_id=StageID(stage_id),
        name=stage_id if name is None else name,
        kind=StageKind.TRANSFORM,
        record_type=record_type,
        fn_ref=combine_fn_ref,
        combine_fn_ref=combine_fn_ref,
    )


def group_stage(
    stage_id: str,
    *,
    name: str | None = None,
    record_type: str = "grouped",
    num_partitions: int | None = None,
) -> Stage:
    """Grouping stage: the shuffle boundary between map and reduce."""
    return Stage(
        stage_id=StageID(stage_id),
        name=stage_id if name is None else name,
        kind=StageKind.GROUP,
        record_type=record_type,
        grouping=GroupingOptions(num_partitions=num_partitions),
    )
