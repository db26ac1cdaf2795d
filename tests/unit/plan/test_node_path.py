# tests/unit/plan/test_node_path.py
"""Tests for NodePath and the stage types it is built from."""

from __future__ import annotations

import pytest

from batchplan.contracts import InputSpec, PlanConfigurationError, StageKind
from batchplan.plan.node_path import NodePath
from batchplan.plan.stages import (
    FileSource,
    GroupingOptions,
    Stage,
    combine_stage,
    group_stage,
    source_stage,
    transform_stage,
)


@pytest.fixture
def chain() -> tuple[Stage, Stage, Stage]:
    return (
        source_stage("s", FileSource("/in/words")),
        transform_stage("t", name="split"),
        group_stage("g", name="by word"),
    )


class TestNodePath:
    """NodePath is an immutable source-first sequence of stages."""

    def test_head_and_tail(self, chain: tuple[Stage, Stage, Stage]) -> None:
        """head is the source end, tail the sink end."""
        path = NodePath.of(*chain)
        assert path.head.stage_id == "s"
        assert path.tail.stage_id == "g"

    def test_descending_walks_tail_to_source(self, chain: tuple[Stage, Stage, Stage]) -> None:
        """descending() yields stages from the tail back toward the source."""
        path = NodePath.of(*chain)
        assert [s.stage_id for s in path.descending()] == ["g", "t", "s"]
        assert [s.stage_id for s in path] == ["s", "t", "g"]

    def test_push_returns_new_path(self, chain: tuple[Stage, Stage, Stage]) -> None:
        """push() prepends a stage without mutating the original path."""
        source, split, group = chain
        path = NodePath.of(split, group)
        pushed = path.push(source)

        assert len(path) == 2
        assert len(pushed) == 3
        assert pushed.head == source
        assert pushed.stages[1:] == path.stages

    def test_empty_path_rejected(self) -> None:
        with pytest.raises(PlanConfigurationError, match="at least one stage"):
            NodePath([])

    def test_equal_paths_hash_equal(self, chain: tuple[Stage, Stage, Stage]) -> None:
        assert NodePath.of(*chain) == NodePath(list(chain))
        assert hash(NodePath.of(*chain)) == hash(NodePath(list(chain)))
        assert NodePath.of(*chain) != NodePath.of(*chain[:2])

    def test_contains(self, chain: tuple[Stage, Stage, Stage]) -> None:
        path = NodePath.of(*chain[:2])
        assert chain[0] in path
        assert chain[2] not in path

    def test_repr_lists_stage_ids(self, chain: tuple[Stage, Stage, Stage]) -> None:
        assert repr(NodePath.of(*chain)) == "NodePath(s -> t -> g)"


class TestStage:
    """Stages compare by stage_id and validate their kind-specific fields."""

    def test_identity_is_stage_id(self) -> None:
        """Two stages with the same id are the same stage, whatever their names."""
        a = transform_stage("x", name="first")
        b = transform_stage("x", name="second")
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_source_stage_named_after_source(self) -> None:
        stage = source_stage("s", FileSource("/in/a", format="avro"))
        assert stage.kind == StageKind.SOURCE
        assert stage.name == "avro(/in/a)"

    def test_source_without_source_rejected(self) -> None:
        with pytest.raises(PlanConfigurationError, match="has no source"):
            Stage(stage_id="s", name="s", kind=StageKind.SOURCE)

    def test_transform_with_source_rejected(self) -> None:
        with pytest.raises(PlanConfigurationError, match="Only source stages"):
            Stage(stage_id="t", name="t", kind=StageKind.TRANSFORM, source=FileSource("/in"))

    def test_group_cannot_combine(self) -> None:
        with pytest.raises(PlanConfigurationError, match="Only transform stages can combine"):
            Stage(stage_id="g", name="g", kind=StageKind.GROUP, combine_fn_ref="fn")

    def test_empty_stage_id_rejected(self) -> None:
        with pytest.raises(PlanConfigurationError, match="non-empty"):
            transform_stage("")

    def test_combine_stage_is_combinable(self) -> None:
        stage = combine_stage("c", "agg:sum", name="sum")
        assert stage.is_combinable
        assert stage.fn_ref == "agg:sum"
        assert not transform_stage("t").is_combinable

    def test_group_stage_options(self) -> None:
        stage = group_stage("g", num_partitions=4)
        assert stage.is_grouping
        assert stage.grouping == GroupingOptions(num_partitions=4)

    def test_num_partitions_must_be_positive(self) -> None:
        with pytest.raises(PlanConfigurationError, match="num_partitions"):
            group_stage("g", num_partitions=0)


class TestFileSource:
    def test_configure_builds_input_spec(self) -> None:
        source = FileSource("/in/a", format="seq")
        assert source.configure(-1) == InputSpec(index=-1, path="/in/a", format="seq")
        assert source.configure(2).index == 2
