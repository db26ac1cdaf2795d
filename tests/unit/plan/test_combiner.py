# tests/unit/plan/test_combiner.py
"""Tests for combiner detection.

A combiner is attached when a grouped-aggregation stage is followed only by
pass-through stages up to the sink; any other stage between the grouping
stage and the sink removes it.
"""

from __future__ import annotations

from batchplan.contracts import CombinerSpec
from batchplan.plan.combiner import detect_combiner, merge_combiners
from batchplan.plan.node_path import NodePath
from batchplan.plan.stages import combine_stage, group_stage, transform_stage

GROUP = group_stage("g", name="GroupBy")
SUM = combine_stage("sum", "agg:sum", name="SumCombine")
MAX = combine_stage("max", "agg:max", name="MaxCombine")
FILTER = transform_stage("filter", name="Filter", record_type="pair")
RELABEL = transform_stage("relabel", name="Relabel", record_type="pair", passthrough=True)


class TestDetectCombiner:
    """detect_combiner() is a pure function of one reduce-side path."""

    def test_aggregation_right_after_group(self) -> None:
        """GroupBy -> SumCombine: combiner attached."""
        spec = detect_combiner(NodePath.of(GROUP, SUM))
        assert spec == CombinerSpec(stage_id="sum", name="SumCombine", combine_fn_ref="agg:sum")

    def test_filter_after_aggregation_removes_combiner(self) -> None:
        """GroupBy -> SumCombine -> Filter: no combiner."""
        assert detect_combiner(NodePath.of(GROUP, SUM, FILTER)) is None

    def test_filter_before_aggregation_removes_combiner(self) -> None:
        """GroupBy -> Filter -> SumCombine: no combiner."""
        assert detect_combiner(NodePath.of(GROUP, FILTER, SUM)) is None

    def test_passthrough_stages_keep_combiner(self) -> None:
        """Pass-through stages on either side of the aggregation are allowed."""
        assert detect_combiner(NodePath.of(GROUP, RELABEL, SUM, RELABEL)) is not None

    def test_two_aggregations_remove_combiner(self) -> None:
        """Only one aggregation may sit between the group and the sink."""
        assert detect_combiner(NodePath.of(GROUP, SUM, MAX)) is None

    def test_group_only_path_has_no_combiner(self) -> None:
        assert detect_combiner(NodePath.of(GROUP)) is None
        assert detect_combiner(NodePath.of(GROUP, RELABEL)) is None

    def test_path_without_group_has_no_combiner(self) -> None:
        """A path that never reaches a grouping stage cannot be combined."""
        assert detect_combiner(NodePath.of(SUM)) is None

    def test_detection_is_repeatable(self) -> None:
        """Same path, same answer: nothing is remembered between calls."""
        path = NodePath.of(GROUP, SUM)
        assert detect_combiner(path) == detect_combiner(path)
        assert detect_combiner(NodePath.of(GROUP, SUM, FILTER)) is None
        assert detect_combiner(path) is not None


class TestMergeCombiners:
    def test_first_valid_candidate_wins(self) -> None:
        first = detect_combiner(NodePath.of(GROUP, SUM))
        second = detect_combiner(NodePath.of(GROUP, MAX))
        assert merge_combiners([None, first, second]) == first

    def test_no_candidates(self) -> None:
        assert merge_combiners([]) is None
        assert merge_combiners([None, None]) is None
