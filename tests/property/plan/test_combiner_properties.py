# tests/property/plan/test_combiner_properties.py
"""Property tests for combiner detection and compilation.

Properties:
- detect_combiner() returns a combiner iff the reduce side holds exactly one
  combinable stage and every other stage passes records through
- merge_combiners() returns the first valid candidate
- A compiled grouped job has a COMBINE phase iff some reduce path qualifies,
  and never more than one combine node
"""

from __future__ import annotations

import json

from hypothesis import given, settings
from hypothesis import strategies as st

from batchplan.contracts import CombinerSpec, ExecutionPhase, StageID
from batchplan.core.config import PlannerSettings
from batchplan.plan.combiner import detect_combiner, merge_combiners
from batchplan.plan.node_path import NodePath
from batchplan.plan.prototype import JobPrototype
from batchplan.plan.stages import FileSource, Stage, combine_stage, group_stage, source_stage, transform_stage
from batchplan.plan.targets import FileTarget
from batchplan.testing import MemoryStorage, make_runtime

GROUP = group_stage("g", name="GroupBy")
SOURCE = source_stage("src", FileSource("/in"))

# kind -> (combinable, passthrough)
STAGE_KINDS = {
    "sum": (True, False),
    "filter": (False, False),
    "relabel": (False, True),
}


def _make_stage(kind: str, position: int, path_id: int) -> Stage:
    stage_id = f"p{path_id}-{kind}-{position}"
    if kind == "sum":
        return combine_stage(stage_id, f"agg:{stage_id}", name=stage_id)
    return transform_stage(stage_id, name=stage_id, record_type="pair", passthrough=kind == "relabel")


reduce_kinds = st.lists(st.sampled_from(sorted(STAGE_KINDS)), min_size=1, max_size=5)


def _expected(kinds: list[str]) -> int | None:
    """Position of the expected combiner stage, or None."""
    combinable = [i for i, k in enumerate(kinds) if STAGE_KINDS[k][0]]
    others_pass = all(STAGE_KINDS[k][1] for k in kinds if not STAGE_KINDS[k][0])
    if len(combinable) == 1 and others_pass:
        return combinable[0]
    return None


class TestCombinerProperties:
    @given(kinds=reduce_kinds)
    def test_detection_matches_model(self, kinds: list[str]) -> None:
        stages = [_make_stage(kind, i, 0) for i, kind in enumerate(kinds)]
        spec = detect_combiner(NodePath.of(GROUP, *stages))

        position = _expected(kinds)
        if position is None:
            assert spec is None
        else:
            assert spec is not None
            assert spec.stage_id == stages[position].stage_id

    @given(kinds=reduce_kinds)
    def test_paths_without_grouping_stage_have_no_combiner(self, kinds: list[str]) -> None:
        stages = [_make_stage(kind, i, 0) for i, kind in enumerate(kinds)]
        assert detect_combiner(NodePath.of(SOURCE, *stages)) is None

    @given(st.lists(st.none() | st.integers(min_value=0, max_value=9), max_size=6))
    def test_merge_takes_first_candidate(self, picks: list[int | None]) -> None:
        candidates = [
            None if pick is None else CombinerSpec(stage_id=StageID(f"s{pick}"), name="", combine_fn_ref=f"f{pick}")
            for pick in picks
        ]
        merged = merge_combiners(candidates)
        present = [c for c in candidates if c is not None]
        assert merged == (present[0] if present else None)

    @given(paths=st.lists(reduce_kinds, min_size=1, max_size=3))
    @settings(max_examples=50)
    def test_compiled_job_has_at_most_one_combiner(self, paths: list[list[str]]) -> None:
        storage = MemoryStorage()
        runtime = make_runtime(storage)
        prototype = JobPrototype.map_reduce(1, GROUP, [NodePath.of(SOURCE, GROUP)], "/work/job-1")
        for path_id, kinds in enumerate(paths):
            stages = [_make_stage(kind, i, path_id) for i, kind in enumerate(kinds)]
            prototype.add_reduce_paths(FileTarget(f"/out/{path_id}"), [NodePath.of(GROUP, *stages)])

        definition = prototype.get_job(runtime, PlannerSettings(), "p").definition

        qualifying = [path_id for path_id, kinds in enumerate(paths) if _expected(kinds) is not None]
        if not qualifying:
            assert definition.combiner is None
            assert ExecutionPhase.COMBINE not in definition.phase_files
            return

        # targets compile in name order, which is path order here
        first = paths[qualifying[0]]
        position = _expected(first)
        assert position is not None
        assert definition.combiner is not None
        assert definition.combiner.stage_id == f"p{qualifying[0]}-{first[position]}-{position}"
        roots = json.loads(storage.read_bytes(definition.phase_files[ExecutionPhase.COMBINE]))["roots"]
        (root,) = roots
        assert [child["role"] for child in root["children"]] == ["combine"]
