# src/batchplan/plan/combiner.py
"""Combiner detection.

A combiner pre-aggregates map output before the shuffle. It is legal for a
reduce-side path only when the path, between its tail and the grouping
stage, holds exactly one combinable grouped-aggregation stage and every
other stage is a pass-through of the grouped representation. Detection is
a pure function of one path; a job merges the per-path results.
"""

from __future__ import annotations

from collections.abc import Iterable

from batchplan.contracts.job import CombinerSpec
from batchplan.plan.node_path import NodePath


def detect_combiner(path: NodePath) -> CombinerSpec | None:
    """Combiner usable for ``path``, or None.

    Walks from the tail toward the source and stops at the first grouping
    stage. Paths that never reach a grouping stage have no combiner.
    """
    candidate: CombinerSpec | None = None
    for stage in path.descending():
        if stage.is_grouping:
            return candidate
        if stage.combine_fn_ref is not None and candidate is None:
            candidate = CombinerSpec(stage_id=stage.stage_id, name=stage.name, combine_fn_ref=stage.combine_fn_ref)
            continue
        if not stage.passthrough:
            return None
    return None


def merge_combiners(candidates: Iterable[CombinerSpec | None]) -> CombinerSpec | None:
    """First valid candidate wins; the job runs with at most one combiner."""
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
