# src/batchplan/plan/__init__.py
"""Logical pipeline types and the job compiler.

Example:
    source = source_stage("s1", FileSource("/in/words"))
    words = transform_stage("t1", name="split", fn_ref="wc:split")
    group = group_stage("g1", name="by word")
    total = combine_stage("c1", "wc:sum", name="sum")

    job = JobPrototype.map_reduce(1, group, [NodePath.of(source, words, group)], "/tmp/job-1")
    job.add_reduce_paths(FileTarget("/out/counts"), [NodePath.of(group, total)])
    controller = job.get_job(runtime, settings, "wordcount")
"""

from batchplan.plan.combiner import detect_combiner, merge_combiners
from batchplan.plan.job_name import JobNameBuilder
from batchplan.plan.multiplex import OutputMultiplexer
from batchplan.plan.node_path import NodePath
from batchplan.plan.nodes import ExecutionNode, NodeArena, walk_path
from batchplan.plan.prototype import JobPrototype, RuntimeContext
from batchplan.plan.serialization import JsonPlanSerializer, OutputManifest
from batchplan.plan.stages import (
    FileSource,
    GroupingOptions,
    Stage,
    combine_stage,
    group_stage,
    source_stage,
    transform_stage,
)
from batchplan.plan.targets import (
    FileTarget,
    PartitionFileNamingScheme,
    SequentialFileNamingScheme,
    TableTarget,
    naming_scheme,
)

__all__ = [
    "ExecutionNode",
    "FileSource",
    "FileTarget",
    "GroupingOptions",
    "JobNameBuilder",
    "JobPrototype",
    "JsonPlanSerializer",
    "NodeArena",
    "NodePath",
    "OutputManifest",
    "OutputMultiplexer",
    "PartitionFileNamingScheme",
    "RuntimeContext",
    "SequentialFileNamingScheme",
    "Stage",
    "TableTarget",
    "combine_stage",
    "detect_combiner",
    "group_stage",
    "merge_combiners",
    "naming_scheme",
    "source_stage",
    "transform_stage",
    "walk_path",
]
