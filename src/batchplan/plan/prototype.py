# src/batchplan/plan/prototype.py
"""JobPrototype: compiles NodePaths sharing a shuffle boundary into one job.

A grouped prototype holds map-side paths that all end at its grouping
stage and, per target, reduce-side paths that all start at it. A map-only
prototype has no grouping stage and maps each target to the paths feeding
it directly.

Compilation (get_job) runs once per prototype:
1. Output nodes, one per target, each configured on the OutputMultiplexer
2. Reduce tree (grouped jobs): paths walked tail -> grouping stage
3. Combiner: detected per reduce path, merged, wired as its own phase
4. Map tree: paths walked tail -> source, under the shuffle node for
   grouped jobs or directly under the output nodes for map-only jobs
5. Inputs, reduce task count, job name, plan hash and output manifest

Each phase tree is serialized to the working directory as soon as it is
complete. All walks share one NodeArena keyed by stage id, so a stage
reached by several paths compiles to a single node.
"""

from __future__ import annotations

import posixpath
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from batchplan.contracts.enums import ExecutionPhase, InputFormat, NodeRole
from batchplan.contracts.errors import PlanConfigurationError, PlanInvariantError
from batchplan.contracts.job import JobDefinition
from batchplan.contracts.protocols import ExecutionEngine, PlanSerializer, Storage, Target
from batchplan.contracts.types import JobID
from batchplan.core.canonical import stable_hash
from batchplan.core.config import PlannerSettings, resolve_config
from batchplan.engine.controller import JobController
from batchplan.engine.hooks import InputDirectoriesHook, ReconcileHook
from batchplan.engine.reconcile import OutputReconciler
from batchplan.plan.combiner import detect_combiner, merge_combiners
from batchplan.plan.job_name import JobNameBuilder
from batchplan.plan.multiplex import OutputMultiplexer
from batchplan.plan.node_path import NodePath
from batchplan.plan.nodes import ExecutionNode, NodeArena, walk_path
from batchplan.plan.serialization import JsonPlanSerializer, OutputManifest
from batchplan.plan.stages import Stage

slog = structlog.get_logger(__name__)

OUTPUT_SUBDIR = "output"


@dataclass(frozen=True)
class RuntimeContext:
    """Collaborators a compiled job is bound to.

    Attributes:
        engine: Execution engine the job is submitted to
        storage: Storage holding plan files, inputs and outputs
        serializer: Writes phase plan files (default: canonical JSON via storage)
        bundle: Reference to the code bundle workers load stage functions from
    """

    engine: ExecutionEngine
    storage: Storage
    serializer: PlanSerializer | None = None
    bundle: str | None = None

    @property
    def plan_serializer(self) -> PlanSerializer:
        if self.serializer is not None:
            return self.serializer
        return JsonPlanSerializer(self.storage)


class JobPrototype:
    """One physical job before compilation. Use map_reduce() or map_only()."""

    def __init__(
        self,
        job_id: int,
        working_dir: str,
        *,
        group: Stage | None = None,
        map_paths: Sequence[NodePath] = (),
    ) -> None:
        self._job_id = JobID(job_id)
        self._working_dir = working_dir
        self._group = group
        self._map_paths: list[NodePath] = list(map_paths)
        self._target_paths: dict[Target, list[NodePath]] = {}
        self._dependencies: set[JobPrototype] = set()
        self._job: JobController | None = None

    @classmethod
    def map_reduce(
        cls,
        job_id: int,
        group: Stage,
        map_paths: Sequence[NodePath],
        working_dir: str,
    ) -> JobPrototype:
        """Prototype of a job that shuffles on ``group``.

        Raises:
            PlanConfigurationError: If ``group`` is not a grouping stage, no map
                path is given, or a map path does not end at ``group``.
        """
        if not group.is_grouping:
            raise PlanConfigurationError(f"Stage '{group.stage_id}' is not a grouping stage")
        if not map_paths:
            raise PlanConfigurationError(f"Grouped job {job_id} needs at least one map-side path")
        for path in map_paths:
            if path.tail != group:
                raise PlanConfigurationError(f"Map-side path {path!r} does not end at grouping stage '{group.stage_id}'")
        return cls(job_id, working_dir, group=group, map_paths=map_paths)

    @classmethod
    def map_only(
        cls,
        job_id: int,
        targets_to_paths: Mapping[Target, Sequence[NodePath]],
        working_dir: str,
    ) -> JobPrototype:
        """Prototype of a job without a shuffle.

        Raises:
            PlanConfigurationError: If a path contains a grouping stage.
        """
        prototype = cls(job_id, working_dir)
        for target, paths in targets_to_paths.items():
            for path in paths:
                grouping = [stage.stage_id for stage in path if stage.is_grouping]
                if grouping:
                    raise PlanConfigurationError(f"Map-only job {job_id} path {path!r} contains grouping stage(s) {grouping}")
            prototype._target_paths.setdefault(target, []).extend(paths)
        return prototype

    @property
    def job_id(self) -> JobID:
        return self._job_id

    @property
    def is_map_only(self) -> bool:
        return self._group is None

    @property
    def group(self) -> Stage | None:
        return self._group

    @property
    def working_dir(self) -> str:
        return self._working_dir

    @property
    def targets(self) -> list[Target]:
        """Targets this job writes, ordered by name."""
        return sorted(self._target_paths, key=lambda t: t.name)

    @property
    def dependencies(self) -> list[JobPrototype]:
        """Prototypes that must succeed first, ordered by job id."""
        return sorted(self._dependencies, key=lambda p: p.job_id)

    def add_reduce_paths(self, target: Target, paths: Sequence[NodePath]) -> None:
        """Register reduce-side paths producing data for ``target``.

        Raises:
            PlanInvariantError: If this is a map-only prototype or it is already built.
            PlanConfigurationError: If a path does not start at the grouping stage.
        """
        if self._group is None:
            raise PlanInvariantError(f"Job {self._job_id} is map-only and has no reduce side")
        if self._job is not None:
            raise PlanInvariantError(f"Job {self._job_id} is already built")
        for path in paths:
            if path.head != self._group:
                raise PlanConfigurationError(
                    f"Reduce-side path {path!r} does not start at grouping stage '{self._group.stage_id}'"
                )
        self._target_paths.setdefault(target, []).extend(paths)

    def add_dependency(self, dependency: JobPrototype) -> None:
        """Require ``dependency`` to succeed before this job runs.

        Raises:
            PlanInvariantError: If this job is already built.
            PlanConfigurationError: If a prototype is made to depend on itself.
        """
        if self._job is not None:
            raise PlanInvariantError(f"Cannot add a dependency to job {self._job_id} after it was built")
        if dependency is self:
            raise PlanConfigurationError(f"Job {self._job_id} cannot depend on itself")
        self._dependencies.add(dependency)

    def get_job(self, runtime: RuntimeContext, settings: PlannerSettings, pipeline_name: str) -> JobController:
        """Compile this prototype (once) and return its controller.

        Dependency prototypes are compiled too and their controllers added
        as dependencies, in job id order. Later calls return the same
        controller without recompiling.

        Raises:
            PlanConfigurationError: If the job has no outputs or cannot be compiled.
        """
        if self._job is None:
            job = self._build(runtime, settings, pipeline_name)
            for dependency in self.dependencies:
                job.add_dependency(dependency.get_job(runtime, settings, pipeline_name))
            self._job = job
        return self._job

    def _build(self, runtime: RuntimeContext, settings: PlannerSettings, pipeline_name: str) -> JobController:
        if not self._target_paths:
            raise PlanConfigurationError(f"Job {self._job_id} has no outputs configured")

        output_dir = posixpath.join(self._working_dir, OUTPUT_SUBDIR)
        definition = JobDefinition(
            job_id=self._job_id,
            working_dir=self._working_dir,
            output_dir=output_dir,
            map_only=self.is_map_only,
            bundle=runtime.bundle,
        )
        storage = runtime.storage
        serializer = runtime.plan_serializer
        storage.mkdirs(self._working_dir)

        arena = NodeArena()
        phase_trees: dict[str, list[dict[str, Any]]] = {}
        multiplexer = OutputMultiplexer(definition)
        output_nodes: dict[Target, int] = {}
        for target in self.targets:
            paths = self._target_paths[target]
            if not paths:
                raise PlanConfigurationError(f"Target {target.name} of job {self._job_id} has no paths")
            node = ExecutionNode.output(target.name, paths[0].tail.record_type)
            output_nodes[target] = arena.add(node)
            multiplexer.configure_node(node, target)

        names = JobNameBuilder(pipeline_name)
        if self._group is None:
            map_roots = self._walk_to_sources(arena, output_nodes)
            self._write_phase(serializer, definition, phase_trees, ExecutionPhase.MAP, arena, map_roots)
            names.visit(arena, map_roots)
        else:
            group = self._group
            group_node = arena.node_for_stage(group)
            reduce_paths: list[NodePath] = []
            for target in self.targets:
                for path in self._target_paths[target]:
                    top = walk_path(arena, path.stages[:0:-1], output_nodes[target])
                    arena.add_child(group_node, top)
                    reduce_paths.append(path)
            self._write_phase(serializer, definition, phase_trees, ExecutionPhase.REDUCE, arena, [group_node])

            shuffle_node = arena.add(ExecutionNode.shuffle(group))
            combiner = merge_combiners(detect_combiner(path) for path in reduce_paths)
            if combiner is not None:
                combine_root = arena.add(ExecutionNode.grouped_input(group))
                combine_node = arena.add(ExecutionNode.combine(combiner, group))
                arena.add_child(combine_root, combine_node)
                arena.add_child(combine_node, shuffle_node)
                definition.combiner = combiner
                self._write_phase(serializer, definition, phase_trees, ExecutionPhase.COMBINE, arena, [combine_root])

            tops = [walk_path(arena, path.stages[-2::-1], shuffle_node) for path in self._map_paths]
            map_roots = self._inputs(arena, tops)
            self._write_phase(serializer, definition, phase_trees, ExecutionPhase.MAP, arena, map_roots)
            names.visit(arena, map_roots)
            names.visit(arena, [group_node])

            partitions = group.grouping.num_partitions if group.grouping is not None else None
            definition.num_reduce_tasks = partitions or settings.default_reduce_tasks

        self._configure_inputs(definition, arena, map_roots)
        definition.name = names.build()
        definition.config = resolve_config(settings)
        definition.plan_hash = stable_hash(phase_trees)

        OutputManifest.from_targets(
            job_id=self._job_id,
            map_only=definition.map_only,
            output_dir=output_dir,
            multi_paths=multiplexer.multi_paths,
            plan_hash=definition.plan_hash,
        ).write(storage, self._working_dir)

        slog.info(
            "job_compiled",
            job_id=self._job_id,
            job_name=definition.name,
            map_only=definition.map_only,
            outputs=len(definition.outputs),
            inputs=len(definition.inputs),
            combiner=definition.combiner.name if definition.combiner else None,
            plan_hash=definition.plan_hash,
        )

        reconciler = OutputReconciler(
            storage,
            output_dir,
            multiplexer.multi_paths,
            map_only=definition.map_only,
            preserved_extensions=settings.preserved_extensions,
        )
        return JobController(
            definition,
            runtime.engine,
            prepare_hook=InputDirectoriesHook(storage, definition, settings),
            completion_hook=ReconcileHook(reconciler, settings),
            log_progress=settings.log_job_progress,
        )

    def _walk_to_sources(self, arena: NodeArena, output_nodes: dict[Target, int]) -> list[int]:
        tops = [
            walk_path(arena, path.descending(), output_nodes[target])
            for target in self.targets
            for path in self._target_paths[target]
        ]
        return self._inputs(arena, tops)

    def _inputs(self, arena: NodeArena, tops: list[int]) -> list[int]:
        """Distinct input nodes at the tops of the walks, ordered by stage id.

        Raises:
            PlanConfigurationError: If a walk did not end at a source stage.
        """
        inputs: dict[str, int] = {}
        for top in tops:
            node = arena[top]
            if node.role != NodeRole.INPUT or node.source is None or node.stage_id is None:
                raise PlanConfigurationError(
                    f"Job {self._job_id}: path does not start at a source (found {node.role} '{node.name}')"
                )
            inputs[node.stage_id] = top
        return [inputs[stage_id] for stage_id in sorted(inputs)]

    def _configure_inputs(self, definition: JobDefinition, arena: NodeArena, roots: list[int]) -> None:
        """One input reads PLAIN (index -1); several are TAGGED 0..n-1 in root order."""
        sources = [source for source in (arena[root].source for root in roots) if source is not None]
        if len(sources) == 1:
            definition.input_format = InputFormat.PLAIN
            definition.inputs = [sources[0].configure(-1)]
        else:
            definition.input_format = InputFormat.TAGGED
            definition.inputs = [source.configure(index) for index, source in enumerate(sources)]

    def _write_phase(
        self,
        serializer: PlanSerializer,
        definition: JobDefinition,
        phase_trees: dict[str, list[dict[str, Any]]],
        phase: ExecutionPhase,
        arena: NodeArena,
        roots: list[int],
    ) -> None:
        path = posixpath.join(self._working_dir, phase.value)
        serializer.write(path, arena, roots)
        phase_trees[phase.value] = arena.to_forest(roots)
        definition.phase_files[phase] = path

    def __repr__(self) -> str:
        kind = "map-only" if self._group is None else f"grouped on {self._group.stage_id}"
        return f"JobPrototype({self._job_id}, {kind})"
