# tests/unit/plan/test_serialization.py
"""Tests for plan files and the output manifest."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from batchplan.contracts import JobID, OutputName, PlanConfigurationError
from batchplan.plan.nodes import ExecutionNode, NodeArena, walk_path
from batchplan.plan.serialization import MANIFEST_FILE, JsonPlanSerializer, ManifestOutput, OutputManifest
from batchplan.plan.stages import FileSource, source_stage, transform_stage
from batchplan.plan.targets import FileTarget, PartitionFileNamingScheme, SequentialFileNamingScheme
from batchplan.testing import MemoryStorage


def _arena() -> tuple[NodeArena, int]:
    arena = NodeArena()
    out = arena.add(ExecutionNode.output("text(/out)", "str"))
    arena[out].output_name = OutputName("partition-0")
    top = walk_path(arena, [transform_stage("t", name="Upper"), source_stage("s", FileSource("/in"))], out)
    return arena, top


class TestJsonPlanSerializer:
    def test_writes_forest_under_roots(self, storage: MemoryStorage) -> None:
        arena, top = _arena()
        JsonPlanSerializer(storage).write("/work/map", arena, [top])

        payload = json.loads(storage.read_bytes("/work/map"))
        (root,) = payload["roots"]
        assert root["role"] == "input"
        assert root["children"][0]["name"] == "Upper"
        assert root["children"][0]["children"][0]["output_name"] == "partition-0"

    def test_output_is_canonical(self, storage: MemoryStorage) -> None:
        """Same tree, same bytes: no whitespace and sorted keys."""
        first, top = _arena()
        second, top2 = _arena()
        JsonPlanSerializer(storage).write("/a", first, [top])
        JsonPlanSerializer(storage).write("/b", second, [top2])

        data = storage.read_bytes("/a")
        assert data == storage.read_bytes("/b")
        assert b" " not in data
        assert data.startswith(b'{"roots":[{"children"')


class TestOutputManifest:
    def test_from_targets_records_path_format_and_naming(self) -> None:
        manifest = OutputManifest.from_targets(
            job_id=JobID(4),
            map_only=False,
            output_dir="/work/job-4/output",
            multi_paths={
                0: FileTarget("/out/a"),
                2: FileTarget("/out/b", format="avro", naming=PartitionFileNamingScheme()),
            },
        )
        assert manifest.outputs == {
            0: ManifestOutput(path="/out/a", format="text", naming="sequential"),
            2: ManifestOutput(path="/out/b", format="avro", naming="partition"),
        }

    def test_write_then_load(self, storage: MemoryStorage) -> None:
        manifest = OutputManifest.from_targets(
            job_id=JobID(4),
            map_only=True,
            output_dir="/work/job-4/output",
            multi_paths={1: FileTarget("/out/a")},
            plan_hash="9f2c",
        )
        path = manifest.write(storage, "/work/job-4")

        assert path == f"/work/job-4/{MANIFEST_FILE}"
        assert OutputManifest.load(storage, "/work/job-4") == manifest

    def test_targets_rebuilds_naming_schemes(self) -> None:
        manifest = OutputManifest(
            job_id=JobID(1),
            map_only=False,
            output_dir="/w/output",
            outputs={0: ManifestOutput(path="/out", format="text", naming="partition")},
        )
        targets = manifest.targets()
        assert targets[0] == FileTarget("/out")
        assert isinstance(targets[0].naming, PartitionFileNamingScheme)
        assert not isinstance(targets[0].naming, SequentialFileNamingScheme)

    def test_unknown_naming_scheme_on_rebuild(self) -> None:
        manifest = OutputManifest(
            job_id=JobID(1),
            map_only=False,
            output_dir="/w/output",
            outputs={0: ManifestOutput(path="/out", format="text", naming="mystery")},
        )
        with pytest.raises(PlanConfigurationError, match="mystery"):
            manifest.targets()

    def test_load_missing_manifest(self, storage: MemoryStorage) -> None:
        with pytest.raises(FileNotFoundError):
            OutputManifest.load(storage, "/nowhere")

    def test_load_rejects_unknown_fields(self, storage: MemoryStorage) -> None:
        storage.write_bytes(
            f"/w/{MANIFEST_FILE}",
            b'{"job_id":1,"map_only":true,"output_dir":"/w/output","outputs":{},"extra":1}',
        )
        with pytest.raises(ValidationError):
            OutputManifest.load(storage, "/w")

    def test_manifest_is_frozen(self) -> None:
        manifest = OutputManifest(job_id=JobID(1), map_only=True, output_dir="/w/output")
        with pytest.raises(ValidationError):
            manifest.map_only = False  # type: ignore[misc]
