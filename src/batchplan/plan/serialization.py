# src/batchplan/plan/serialization.py
"""Persisted job artifacts: per-phase plan files and the output manifest.

Plan files hold one phase's execution tree as canonical JSON. Worker
processes read them to rebuild the chain of transforms they run.

The output manifest (``outputs.json``) records which multiplex index
belongs to which path target, so reconciliation can be re-run against a
working directory after the driver process has gone away. It also carries
the plan hash of the job, which identifies the plan files it was compiled to.
"""

from __future__ import annotations

import posixpath
from collections.abc import Mapping, Sequence

from pydantic import BaseModel, Field

from batchplan.contracts.protocols import PathTarget, Storage
from batchplan.contracts.types import JobID
from batchplan.core.canonical import canonical_json
from batchplan.plan.nodes import NodeArena
from batchplan.plan.targets import FileTarget, naming_scheme

MANIFEST_FILE = "outputs.json"


class JsonPlanSerializer:
    """Writes execution trees as canonical JSON through a Storage."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def write(self, path: str, arena: NodeArena, roots: Sequence[int]) -> None:
        payload = {"roots": arena.to_forest(roots)}
        self._storage.write_bytes(path, canonical_json(payload).encode("utf-8"))


class ManifestOutput(BaseModel):
    """One relocatable output of a job."""

    model_config = {"frozen": True, "extra": "forbid"}

    path: str
    format: str
    naming: str


class OutputManifest(BaseModel):
    """Multiplex index -> path target mapping of one compiled job."""

    model_config = {"frozen": True, "extra": "forbid"}

    job_id: JobID
    map_only: bool
    output_dir: str
    outputs: dict[int, ManifestOutput] = Field(default_factory=dict)
    plan_hash: str | None = None

    @classmethod
    def from_targets(
        cls,
        *,
        job_id: JobID,
        map_only: bool,
        output_dir: str,
        multi_paths: Mapping[int, PathTarget],
        plan_hash: str | None = None,
    ) -> OutputManifest:
        return cls(
            job_id=job_id,
            map_only=map_only,
            output_dir=output_dir,
            plan_hash=plan_hash,
            outputs={
                index: ManifestOutput(path=target.path, format=target.format, naming=target.naming.name)
                for index, target in multi_paths.items()
            },
        )

    def targets(self) -> dict[int, PathTarget]:
        """Rebuild path targets for the reconciler.

        Raises:
            PlanConfigurationError: If a recorded naming scheme is unknown.
        """
        return {
            index: FileTarget(path=entry.path, format=entry.format, naming=naming_scheme(entry.naming))
            for index, entry in self.outputs.items()
        }

    def write(self, storage: Storage, working_dir: str) -> str:
        """Write the manifest into ``working_dir``. Returns its path."""
        path = posixpath.join(working_dir, MANIFEST_FILE)
        storage.write_bytes(path, canonical_json(self.model_dump(mode="json")).encode("utf-8"))
        return path

    @classmethod
    def load(cls, storage: Storage, working_dir: str) -> OutputManifest:
        """Read the manifest of a compiled job.

        Raises:
            OSError: If the manifest cannot be read.
            ValidationError: If its content is malformed.
        """
        return cls.model_validate_json(storage.read_bytes(posixpath.join(working_dir, MANIFEST_FILE)))
