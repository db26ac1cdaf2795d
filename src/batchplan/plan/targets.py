# src/batchplan/plan/targets.py
"""Targets (logical sinks) and output file naming schemes.

Two target kinds:
- FileTarget: addressed by a storage path. The job writes partial files into
  its working directory; the reconciler relocates them into ``path`` using
  the target's naming scheme.
- TableTarget: written by the engine directly into a named table. It only
  accepts its declared record types and is never relocated.

Every target carries a WriteMode applied by handle_existing() before the
pipeline runs.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from batchplan.contracts.enums import WriteMode
from batchplan.contracts.errors import OutputExistsError, PlanConfigurationError
from batchplan.contracts.protocols import FileNamingScheme, Storage
from batchplan.plan.stages import FileSource

if TYPE_CHECKING:
    from batchplan.plan.multiplex import OutputMultiplexer

logger = logging.getLogger(__name__)


def _sequential_name(storage: Storage, dest_dir: str, phase_letter: str) -> str:
    """``part-<m|r>-NNNNN`` numbered by how many entries dest_dir already holds."""
    existing = storage.list(posixpath.join(dest_dir, "*"))
    return f"part-{phase_letter}-{len(existing):05d}"


class SequentialFileNamingScheme:
    """Number output files by arrival order in the destination directory.

    Works for APPEND targets: new files continue the existing numbering.
    """

    name = "sequential"

    def map_output_name(self, storage: Storage, dest_dir: str) -> str:
        return _sequential_name(storage, dest_dir, "m")

    def reduce_output_name(self, storage: Storage, dest_dir: str, partition: int) -> str:
        return _sequential_name(storage, dest_dir, "r")


class PartitionFileNamingScheme:
    """Name reduce output files after their partition (``part-r-00007``)."""

    name = "partition"

    def map_output_name(self, storage: Storage, dest_dir: str) -> str:
        return _sequential_name(storage, dest_dir, "m")

    def reduce_output_name(self, storage: Storage, dest_dir: str, partition: int) -> str:
        return f"part-r-{partition:05d}"


NAMING_SCHEMES: dict[str, type[SequentialFileNamingScheme] | type[PartitionFileNamingScheme]] = {
    SequentialFileNamingScheme.name: SequentialFileNamingScheme,
    PartitionFileNamingScheme.name: PartitionFileNamingScheme,
}


def naming_scheme(name: str) -> FileNamingScheme:
    """Instantiate a naming scheme by its registered name.

    Raises:
        PlanConfigurationError: If no scheme has that name.
    """
    try:
        return NAMING_SCHEMES[name]()
    except KeyError:
        raise PlanConfigurationError(f"Unknown file naming scheme '{name}'. Known: {sorted(NAMING_SCHEMES)}") from None


@dataclass(frozen=True, eq=False)
class FileTarget:
    """Files under ``path`` in ``format``."""

    path: str
    format: str = "text"
    write_mode: WriteMode = WriteMode.DEFAULT
    naming: FileNamingScheme = field(default_factory=SequentialFileNamingScheme)

    @property
    def name(self) -> str:
        return f"{self.format}({self.path})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileTarget):
            return NotImplemented
        return self.path == other.path and self.format == other.format

    def __hash__(self) -> int:
        return hash((FileTarget, self.path, self.format))

    def __str__(self) -> str:
        return self.name

    def accept(self, multiplexer: OutputMultiplexer, record_type: str) -> bool:
        multiplexer.configure_path_output(self, record_type)
        return True

    def handle_existing(self, storage: Storage) -> None:
        """Apply write_mode to data already at ``path``.

        Raises:
            OutputExistsError: If data exists and write_mode is DEFAULT.
            OSError: If existing data cannot be removed for OVERWRITE.
        """
        if not storage.exists(self.path):
            logger.info("Will write output files to new path: %s", self.path)
            return

        if self.write_mode == WriteMode.DEFAULT:
            logger.error("Path %s already exists!", self.path)
            raise OutputExistsError(self.path)
        if self.write_mode == WriteMode.OVERWRITE:
            logger.info("Removing data at existing path: %s", self.path)
            storage.delete(self.path, recursive=True)
        else:
            logger.info("Adding output files to existing path: %s", self.path)

    def as_source(self, record_type: str) -> FileSource | None:
        """Source reading back what this target writes."""
        return FileSource(path=self.path, format=self.format, record_type=record_type)


@dataclass(frozen=True)
class TableTarget:
    """Rows written by the engine into ``table``."""

    table: str
    record_types: tuple[str, ...] = ("put", "delete")
    write_mode: WriteMode = WriteMode.DEFAULT

    @property
    def name(self) -> str:
        return f"table({self.table})"

    def __str__(self) -> str:
        return self.name

    def accept(self, multiplexer: OutputMultiplexer, record_type: str) -> bool:
        if record_type not in self.record_types:
            return False
        multiplexer.configure_named_output(self, record_type, format="table", options={"table": self.table})
        return True

    def handle_existing(self, storage: Storage) -> None:
        logger.info("%s ignores checks for existing outputs", self.name)

    def as_source(self, record_type: str) -> FileSource | None:
        return None
