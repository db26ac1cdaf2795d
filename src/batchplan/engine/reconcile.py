# src/batchplan/engine/reconcile.py
"""Output reconciliation: move a job's partial files to their targets.

A job writes every multiplexed output into its output directory as
``partition-<index>-*`` partial files. After the job ends, each path target
with partial files gets them relocated into its own directory, under names
chosen by the target's naming scheme:

- map-only jobs: ``naming.map_output_name(storage, dest_dir)``
- grouped jobs: ``naming.reduce_output_name(storage, dest_dir, partition)``
  where ``partition`` is parsed from the ``-r-NNNNN`` suffix of the partial
  file name

Relocation renames when source and destination share a storage location
and copies then deletes otherwise. Reconciliation is best effort: a storage
error while listing, naming or moving files becomes a warning and the
remaining files are still moved. Files already moved are not rolled back.
Only a partial file name without a partition number aborts it.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Mapping, Sequence

import structlog

from batchplan.contracts.errors import PlanConfigurationError
from batchplan.contracts.job import partial_file_glob
from batchplan.contracts.protocols import PathTarget, Storage

logger = logging.getLogger(__name__)
slog = structlog.get_logger(__name__)

PARTITION_PATTERN = re.compile(r"-r-(\d{5})")


def extract_partition_number(name: str) -> int:
    """Reduce partition a partial output file was written by.

    Example:
        >>> extract_partition_number("partition-0-r-00007")
        7

    Raises:
        PlanConfigurationError: If the name has no ``-r-NNNNN`` suffix.
    """
    match = PARTITION_PATTERN.search(name)
    if match is None:
        raise PlanConfigurationError(f"Reduce output name '{name}' does not contain a -r-NNNNN partition number")
    return int(match.group(1))


class OutputReconciler:
    """Relocates the partial files of one job's path targets."""

    def __init__(
        self,
        storage: Storage,
        output_dir: str,
        multi_paths: Mapping[int, PathTarget],
        *,
        map_only: bool,
        preserved_extensions: Sequence[str] = (".avro",),
    ) -> None:
        self._storage = storage
        self._output_dir = output_dir
        self._multi_paths = dict(multi_paths)
        self._map_only = map_only
        self._preserved_extensions = tuple(preserved_extensions)

    def reconcile(self) -> list[str]:
        """Relocate every partial file to its target.

        Returns:
            Warnings for sinks whose partial files could not be listed, and
            for files (or target directories) that could not be named or
            relocated. Empty when everything was moved.

        Raises:
            PlanConfigurationError: If a reduce output file has no partition number.
        """
        warnings: list[str] = []
        for index in sorted(self._multi_paths):
            target = self._multi_paths[index]
            pattern = partial_file_glob(self._output_dir, index)
            try:
                sources = self._storage.list(pattern)
            except OSError as e:
                logger.warning("Cannot list partial files %s", pattern, exc_info=True)
                warnings.append(f"Could not list partial files of {target.name}: {e}")
                continue
            if not sources:
                logger.debug("No partial files for %s", target.name)
                continue
            warnings.extend(self._relocate_all(target, sources))
        return warnings

    def _relocate_all(self, target: PathTarget, sources: list[str]) -> list[str]:
        dest_dir = target.path
        try:
            self._storage.mkdirs(dest_dir)
        except OSError as e:
            logger.warning("Cannot create output directory %s", dest_dir, exc_info=True)
            return [f"Could not create {dest_dir} for {len(sources)} file(s) of {target.name}: {e}"]

        warnings: list[str] = []
        for src in sources:
            # An unparseable partial file name is a PlanConfigurationError and propagates
            partition = None if self._map_only else extract_partition_number(posixpath.basename(src))
            try:
                dest = posixpath.join(dest_dir, self._final_name(target, src, dest_dir, partition))
            except OSError as e:
                logger.warning("Cannot name %s in %s", src, dest_dir, exc_info=True)
                warnings.append(f"Could not choose a name for {src} in {dest_dir}: {e}")
                continue
            try:
                self._relocate(src, dest, dest_dir)
            except OSError as e:
                logger.warning("Failed to relocate %s to %s", src, dest, exc_info=True)
                warnings.append(f"Could not relocate {src} to {dest}: {e}")
                continue
            slog.info("output_relocated", source=src, destination=dest, target=target.name)
        return warnings

    def _final_name(self, target: PathTarget, src: str, dest_dir: str, partition: int | None) -> str:
        basename = posixpath.basename(src)
        if partition is None:
            name = target.naming.map_output_name(self._storage, dest_dir)
        else:
            name = target.naming.reduce_output_name(self._storage, dest_dir, partition)
        for ext in self._preserved_extensions:
            if basename.endswith(ext):
                return name + ext
        return name

    def _relocate(self, src: str, dest: str, dest_dir: str) -> None:
        if self._storage.is_same_location(src, dest_dir):
            self._storage.rename(src, dest)
        else:
            self._storage.copy(src, dest)
            self._storage.delete(src)
