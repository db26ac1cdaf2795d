# src/batchplan/storage/local.py
"""Local filesystem Storage.

Paths are plain filesystem paths. Two paths share a location when they live
on the same device, which is when os.rename() between them can succeed.
"""

from __future__ import annotations

import glob
import os
import shutil
from pathlib import Path


class LocalStorage:
    """Storage backed by the local filesystem."""

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def mkdirs(self, path: str) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def list(self, pattern: str) -> list[str]:
        return sorted(glob.glob(pattern))

    def rename(self, src: str, dst: str) -> None:
        os.rename(src, dst)

    def copy(self, src: str, dst: str) -> None:
        if os.path.isdir(src):
            shutil.copytree(src, dst)
        else:
            shutil.copy2(src, dst)

    def delete(self, path: str, recursive: bool = False) -> None:
        """Delete a file, or a directory when ``recursive`` is set.

        Raises:
            IsADirectoryError: If ``path`` is a directory and recursive is False.
            FileNotFoundError: If nothing exists at ``path``.
        """
        if os.path.isdir(path) and not os.path.islink(path):
            if not recursive:
                raise IsADirectoryError(f"{path} is a directory; pass recursive=True to delete it")
            shutil.rmtree(path)
        else:
            os.remove(path)

    def is_same_location(self, a: str, b: str) -> bool:
        return _device_of(a) == _device_of(b)

    def write_bytes(self, path: str, data: bytes) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def read_bytes(self, path: str) -> bytes:
        return Path(path).read_bytes()


def _device_of(path: str) -> int:
    """Device of ``path``, or of its nearest existing ancestor."""
    current = Path(path).absolute()
    while not current.exists():
        current = current.parent
    return current.stat().st_dev
