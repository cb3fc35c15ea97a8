"""Local disk filesystem backend.

This module maps store-relative paths onto a local root directory
and translates OS failures into storage errors.
"""

from __future__ import annotations

import errno
import os
from pathlib import Path
import stat

from core.errors import StorageError
from core.types import FileEntry

_HIDDEN_ATTRIBUTE = getattr(stat, "FILE_ATTRIBUTE_HIDDEN", 0)


class LocalFileSystem:
    """Filesystem backend rooted at a local directory."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser().resolve()
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as error:
            raise StorageError(
                f"Unable to create metastore root directory {self._root}: {error}. "
                "Check the path and its permissions."
            ) from error

    @property
    def uri(self) -> str:
        return self._root.as_uri()

    @property
    def root(self) -> Path:
        return self._root

    def join(self, *parts: str) -> str:
        return "/".join(part.strip("/") for part in parts if part)

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def is_folder(self, path: str) -> bool:
        return self._resolve(path).is_dir()

    def create_folder(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as error:
            raise StorageError(f"Unable to create folder {target}: {error}") from error

    def delete(self, path: str) -> bool:
        target = self._resolve(path)
        try:
            if target.is_dir():
                target.rmdir()
            elif target.exists():
                target.unlink()
        except FileNotFoundError:
            return True
        except (OSError, ValueError) as error:
            if getattr(error, "errno", None) in (errno.ENOTEMPTY, errno.EEXIST):
                return False
            raise StorageError(f"Unable to delete {target}: {error}") from error
        return True

    def list_children(self, path: str) -> list[FileEntry]:
        folder = self._resolve(path)
        if not folder.is_dir():
            return []
        entries: list[FileEntry] = []
        try:
            with os.scandir(folder) as iterator:
                for item in iterator:
                    entries.append(
                        FileEntry(
                            name=item.name,
                            path=self.join(path, item.name),
                            is_folder=item.is_dir(),
                            is_hidden=_is_hidden(item),
                        )
                    )
        except (OSError, ValueError) as error:
            raise StorageError(f"Unable to list folder {folder}: {error}") from error
        return entries

    def read_bytes(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except (OSError, ValueError) as error:
            raise StorageError(f"Unable to read {target}: {error}") from error

    def write_bytes(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except (OSError, ValueError) as error:
            raise StorageError(f"Unable to write {target}: {error}") from error

    def create_exclusive(self, path: str, data: bytes) -> bool:
        target = self._resolve(path)
        try:
            descriptor = os.open(target, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        except (OSError, ValueError) as error:
            raise StorageError(f"Unable to create {target}: {error}") from error
        try:
            with os.fdopen(descriptor, "wb") as handle:
                handle.write(data)
        except (OSError, ValueError) as error:
            raise StorageError(f"Unable to write {target}: {error}") from error
        return True

    def last_modified(self, path: str) -> int:
        target = self._resolve(path)
        try:
            return target.stat().st_mtime_ns
        except (OSError, ValueError) as error:
            raise StorageError(f"Unable to stat {target}: {error}") from error

    def _resolve(self, path: str) -> Path:
        return self._root.joinpath(*[part for part in path.split("/") if part])


def _is_hidden(entry: os.DirEntry) -> bool:
    """Return whether a directory entry is hidden on this platform."""
    if entry.name.startswith("."):
        return True
    if not _HIDDEN_ATTRIBUTE:
        return False
    attributes = getattr(entry.stat(follow_symlinks=False), "st_file_attributes", 0)
    return bool(attributes & _HIDDEN_ATTRIBUTE)
