# src/replcm/core/filesystem.py
"""Local filesystem backend for the change manager.

Implements FilesystemGateway over the host filesystem. The cm root is
expected to live on the same filesystem as the warehouse, like a trash
directory: moves are renames, never copies.
"""

import errno
import os
from pathlib import Path
from typing import BinaryIO

from replcm.contracts.filesystem import ChildEntry

__all__ = ["LocalFilesystem"]

# Filesystems that reject hard links report one of these
_LINK_UNSUPPORTED_ERRNOS = frozenset({errno.EPERM, errno.ENOTSUP, errno.EOPNOTSUPP, errno.EMLINK})


class LocalFilesystem:
    """FilesystemGateway backed by the local filesystem."""

    def exists(self, path: Path) -> bool:
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()

    def create_directories(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def move(self, src: Path, dst: Path) -> None:
        """Move src to dst, failing if dst exists.

        os.rename() silently replaces an existing destination on POSIX, so
        the move links the source to the destination first. link() fails
        with FileExistsError when dst exists, which makes creation of the
        destination atomic even with concurrent movers. The source is
        unlinked afterwards.

        Raises:
            FileExistsError: If dst already exists
            FileNotFoundError: If src does not exist
            OSError: Cross-device moves and other backend failures
        """
        try:
            os.link(src, dst)
        except (FileExistsError, FileNotFoundError):
            raise
        except OSError as e:
            if e.errno not in _LINK_UNSUPPORTED_ERRNOS:
                raise
            self._rename_no_replace(src, dst)
            return

        try:
            os.unlink(src)
        except FileNotFoundError:
            # A concurrent mover already removed the source; dst holds the content
            pass

    def _rename_no_replace(self, src: Path, dst: Path) -> None:
        """Fallback for filesystems without hard links.

        The existence check and the rename are not atomic together; a
        concurrent writer can only ever place identical content at dst
        since names are content-addressed.
        """
        if dst.exists():
            raise FileExistsError(errno.EEXIST, "Destination exists", str(dst))
        os.rename(src, dst)

    def delete(self, path: Path) -> None:
        path.unlink()

    def delete_directory_if_empty(self, path: Path) -> bool:
        try:
            path.rmdir()
        except OSError as e:
            if e.errno in (errno.ENOTEMPTY, errno.EEXIST):
                return False
            raise
        return True

    def list_children(self, path: Path) -> list[ChildEntry]:
        children: list[ChildEntry] = []
        with os.scandir(path) as entries:
            for entry in entries:
                children.append(ChildEntry(path=Path(entry.path), is_dir=entry.is_dir(follow_symlinks=False)))
        children.sort(key=lambda c: c.path.name)
        return children

    def get_modification_time(self, path: Path) -> float:
        return path.stat().st_mtime

    def set_modification_time(self, path: Path, mtime: float) -> None:
        stat = path.stat()
        os.utime(path, (stat.st_atime, mtime))

    def open_for_read(self, path: Path) -> BinaryIO:
        return path.open("rb")
