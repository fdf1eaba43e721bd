"""FilesystemGateway protocol for hierarchical storage backends.

This protocol defines the small operation set consumed by:
- core/checksum.py (ChecksumCalculator reads content)
- core/manager.py (RecycleManager moves files into the cm root)
- core/clearer.py (Clearer walks and prunes the cm root)

Backends signal conditions with the builtin OSError family so callers can
branch on FileNotFoundError / FileExistsError regardless of backend.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class ChildEntry:
    """One entry returned by list_children()."""

    path: Path
    is_dir: bool


@runtime_checkable
class FilesystemGateway(Protocol):
    """Protocol for storage backends used by the change manager."""

    def exists(self, path: Path) -> bool:
        """Check whether a file or directory exists at path."""
        ...

    def is_dir(self, path: Path) -> bool:
        """Check whether path is an existing directory."""
        ...

    def create_directories(self, path: Path) -> None:
        """Create path and any missing parents. No-op if it already exists."""
        ...

    def move(self, src: Path, dst: Path) -> None:
        """Move src to dst without ever replacing an existing dst.

        Raises:
            FileExistsError: If dst already exists
            FileNotFoundError: If src does not exist
            OSError: Any other backend failure
        """
        ...

    def delete(self, path: Path) -> None:
        """Delete a file.

        Raises:
            FileNotFoundError: If path does not exist
        """
        ...

    def delete_directory_if_empty(self, path: Path) -> bool:
        """Delete a directory only if it has no entries.

        Returns:
            True if the directory was removed, False if it was not empty

        Raises:
            FileNotFoundError: If path does not exist
        """
        ...

    def list_children(self, path: Path) -> list[ChildEntry]:
        """List the direct children of a directory.

        Raises:
            FileNotFoundError: If path does not exist
        """
        ...

    def get_modification_time(self, path: Path) -> float:
        """Return modification time as epoch seconds."""
        ...

    def set_modification_time(self, path: Path, mtime: float) -> None:
        """Set modification time (epoch seconds)."""
        ...

    def open_for_read(self, path: Path) -> BinaryIO:
        """Open a file for streaming binary reads.

        The caller closes the returned stream.
        """
        ...
