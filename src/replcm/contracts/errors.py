"""Change manager exceptions.

These are raised inside the recycle and sweep paths and converted into
result objects at the public boundary. Metadata-store callers never see
them propagate out of RecycleManager.
"""

from pathlib import Path


class ChangeManagerError(Exception):
    """Base class for all change manager errors."""

    pass


class ReadError(ChangeManagerError):
    """Raised when a file's content could not be read for checksumming.

    A file whose checksum is unknown must never be recycled, since its
    destination name cannot be derived.
    """

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"Cannot read '{path}': {message}")


class MoveError(ChangeManagerError):
    """Raised when the backend move failed for a reason other than
    destination-exists or source-missing."""

    def __init__(self, source: Path, destination: Path, message: str) -> None:
        self.source = source
        self.destination = destination
        self.message = message
        super().__init__(f"Cannot move '{source}' to '{destination}': {message}")


class NotFoundRace(ChangeManagerError):
    """Source vanished before the operation completed.

    Treated as success: a concurrent drop or an earlier recycle already
    handled the file.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Path disappeared during recycle: '{path}'")


class SweepWalkError(ChangeManagerError):
    """A listing or deletion failed during a clearer pass.

    Isolated to one file or directory; the sweep continues with siblings
    and the entry is retried on the next tick.
    """

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"Sweep failed at '{path}': {message}")
