# src/replcm/core/manager.py
"""RecycleManager moves dropped data into the checksum-addressed cm root.

Every recycled file lands directly under the cm root as
``<base name>_<checksum>``. The name is a pure function of the original
path and the content, so replication consumers holding a file reference
recorded before the drop can find the bytes without asking the manager.

Recycling is best effort. The metadata store calls the manager right before
deleting metadata and continues with the drop whatever the outcome, so
public operations never raise: failures are logged and returned as a
RecycleResult whose integer value is non-zero.

Thread Safety:
    No locks. Concurrent callers are serialized by the storage backend:
    the destination-exists check plus a move that never replaces an
    existing destination make every recycle idempotent.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path

from replcm.contracts.errors import MoveError, NotFoundRace, ReadError
from replcm.contracts.filesystem import FilesystemGateway
from replcm.contracts.metastore import Database, Partition, Table
from replcm.contracts.results import RecycleResult
from replcm.core.checksum import ChecksumCalculator
from replcm.core.clock import DEFAULT_CLOCK, Clock
from replcm.core.config import ChangeManagerSettings, ReplcmSettings
from replcm.core.logging import get_logger
from replcm.core.paths import PathResolver

__all__ = [
    "RecycleManager",
    "cm_path",
    "decode_file_uri",
    "encode_file_uri",
]

logger = get_logger(__name__)

_URI_FRAGMENT_SEPARATOR = "#"


def cm_path(cm_root: Path, path: Path, checksum: str) -> Path:
    """Destination of a recycled file: ``cm_root / <base name>_<checksum>``.

    Pure: identical (base name, content) pairs from any location map to the
    same destination, differing content never does.
    """
    return cm_root / f"{path.name}_{checksum}"


def encode_file_uri(path: Path, checksum: str | None) -> str:
    """Encode a file reference as ``<path>#<checksum>`` for replication dumps."""
    if checksum is None:
        return str(path)
    return f"{path}{_URI_FRAGMENT_SEPARATOR}{checksum}"


def decode_file_uri(uri: str) -> tuple[Path, str | None]:
    """Split a reference produced by encode_file_uri().

    A trailing fragment is only taken as a checksum when it is hex, so
    paths that happen to contain '#' survive a round trip without one.
    """
    head, sep, fragment = uri.rpartition(_URI_FRAGMENT_SEPARATOR)
    if sep and fragment and all(c in "0123456789abcdef" for c in fragment.lower()):
        return Path(head), fragment.lower()
    return Path(uri), None


class RecycleManager:
    """Recycles files, tables and partitions into the cm root.

    Example:
        fs = LocalFilesystem()
        manager = RecycleManager(fs, settings.change_manager, PathResolver(settings.warehouse.root))
        if manager.recycle_partition(db, table, partition) != 0:
            ...  # data could not be preserved; the drop still goes ahead
    """

    def __init__(
        self,
        gateway: FilesystemGateway,
        settings: ChangeManagerSettings,
        resolver: PathResolver,
        *,
        checksum: ChecksumCalculator | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize RecycleManager.

        Args:
            gateway: Storage backend holding both the data and the cm root
            settings: Change manager configuration (read once)
            resolver: Maps metastore descriptors to storage paths
            checksum: Content signature calculator (default: settings' algorithm)
            clock: Wall clock used to stamp recycle time (default: system clock)
        """
        self._gateway = gateway
        self._settings = settings
        self._resolver = resolver
        self._checksum = checksum if checksum is not None else ChecksumCalculator(gateway, settings.checksum_algorithm)
        self._clock = clock if clock is not None else DEFAULT_CLOCK

    @classmethod
    def from_settings(cls, settings: ReplcmSettings, gateway: FilesystemGateway) -> RecycleManager:
        """Build a manager from top-level settings."""
        return cls(gateway, settings.change_manager, PathResolver(settings.warehouse.root))

    @property
    def enabled(self) -> bool:
        return self._settings.enabled

    @property
    def cm_root(self) -> Path:
        return self._settings.cm_root

    def cm_path_for(self, path: Path, checksum: str) -> Path:
        return cm_path(self._settings.cm_root, path, checksum)

    # === Public recycle operations ===

    def recycle_file(self, path: Path) -> RecycleResult:
        """Recycle one file, or every file beneath a directory.

        A path that does not exist is reported as success: a concurrent drop
        or an earlier recycle already took care of it.
        """
        if not self._settings.enabled:
            logger.debug("Change manager disabled, not recycling", path=str(path))
            return RecycleResult()
        return self._guarded(path, lambda: self._recycle_path(path))

    def recycle_paths(self, paths: Iterable[Path]) -> RecycleResult:
        """Recycle several files or directories, merging their outcomes."""
        result = RecycleResult()
        for path in paths:
            result.merge(self.recycle_file(path))
        return result

    def recycle_table(self, db: Database, table: Table) -> RecycleResult:
        """Recycle every file under the table's storage path.

        For partitioned tables stored in the default layout this captures
        all partitions' files in one walk.
        """
        if not self._settings.enabled:
            logger.debug("Change manager disabled, not recycling table", db=db.name, table=table.name)
            return RecycleResult()

        def _run() -> RecycleResult:
            location = self._resolver.table_path(db, table)
            logger.info("Recycling table", db=db.name, table=table.name, location=str(location))
            return self._recycle_path(location)

        return self._guarded(Path(db.name) / table.name, _run)

    def recycle_partition(self, db: Database, table: Table, partition: Partition) -> RecycleResult:
        """Recycle every file under the partition's storage path."""
        if not self._settings.enabled:
            logger.debug(
                "Change manager disabled, not recycling partition",
                db=db.name,
                table=table.name,
                values=list(partition.values),
            )
            return RecycleResult()

        def _run() -> RecycleResult:
            location = self._resolver.partition_location(db, table, partition)
            logger.info(
                "Recycling partition",
                db=db.name,
                table=table.name,
                values=list(partition.values),
                location=str(location),
            )
            return self._recycle_path(location)

        return self._guarded(Path(db.name) / table.name / "/".join(str(v) for v in partition.values), _run)

    # === Replication read side ===

    def locate(self, path: Path, checksum: str | None) -> Path | None:
        """Find the bytes a replication consumer recorded as (path, checksum).

        Returns the original path while it still holds matching content,
        otherwise the cm path if that content was recycled, otherwise None.
        Without a recorded checksum only the original path can be checked.
        """
        if self._gateway.exists(path) and not self._gateway.is_dir(path):
            if checksum is None:
                return path
            try:
                if self._checksum.checksum(path) == checksum:
                    return path
            except ReadError:
                # Source vanished or became unreadable; fall back to the cm root
                pass
        if checksum is None:
            return None
        destination = self.cm_path_for(path, checksum)
        if self._gateway.exists(destination):
            return destination
        return None

    # === Internals ===

    def _guarded(self, subject: Path, operation: Callable[[], RecycleResult]) -> RecycleResult:
        """Run a recycle operation, converting any exception into a failure.

        The caller is a metadata drop in progress and must never be blocked
        by a recycle problem, so the boundary catches everything the backend
        might raise.
        """
        try:
            result = operation()
        except Exception as e:
            logger.warning(
                "Recycle failed",
                path=str(subject),
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return RecycleResult.failure(subject, f"{type(e).__name__}: {e}")

        if not result.ok:
            logger.warning(
                "Recycle completed with failures",
                path=str(subject),
                failed=len(result.failures),
                reason=result.reason,
            )
        return result

    def _recycle_path(self, path: Path) -> RecycleResult:
        if not self._gateway.exists(path):
            logger.debug("Nothing to recycle, path does not exist", path=str(path))
            result = RecycleResult()
            result.missing.append(path)
            return result
        if self._gateway.is_dir(path):
            return self._recycle_tree(path)
        return self._recycle_one(path)

    def _recycle_tree(self, root: Path) -> RecycleResult:
        """Recycle every file beneath root, continuing past per-file failures."""
        result = RecycleResult()
        pending = [root]
        while pending:
            directory = pending.pop()
            try:
                children = self._gateway.list_children(directory)
            except FileNotFoundError:
                result.missing.append(directory)
                continue
            except OSError as e:
                result.add_failure(directory, f"cannot list directory: {e}")
                continue
            for child in children:
                if child.is_dir:
                    pending.append(child.path)
                else:
                    result.merge(self._recycle_one(child.path))
        return result

    def _recycle_one(self, path: Path) -> RecycleResult:
        result = RecycleResult()
        try:
            destination = self._move_into_cm_root(path, result)
        except NotFoundRace as e:
            logger.debug("Source disappeared during recycle", path=str(e.path))
            result.missing.append(path)
            return result
        except (ReadError, MoveError) as e:
            result.add_failure(path, str(e))
            return result
        except OSError as e:
            result.add_failure(path, f"{type(e).__name__}: {e}")
            return result

        if destination is not None:
            logger.debug("Recycled file", source=str(path), destination=str(destination))
            result.recycled.append((path, destination))
        return result

    def _move_into_cm_root(self, path: Path, result: RecycleResult) -> Path | None:
        """Move one file to its cm path.

        Returns:
            The destination, or None when the content was already recycled
            and the redundant source was discarded instead

        Raises:
            NotFoundRace: Source vanished before the move completed
            ReadError: Content could not be checksummed
            MoveError: Backend move failed for another reason
        """
        try:
            checksum = self._checksum.checksum(path)
        except ReadError as e:
            if isinstance(e.__cause__, FileNotFoundError):
                raise NotFoundRace(path) from e
            raise

        destination = self.cm_path_for(path, checksum)
        if self._gateway.exists(destination) and self._extend_retention(destination):
            self._discard_redundant_source(path, destination, result)
            return None

        self._gateway.create_directories(self._settings.cm_root)
        try:
            original_mtime = self._gateway.get_modification_time(path)
        except FileNotFoundError as e:
            raise NotFoundRace(path) from e
        try:
            # Stamp recycle time before the move so the clearer never sees a
            # freshly recycled entry with the file's original, older mtime.
            self._gateway.set_modification_time(path, self._clock.now())
            self._gateway.move(path, destination)
        except FileExistsError:
            # Another caller recycled identical content first
            if self._extend_retention(destination):
                self._discard_redundant_source(path, destination, result)
                return None
            # ...and the clearer purged it again before we could touch it
            return self._move_into_cm_root(path, result)
        except FileNotFoundError as e:
            raise NotFoundRace(path) from e
        except OSError as e:
            self._restore_modification_time(path, original_mtime)
            raise MoveError(path, destination, str(e)) from e
        return destination

    def _extend_retention(self, destination: Path) -> bool:
        """Restamp an existing entry so a repeat drop restarts its retention.

        Returns False when the entry is gone (purged since the exists check).
        """
        try:
            self._gateway.set_modification_time(destination, self._clock.now())
        except FileNotFoundError:
            return False
        return True

    def _restore_modification_time(self, path: Path, mtime: float) -> None:
        try:
            self._gateway.set_modification_time(path, mtime)
        except OSError as e:
            logger.warning("Could not restore source mtime after failed move", path=str(path), error=str(e))

    def _discard_redundant_source(self, path: Path, destination: Path, result: RecycleResult) -> None:
        logger.debug("Content already recycled, deleting source", source=str(path), destination=str(destination))
        try:
            self._gateway.delete(path)
        except FileNotFoundError:
            pass
        result.deduplicated.append(path)
