# src/replcm/core/clearer.py
"""Clearer purges recycled entries once they exceed the retention age.

One sweep walks the cm root post-order (children before parents):
- files older than retain_seconds are deleted
- a directory left with no entries after its children were visited is
  deleted too, so empty-directory removal cascades upward
- the cm root itself is never deleted

Failures are isolated: a file or directory that vanished mid-walk counts as
already handled, any other error is recorded for that subtree and the sweep
carries on with its siblings. Whatever was skipped is retried next tick.

Thread Safety:
    Each process runs at most one clearer loop (see schedule_clearer()).
    Sweeps execute serially on the scheduler thread and never overlap;
    a sweep that overruns the interval delays the next one. The start-once
    lock guards only the scheduler handle, never filesystem I/O.
"""

from __future__ import annotations

import atexit
import threading
import time
from pathlib import Path
from time import perf_counter

from replcm.contracts.errors import SweepWalkError
from replcm.contracts.filesystem import FilesystemGateway
from replcm.contracts.results import SweepResult
from replcm.core.clock import DEFAULT_CLOCK, Clock
from replcm.core.config import ChangeManagerSettings
from replcm.core.filesystem import LocalFilesystem
from replcm.core.logging import get_logger

__all__ = [
    "Clearer",
    "ClearerScheduler",
    "get_scheduled_clearer",
    "schedule_clearer",
    "shutdown_clearer",
]

logger = get_logger(__name__)


class Clearer:
    """Performs sweeps of the cm root.

    Example:
        clearer = Clearer(LocalFilesystem(), settings.change_manager)
        result = clearer.sweep()
        print(f"purged {len(result.deleted_files)} entries")
    """

    def __init__(
        self,
        gateway: FilesystemGateway,
        settings: ChangeManagerSettings,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._gateway = gateway
        self._cm_root = settings.cm_root
        self._retain_seconds = settings.retain_seconds
        self._clock = clock if clock is not None else DEFAULT_CLOCK

    @property
    def cm_root(self) -> Path:
        return self._cm_root

    @property
    def retain_seconds(self) -> float:
        return self._retain_seconds

    def sweep(self, stop_event: threading.Event | None = None) -> SweepResult:
        """Run one pass over the cm root.

        Args:
            stop_event: When set, the pass stops before its next entry. An
                entry already being deleted is always finished first.

        Returns:
            SweepResult; a missing cm root is an empty sweep
        """
        start_time = perf_counter()
        result = SweepResult()
        cutoff = self._clock.now() - self._retain_seconds

        if self._gateway.is_dir(self._cm_root):
            self._sweep_directory(self._cm_root, cutoff, result, stop_event)
        else:
            logger.debug("cm root does not exist, nothing to clear", cm_root=str(self._cm_root))

        result.duration_seconds = perf_counter() - start_time
        logger.info(
            "Clearer sweep finished",
            cm_root=str(self._cm_root),
            deleted_files=len(result.deleted_files),
            deleted_dirs=len(result.deleted_dirs),
            retained_files=result.retained_files,
            failures=len(result.failures),
            duration_seconds=round(result.duration_seconds, 3),
        )
        return result

    def find_expired(self) -> list[Path]:
        """List entries a sweep would delete now, without deleting anything."""
        cutoff = self._clock.now() - self._retain_seconds
        expired: list[Path] = []
        if not self._gateway.is_dir(self._cm_root):
            return expired
        pending = [self._cm_root]
        while pending:
            directory = pending.pop()
            try:
                children = self._gateway.list_children(directory)
            except OSError:
                # Listing problems are reported by sweep(); a preview just skips them
                continue
            for child in children:
                if child.is_dir:
                    pending.append(child.path)
                    continue
                try:
                    if self._gateway.get_modification_time(child.path) < cutoff:
                        expired.append(child.path)
                except OSError:
                    continue
        return sorted(expired)

    def _sweep_directory(
        self,
        directory: Path,
        cutoff: float,
        result: SweepResult,
        stop_event: threading.Event | None,
    ) -> None:
        try:
            children = self._gateway.list_children(directory)
        except FileNotFoundError:
            return
        except OSError as e:
            self._record_failure(result, directory, f"cannot list directory: {e}")
            return

        for child in children:
            if stop_event is not None and stop_event.is_set():
                return
            if child.is_dir:
                self._sweep_directory(child.path, cutoff, result, stop_event)
                if stop_event is not None and stop_event.is_set():
                    return
                self._prune_if_empty(child.path, result)
            else:
                self._expire_file(child.path, cutoff, result)

    def _expire_file(self, path: Path, cutoff: float, result: SweepResult) -> None:
        try:
            mtime = self._gateway.get_modification_time(path)
            if mtime >= cutoff:
                result.retained_files += 1
                return
            self._gateway.delete(path)
        except FileNotFoundError:
            return
        except OSError as e:
            self._record_failure(result, path, f"cannot expire file: {e}")
            return
        logger.debug("Purged expired entry", path=str(path), age_seconds=round(self._clock.now() - mtime, 1))
        result.deleted_files.append(path)

    def _prune_if_empty(self, directory: Path, result: SweepResult) -> None:
        try:
            removed = self._gateway.delete_directory_if_empty(directory)
        except FileNotFoundError:
            return
        except OSError as e:
            self._record_failure(result, directory, f"cannot remove directory: {e}")
            return
        if removed:
            logger.debug("Removed empty directory", path=str(directory))
            result.deleted_dirs.append(directory)

    def _record_failure(self, result: SweepResult, path: Path, message: str) -> None:
        error = SweepWalkError(path, message)
        logger.warning("Clearer skipped subtree", path=str(path), error=message)
        result.failures.append(error)


class ClearerScheduler:
    """Runs Clearer.sweep() at a fixed rate on a background thread.

    The first sweep starts immediately. Ticks are scheduled at a fixed rate
    from the start of each sweep; when a sweep overruns the interval the
    next one starts as soon as it finishes, never concurrently.
    """

    def __init__(self, clearer: Clearer, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._clearer = clearer
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._sweeps_completed = 0
        self._last_result: SweepResult | None = None

    @property
    def clearer(self) -> Clearer:
        return self._clearer

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    @property
    def sweeps_completed(self) -> int:
        return self._sweeps_completed

    @property
    def last_result(self) -> SweepResult | None:
        return self._last_result

    def start(self) -> bool:
        """Start the sweep loop.

        Returns:
            True if a loop was started, False if one was already running
        """
        with self._lock:
            if self.running:
                return False
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name="replcm-clearer",
                daemon=True,
            )
            self._thread.start()
            return True

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to stop and wait for the current step to finish."""
        self._stop_event.set()
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout)
        if thread.is_alive():
            logger.error("Clearer thread did not exit within timeout", timeout=timeout)

    def _run(self) -> None:
        logger.info(
            "Clearer started",
            cm_root=str(self._clearer.cm_root),
            retain_seconds=self._clearer.retain_seconds,
            interval_seconds=self._interval,
        )
        while not self._stop_event.is_set():
            tick_started = time.monotonic()
            try:
                self._last_result = self._clearer.sweep(stop_event=self._stop_event)
                self._sweeps_completed += 1
            except Exception as e:
                # One bad sweep must not kill the loop; the next tick retries
                logger.error("Clearer sweep failed", error=str(e), error_type=type(e).__name__, exc_info=True)
            delay = max(0.0, self._interval - (time.monotonic() - tick_started))
            self._stop_event.wait(delay)
        logger.info("Clearer stopped", sweeps_completed=self._sweeps_completed)


# Process-wide clearer handle: one sweep loop per process
_scheduled: ClearerScheduler | None = None
_scheduled_lock = threading.Lock()


def schedule_clearer(
    settings: ChangeManagerSettings,
    gateway: FilesystemGateway | None = None,
    *,
    clock: Clock | None = None,
) -> ClearerScheduler | None:
    """Start the process-wide clearer loop once.

    Later calls return the already running scheduler without starting a
    second loop, whatever settings they pass.

    Args:
        settings: Change manager configuration (read once here)
        gateway: Storage backend (default: LocalFilesystem)
        clock: Wall clock for retention decisions (default: system clock)

    Returns:
        The scheduler, or None when the change manager is disabled
    """
    global _scheduled

    if not settings.enabled:
        logger.info("Change manager disabled, clearer not scheduled")
        return None

    with _scheduled_lock:
        if _scheduled is not None:
            logger.debug("Clearer already scheduled", cm_root=str(_scheduled.clearer.cm_root))
            return _scheduled
        clearer = Clearer(gateway if gateway is not None else LocalFilesystem(), settings, clock=clock)
        scheduler = ClearerScheduler(clearer, settings.clear_interval_seconds)
        scheduler.start()
        _scheduled = scheduler
        return scheduler


def get_scheduled_clearer() -> ClearerScheduler | None:
    """Return the process-wide scheduler if one was started."""
    return _scheduled


def shutdown_clearer(timeout: float | None = 5.0) -> None:
    """Stop the process-wide clearer loop and forget its handle.

    The handle is held until the loop has exited, so schedule_clearer()
    calls made meanwhile wait instead of starting a second loop. A loop
    that outlives the timeout stays registered.
    """
    global _scheduled

    with _scheduled_lock:
        scheduler = _scheduled
        if scheduler is None:
            return
        scheduler.stop(timeout)
        if not scheduler.running:
            _scheduled = None


atexit.register(shutdown_clearer)
