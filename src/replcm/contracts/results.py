"""Result types returned by the change manager and the clearer."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from replcm.contracts.enums import RecycleStatus
from replcm.contracts.errors import SweepWalkError


@dataclass
class RecycleResult:
    """Outcome of a recycle_* call.

    Usable as an integer status code: ``int(result) == 0`` on success.

    Attributes:
        status: SUCCESS or FAILED
        recycled: (source, destination) pairs moved into the cm root
        deduplicated: Sources deleted because their content was already recycled
        missing: Paths that no longer existed (already handled elsewhere)
        failures: (path, reason) pairs for files that could not be recycled
    """

    status: RecycleStatus = RecycleStatus.SUCCESS
    recycled: list[tuple[Path, Path]] = field(default_factory=list)
    deduplicated: list[Path] = field(default_factory=list)
    missing: list[Path] = field(default_factory=list)
    failures: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == RecycleStatus.SUCCESS

    @property
    def reason(self) -> str | None:
        """Human-readable failure summary, or None on success."""
        if not self.failures:
            return None
        first_path, first_reason = self.failures[0]
        if len(self.failures) == 1:
            return f"{first_path}: {first_reason}"
        return f"{first_path}: {first_reason} (and {len(self.failures) - 1} more)"

    def __int__(self) -> int:
        return int(self.status)

    def add_failure(self, path: Path, reason: str) -> None:
        self.failures.append((path, reason))
        self.status = RecycleStatus.FAILED

    def merge(self, other: RecycleResult) -> None:
        """Fold another result into this one (used for directory walks)."""
        self.recycled.extend(other.recycled)
        self.deduplicated.extend(other.deduplicated)
        self.missing.extend(other.missing)
        for path, reason in other.failures:
            self.add_failure(path, reason)

    @classmethod
    def failure(cls, path: Path, reason: str) -> RecycleResult:
        result = cls()
        result.add_failure(path, reason)
        return result


@dataclass
class SweepResult:
    """Result of one clearer pass over the cm root.

    Attributes:
        deleted_files: Expired entries removed
        deleted_dirs: Directories removed because they became empty
        retained_files: Entries still within the retention age
        failures: Per-subtree errors; the sweep continued past each one
        duration_seconds: Wall time of the pass
    """

    deleted_files: list[Path] = field(default_factory=list)
    deleted_dirs: list[Path] = field(default_factory=list)
    retained_files: int = 0
    failures: list[SweepWalkError] = field(default_factory=list)
    duration_seconds: float = 0.0
