"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core.
Settings classes are NOT re-exported here - import them from
replcm.core.config.
"""

from replcm.contracts.enums import ChecksumAlgorithm, RecycleStatus
from replcm.contracts.errors import (
    ChangeManagerError,
    MoveError,
    NotFoundRace,
    ReadError,
    SweepWalkError,
)
from replcm.contracts.filesystem import ChildEntry, FilesystemGateway
from replcm.contracts.metastore import Database, Partition, Table
from replcm.contracts.results import RecycleResult, SweepResult

__all__ = [
    "ChangeManagerError",
    "ChecksumAlgorithm",
    "ChildEntry",
    "Database",
    "FilesystemGateway",
    "MoveError",
    "NotFoundRace",
    "Partition",
    "ReadError",
    "RecycleResult",
    "RecycleStatus",
    "SweepResult",
    "SweepWalkError",
    "Table",
]
