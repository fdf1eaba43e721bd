"""Descriptors for the metadata-store objects the change manager recycles.

Only the location information is modelled. The metadata store owns the
schema, parameters and everything else about these objects.
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True, slots=True)
class Database:
    """A database as seen by the change manager.

    Attributes:
        name: Database name (case-insensitive, stored lower-case on disk)
        location: Explicit storage location, or None for the warehouse default
    """

    name: str
    location: Path | None = None


@dataclass(frozen=True, slots=True)
class Table:
    """A table as seen by the change manager.

    Attributes:
        name: Table name
        db_name: Owning database name
        location: Explicit storage location, or None for the warehouse default
        partition_keys: Ordered partition column names (empty if unpartitioned)
    """

    name: str
    db_name: str
    location: Path | None = None
    partition_keys: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_partitioned(self) -> bool:
        return bool(self.partition_keys)


@dataclass(frozen=True, slots=True)
class Partition:
    """A partition of a table.

    Attributes:
        values: Partition values, ordered like the table's partition_keys
        db_name: Owning database name
        table_name: Owning table name
        location: Explicit storage location, or None to derive from the table
    """

    values: tuple[str, ...]
    db_name: str
    table_name: str
    location: Path | None = None
