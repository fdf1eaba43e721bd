# src/replcm/core/paths.py
"""Storage locations for databases, tables and partitions.

Pure functions of the descriptors handed over by the metadata store. No
filesystem access happens here; RecycleManager lists the returned
directories itself.

Default layout (used when a descriptor carries no explicit location):

    <warehouse>/                      the "default" database
    <warehouse>/<db>.db/              any other database
    <db path>/<table>/                tables
    <table path>/k1=v1/k2=v2/         partitions
"""

from collections.abc import Sequence
from pathlib import Path

from replcm.contracts.metastore import Database, Partition, Table

__all__ = [
    "DATABASE_SUFFIX",
    "DEFAULT_DATABASE_NAME",
    "DEFAULT_PARTITION_NAME",
    "PathResolver",
    "escape_path_name",
    "make_partition_name",
    "unescape_path_name",
]

DEFAULT_DATABASE_NAME = "default"
DATABASE_SUFFIX = ".db"

# Directory name for partitions whose value is null or empty
DEFAULT_PARTITION_NAME = "__HIVE_DEFAULT_PARTITION__"

# Characters that cannot appear verbatim in a partition directory name
_ESCAPED_CHARS = frozenset(
    [chr(c) for c in range(1, 0x20)] + ['"', "#", "%", "'", "*", "/", ":", "=", "?", "\\", "\x7f", "{", "[", "]", "^"]
)
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def escape_path_name(value: str | None) -> str:
    """Escape a partition key or value for use as a path component.

    Reserved characters become %XX (uppercase hex). None and the empty
    string map to DEFAULT_PARTITION_NAME.
    """
    if value is None or value == "":
        return DEFAULT_PARTITION_NAME
    return "".join(f"%{ord(ch):02X}" if ch in _ESCAPED_CHARS else ch for ch in value)


def unescape_path_name(value: str) -> str:
    """Reverse escape_path_name(). Malformed escapes are kept verbatim."""
    out: list[str] = []
    i = 0
    while i < len(value):
        ch = value[i]
        hex_digits = value[i + 1 : i + 3]
        if ch == "%" and len(hex_digits) == 2 and all(c in _HEX_DIGITS for c in hex_digits):
            out.append(chr(int(hex_digits, 16)))
            i += 3
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def make_partition_name(keys: Sequence[str], values: Sequence[str | None]) -> str:
    """Build the relative partition directory, e.g. ``dt=20160101/hr=00``.

    Raises:
        ValueError: If keys and values differ in length or keys is empty
    """
    if not keys:
        raise ValueError("Table has no partition keys")
    if len(keys) != len(values):
        raise ValueError(f"Partition values {list(values)!r} do not match partition keys {list(keys)!r}")
    return "/".join(f"{escape_path_name(k.lower())}={escape_path_name(v)}" for k, v in zip(keys, values, strict=True))


class PathResolver:
    """Resolves metadata-store descriptors to storage paths.

    Example:
        resolver = PathResolver(Path("/warehouse"))
        db = Database("sales")
        tbl = Table("orders", "sales", partition_keys=("dt",))
        resolver.partition_path(db, tbl, ["20160101"])
        # -> /warehouse/sales.db/orders/dt=20160101
    """

    def __init__(self, warehouse_root: Path) -> None:
        self._warehouse_root = warehouse_root

    @property
    def warehouse_root(self) -> Path:
        return self._warehouse_root

    def database_path(self, db: Database) -> Path:
        if db.location is not None:
            return db.location
        name = db.name.lower()
        if name == DEFAULT_DATABASE_NAME:
            return self._warehouse_root
        return self._warehouse_root / f"{name}{DATABASE_SUFFIX}"

    def table_path(self, db: Database, table: Table) -> Path:
        if table.location is not None:
            return table.location
        return self.database_path(db) / table.name.lower()

    def partition_path(self, db: Database, table: Table, partition_values: Sequence[str | None]) -> Path:
        """Derived partition directory under the table path.

        Raises:
            ValueError: If the values do not match the table's partition keys
        """
        return self.table_path(db, table) / make_partition_name(table.partition_keys, partition_values)

    def partition_location(self, db: Database, table: Table, partition: Partition) -> Path:
        """Partition directory honouring an explicit partition location."""
        if partition.location is not None:
            return partition.location
        return self.partition_path(db, table, partition.values)
