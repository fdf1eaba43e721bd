# src/replcm/core/__init__.py
"""Core infrastructure: checksums, path resolution, recycling, clearing, configuration, logging."""

from replcm.core.checksum import ChecksumCalculator
from replcm.core.clearer import (
    Clearer,
    ClearerScheduler,
    get_scheduled_clearer,
    schedule_clearer,
    shutdown_clearer,
)
from replcm.core.clock import DEFAULT_CLOCK, Clock, MockClock, SystemClock
from replcm.core.config import (
    ChangeManagerSettings,
    LoggingSettings,
    ReplcmSettings,
    WarehouseSettings,
    load_env_settings,
    load_settings,
)
from replcm.core.filesystem import LocalFilesystem
from replcm.core.manager import RecycleManager, cm_path, decode_file_uri, encode_file_uri
from replcm.core.paths import PathResolver, escape_path_name, make_partition_name, unescape_path_name

__all__ = [
    "DEFAULT_CLOCK",
    "ChangeManagerSettings",
    "ChecksumCalculator",
    "Clearer",
    "ClearerScheduler",
    "Clock",
    "LocalFilesystem",
    "LoggingSettings",
    "MockClock",
    "PathResolver",
    "RecycleManager",
    "ReplcmSettings",
    "SystemClock",
    "WarehouseSettings",
    "cm_path",
    "decode_file_uri",
    "encode_file_uri",
    "escape_path_name",
    "get_scheduled_clearer",
    "load_env_settings",
    "load_settings",
    "make_partition_name",
    "schedule_clearer",
    "shutdown_clearer",
    "unescape_path_name",
]
