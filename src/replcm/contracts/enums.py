"""Status codes and selectors used across subsystem boundaries."""

from enum import IntEnum, StrEnum


class RecycleStatus(IntEnum):
    """Outcome of a recycle call.

    Integer-valued so metadata-store callers that only branch on
    zero/non-zero keep working: ``SUCCESS`` is 0.
    """

    SUCCESS = 0
    FAILED = 1


class ChecksumAlgorithm(StrEnum):
    """Content signature algorithm for checksum-addressed naming.

    All values are hashlib constructor names.
    """

    MD5 = "md5"
    SHA1 = "sha1"
    SHA256 = "sha256"
    BLAKE2B = "blake2b"
