# src/replcm/core/checksum.py
"""Content signatures for checksum-addressed recycling.

The checksum is part of every recycled file's name, so it must be stable
for identical bytes across processes and releases. Files are streamed in
fixed-size chunks so memory stays bounded regardless of file size.
"""

import hashlib
from pathlib import Path

from replcm.contracts.enums import ChecksumAlgorithm
from replcm.contracts.errors import ReadError
from replcm.contracts.filesystem import FilesystemGateway

__all__ = ["CHUNK_SIZE", "ChecksumCalculator"]

CHUNK_SIZE = 1024 * 1024


class ChecksumCalculator:
    """Computes lowercase hex content digests through a FilesystemGateway.

    MD5 is the default. Recycled names only need to separate files that
    share a base name, and existing cm roots hold MD5-named entries that
    replication consumers still look up.
    """

    def __init__(
        self,
        gateway: FilesystemGateway,
        algorithm: ChecksumAlgorithm = ChecksumAlgorithm.MD5,
    ) -> None:
        self._gateway = gateway
        self._algorithm = ChecksumAlgorithm(algorithm)

    @property
    def algorithm(self) -> ChecksumAlgorithm:
        return self._algorithm

    def checksum(self, path: Path) -> str:
        """Compute the content digest of a file.

        Args:
            path: File to read

        Returns:
            Lowercase hex digest

        Raises:
            ReadError: If the file cannot be opened or read
        """
        digest = hashlib.new(self._algorithm.value)
        try:
            with self._gateway.open_for_read(path) as stream:
                while chunk := stream.read(CHUNK_SIZE):
                    digest.update(chunk)
        except OSError as e:
            raise ReadError(path, str(e)) from e
        return digest.hexdigest()

    def checksum_or_none(self, path: Path) -> str | None:
        """Checksum for regular files, None for directories and missing paths.

        Replication dump code records a checksum next to every file URI and
        records nothing for paths that are not files.

        Raises:
            ReadError: If the path is a file that cannot be read
        """
        if not self._gateway.exists(path) or self._gateway.is_dir(path):
            return None
        return self.checksum(path)
