"""Temporary staging of upload bytes before their digest is known."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from core.hashing import DEFAULT_CHUNK_SIZE, copy_with_digest

logger = logging.getLogger(__name__)

TEMP_PREFIX = "tmp-upload-"


@dataclass(frozen=True)
class StagedFile:
    temp_path: Path
    digest: bytes
    byte_count: int

    @property
    def hex_digest(self) -> str:
        return self.digest.hex()


class StagingArea:
    """Scratch location for uploads in flight.

    Temp files are created with ``tempfile.mkstemp`` so concurrent stagings
    never share a name. ``temp_dir=None`` uses the system temp directory.
    """

    def __init__(
        self, temp_dir: str | Path | None = None, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> None:
        self._temp_dir = Path(temp_dir) if temp_dir else None
        self._chunk_size = chunk_size

    @contextmanager
    def stage(self, source: BinaryIO) -> Iterator[StagedFile]:
        """Copy ``source`` into a fresh temp file and yield it as a StagedFile.

        The descriptor is closed before the StagedFile is yielded and the
        temp file is removed when the block exits, whether it finished,
        failed while copying, or was abandoned by the consumer.
        """
        fd, name = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=self._temp_dir)
        temp_path = Path(name)
        try:
            with os.fdopen(fd, "wb") as sink:
                digest, byte_count = copy_with_digest(source, sink, self._chunk_size)
            logger.debug("Staged %d bytes at %s", byte_count, temp_path)
            yield StagedFile(temp_path=temp_path, digest=digest, byte_count=byte_count)
        finally:
            _discard(temp_path)


def _discard(path: Path) -> None:
    # Best effort: a failed delete must not replace the exception being unwound
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("Failed to remove temp file %s", path, exc_info=True)
