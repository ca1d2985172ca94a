"""Content-addressed local filesystem store for uploaded files."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from core.hashing import DEFAULT_CHUNK_SIZE
from core.ids import generate_uuid
from core.staging import StagedFile

logger = logging.getLogger(__name__)

NAME_PREFIX = "upload_"


def file_extension(filename: str) -> str:
    """Return everything from the last dot of the final path element.

    The extension is kept verbatim, case included. Names without a dot in
    their last element have no extension.
    """
    base = filename.rsplit("/", 1)[-1]
    idx = base.rfind(".")
    if idx < 0:
        return ""
    return base[idx:]


class ContentAddressedStore:
    """Flat content-addressed directory.

    Layout: {storage_path}/upload_{sha256 hex}{original extension}

    ``storage_path`` must already exist; it is never created here.
    """

    def __init__(
        self, storage_path: str | Path, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> None:
        self._root = Path(storage_path)
        self._chunk_size = chunk_size

    @property
    def root(self) -> Path:
        return self._root

    def canonical_name(self, digest: bytes, original_filename: str) -> str:
        return f"{NAME_PREFIX}{digest.hex()}{file_extension(original_filename)}"

    def canonical_path(self, digest: bytes, original_filename: str) -> Path:
        return self._root / self.canonical_name(digest, original_filename)

    def exists(self, path: Path) -> bool:
        return path.exists()

    def commit(self, staged: StagedFile, original_filename: str) -> Path:
        """Materialize ``staged`` under its canonical path and return that path.

        An object already at the canonical path holds the same content, so
        the staged bytes are dropped without touching it. Otherwise the bytes
        are copied into a private ``.part`` sibling and renamed into place;
        concurrent commits of the same content each rename a complete file.
        """
        path = self.canonical_path(staged.digest, original_filename)

        # Content-addressed dedup: skip write if file already exists
        if self.exists(path):
            logger.debug("Dedup hit for %s", path.name)
            return path

        partial = self._root / f".{generate_uuid()}.part"
        try:
            with open(staged.temp_path, "rb") as src, open(partial, "xb") as dst:
                shutil.copyfileobj(src, dst, self._chunk_size)
            os.replace(partial, path)
        except OSError:
            logger.exception("Failed to store %s", path)
            try:
                partial.unlink(missing_ok=True)
            except OSError:
                logger.warning("Failed to remove partial file %s", partial, exc_info=True)
            raise

        logger.info("Stored %s (%d bytes)", path.name, staged.byte_count)
        return path
