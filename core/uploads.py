"""Upload request processing: extension gate, staging, commit, response."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Protocol

from core.content_store import ContentAddressedStore, file_extension
from core.errors import ValidationError
from core.hashing import DEFAULT_CHUNK_SIZE
from core.staging import StagingArea

logger = logging.getLogger(__name__)


class Responder(Protocol):
    """Builds the response for a processed upload request."""

    def on_success(self, names: list[str]) -> Any:
        """Called with the stored paths, in part order."""
        ...

    def on_failure(self, error: Exception) -> Any:
        """Called with the first error that stopped processing."""
        ...


@dataclass(frozen=True)
class UploadConfiguration:
    """Immutable settings for one upload handler.

    An empty ``allowed_extensions`` accepts every extension. Entries are
    compared verbatim against the extension of the client filename, so they
    are case sensitive and must carry the leading dot.
    """

    storage_path: Path
    responder: Responder
    allowed_extensions: frozenset[str] = field(default_factory=frozenset)
    temp_dir: Path | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        object.__setattr__(self, "storage_path", Path(self.storage_path))
        object.__setattr__(self, "allowed_extensions", frozenset(self.allowed_extensions))
        if self.temp_dir is not None:
            object.__setattr__(self, "temp_dir", Path(self.temp_dir))

    def staging_area(self) -> StagingArea:
        return StagingArea(self.temp_dir, self.chunk_size)

    def content_store(self) -> ContentAddressedStore:
        return ContentAddressedStore(self.storage_path, self.chunk_size)


@dataclass(frozen=True)
class UploadedPart:
    field_name: str
    original_filename: str
    byte_stream: BinaryIO


def check_extension(filename: str, allowed: frozenset[str]) -> None:
    """Raise ValidationError if ``filename``'s extension is not allowed."""
    if not allowed:
        return
    ext = file_extension(filename)
    if ext not in allowed:
        raise ValidationError(f"upload {ext} is not allowed", value=filename)


def store_part(
    part: UploadedPart, staging: StagingArea, store: ContentAddressedStore
) -> str:
    with staging.stage(part.byte_stream) as staged:
        return str(store.commit(staged, part.original_filename))


def process_upload(parts: Sequence[UploadedPart], config: UploadConfiguration) -> Any:
    """Store every part of one request and hand the outcome to the responder.

    Parts are handled in transport order. The first disallowed extension or
    storage failure stops the request: later parts are not attempted and the
    responder only sees the error. Parts stored before the failure stay in
    the store.
    """
    staging = config.staging_area()
    store = config.content_store()
    names: list[str] = []

    for part in parts:
        logger.debug("Processing field %s filename %s", part.field_name, part.original_filename)
        try:
            check_extension(part.original_filename, config.allowed_extensions)
        except ValidationError as exc:
            logger.warning("Rejected upload %r: %s", part.original_filename, exc)
            return config.responder.on_failure(exc)

        try:
            names.append(store_part(part, staging, store))
        except OSError as exc:
            logger.error("Upload of %r failed: %s", part.original_filename, exc)
            return config.responder.on_failure(exc)

    return config.responder.on_success(names)
