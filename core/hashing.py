"""Chunked stream copy with a running SHA-256 digest."""

from __future__ import annotations

import hashlib
from typing import BinaryIO

DEFAULT_CHUNK_SIZE = 4096


def copy_with_digest(
    source: BinaryIO, sink: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> tuple[bytes, int]:
    """Copy ``source`` into ``sink`` chunk by chunk, hashing as it goes.

    Returns the raw 32-byte SHA-256 digest and the number of bytes copied.
    Read and write errors propagate as ``OSError``; whatever already reached
    the sink is left there for the caller to discard.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    h = hashlib.sha256()
    total = 0
    while chunk := source.read(chunk_size):
        sink.write(chunk)
        h.update(chunk)
        total += len(chunk)
    return h.digest(), total
