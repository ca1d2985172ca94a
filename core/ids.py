"""Random identifier generation"""

from __future__ import annotations

import uuid


def generate_uuid() -> str:
    """Return a random version 4 UUID as a canonical 8-4-4-4-12 hex string."""
    return str(uuid.uuid4())
