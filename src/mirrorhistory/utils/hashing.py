"""Content hashing utilities for event deduplication."""

import hashlib
from typing import Iterable


def calculate_content_hash(content: str | bytes) -> str:
    """
    Calculate SHA-256 hash of content.

    Args:
        content: String or bytes content to hash

    Returns:
        Hexadecimal string representation of the SHA-256 hash (64 characters)
    """
    if isinstance(content, str):
        content = content.encode("utf-8")

    return hashlib.sha256(content).hexdigest()


def calculate_parts_hash(parts: Iterable[object]) -> str:
    """
    Hash the identifying fields of a record.

    Parts are stringified and joined with ``|`` so that the same
    (title, start, end) triple always maps to the same digest.

    Args:
        parts: Identifying values, in a stable order

    Returns:
        Hexadecimal SHA-256 digest
    """
    return calculate_content_hash("|".join(str(part) for part in parts))
