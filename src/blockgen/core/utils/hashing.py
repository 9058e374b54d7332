"""Content hashing for deterministic asset versions"""

import hashlib


def sha256(content: str) -> str:
    """Return the hex-encoded SHA-256 of content; stable across runs, unlike a timestamp."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
