"""
Hashing helpers for content-addressed caching.
"""

from .hashing import memories_fingerprint, stable_hash

__all__ = [
    "memories_fingerprint",
    "stable_hash",
]
