"""Byte-string search helper."""

from __future__ import annotations

from typing import Optional


def memmem(haystack: bytes, needle: bytes) -> Optional[int]:
    """Return the offset of the first occurrence of ``needle`` in ``haystack``.

    Returns None when either argument is empty, when the needle is longer
    than the haystack, or when the needle does not occur.
    """
    haystack = bytes(haystack)
    needle = bytes(needle)
    if not haystack or not needle or len(haystack) < len(needle):
        return None
    index = haystack.find(needle)
    return None if index < 0 else index