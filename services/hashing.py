"""
Digest helpers used to build payment gateway signatures.

The gateway computes the same digests independently and compares them, so
both functions hash the UTF-8 encoding of the input and return lowercase hex.
"""

from __future__ import annotations

import hashlib


def md5(text: str) -> str:
    """Return the 32-character lowercase hex MD5 digest of `text`."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def sha256(text: str) -> str:
    """Return the 64-character lowercase hex SHA-256 digest of `text`."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


__all__ = ["md5", "sha256"]
