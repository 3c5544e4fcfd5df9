"""
Tests for `services/hashing.py`.

Covers:
- MD5 and SHA-256 produce lowercase hex digests of the UTF-8 input.
"""

from __future__ import annotations

from services.hashing import md5, sha256


def test_md5_known_vectors() -> None:
    """Verify md5 matches the RFC 1321 test vectors."""

    assert md5("") == "d41d8cd98f00b204e9800998ecf8427e"
    assert md5("abc") == "900150983cd24fb0d6963f7d28e17f72"


def test_sha256_known_vectors() -> None:
    """Verify sha256 matches the FIPS 180-2 test vectors."""

    assert sha256("") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    assert sha256("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_digests_are_lowercase_hex() -> None:
    """Verify digests are lowercase so signature comparisons are exact."""

    digest = md5("D1234order-1825000secret")
    assert digest == digest.lower()
    assert len(digest) == 32
