"""
Tests for password hashing
"""

import pytest

from chatgraph.passwords import hash_password, verify_password


def test_hash_and_verify():
    stored = hash_password("correct horse", iterations=1000)

    assert stored.startswith("pbkdf2_sha256$1000$")
    assert verify_password("correct horse", stored)
    assert not verify_password("battery staple", stored)


def test_hashes_are_salted():
    assert hash_password("same", iterations=1000) != hash_password("same", iterations=1000)


def test_empty_password_rejected():
    with pytest.raises(ValueError):
        hash_password("")


@pytest.mark.parametrize(
    "stored",
    ["", "plain-text", "bcrypt$10$salt$digest", "pbkdf2_sha256$many$salt$digest"],
)
def test_malformed_hashes_never_verify(stored):
    assert verify_password("anything", stored) is False
