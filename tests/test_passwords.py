"""Unit tests for auth/passwords.py -- bcrypt hashing of passwords and refresh tokens.

Covers:
- hash() is salted: the same input gives different digests
- verify() accepts the right input and rejects the wrong one
- verify() returns False (never raises) on malformed digests
- hash() refuses input over bcrypt's 72-byte limit
- token hashing distinguishes long tokens that share a prefix
"""

import pytest

from auth.passwords import PasswordHasher


class TestPasswordHashing:
    def test_hash_is_salted(self, hasher: PasswordHasher) -> None:
        assert hasher.hash("pw") != hasher.hash("pw")

    def test_verify_roundtrip(self, hasher: PasswordHasher) -> None:
        digest = hasher.hash("correct horse")
        assert hasher.verify("correct horse", digest) is True
        assert hasher.verify("wrong horse", digest) is False

    def test_digest_uses_configured_cost(self) -> None:
        digest = PasswordHasher(rounds=5).hash("pw")
        assert digest.startswith("$2b$05$")

    @pytest.mark.parametrize("digest", ["", "not-a-bcrypt-hash", "$2b$04$short"])
    def test_verify_malformed_digest_returns_false(self, hasher: PasswordHasher, digest: str) -> None:
        assert hasher.verify("pw", digest) is False

    def test_hash_rejects_over_72_bytes(self, hasher: PasswordHasher) -> None:
        with pytest.raises(ValueError):
            hasher.hash("x" * 73)

    def test_dummy_verify_does_not_raise(self, hasher: PasswordHasher) -> None:
        hasher.dummy_verify("anything")


class TestTokenHashing:
    def test_tokens_sharing_long_prefix_hash_differently(self, hasher: PasswordHasher) -> None:
        """Two tokens identical in their first 72+ bytes must not verify against each other."""
        prefix = "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9." + "p" * 80
        first, second = prefix + ".one", prefix + ".two"
        digest = hasher.hash_token(first)
        assert hasher.verify_token(first, digest) is True
        assert hasher.verify_token(second, digest) is False

    def test_token_of_any_length_is_accepted(self, hasher: PasswordHasher) -> None:
        token = "t" * 500
        assert hasher.verify_token(token, hasher.hash_token(token)) is True
