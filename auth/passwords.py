"""
auth/passwords.py -- One-way salted hashing for passwords and refresh tokens.

Security design decisions:
  bcrypt, used directly (no passlib wrapper). passlib's wrap-bug detection
  builds a password longer than 72 bytes, which bcrypt 4.x+ rejects. The cost
  factor defaults to 10 and comes from Settings.bcrypt_rounds.

  Refresh tokens are JWTs: longer than bcrypt's 72-byte input limit, and two
  tokens for the same user share a long identical prefix (header + subject).
  Feeding them to bcrypt directly would make every token for a user hash-equal
  and defeat rotation. hash_token() therefore reduces the token to its SHA-256
  hex digest (64 bytes) before bcrypt sees it.

  verify() never raises: a mismatch or a malformed digest is just False.

  dummy_verify() burns one bcrypt check against a throwaway hash so signin
  timing does not reveal whether an email is registered.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import hashlib

import bcrypt

BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """bcrypt hasher with a fixed work factor.

    Usage:
        hasher = PasswordHasher(rounds=10)
        digest = hasher.hash("secret")
        hasher.verify("secret", digest)  # True
    """

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds
        self._dummy_hash = self.hash("localauth_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a salted bcrypt digest of plain.

        Raises ValueError when plain exceeds 72 UTF-8 bytes. The API layer
        rejects such passwords before they get here.
        """
        raw = plain.encode("utf-8")
        if len(raw) > BCRYPT_MAX_BYTES:
            raise ValueError(f"Value exceeds bcrypt's {BCRYPT_MAX_BYTES}-byte limit.")
        return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, digest: str) -> bool:
        """Return True if plain matches digest. Constant-time; never raises."""
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), digest.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def dummy_verify(self, plain: str) -> None:
        self.verify(plain, self._dummy_hash)

    # ------------------------------------------------------------------
    # Refresh tokens
    # ------------------------------------------------------------------

    def hash_token(self, token: str) -> str:
        return self.hash(_prehash(token))

    def verify_token(self, token: str, digest: str) -> bool:
        return self.verify(_prehash(token), digest)


def _prehash(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
