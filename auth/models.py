"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; the store, issuer and service do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TokenKind(str, Enum):
    """The two signed-token envelopes. Each kind has its own secret and expiry."""

    ACCESS = "access"
    REFRESH = "refresh"


@dataclass
class User:
    """A local-credential account.

    refresh_token_hash is None when the user has never signed in or has
    logged out. Otherwise it is the hash of the most recently issued refresh
    token; any older refresh token no longer matches it.
    """

    email: str
    password_hash: str
    id: int | None = None
    refresh_token_hash: str | None = None
    created_at: str | None = None
    last_login: str | None = None


@dataclass(frozen=True)
class TokenPair:
    """Access + refresh token returned to the client. Never persisted verbatim."""

    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims attached to a request by a bearer guard.

    refresh_token carries the raw presented token for the refresh kind only,
    so the refresh handler can compare it against the stored hash.
    """

    subject: int
    email: str
    kind: TokenKind
    refresh_token: str | None = None
