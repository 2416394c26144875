"""
auth/tokens.py -- Signing and verification of access and refresh JWTs.

Security design decisions:
  JWT: python-jose with HS256. Two envelopes share the payload shape
       {sub, email, type, iat, exp, jti} but are signed with distinct secrets
       (Settings validates that they differ). A refresh token therefore never
       passes access verification and vice versa. The "type" claim is checked
       as a second line so a misconfigured deployment still cannot
       cross-validate.

  jti: a random id per token, so two pairs issued for the same user within
       the same second are still different strings.

  sub: python-jose requires the sub claim to be a string. User ids are
       stringified on encode and parsed back to int on verify.

  Errors: verify() raises TokenExpired for a past exp and InvalidSignature for
       everything else (bad signature, malformed token, wrong type, missing
       claims). Guards turn either into a 401.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import InvalidSignature, TokenExpired
from auth.models import TokenClaims, TokenKind, TokenPair

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("localauth.auth")

_ALGORITHM = "HS256"


class TokenIssuer:
    """Signs and verifies the two token kinds.

    Usage:
        issuer = TokenIssuer.from_settings(get_settings())
        pair = await issuer.issue_pair(user.id, user.email)
        claims = issuer.verify(pair.access_token, TokenKind.ACCESS)
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_expire_seconds: int = 15 * 60,
        refresh_expire_seconds: int = 7 * 24 * 60 * 60,
    ) -> None:
        if not access_secret or not refresh_secret:
            raise ValueError("TokenIssuer requires non-empty access and refresh secrets")
        self._secrets = {TokenKind.ACCESS: access_secret, TokenKind.REFRESH: refresh_secret}
        self._expiry = {TokenKind.ACCESS: access_expire_seconds, TokenKind.REFRESH: refresh_expire_seconds}

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenIssuer:
        return cls(
            access_secret=settings.access_token_secret,
            refresh_secret=settings.refresh_token_secret,
            access_expire_seconds=settings.access_token_expire_seconds,
            refresh_expire_seconds=settings.refresh_token_expire_seconds,
        )

    # ------------------------------------------------------------------
    # Encode
    # ------------------------------------------------------------------

    def sign(self, kind: TokenKind, subject: int, email: str, expire_seconds: int = 0) -> str:
        """Encode a signed JWT of the given kind.

        Args:
            kind:           Which envelope (selects secret and default expiry).
            subject:        User id, stored as the sub claim.
            email:          User email.
            expire_seconds: Lifetime override in seconds. If 0 (default), uses
                            the configured expiry for this kind. A negative
                            value yields an already-expired token (tests).
        """
        duration = expire_seconds if expire_seconds != 0 else self._expiry[kind]
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(subject),
            "email": email,
            "type": kind.value,
            "iat": now,
            "exp": now + timedelta(seconds=duration),
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=_ALGORITHM)

    async def issue_pair(self, subject: int, email: str) -> TokenPair:
        """Sign an access and a refresh token concurrently and return both.

        The two signatures have no ordering dependency, so they run in worker
        threads and are joined before returning.
        """
        access_token, refresh_token = await asyncio.gather(
            asyncio.to_thread(self.sign, TokenKind.ACCESS, subject, email),
            asyncio.to_thread(self.sign, TokenKind.REFRESH, subject, email),
        )
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    # ------------------------------------------------------------------
    # Decode
    # ------------------------------------------------------------------

    def verify(self, token: str, kind: TokenKind) -> TokenClaims:
        """Verify signature, expiry and type of token. Returns the typed claims.

        Raises TokenExpired or InvalidSignature. Callers treat either as
        unauthenticated.
        """
        try:
            payload = jwt.decode(token, self._secrets[kind], algorithms=[_ALGORITHM])
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            logger.debug("Rejected %s token: %s", kind.value, exc)
            raise InvalidSignature() from exc

        if payload.get("type") != kind.value:
            raise InvalidSignature(f"Expected a {kind.value} token.")
        try:
            subject = int(payload["sub"])
            email = str(payload["email"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidSignature("Token is missing required claims.") from exc

        return TokenClaims(
            subject=subject,
            email=email,
            kind=kind,
            refresh_token=token if kind is TokenKind.REFRESH else None,
        )
