"""
auth/dependencies.py -- FastAPI Depends() bearer-token guards.

One guard per token kind, selected by the TokenKind enum:
  require_access_token  -- Authorization: Bearer <access token>
  require_refresh_token -- Authorization: Bearer <refresh token>

Both converge on a TokenClaims object after successful verification. The
refresh guard also hands the raw token string to the handler so the service
can compare it with the stored hash.

Guards are stateless: they check signature, expiry and token type through
the TokenIssuer on app.state and never call AuthService or the store. Any
failure is an HTTP 401.

Layer rule: auth/dependencies.py may import from fastapi because it is part
of the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.errors import TokenError
from auth.models import TokenClaims, TokenKind
from auth.tokens import TokenIssuer


def extract_bearer_token(request: Request) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' header, or None."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


def bearer_guard(kind: TokenKind) -> Callable[[Request], TokenClaims]:
    """Build a dependency that verifies a bearer token of the given kind.

    Use as a FastAPI dependency:
        @router.post("/protected")
        async def route(claims: TokenClaims = Depends(bearer_guard(TokenKind.ACCESS))): ...
    """

    def _guard(request: Request) -> TokenClaims:
        token = extract_bearer_token(request)
        if token is None:
            raise HTTPException(
                status_code=401,
                detail={"code": "unauthorized", "message": "Missing or invalid Authorization header."},
                headers={"WWW-Authenticate": "Bearer"},
            )
        issuer: TokenIssuer = request.app.state.token_issuer
        try:
            return issuer.verify(token, kind)
        except TokenError as exc:
            raise HTTPException(
                status_code=401,
                detail={"code": exc.code, "message": exc.message},
                headers={"WWW-Authenticate": "Bearer"},
            ) from exc

    _guard.__name__ = f"require_{kind.value}_token"
    return _guard


require_access_token = bearer_guard(TokenKind.ACCESS)
require_refresh_token = bearer_guard(TokenKind.REFRESH)
