"""
api/routes/auth.py -- Token lifecycle REST endpoints.

Routes:
  POST /auth/local/signup  -- create account; 201 token pair
  POST /auth/local/signin  -- password login; 200 token pair
  POST /auth/refresh       -- rotate refresh token (Bearer: refresh token); 200 token pair
  POST /auth/logout        -- end session (Bearer: access token); 200, no body

Errors raised by AuthService (DuplicateEmail, InvalidCredentials,
AccessDenied) are not caught here; the AuthError handler in api/main.py maps
each to its status code and the shared ErrorResponse envelope.

Security:
  Cache-Control: no-store on every response that carries tokens.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.models import CredentialsRequest, ErrorResponse, TokenPairResponse
from auth.dependencies import require_access_token, require_refresh_token
from auth.models import TokenClaims, TokenPair
from auth.service import AuthService

# Auth policy:
# - POST /auth/local/signup: public
# - POST /auth/local/signin: public
# - POST /auth/refresh:      requires refresh token (require_refresh_token)
# - POST /auth/logout:       requires access token (require_access_token)
router = APIRouter(prefix="/auth")

_UNAUTHORIZED = {401: {"model": ErrorResponse, "description": "Missing, invalid or expired bearer token."}}
_FORBIDDEN = {403: {"model": ErrorResponse, "description": "Rejected credentials or refresh token."}}


def _tokens_response(pair: TokenPair, status_code: int = 200) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=TokenPairResponse.from_pair(pair).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


@router.post(
    "/local/signup",
    response_model=TokenPairResponse,
    status_code=201,
    responses={409: {"model": ErrorResponse, "description": "Email already registered."}},
)
async def sign_up_local(body: CredentialsRequest, service: AuthService = Depends(_service)) -> JSONResponse:
    """Register a new local account and return its first token pair."""
    pair = await service.sign_up_local(body.email, body.password)
    return _tokens_response(pair, status_code=201)


@router.post("/local/signin", response_model=TokenPairResponse, responses=_FORBIDDEN)
async def sign_in_local(body: CredentialsRequest, service: AuthService = Depends(_service)) -> JSONResponse:
    """Authenticate with email and password.

    Unknown email and wrong password return the same 403 so callers cannot
    discover which emails are registered.
    """
    pair = await service.sign_in_local(body.email, body.password)
    return _tokens_response(pair)


@router.post("/refresh", response_model=TokenPairResponse, responses={**_UNAUTHORIZED, **_FORBIDDEN})
async def refresh(
    claims: TokenClaims = Depends(require_refresh_token),
    service: AuthService = Depends(_service),
) -> JSONResponse:
    """Exchange the presented refresh token for a new pair.

    The presented token is single-use: once this call succeeds, presenting it
    again returns 403.
    """
    pair = await service.refresh(claims.subject, claims.refresh_token)
    return _tokens_response(pair)


@router.post("/logout", status_code=200, responses=_UNAUTHORIZED)
async def logout(
    claims: TokenClaims = Depends(require_access_token),
    service: AuthService = Depends(_service),
) -> Response:
    """Invalidate the caller's refresh token. Safe to call repeatedly."""
    await service.logout(claims.subject)
    return Response(status_code=200)
