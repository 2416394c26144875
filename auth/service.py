"""
auth/service.py -- Token lifecycle orchestration: signup, signin, refresh, logout.

Session states per user:
  Anonymous -> Authenticated (refresh_token_hash set) -> LoggedOut (hash cleared)

Rotation invariant:
  Every successful signin or refresh issues a brand new pair and stores the
  hash of the new refresh token. refresh() swaps hashes with a compare-and-swap
  against the hash it verified, so a refresh token that has been rotated away
  (or raced by a concurrent refresh) can never be used again.

Error policy:
  Expected failures raise the tagged classes in auth.errors. Persistence and
  infrastructure errors propagate untouched -- nothing is caught and rethrown
  as a generic error.

bcrypt is CPU-bound, so hashing and verification run in worker threads to
keep async route handlers from blocking the event loop.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import asyncio
import logging

from auth.errors import AccessDenied, InvalidCredentials
from auth.models import TokenPair
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenIssuer

logger = logging.getLogger("localauth.auth")


class AuthService:
    def __init__(self, store: UserStore, issuer: TokenIssuer, hasher: PasswordHasher) -> None:
        self.store = store
        self.issuer = issuer
        self.hasher = hasher

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    async def sign_up_local(self, email: str, password: str) -> TokenPair:
        """Create an account and start its first session.

        Raises DuplicateEmail if the email is taken; the existing record is
        not touched.
        """
        password_hash = await asyncio.to_thread(self.hasher.hash, password)
        user = self.store.create_user(email, password_hash)
        tokens = await self._start_session(user.id, user.email)
        logger.info("Signed up user_id=%s", user.id)
        return tokens

    async def sign_in_local(self, email: str, password: str) -> TokenPair:
        """Verify credentials and start a new session.

        Unknown email and wrong password both raise InvalidCredentials with
        the same message. A dummy bcrypt check runs for unknown emails so the
        two cases also take the same time.
        """
        user = self.store.get_by_email(email)
        if user is None:
            await asyncio.to_thread(self.hasher.dummy_verify, password)
            logger.warning("Sign-in failed: unknown email")
            raise InvalidCredentials()
        if not await asyncio.to_thread(self.hasher.verify, password, user.password_hash):
            logger.warning("Sign-in failed: password mismatch for user_id=%s", user.id)
            raise InvalidCredentials()

        tokens = await self._start_session(user.id, user.email)
        self.store.update_last_login(user.id)
        logger.info("Signed in user_id=%s", user.id)
        return tokens

    async def refresh(self, user_id: int, refresh_token: str) -> TokenPair:
        """Exchange a valid refresh token for a new pair (full rotation).

        Raises AccessDenied if the user is gone, is logged out, presents a
        token whose hash is not the stored one, or loses a concurrent race.
        """
        user = self.store.get_by_id(user_id)
        if user is None or user.refresh_token_hash is None:
            logger.warning("Refresh denied: no active session for user_id=%s", user_id)
            raise AccessDenied()
        stored_hash = user.refresh_token_hash
        if not await asyncio.to_thread(self.hasher.verify_token, refresh_token, stored_hash):
            logger.warning("Refresh denied: stale or unknown refresh token for user_id=%s", user_id)
            raise AccessDenied()

        tokens = await self.issuer.issue_pair(user.id, user.email)
        new_hash = await asyncio.to_thread(self.hasher.hash_token, tokens.refresh_token)
        if not self.store.rotate_refresh_hash(user.id, stored_hash, new_hash):
            logger.warning("Refresh denied: concurrent rotation for user_id=%s", user_id)
            raise AccessDenied()
        logger.info("Rotated refresh token for user_id=%s", user.id)
        return tokens

    async def logout(self, user_id: int) -> None:
        """End the session by clearing the stored refresh hash. Idempotent."""
        if self.store.clear_refresh_hash(user_id):
            logger.info("Logged out user_id=%s", user_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _start_session(self, user_id: int, email: str) -> TokenPair:
        tokens = await self.issuer.issue_pair(user_id, email)
        refresh_hash = await asyncio.to_thread(self.hasher.hash_token, tokens.refresh_token)
        self.store.set_refresh_hash(user_id, refresh_hash)
        return tokens
