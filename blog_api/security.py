"""
Credential service — password hashing and bearer-token issue/validation.

Hashing uses argon2 (a fresh random salt per call) and runs in the thread
pool so a request never blocks the event loop while hashing.  Tokens are
HS256 JWTs that embed the caller's id and display name; the authorization
gate trusts those claims for the lifetime of the token.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import ExpiredSignatureError, JWTError, jwt
from starlette.concurrency import run_in_threadpool

from blog_api.config import Settings
from blog_api.errors import ExpiredToken, InvalidToken


@dataclass(frozen=True)
class AuthContext:
    """Identity of the authenticated caller, taken from the token claims."""

    id: int
    name: str


class CredentialService:
    def __init__(self, config: Settings) -> None:
        self._secret = config.SECRET_KEY
        self._algorithm = config.TOKEN_ALGORITHM
        self._default_ttl = timedelta(seconds=config.TOKEN_TTL_SECONDS)
        self._hasher = PasswordHasher()

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    async def hash_password(self, password: str) -> str:
        return await run_in_threadpool(self._hasher.hash, password)

    async def verify_password(self, password: str, password_hash: str) -> bool:
        return await run_in_threadpool(self._verify, password, password_hash)

    def _verify(self, password: str, password_hash: str) -> bool:
        try:
            return self._hasher.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def issue_token(self, identity: AuthContext, ttl: timedelta | None = None) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "id": identity.id,
            "name": identity.name,
            "iat": int(now.timestamp()),
            "exp": int((now + (ttl or self._default_ttl)).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def validate_token(self, token: str) -> AuthContext:
        """
        Return the identity embedded in *token*.

        Raises ``ExpiredToken`` when the token is past its expiry and
        ``InvalidToken`` for a bad signature, a malformed token or missing
        identity claims.
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise ExpiredToken()
        except JWTError:
            raise InvalidToken()

        user_id = payload.get("id")
        name = payload.get("name")
        if not isinstance(user_id, int) or not isinstance(name, str):
            raise InvalidToken()
        return AuthContext(id=user_id, name=name)
