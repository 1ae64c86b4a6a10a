"""
JWT implementation of the AuthProvider port, plus password hashing.

Tokens are HS256-signed with PyJWT and carry the username as `sub`.
The domain only ever sees the verified username and the numeric user ID
it resolves to.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

from bookswap.domain.errors import InvalidTokenError
from bookswap.domain.ports import AuthProvider, PasswordHasher, UserRepository

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEFAULT_EXPIRES_IN = 86400  # 24 hours, in seconds


class JwtAuthProvider(AuthProvider):
    """
    Issues and verifies bearer tokens.

    Usage:
        provider = JwtAuthProvider(secret, users)
        token = provider.issue_token("alice")
        provider.verify(token)            # -> "alice"
        provider.resolve_identity("alice")  # -> 1
    """

    def __init__(
        self,
        secret: str,
        users: UserRepository,
        expires_in: int = DEFAULT_EXPIRES_IN,
    ) -> None:
        if not secret:
            raise ValueError("Unable to initialize authentication: JWT secret not set")
        if expires_in <= 0:
            raise ValueError(f"expires_in must be positive, got {expires_in}")

        self._secret = secret
        self._users = users
        self._expires_in = expires_in

    def issue_token(self, identity: str, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": identity,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self._expires_in),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> str:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as e:
            logger.debug(f"Rejected token: {e}")
            raise InvalidTokenError(f"Failed to decode token: {e}") from e

        identity = payload.get("sub")
        if not isinstance(identity, str) or not identity:
            raise InvalidTokenError("Token does not carry a subject")
        return identity

    def resolve_identity(self, identity: str) -> int:
        return self._users.get_by_username(identity).user_id


class PasslibPasswordHasher(PasswordHasher):
    """bcrypt hashing through passlib's CryptContext."""

    def __init__(self, rounds: Optional[int] = None) -> None:
        settings = {"bcrypt__rounds": rounds} if rounds is not None else {}
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", **settings)

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return self._context.verify(password, password_hash)
        except ValueError:
            # Malformed or foreign hash format
            return False
