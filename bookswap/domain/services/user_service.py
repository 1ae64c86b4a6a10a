"""
Domain service for registration, login and profile lookup.
"""

import logging
from typing import Optional, Tuple

from bookswap.domain.entities import User
from bookswap.domain.errors import InvalidCredentialsError, ValidationError
from bookswap.domain.ports import AuthProvider, PasswordHasher, UnitOfWork, UserRepository
from bookswap.domain.value_objects import NewUser

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class UserService:
    """
    Usage:
        users = UserService(user_repo, hasher, auth_provider, database)
        user, token = users.register("alice", "alice@example.com", "s3cret-pass")
        token = users.login("alice", "s3cret-pass")
    """

    def __init__(
        self,
        users: UserRepository,
        hasher: PasswordHasher,
        auth_provider: AuthProvider,
        unit_of_work: UnitOfWork,
    ) -> None:
        self._users = users
        self._hasher = hasher
        self._auth = auth_provider
        self._uow = unit_of_work

    def register(
        self,
        username: str,
        email: str,
        password: str,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        location: Optional[str] = None,
        bio: Optional[str] = None,
        profile_picture_url: Optional[str] = None,
    ) -> Tuple[User, str]:
        """
        Create a user and its credential, then issue a token.

        Profile and credential are written in one unit of work, so a
        failure never leaves a user that cannot log in.

        Returns:
            (created user, bearer token)

        Raises:
            ValidationError: If the password is too short or the profile
                data is malformed
            UserExistsError: If the username or email is taken
        """
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        try:
            new_user = NewUser(
                username=username.strip() if username else username,
                email=email.strip() if email else email,
                first_name=first_name,
                last_name=last_name,
                location=location,
                bio=bio,
                profile_picture_url=profile_picture_url,
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e

        password_hash = self._hasher.hash(password)
        with self._uow.transaction():
            user = self._users.create(new_user)
            self._users.set_password_hash(user.username, password_hash)

        logger.info(f"Registered user {user.user_id} ({user.username})")
        return user, self._auth.issue_token(user.username)

    def login(self, username: str, password: str) -> str:
        """
        Check a password and issue a token.

        Raises:
            UserNotFoundError: If nobody has this username
            InvalidCredentialsError: If the password does not match
        """
        user = self._users.get_by_username(username)
        stored = self._users.get_password_hash(user.username)
        if stored is None or not self._hasher.verify(password, stored):
            logger.warning(f"Failed login for {username}")
            raise InvalidCredentialsError("Invalid username or password")

        return self._auth.issue_token(user.username)

    def profile(self, identity: str) -> User:
        return self._users.get_by_username(identity)

    def get_user(self, user_id: int) -> User:
        return self._users.get_by_id(user_id)
