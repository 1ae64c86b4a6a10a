"""
SQLite implementation of the UserRepository port.

Profiles live in the users table; password hashes live in user_auth,
keyed by username, so the profile table never carries secrets.
"""

import logging
import sqlite3
import time
from typing import Optional

from bookswap.domain.entities import User
from bookswap.domain.errors import UserExistsError, UserNotFoundError, UserPersistenceError
from bookswap.domain.ports import UserRepository
from bookswap.domain.value_objects import NewUser
from bookswap.infrastructure.db.database import SqliteDatabase

logger = logging.getLogger(__name__)


class SqliteUserRepository(UserRepository):

    def __init__(self, database: SqliteDatabase) -> None:
        self._db = database

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            user_id=row["user_id"],
            username=row["username"],
            email=row["email"],
            date_joined=row["date_joined"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            location=row["location"],
            bio=row["bio"],
            profile_picture_url=row["profile_picture_url"],
        )

    def _fetch_one(self, column: str, value) -> Optional[User]:
        with self._db.connection() as conn:
            row = conn.execute(f"SELECT * FROM users WHERE {column} = ?", (value,)).fetchone()
        return self._row_to_user(row) if row is not None else None

    def create(self, user: NewUser) -> User:
        date_joined = user.date_joined if user.date_joined is not None else int(time.time())
        try:
            with self._db.transaction() as conn:
                taken = conn.execute(
                    "SELECT username, email FROM users WHERE username = ? OR email = ?",
                    (user.username, user.email),
                ).fetchone()
                if taken is not None:
                    field = "username" if taken["username"] == user.username else "email"
                    raise UserExistsError(f"User with {field} {getattr(user, field)} already exists")

                cursor = conn.execute(
                    """
                    INSERT INTO users (
                        username, first_name, last_name, email,
                        profile_picture_url, location, bio, date_joined
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user.username,
                        user.first_name,
                        user.last_name,
                        user.email,
                        user.profile_picture_url,
                        user.location,
                        user.bio,
                        date_joined,
                    ),
                )
                row = conn.execute(
                    "SELECT * FROM users WHERE user_id = ?", (cursor.lastrowid,)
                ).fetchone()
                if row is None:
                    raise UserPersistenceError(
                        "Failed to retrieve created user. Transaction failed and rolled back."
                    )
                created = self._row_to_user(row)
        except sqlite3.IntegrityError as e:
            raise UserExistsError(f"User {user.username} already exists") from e
        except sqlite3.Error as e:
            raise UserPersistenceError(f"Failed to create user: {e}") from e

        logger.info(f"Created user {created.user_id} ({created.username})")
        return created

    def get_by_id(self, user_id: int) -> User:
        user = self._fetch_one("user_id", user_id)
        if user is None:
            raise UserNotFoundError(f"User with ID {user_id} not found")
        return user

    def get_by_username(self, username: str) -> User:
        user = self._fetch_one("username", username)
        if user is None:
            raise UserNotFoundError(f"User with username {username} not found")
        return user

    def delete(self, user_id: int) -> bool:
        """Delete a user; listings and credentials cascade."""
        try:
            with self._db.transaction() as conn:
                cursor = conn.execute("DELETE FROM users WHERE user_id = ?", (user_id,))
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise UserPersistenceError(f"Failed to delete user {user_id}: {e}") from e

    def set_password_hash(self, username: str, password_hash: str) -> None:
        try:
            with self._db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO user_auth (username, password) VALUES (?, ?)
                    ON CONFLICT(username) DO UPDATE SET password = excluded.password
                    """,
                    (username, password_hash),
                )
        except sqlite3.IntegrityError as e:
            raise UserNotFoundError(f"User with username {username} not found") from e
        except sqlite3.Error as e:
            raise UserPersistenceError(f"Failed to store credentials for {username}: {e}") from e

    def get_password_hash(self, username: str) -> Optional[str]:
        with self._db.connection() as conn:
            row = conn.execute(
                "SELECT password FROM user_auth WHERE username = ?", (username,)
            ).fetchone()
        return row["password"] if row is not None else None
