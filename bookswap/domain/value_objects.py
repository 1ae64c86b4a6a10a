"""
Value objects for the domain layer.

Value objects are immutable objects that represent descriptive aspects
of the domain with no conceptual identity: the status vocabulary of an
exchange request, and the payloads used to create or patch records.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional


class ExchangeStatus(str, Enum):
    """Lifecycle states of an exchange request."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    # Reserved: nothing in the exchange flow produces these two yet.
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: "str | ExchangeStatus") -> "ExchangeStatus":
        """
        Coerce a raw string into an ExchangeStatus.

        Raises:
            ValueError: If the value is not a known status
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValueError(
                f"Unknown exchange status '{value}' (expected one of: {allowed})"
            ) from None


def _set_fields(obj: Any) -> Dict[str, Any]:
    return {
        f.name: getattr(obj, f.name)
        for f in fields(obj)
        if getattr(obj, f.name) is not None
    }


@dataclass(frozen=True)
class NewListing:
    """
    A listing that has not been persisted yet.

    list_on_date is resolved to the current unix time by the store when
    left unset.
    """

    owner_user_id: int
    """User offering the book"""

    book_id: int
    """Book being offered"""

    description: Optional[str] = None
    """Free-text notes about this copy (condition, edition...)"""

    list_on_date: Optional[int] = None
    """Unix timestamp of when the book was listed"""

    def __post_init__(self) -> None:
        """Validate listing payload."""
        if self.list_on_date is not None and self.list_on_date < 0:
            raise ValueError(
                f"list_on_date cannot be negative, got {self.list_on_date}"
            )


@dataclass(frozen=True)
class ListingUpdate:
    """
    Partial update for a listing. Fields left as None are not touched.
    """

    description: Optional[str] = None
    list_on_date: Optional[int] = None
    owner_user_id: Optional[int] = None
    book_id: Optional[int] = None

    def is_empty(self) -> bool:
        """Check if no field is set."""
        return not self.as_changes()

    def as_changes(self) -> Dict[str, Any]:
        """Return only the fields that were given."""
        return _set_fields(self)


@dataclass(frozen=True)
class NewBook:
    """A book to be added to the shared catalog."""

    title: str
    author: str
    genre_name: str
    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate book payload."""
        if not self.title or not self.title.strip():
            raise ValueError("Book title cannot be empty")
        if not self.author or not self.author.strip():
            raise ValueError("Book author cannot be empty")
        if not self.genre_name or not self.genre_name.strip():
            raise ValueError("Book genre cannot be empty")


@dataclass(frozen=True)
class BookUpdate:
    """Partial update for a book. Fields left as None are not touched."""

    title: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None
    genre_name: Optional[str] = None

    def as_changes(self) -> Dict[str, Any]:
        return _set_fields(self)


@dataclass(frozen=True)
class NewUser:
    """Profile data for a user being registered."""

    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    profile_picture_url: Optional[str] = None
    date_joined: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate registration payload."""
        if not self.username or not self.username.strip():
            raise ValueError("Username cannot be empty")
        if not self.email or "@" not in self.email:
            raise ValueError(f"Invalid email address: '{self.email}'")

