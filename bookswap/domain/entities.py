"""
Domain entities for the book exchange marketplace.

Entities are objects with a unique identity that runs through time and
different representations. Identifiers are the integer keys generated by
the persistence layer; timestamps are unix seconds.
"""

from dataclasses import dataclass
from typing import Optional

from .value_objects import ExchangeStatus


@dataclass
class User:
    """A registered member of the marketplace."""

    user_id: int
    """Numeric identifier, generated on registration"""

    username: str
    """Unique login name; this is the identity carried in auth tokens"""

    email: str
    """Unique contact address"""

    date_joined: int
    """Unix timestamp of registration"""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    profile_picture_url: Optional[str] = None

    def __eq__(self, other: object) -> bool:
        """Two users are equal if they have the same ID."""
        if not isinstance(other, User):
            return NotImplemented
        return self.user_id == other.user_id

    def __hash__(self) -> int:
        return hash(self.user_id)

    def display_name(self) -> str:
        """Full name when known, username otherwise."""
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full or self.username


@dataclass
class Book:
    """
    A title in the shared catalog.

    A book is not owned by anyone; users offer copies of it through
    listings.
    """

    book_id: int
    """Unique identifier for this book"""

    title: str
    author: str

    genre_id: int
    """Foreign key into the seeded genre table"""

    genre_name: Optional[str] = None
    """Resolved genre label (joined in on reads)"""

    description: Optional[str] = None

    created_at: Optional[str] = None
    """Creation time as stored by SQLite (CURRENT_TIMESTAMP)"""

    def __post_init__(self) -> None:
        """Validate book data."""
        if not self.title or not self.title.strip():
            raise ValueError("Book title cannot be empty")

        if not self.author or not self.author.strip():
            raise ValueError("Book author cannot be empty")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        return self.book_id == other.book_id

    def __hash__(self) -> int:
        return hash(self.book_id)


@dataclass
class Listing:
    """
    A single copy of a book offered by a user for exchange.

    Listings are created when a user offers a book and destroyed either
    when the owner deletes them or when they become part of an accepted
    exchange.
    """

    listing_id: int
    """Unique identifier, generated on creation"""

    owner_user_id: int
    """The user offering this copy"""

    book_id: int
    """The catalog book this copy is an instance of"""

    list_on_date: int
    """Unix timestamp of when the copy was listed"""

    description: Optional[str] = None
    """Owner's notes about this copy"""

    def __eq__(self, other: object) -> bool:
        """Two listings are equal if they have the same ID."""
        if not isinstance(other, Listing):
            return NotImplemented
        return self.listing_id == other.listing_id

    def __hash__(self) -> int:
        return hash(self.listing_id)

    def is_owned_by(self, user_id: int) -> bool:
        return self.owner_user_id == user_id


@dataclass
class ExchangeRequest:
    """
    A proposal to swap one listing for another.

    The requestee listing is the one being asked for; the requester
    listing is the one offered in return. A request starts out pending
    and changes status in place.
    """

    request_id: int
    """Unique identifier, generated on creation"""

    requestee_listing_id: int
    """Listing being asked for (target of the proposal)"""

    requester_listing_id: int
    """Listing offered in return (source of the proposal)"""

    status: ExchangeStatus
    """Current lifecycle state"""

    request_date: int
    """Unix timestamp of when the proposal was made"""

    requestee_user_id: Optional[int] = None
    """Owner of the requestee listing when the proposal was made"""

    requester_user_id: Optional[int] = None
    """Owner of the requester listing when the proposal was made"""

    def __post_init__(self) -> None:
        """Validate exchange request data."""
        self.status = ExchangeStatus.parse(self.status)

        if self.requestee_listing_id == self.requester_listing_id:
            raise ValueError(
                "requestee_listing_id and requester_listing_id must differ, "
                f"got {self.requestee_listing_id} for both"
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExchangeRequest):
            return NotImplemented
        return self.request_id == other.request_id

    def __hash__(self) -> int:
        return hash(self.request_id)

    def is_pending(self) -> bool:
        return self.status is ExchangeStatus.PENDING

    def involves_listing(self, listing_id: int) -> bool:
        """Check if the listing takes part in this request, in either role."""
        return listing_id in (self.requestee_listing_id, self.requester_listing_id)

    def involves_user(self, user_id: int) -> bool:
        return user_id in (self.requestee_user_id, self.requester_user_id)

    def listing_ids(self) -> tuple:
        """(requestee_listing_id, requester_listing_id)"""
        return (self.requestee_listing_id, self.requester_listing_id)


@dataclass(frozen=True)
class ListingDetails:
    """
    A listing joined with the book it offers and its owner's username.

    This is the read model used to browse the marketplace.
    """

    listing: Listing
    book: Book
    owner_username: Optional[str] = None


@dataclass(frozen=True)
class ExchangeView:
    """An exchange request together with both listings it references."""

    request: ExchangeRequest
    requestee_listing: Listing
    requester_listing: Listing
