"""
Port interfaces (protocols) for the domain layer.

Ports define the contracts between the domain and infrastructure layers.
They are implemented by adapters in the infrastructure layer, allowing
the domain to remain independent of technical details.

Following Hexagonal Architecture principles, the domain layer depends only
on these abstract protocols, never on concrete implementations.
"""

from typing import ContextManager, Iterable, List, Optional, Protocol

from .entities import Book, ExchangeRequest, Listing, ListingDetails, User
from .value_objects import (
    BookUpdate,
    ExchangeStatus,
    ListingUpdate,
    NewBook,
    NewListing,
    NewUser,
)


class UnitOfWork(Protocol):
    """
    Port for grouping repository calls into one atomic unit.

    Repositories that share a unit of work join its transaction when they
    are called inside `transaction()`; outside of it every repository call
    is its own transaction.
    """

    def transaction(self) -> ContextManager[object]:
        """
        Open (or join) an all-or-nothing unit of work.

        Leaving the block normally commits; leaving it with an exception
        rolls back everything done inside it and re-raises.
        """
        ...


class ListingRepository(Protocol):
    """
    Port for persisting and retrieving book listings.

    The store owns listing records exclusively. Referential integrity of
    book_id/owner_user_id is enforced by the persistence layer.
    """

    def create(self, listing: NewListing) -> Listing:
        """
        Persist a new listing.

        Args:
            listing: Listing payload; list_on_date defaults to now

        Returns:
            The stored listing with its generated ID

        Raises:
            ListingPersistenceError: If the write or the read-back fails
        """
        ...

    def get_by_id(self, listing_id: int) -> Listing:
        """
        Raises:
            ListingNotFoundError: If no listing has this ID
        """
        ...

    def list_all(self) -> List[Listing]:
        ...

    def list_by_user(self, owner_user_id: int) -> List[Listing]:
        ...

    def list_by_book(self, book_id: int) -> List[Listing]:
        ...

    def list_recent(self, limit: int) -> List[Listing]:
        """Most recently listed first (list_on_date descending)."""
        ...

    def list_with_details(self) -> List[ListingDetails]:
        """Every listing joined with its book and its owner's username."""
        ...

    def update(self, listing_id: int, changes: ListingUpdate) -> Listing:
        """
        Apply the given fields only.

        Raises:
            ListingNotFoundError: If the row is missing after the write
            ListingPersistenceError: If the write fails
        """
        ...

    def delete(self, listing_id: int) -> bool:
        """Return True iff a row was removed. Absence is not an error."""
        ...

    def delete_many(self, listing_ids: Iterable[int]) -> int:
        ...

    def delete_by_book(self, book_id: int) -> int:
        ...

    def delete_by_user(self, owner_user_id: int) -> int:
        ...


class ExchangeRequestRepository(Protocol):
    """
    Port for exchange-request records and the transactional operations
    over them.

    Implementations must make `create` and `accept` atomic against the
    persistent store, so that concurrent callers cannot both create the
    same ordered pair or leave an acceptance half applied.
    """

    def exists(self, requestee_listing_id: int, requester_listing_id: int) -> bool:
        """Check whether a request exists for this ordered listing pair."""
        ...

    def create(self, requestee_listing_id: int, requester_listing_id: int) -> ExchangeRequest:
        """
        Validate and persist a new pending request.

        Raises:
            InvalidExchangeError: If the listings are identical, missing,
                or owned by the same user
            DuplicateExchangeError: If the ordered pair already exists
            ExchangeCreationError: If the write or read-back fails (the
                whole unit is rolled back)
        """
        ...

    def get_by_id(self, request_id: int) -> ExchangeRequest:
        """
        Raises:
            ExchangeNotFoundError: If no request has this ID
        """
        ...

    def list_all(self) -> List[ExchangeRequest]:
        ...

    def list_by_requestee_listing(self, listing_id: int) -> List[ExchangeRequest]:
        ...

    def list_by_requester_listing(self, listing_id: int) -> List[ExchangeRequest]:
        ...

    def list_by_user(self, user_id: int) -> List[ExchangeRequest]:
        """Requests where the user owned either listing when it was proposed."""
        ...

    def list_accepted_by_user(self, user_id: int) -> List[ExchangeRequest]:
        ...

    def list_by_status(self, status: ExchangeStatus) -> List[ExchangeRequest]:
        ...

    def update_status(self, request_id: int, status: ExchangeStatus) -> ExchangeRequest:
        """
        Raises:
            ExchangeNotFoundError: If the row is missing after the write
        """
        ...

    def update(self, request_id: int, **changes) -> ExchangeRequest:
        """
        Partial update; only `status` and `request_date` may change.

        Raises:
            InvalidStatusError: If a status value is unknown
            ExchangeNotFoundError: If the row is missing after the write
        """
        ...

    def accept(self, request_id: int) -> ExchangeRequest:
        """
        Accept one request and reject every other request for the same
        requestee listing, as a single all-or-nothing unit.

        Raises:
            ExchangeNotFoundError: If the request does not exist
            ExchangeUpdateError: If the unit fails and was rolled back
        """
        ...

    def reject_pending_for_listings(self, listing_ids: Iterable[int]) -> int:
        """Reject pending requests naming any of the listings, in either role."""
        ...

    def delete(self, request_id: int) -> bool:
        ...

    def delete_by_listing(self, listing_id: int) -> int:
        """Remove every request referencing the listing in either role."""
        ...


class BookRepository(Protocol):
    """Port for the shared book catalog and its genre vocabulary."""

    def create(self, book: NewBook) -> Book:
        """
        Raises:
            GenreNotFoundError: If the genre name is unknown
            BookPersistenceError: If the write or read-back fails
        """
        ...

    def get_by_id(self, book_id: int) -> Book:
        """
        Raises:
            BookNotFoundError: If no book has this ID
        """
        ...

    def list_all(self) -> List[Book]:
        ...

    def search_by_title(self, text: str) -> List[Book]:
        ...

    def search_by_author(self, text: str) -> List[Book]:
        ...

    def list_by_genre(self, genre_name: str) -> List[Book]:
        ...

    def update(self, book_id: int, changes: BookUpdate) -> Book:
        ...

    def delete(self, book_id: int) -> bool:
        ...

    def list_genres(self) -> List[str]:
        ...


class UserRepository(Protocol):
    """Port for user profiles and their stored credentials."""

    def create(self, user: NewUser) -> User:
        """
        Raises:
            UserExistsError: If the username or email is taken
            UserPersistenceError: If the write or read-back fails
        """
        ...

    def get_by_id(self, user_id: int) -> User:
        ...

    def get_by_username(self, username: str) -> User:
        """
        Raises:
            UserNotFoundError: If nobody has this username
        """
        ...

    def delete(self, user_id: int) -> bool:
        ...

    def set_password_hash(self, username: str, password_hash: str) -> None:
        ...

    def get_password_hash(self, username: str) -> Optional[str]:
        ...


class AuthProvider(Protocol):
    """
    Port for identity verification.

    The domain trusts this provider completely; it performs no
    cryptographic work itself.
    """

    def verify(self, token: str) -> str:
        """
        Verify a token and return the identity it carries.

        Raises:
            InvalidTokenError: If the token cannot be verified
        """
        ...

    def resolve_identity(self, identity: str) -> int:
        """
        Map a verified identity to the numeric user ID.

        Raises:
            UserNotFoundError: If the identity has no user record
        """
        ...

    def issue_token(self, identity: str) -> str:
        ...


class PasswordHasher(Protocol):
    """Port for one-way password hashing."""

    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, password_hash: str) -> bool:
        ...
