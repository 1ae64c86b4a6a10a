"""
Domain service for the shared book catalog and the listings on offer.

Books and genres are plain catalog data. Listings carry ownership, so every
write to a listing goes through the authorization gate, and removing a
listing (directly or through its book) also removes the exchange requests
that reference it, inside one unit of work.
"""

import logging
from typing import List, Optional

from bookswap.domain.entities import Book, Listing, ListingDetails
from bookswap.domain.errors import ListingNotFoundError, NotAuthorizedError
from bookswap.domain.ports import (
    BookRepository,
    ExchangeRequestRepository,
    ListingRepository,
    UnitOfWork,
)
from bookswap.domain.services.authorization_gate import AuthorizationGate
from bookswap.domain.value_objects import BookUpdate, ListingUpdate, NewBook, NewListing

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 10


class CatalogService:
    """
    Books, genres and listings.

    Usage:
        catalog = CatalogService(book_repo, listing_repo, exchange_repo, gate, database)
        book = catalog.create_book(NewBook("Dune", "Frank Herbert", "Science Fiction"))
        listing = catalog.create_listing(alice_id, book.book_id, "Paperback")
    """

    def __init__(
        self,
        books: BookRepository,
        listings: ListingRepository,
        exchanges: ExchangeRequestRepository,
        gate: AuthorizationGate,
        unit_of_work: UnitOfWork,
    ) -> None:
        self._books = books
        self._listings = listings
        self._exchanges = exchanges
        self._gate = gate
        self._uow = unit_of_work

    # ------------------------------------------------------------------
    # Books and genres
    # ------------------------------------------------------------------

    def list_genres(self) -> List[str]:
        return self._books.list_genres()

    def create_book(self, book: NewBook) -> Book:
        return self._books.create(book)

    def get_book(self, book_id: int) -> Book:
        return self._books.get_by_id(book_id)

    def list_books(self) -> List[Book]:
        return self._books.list_all()

    def search_books(
        self,
        title: Optional[str] = None,
        author: Optional[str] = None,
        genre: Optional[str] = None,
    ) -> List[Book]:
        """
        Find books matching every filter given.

        Title and author are case-insensitive substring matches; genre is
        an exact (case-insensitive) name. With no filter, every book.
        """
        title = title.strip() if title else None
        author = author.strip() if author else None
        genre = genre.strip() if genre else None

        if title:
            results = self._books.search_by_title(title)
        elif author:
            results = self._books.search_by_author(author)
        elif genre:
            results = self._books.list_by_genre(genre)
        else:
            return self._books.list_all()

        if author:
            results = [b for b in results if author.lower() in b.author.lower()]
        if genre:
            results = [
                b for b in results
                if b.genre_name is not None and b.genre_name.lower() == genre.lower()
            ]
        return results

    def update_book(self, book_id: int, changes: BookUpdate) -> Book:
        return self._books.update(book_id, changes)

    def delete_book(self, book_id: int) -> bool:
        """
        Remove a book together with its listings and their requests.

        Returns:
            True if the book existed
        """
        with self._uow.transaction():
            listings = self._listings.list_by_book(book_id)
            for listing in listings:
                self._exchanges.delete_by_listing(listing.listing_id)
            self._listings.delete_by_book(book_id)
            removed = self._books.delete(book_id)

        if removed:
            logger.info(f"Deleted book {book_id} and {len(listings)} listing(s)")
        return removed

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def create_listing(
        self,
        caller_user_id: int,
        book_id: int,
        description: Optional[str] = None,
        list_on_date: Optional[int] = None,
    ) -> Listing:
        """
        Offer a copy of a catalog book, owned by the caller.

        Raises:
            BookNotFoundError: If the book is not in the catalog
        """
        self._books.get_by_id(book_id)
        return self._listings.create(
            NewListing(
                owner_user_id=caller_user_id,
                book_id=book_id,
                description=description,
                list_on_date=list_on_date,
            )
        )

    def get_listing(self, listing_id: int) -> Listing:
        return self._listings.get_by_id(listing_id)

    def list_listings(self) -> List[Listing]:
        return self._listings.list_all()

    def list_listings_by_user(self, owner_user_id: int) -> List[Listing]:
        return self._listings.list_by_user(owner_user_id)

    def list_listings_by_book(self, book_id: int) -> List[Listing]:
        return self._listings.list_by_book(book_id)

    def list_recent_listings(self, limit: int = DEFAULT_RECENT_LIMIT) -> List[Listing]:
        return self._listings.list_recent(limit)

    def list_listings_with_details(self) -> List[ListingDetails]:
        return self._listings.list_with_details()

    def update_listing(
        self,
        caller_user_id: int,
        listing_id: int,
        changes: ListingUpdate,
    ) -> Listing:
        """
        Patch one of the caller's listings.

        Raises:
            ListingNotFoundError: If the listing does not exist
            NotAuthorizedError: If the caller does not own it, or tries to
                hand it to another user
            BookNotFoundError: If the new book_id is not in the catalog
        """
        if changes.owner_user_id is not None and changes.owner_user_id != caller_user_id:
            raise NotAuthorizedError("Listings cannot be transferred to another user")

        with self._uow.transaction():
            current = self._gate.require_listing_owner(caller_user_id, listing_id)
            if changes.is_empty():
                return current
            if changes.book_id is not None:
                self._books.get_by_id(changes.book_id)
            return self._listings.update(listing_id, changes)

    def delete_listing(self, caller_user_id: int, listing_id: int) -> bool:
        """
        Withdraw one of the caller's listings and every request naming it.

        Returns:
            False if the listing did not exist
        """
        with self._uow.transaction():
            try:
                self._gate.require_listing_owner(caller_user_id, listing_id)
            except ListingNotFoundError:
                return False

            dropped = self._exchanges.delete_by_listing(listing_id)
            removed = self._listings.delete(listing_id)

        logger.info(
            f"Deleted listing {listing_id} and {dropped} exchange request(s) referencing it"
        )
        return removed
