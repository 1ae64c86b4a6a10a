"""
SQLite implementation of the ListingRepository port.

This adapter persists Listing entities in the book_listings table and
translates storage failures into listing domain errors. The owner is
stored in the user_id column.
"""

import logging
import sqlite3
import time
from typing import Iterable, List, Optional

from bookswap.domain.entities import Book, Listing, ListingDetails
from bookswap.domain.errors import ListingNotFoundError, ListingPersistenceError
from bookswap.domain.ports import ListingRepository
from bookswap.domain.value_objects import ListingUpdate, NewListing
from bookswap.infrastructure.db.database import SqliteDatabase

logger = logging.getLogger(__name__)

# Entity field -> column
_UPDATABLE_COLUMNS = {
    "description": "description",
    "list_on_date": "list_on_date",
    "owner_user_id": "user_id",
    "book_id": "book_id",
}


class SqliteListingRepository(ListingRepository):
    """Listing Store backed by the shared SqliteDatabase handle."""

    def __init__(self, database: SqliteDatabase) -> None:
        self._db = database

    def _row_to_listing(self, row: sqlite3.Row) -> Listing:
        """Convert a database row to a Listing entity."""
        return Listing(
            listing_id=row["listing_id"],
            owner_user_id=row["user_id"],
            book_id=row["book_id"],
            list_on_date=row["list_on_date"],
            description=row["description"],
        )

    def _fetch(self, conn: sqlite3.Connection, listing_id: int) -> Optional[Listing]:
        row = conn.execute(
            "SELECT * FROM book_listings WHERE listing_id = ?",
            (listing_id,),
        ).fetchone()
        return self._row_to_listing(row) if row is not None else None

    def _select(self, query: str, params: tuple = ()) -> List[Listing]:
        with self._db.connection() as conn:
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_listing(row) for row in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, listing: NewListing) -> Listing:
        """Persist a listing and read it back inside one transaction."""
        list_on_date = listing.list_on_date
        if list_on_date is None:
            list_on_date = int(time.time())

        try:
            with self._db.transaction() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO book_listings (description, list_on_date, user_id, book_id)
                    VALUES (?, ?, ?, ?)
                    """,
                    (listing.description, list_on_date, listing.owner_user_id, listing.book_id),
                )
                created = self._fetch(conn, cursor.lastrowid)
                if created is None:
                    raise ListingPersistenceError(
                        "Failed to retrieve created listing. Transaction failed and rolled back."
                    )
        except sqlite3.Error as e:
            raise ListingPersistenceError(f"Failed to create listing: {e}") from e

        logger.info(
            f"Created listing {created.listing_id} "
            f"(user={created.owner_user_id}, book={created.book_id})"
        )
        return created

    def update(self, listing_id: int, changes: ListingUpdate) -> Listing:
        """Apply only the given fields, then read the row back."""
        values = changes.as_changes()
        assignments = ", ".join(f"{_UPDATABLE_COLUMNS[name]} = ?" for name in values)

        try:
            with self._db.transaction() as conn:
                if values:
                    conn.execute(
                        f"UPDATE book_listings SET {assignments} WHERE listing_id = ?",
                        (*values.values(), listing_id),
                    )
                updated = self._fetch(conn, listing_id)
                if updated is None:
                    raise ListingNotFoundError(
                        f"Book listing with ID {listing_id} not found after update"
                    )
        except sqlite3.Error as e:
            raise ListingPersistenceError(f"Failed to update listing {listing_id}: {e}") from e

        return updated

    def delete(self, listing_id: int) -> bool:
        """Delete a listing. Returns True if a row was removed."""
        try:
            with self._db.transaction() as conn:
                cursor = conn.execute(
                    "DELETE FROM book_listings WHERE listing_id = ?",
                    (listing_id,),
                )
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise ListingPersistenceError(f"Failed to delete listing {listing_id}: {e}") from e

    def delete_many(self, listing_ids: Iterable[int]) -> int:
        """Delete several listings in a single transaction."""
        ids = list(listing_ids)
        if not ids:
            return 0

        try:
            with self._db.transaction() as conn:
                deleted = 0
                for listing_id in ids:
                    cursor = conn.execute(
                        "DELETE FROM book_listings WHERE listing_id = ?",
                        (listing_id,),
                    )
                    deleted += cursor.rowcount
                return deleted
        except sqlite3.Error as e:
            raise ListingPersistenceError(f"Failed to delete listings {ids}: {e}") from e

    def _delete_where(self, column: str, value: int) -> int:
        try:
            with self._db.transaction() as conn:
                cursor = conn.execute(
                    f"DELETE FROM book_listings WHERE {column} = ?",
                    (value,),
                )
                return cursor.rowcount
        except sqlite3.Error as e:
            raise ListingPersistenceError(
                f"Failed to delete listings where {column}={value}: {e}"
            ) from e

    def delete_by_book(self, book_id: int) -> int:
        return self._delete_where("book_id", book_id)

    def delete_by_user(self, owner_user_id: int) -> int:
        return self._delete_where("user_id", owner_user_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, listing_id: int) -> Listing:
        with self._db.connection() as conn:
            listing = self._fetch(conn, listing_id)
        if listing is None:
            raise ListingNotFoundError(f"Book listing with ID {listing_id} not found")
        return listing

    def list_all(self) -> List[Listing]:
        return self._select("SELECT * FROM book_listings ORDER BY listing_id")

    def list_by_user(self, owner_user_id: int) -> List[Listing]:
        return self._select(
            "SELECT * FROM book_listings WHERE user_id = ? ORDER BY listing_id",
            (owner_user_id,),
        )

    def list_by_book(self, book_id: int) -> List[Listing]:
        return self._select(
            "SELECT * FROM book_listings WHERE book_id = ? ORDER BY listing_id",
            (book_id,),
        )

    def list_recent(self, limit: int) -> List[Listing]:
        """Most recent first; ties broken by newest ID."""
        if limit < 0:
            raise ValueError(f"limit cannot be negative, got {limit}")
        return self._select(
            "SELECT * FROM book_listings ORDER BY list_on_date DESC, listing_id DESC LIMIT ?",
            (limit,),
        )

    def list_with_details(self) -> List[ListingDetails]:
        """Every listing with its book (and genre) and the owner's username."""
        with self._db.connection() as conn:
            rows = conn.execute(
                """
                SELECT bl.*,
                       b.title, b.author, b.genre_id, b.description AS book_description,
                       b.created_at AS book_created_at,
                       g.genre_name, u.username
                FROM book_listings bl
                JOIN books b ON b.book_id = bl.book_id
                LEFT JOIN genres g ON g.genre_id = b.genre_id
                LEFT JOIN users u ON u.user_id = bl.user_id
                ORDER BY bl.listing_id
                """
            ).fetchall()

        return [
            ListingDetails(
                listing=self._row_to_listing(row),
                book=Book(
                    book_id=row["book_id"],
                    title=row["title"],
                    author=row["author"],
                    genre_id=row["genre_id"],
                    genre_name=row["genre_name"],
                    description=row["book_description"],
                    created_at=row["book_created_at"],
                ),
                owner_username=row["username"],
            )
            for row in rows
        ]
