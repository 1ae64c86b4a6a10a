"""
SQLite implementation of the BookRepository port.

Books reference the seeded genre table by ID; callers work with genre
names, which are resolved here.
"""

import logging
import sqlite3
from typing import List, Optional

from bookswap.domain.entities import Book
from bookswap.domain.errors import BookNotFoundError, BookPersistenceError, GenreNotFoundError
from bookswap.domain.ports import BookRepository
from bookswap.domain.value_objects import BookUpdate, NewBook
from bookswap.infrastructure.db.database import SqliteDatabase

logger = logging.getLogger(__name__)

_SELECT_BOOKS = """
    SELECT b.book_id, b.title, b.author, b.genre_id, b.description, b.created_at, g.genre_name
    FROM books b
    LEFT JOIN genres g ON g.genre_id = b.genre_id
"""


class SqliteBookRepository(BookRepository):
    """Book/Genre Store backed by the shared SqliteDatabase handle."""

    def __init__(self, database: SqliteDatabase) -> None:
        self._db = database

    def _row_to_book(self, row: sqlite3.Row) -> Book:
        return Book(
            book_id=row["book_id"],
            title=row["title"],
            author=row["author"],
            genre_id=row["genre_id"],
            genre_name=row["genre_name"],
            description=row["description"],
            created_at=row["created_at"],
        )

    def _fetch(self, conn: sqlite3.Connection, book_id: int) -> Optional[Book]:
        row = conn.execute(f"{_SELECT_BOOKS} WHERE b.book_id = ?", (book_id,)).fetchone()
        return self._row_to_book(row) if row is not None else None

    def _select(self, where: str = "", params: tuple = ()) -> List[Book]:
        with self._db.connection() as conn:
            rows = conn.execute(f"{_SELECT_BOOKS} {where} ORDER BY b.book_id", params).fetchall()
            return [self._row_to_book(row) for row in rows]

    @staticmethod
    def _genre_id(conn: sqlite3.Connection, genre_name: str) -> int:
        row = conn.execute(
            "SELECT genre_id FROM genres WHERE genre_name = ? COLLATE NOCASE",
            (genre_name.strip(),),
        ).fetchone()
        if row is None:
            raise GenreNotFoundError(f'Genre with name "{genre_name}" not found')
        return row["genre_id"]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, book: NewBook) -> Book:
        try:
            with self._db.transaction() as conn:
                genre_id = self._genre_id(conn, book.genre_name)
                cursor = conn.execute(
                    "INSERT INTO books (title, author, genre_id, description) VALUES (?, ?, ?, ?)",
                    (book.title.strip(), book.author.strip(), genre_id, book.description),
                )
                created = self._fetch(conn, cursor.lastrowid)
                if created is None:
                    raise BookPersistenceError(
                        "Failed to retrieve created book. Transaction failed and rolled back."
                    )
        except sqlite3.Error as e:
            raise BookPersistenceError(f"Failed to create book: {e}") from e

        logger.info(f"Created book {created.book_id}: '{created.title}' by {created.author}")
        return created

    def update(self, book_id: int, changes: BookUpdate) -> Book:
        values = changes.as_changes()
        try:
            with self._db.transaction() as conn:
                genre_name = values.pop("genre_name", None)
                if genre_name is not None:
                    values["genre_id"] = self._genre_id(conn, genre_name)

                if values:
                    assignments = ", ".join(f"{column} = ?" for column in values)
                    conn.execute(
                        f"UPDATE books SET {assignments} WHERE book_id = ?",
                        (*values.values(), book_id),
                    )
                updated = self._fetch(conn, book_id)
                if updated is None:
                    raise BookNotFoundError(f"Book with ID {book_id} not found")
        except sqlite3.Error as e:
            raise BookPersistenceError(f"Failed to update book {book_id}: {e}") from e

        return updated

    def delete(self, book_id: int) -> bool:
        """Delete a book; its listings go with it (ON DELETE CASCADE)."""
        try:
            with self._db.transaction() as conn:
                cursor = conn.execute("DELETE FROM books WHERE book_id = ?", (book_id,))
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise BookPersistenceError(f"Failed to delete book {book_id}: {e}") from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, book_id: int) -> Book:
        with self._db.connection() as conn:
            book = self._fetch(conn, book_id)
        if book is None:
            raise BookNotFoundError(f"Book with ID {book_id} not found")
        return book

    def list_all(self) -> List[Book]:
        return self._select()

    def search_by_title(self, text: str) -> List[Book]:
        """Case-insensitive substring match on the title."""
        return self._select("WHERE b.title LIKE ?", (f"%{text.strip()}%",))

    def search_by_author(self, text: str) -> List[Book]:
        return self._select("WHERE b.author LIKE ?", (f"%{text.strip()}%",))

    def list_by_genre(self, genre_name: str) -> List[Book]:
        return self._select("WHERE g.genre_name = ? COLLATE NOCASE", (genre_name.strip(),))

    def list_genres(self) -> List[str]:
        with self._db.connection() as conn:
            rows = conn.execute("SELECT genre_name FROM genres ORDER BY genre_id").fetchall()
            return [row["genre_name"] for row in rows]
