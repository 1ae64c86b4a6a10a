"""
SQLite database handle shared by every repository.

This adapter owns the schema and the transaction boundary. Repositories
never open connections on their own: they ask the handle for a read
connection or a write unit, which lets a domain service group calls on
several repositories into one atomic unit (UnitOfWork port).

Write units start with BEGIN IMMEDIATE, which takes SQLite's reserved
lock up front. Two processes pointing at the same file therefore
serialize their write units instead of interleaving them, and the
duplicate-check + insert and accept + cascade-reject sequences cannot be
split by a concurrent writer.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


GENRES = (
    "Fantasy",
    "Science Fiction",
    "Mystery",
    "Romance",
    "Thriller",
    "Horror",
    "Historical Fiction",
    "Non-Fiction",
    "Biography",
    "Autobiography",
    "Self-Help",
    "Cookbook",
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    user_id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT UNIQUE NOT NULL,
    first_name TEXT,
    last_name TEXT,
    email TEXT UNIQUE NOT NULL,
    profile_picture_url TEXT,
    location TEXT,
    bio TEXT,
    date_joined INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS user_auth (
    username TEXT PRIMARY KEY,
    password TEXT NOT NULL,
    FOREIGN KEY (username) REFERENCES users(username) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS genres (
    genre_id INTEGER PRIMARY KEY AUTOINCREMENT,
    genre_name TEXT UNIQUE NOT NULL
);

CREATE TABLE IF NOT EXISTS books (
    book_id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    author TEXT NOT NULL,
    genre_id INTEGER NOT NULL,
    description TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (genre_id) REFERENCES genres(genre_id) ON DELETE RESTRICT
);

CREATE INDEX IF NOT EXISTS idx_books_title ON books(title);
CREATE INDEX IF NOT EXISTS idx_books_author ON books(author);
CREATE INDEX IF NOT EXISTS idx_books_genre_id ON books(genre_id);

CREATE TABLE IF NOT EXISTS book_listings (
    listing_id INTEGER PRIMARY KEY AUTOINCREMENT,
    description TEXT,
    list_on_date INTEGER NOT NULL,
    user_id INTEGER NOT NULL,
    book_id INTEGER NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (book_id) REFERENCES books(book_id) ON DELETE CASCADE,
    FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_listings_user ON book_listings(user_id);
CREATE INDEX IF NOT EXISTS idx_listings_book ON book_listings(book_id);

-- No foreign keys to book_listings: an accepted request outlives the
-- listings it retired. The owner columns keep who took part once the
-- listings are gone.
CREATE TABLE IF NOT EXISTS exchange_requests (
    request_id INTEGER PRIMARY KEY AUTOINCREMENT,
    requestee_listing_id INTEGER NOT NULL,
    requester_listing_id INTEGER NOT NULL,
    status TEXT DEFAULT 'pending' NOT NULL,
    request_date INTEGER NOT NULL,
    requestee_user_id INTEGER,
    requester_user_id INTEGER,
    CHECK (requestee_listing_id <> requester_listing_id),
    UNIQUE (requestee_listing_id, requester_listing_id)
);

CREATE INDEX IF NOT EXISTS idx_exchange_requestee ON exchange_requests(requestee_listing_id);
CREATE INDEX IF NOT EXISTS idx_exchange_requester ON exchange_requests(requester_listing_id);
CREATE INDEX IF NOT EXISTS idx_exchange_status ON exchange_requests(status);
CREATE INDEX IF NOT EXISTS idx_exchange_requestee_user ON exchange_requests(requestee_user_id);
CREATE INDEX IF NOT EXISTS idx_exchange_requester_user ON exchange_requests(requester_user_id);
"""


class DatabaseClosedError(RuntimeError):
    """Raised when the handle is used outside its open/close lifecycle."""


class SqliteDatabase:
    """
    Store handle with an explicit lifecycle.

    Usage:
        db = SqliteDatabase(Path("data/bookswap.db")).open()
        listings = SqliteListingRepository(db)
        ...
        db.close()

    `transaction()` is re-entrant per thread: a nested call joins the
    outer unit through a SAVEPOINT, so an error inside the nested block
    undoes only that block while an error escaping the outer block undoes
    everything.
    """

    def __init__(self, db_path: Path, busy_timeout_ms: int = 5000) -> None:
        """
        Args:
            db_path: SQLite file; parent directories are created on open
            busy_timeout_ms: How long a writer waits for the lock held by
                another connection before giving up
        """
        self._db_path = Path(db_path)
        self._busy_timeout_ms = busy_timeout_ms
        self._local = threading.local()
        self._is_open = False

    @property
    def path(self) -> Path:
        return self._db_path

    @property
    def is_open(self) -> bool:
        return self._is_open

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> "SqliteDatabase":
        """Create the file and schema if needed and accept work."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._is_open = True
        self._init_schema()
        logger.info(f"Opened database at {self._db_path}")
        return self

    def close(self) -> None:
        """Stop accepting work. Connections are per unit, so none are left open."""
        if self._active() is not None:
            raise DatabaseClosedError("Cannot close the database inside a transaction")
        self._is_open = False
        logger.info(f"Closed database at {self._db_path}")

    def __enter__(self) -> "SqliteDatabase":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Connections and units of work
    # ------------------------------------------------------------------

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        if not self._is_open:
            raise DatabaseClosedError(f"Database {self._db_path} is not open")
        # isolation_level=None: transactions are driven explicitly below
        conn = sqlite3.connect(
            str(self._db_path),
            timeout=self._busy_timeout_ms / 1000,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _active(self) -> Optional[sqlite3.Connection]:
        return getattr(self._local, "conn", None)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """
        Connection for reads. Joins the current unit of work when there is
        one, so reads inside a transaction see its uncommitted writes.
        """
        active = self._active()
        if active is not None:
            yield active
            return

        conn = self._get_connection()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Open or join an atomic unit of work."""
        active = self._active()
        if active is not None:
            with self._savepoint(active) as conn:
                yield conn
            return

        conn = self._get_connection()
        self._local.conn = conn
        self._local.depth = 0
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            self._local.conn = None
            conn.close()

    @contextmanager
    def _savepoint(self, conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
        self._local.depth += 1
        name = f"sp_{self._local.depth}"
        conn.execute(f"SAVEPOINT {name}")
        try:
            yield conn
        except BaseException:
            conn.execute(f"ROLLBACK TO {name}")
            conn.execute(f"RELEASE {name}")
            raise
        else:
            conn.execute(f"RELEASE {name}")
        finally:
            self._local.depth -= 1

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _init_schema(self) -> None:
        """Create tables and seed the genre vocabulary if missing."""
        conn = self._get_connection()
        try:
            conn.executescript(SCHEMA)
            conn.executemany(
                "INSERT OR IGNORE INTO genres (genre_name) VALUES (?)",
                [(name,) for name in GENRES],
            )
        finally:
            conn.close()
