#!/usr/bin/env python3
"""
Demo Data Seeding Script.

Registers a few users, adds books to the catalog, lists copies of them and
opens competing exchange requests, so the API has something to show.

Usage:
    python -m scripts.seed_demo_data --db-path data/bookswap.db --reset
    python -m scripts.seed_demo_data --accept   # also accept one request
"""

import argparse
import logging
import secrets
import sys
from pathlib import Path

from bookswap.config import Settings
from bookswap.domain.errors import DomainError
from bookswap.domain.services import AuthorizationGate, CatalogService, ExchangeService, UserService
from bookswap.domain.value_objects import NewBook
from bookswap.infrastructure.auth.jwt_auth_provider import JwtAuthProvider, PasslibPasswordHasher
from bookswap.infrastructure.db.database import SqliteDatabase
from bookswap.infrastructure.db.sqlite_book_repository import SqliteBookRepository
from bookswap.infrastructure.db.sqlite_exchange_request_repository import SqliteExchangeRequestRepository
from bookswap.infrastructure.db.sqlite_listing_repository import SqliteListingRepository
from bookswap.infrastructure.db.sqlite_user_repository import SqliteUserRepository

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

DEMO_PASSWORD = "bookswap-demo"

DEMO_USERS = [
    ("alice", "alice@example.com", "Alice", "Martin", "Lyon"),
    ("bob", "bob@example.com", "Bob", "Okafor", "Leeds"),
    ("carol", "carol@example.com", "Carol", "Nguyen", "Porto"),
]

DEMO_BOOKS = [
    NewBook("Dune", "Frank Herbert", "Science Fiction", "Desert planet, spice, prophecy."),
    NewBook("The Hobbit", "J.R.R. Tolkien", "Fantasy"),
    NewBook("Gone Girl", "Gillian Flynn", "Thriller"),
    NewBook("Salt, Fat, Acid, Heat", "Samin Nosrat", "Cookbook"),
]


def seed(db_path: Path, accept: bool = False) -> dict:
    """
    Populate the database at db_path.

    Returns:
        Counts of what was created, keyed by kind
    """
    settings = Settings.from_env()
    # Tokens issued while seeding are thrown away, so any secret will do
    secret = settings.jwt_secret or secrets.token_urlsafe(32)

    with SqliteDatabase(db_path, busy_timeout_ms=settings.busy_timeout_ms) as database:
        listing_repo = SqliteListingRepository(database)
        exchange_repo = SqliteExchangeRequestRepository(database)
        user_repo = SqliteUserRepository(database)
        auth_provider = JwtAuthProvider(secret, user_repo, settings.jwt_expires_in)
        gate = AuthorizationGate(auth_provider, listing_repo)

        users = UserService(user_repo, PasslibPasswordHasher(), auth_provider, database)
        catalog = CatalogService(SqliteBookRepository(database), listing_repo, exchange_repo, gate, database)
        exchanges = ExchangeService(
            exchange_repo, listing_repo, gate, database,
            atomic_retirement=settings.atomic_retirement,
        )

        ids = {}
        for username, email, first, last, location in DEMO_USERS:
            user, _ = users.register(
                username, email, DEMO_PASSWORD,
                first_name=first, last_name=last, location=location,
            )
            ids[username] = user.user_id

        books = [catalog.create_book(b) for b in DEMO_BOOKS]

        alice_dune = catalog.create_listing(ids["alice"], books[0].book_id, "Well-thumbed paperback")
        bob_hobbit = catalog.create_listing(ids["bob"], books[1].book_id, "Hardback, 1995 printing")
        carol_thriller = catalog.create_listing(ids["carol"], books[2].book_id)
        catalog.create_listing(ids["carol"], books[3].book_id, "Like new")

        # Bob and Carol both want Alice's copy of Dune
        from_bob = exchanges.propose_exchange(ids["bob"], alice_dune.listing_id, bob_hobbit.listing_id)
        exchanges.propose_exchange(ids["carol"], alice_dune.listing_id, carol_thriller.listing_id)

        if accept:
            exchanges.accept_exchange(ids["alice"], from_bob.request_id)

        return {
            "users": len(ids),
            "books": len(books),
            "listings": len(catalog.list_listings()),
            "exchange_requests": len(exchange_repo.list_all()),
        }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed a demo bookswap marketplace")
    parser.add_argument(
        "--db-path",
        type=Path,
        default=Settings.from_env().db_path,
        help="SQLite file to seed (default: BOOKSWAP_DB_PATH or data/bookswap.db)"
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete the database file before seeding"
    )
    parser.add_argument(
        "--accept",
        action="store_true",
        help="Have alice accept bob's request after seeding"
    )
    args = parser.parse_args()

    if args.reset and args.db_path.exists():
        args.db_path.unlink()
        logger.info(f"Removed {args.db_path}")

    try:
        counts = seed(args.db_path, accept=args.accept)
    except DomainError as e:
        logger.error(f"Seeding failed: {e}")
        sys.exit(1)

    logger.info(f"Seeded {args.db_path}: {counts}")
