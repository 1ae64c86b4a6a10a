"""
Concurrency tests: two SqliteDatabase handles on the same file, driven
from two threads.

Writers serialize on BEGIN IMMEDIATE, so of two racing creates for one
ordered pair exactly one succeeds, and of two racing accepts for the same
requestee listing exactly one ends up accepted.

Test Pattern: AAA (Arrange-Act-Assert)
"""
import threading

import pytest

from bookswap.domain.entities import ExchangeRequest
from bookswap.domain.errors import DomainError, DuplicateExchangeError, InvalidExchangeError
from bookswap.domain.services import AuthorizationGate, ExchangeService
from bookswap.domain.value_objects import ExchangeStatus, NewBook, NewListing, NewUser
from bookswap.infrastructure.db.database import SqliteDatabase
from bookswap.infrastructure.db.sqlite_book_repository import SqliteBookRepository
from bookswap.infrastructure.db.sqlite_exchange_request_repository import SqliteExchangeRequestRepository
from bookswap.infrastructure.db.sqlite_listing_repository import SqliteListingRepository
from bookswap.infrastructure.db.sqlite_user_repository import SqliteUserRepository


class NoAuthProvider:
    """Callers are passed as user IDs; tokens never come into play."""

    def verify(self, token: str) -> str:
        raise AssertionError("not used")

    def resolve_identity(self, identity: str) -> int:
        raise AssertionError("not used")

    def issue_token(self, identity: str) -> str:
        raise AssertionError("not used")


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def handles(tmp_path):
    """Two independent handles on one database file."""
    path = tmp_path / "shared.db"
    first = SqliteDatabase(path).open()
    second = SqliteDatabase(path).open()
    yield first, second
    first.close()
    second.close()


@pytest.fixture
def market(handles):
    """alice owns a1, bob owns b1, carol owns c1."""
    database = handles[0]
    users = SqliteUserRepository(database)
    listings = SqliteListingRepository(database)
    ids = {name: users.create(NewUser(name, f"{name}@example.com")).user_id for name in ("alice", "bob", "carol")}
    book = SqliteBookRepository(database).create(NewBook("Dune", "Frank Herbert", "Science Fiction")).book_id
    for name in ("alice", "bob", "carol"):
        ids[f"{name[0]}1"] = listings.create(NewListing(ids[name], book)).listing_id
    return ids


def _race(*calls):
    """Start every call at the same moment; collect results or domain errors."""
    barrier = threading.Barrier(len(calls))
    outcomes = []

    def run(call):
        barrier.wait()
        try:
            outcomes.append(call())
        except DomainError as e:
            outcomes.append(e)

    threads = [threading.Thread(target=run, args=(call,)) for call in calls]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert len(outcomes) == len(calls)
    return outcomes


def _exchange_service(database):
    listings = SqliteListingRepository(database)
    return ExchangeService(
        SqliteExchangeRequestRepository(database),
        listings,
        AuthorizationGate(NoAuthProvider(), listings),
        database,
    )


# ============================================================================
# CREATE RACES
# ============================================================================

class TestConcurrentCreate:

    def test_one_of_two_racing_creates_wins(self, handles, market):
        # Arrange
        repos = [SqliteExchangeRequestRepository(database) for database in handles]

        # Act
        outcomes = _race(
            *(lambda repo=repo: repo.create(market["a1"], market["b1"]) for repo in repos)
        )

        # Assert
        created = [o for o in outcomes if isinstance(o, ExchangeRequest)]
        duplicates = [o for o in outcomes if isinstance(o, DuplicateExchangeError)]
        assert len(created) == 1
        assert len(duplicates) == 1
        assert len(repos[0].list_all()) == 1

    def test_unique_index_catches_a_writer_that_missed_the_check(self, handles, market, monkeypatch):
        """A writer that read the table before the other insert hits the unique index."""
        # Arrange
        first, second = (SqliteExchangeRequestRepository(database) for database in handles)
        first.create(market["a1"], market["b1"])
        monkeypatch.setattr(
            SqliteExchangeRequestRepository,
            "_pair_exists",
            staticmethod(lambda conn, requestee, requester: False),
        )

        # Act / Assert
        with pytest.raises(DuplicateExchangeError):
            second.create(market["a1"], market["b1"])
        assert len(first.list_all()) == 1


# ============================================================================
# ACCEPT RACES
# ============================================================================

class TestConcurrentAccept:

    def test_one_of_two_racing_accepts_wins(self, handles, market):
        # Arrange
        exchanges = SqliteExchangeRequestRepository(handles[0])
        from_bob = exchanges.create(market["a1"], market["b1"])
        from_carol = exchanges.create(market["a1"], market["c1"])
        services = [_exchange_service(database) for database in handles]

        # Act
        outcomes = _race(
            lambda: services[0].accept_exchange(market["alice"], from_bob.request_id),
            lambda: services[1].accept_exchange(market["alice"], from_carol.request_id),
        )

        # Assert
        accepted = [o for o in outcomes if isinstance(o, ExchangeRequest)]
        refused = [o for o in outcomes if isinstance(o, InvalidExchangeError)]
        assert len(accepted) == 1
        assert len(refused) == 1

        statuses = sorted(r.status.value for r in exchanges.list_all())
        assert statuses == [ExchangeStatus.ACCEPTED.value, ExchangeStatus.REJECTED.value]

        remaining = {listing.listing_id for listing in SqliteListingRepository(handles[1]).list_all()}
        assert market["a1"] not in remaining
        assert len(remaining) == 1
