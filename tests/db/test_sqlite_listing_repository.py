"""
Tests for SqliteListingRepository.

Test Pattern: AAA (Arrange-Act-Assert)
"""
import time

import pytest

from bookswap.domain.errors import ListingNotFoundError, ListingPersistenceError
from bookswap.domain.value_objects import ListingUpdate, NewBook, NewListing, NewUser
from bookswap.infrastructure.db.database import SqliteDatabase
from bookswap.infrastructure.db.sqlite_book_repository import SqliteBookRepository
from bookswap.infrastructure.db.sqlite_listing_repository import SqliteListingRepository
from bookswap.infrastructure.db.sqlite_user_repository import SqliteUserRepository


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def database(tmp_path):
    db = SqliteDatabase(tmp_path / "test_bookswap.db").open()
    yield db
    db.close()


@pytest.fixture
def repo(database):
    return SqliteListingRepository(database)


@pytest.fixture
def owners(database):
    users = SqliteUserRepository(database)
    return {
        "alice": users.create(NewUser("alice", "alice@example.com")).user_id,
        "bob": users.create(NewUser("bob", "bob@example.com")).user_id,
    }


@pytest.fixture
def books(database):
    book_repo = SqliteBookRepository(database)
    return {
        "dune": book_repo.create(NewBook("Dune", "Frank Herbert", "Science Fiction")).book_id,
        "emma": book_repo.create(NewBook("Emma", "Jane Austen", "Romance")).book_id,
    }


# ============================================================================
# CREATE TESTS
# ============================================================================

class TestCreate:

    def test_create_defaults_list_on_date_to_now(self, repo, owners, books):
        # Arrange
        before = int(time.time())

        # Act
        listing = repo.create(NewListing(owner_user_id=owners["alice"], book_id=books["dune"]))

        # Assert
        assert listing.listing_id > 0
        assert before <= listing.list_on_date <= int(time.time())
        assert listing.description is None

    def test_create_keeps_given_fields(self, repo, owners, books):
        listing = repo.create(
            NewListing(
                owner_user_id=owners["bob"],
                book_id=books["emma"],
                description="Penguin Classics, lightly annotated",
                list_on_date=1_700_000_000,
            )
        )

        assert listing.owner_user_id == owners["bob"]
        assert listing.book_id == books["emma"]
        assert listing.description == "Penguin Classics, lightly annotated"
        assert listing.list_on_date == 1_700_000_000

    def test_create_with_unknown_book_fails(self, repo, owners):
        with pytest.raises(ListingPersistenceError):
            repo.create(NewListing(owner_user_id=owners["alice"], book_id=404))

    def test_negative_list_on_date_is_refused(self):
        with pytest.raises(ValueError):
            NewListing(owner_user_id=1, book_id=1, list_on_date=-1)


# ============================================================================
# READ TESTS
# ============================================================================

class TestReads:

    def test_get_missing_raises(self, repo):
        with pytest.raises(ListingNotFoundError):
            repo.get_by_id(1)

    def test_list_by_user_and_book(self, repo, owners, books):
        a_dune = repo.create(NewListing(owners["alice"], books["dune"]))
        a_emma = repo.create(NewListing(owners["alice"], books["emma"]))
        b_dune = repo.create(NewListing(owners["bob"], books["dune"]))

        assert repo.list_by_user(owners["alice"]) == [a_dune, a_emma]
        assert repo.list_by_book(books["dune"]) == [a_dune, b_dune]
        assert repo.list_all() == [a_dune, a_emma, b_dune]

    def test_list_recent_orders_by_list_date_descending(self, repo, owners, books):
        old = repo.create(NewListing(owners["alice"], books["dune"], list_on_date=100))
        newest = repo.create(NewListing(owners["bob"], books["dune"], list_on_date=300))
        middle = repo.create(NewListing(owners["alice"], books["emma"], list_on_date=200))

        assert [listing.listing_id for listing in repo.list_recent(2)] == [newest.listing_id, middle.listing_id]
        assert [listing.listing_id for listing in repo.list_recent(10)] == [
            newest.listing_id, middle.listing_id, old.listing_id
        ]

    def test_list_recent_rejects_negative_limit(self, repo):
        with pytest.raises(ValueError):
            repo.list_recent(-1)

    def test_list_with_details_joins_book_and_owner(self, repo, owners, books):
        repo.create(NewListing(owners["bob"], books["emma"], description="Hardback"))

        (details,) = repo.list_with_details()

        assert details.owner_username == "bob"
        assert details.book.title == "Emma"
        assert details.book.genre_name == "Romance"
        assert details.listing.description == "Hardback"


# ============================================================================
# UPDATE TESTS
# ============================================================================

class TestUpdate:

    def test_update_changes_only_given_fields(self, repo, owners, books):
        listing = repo.create(NewListing(owners["alice"], books["dune"], "Paperback", 100))

        updated = repo.update(listing.listing_id, ListingUpdate(description="Hardback"))

        assert updated.description == "Hardback"
        assert updated.list_on_date == 100
        assert updated.book_id == books["dune"]

    def test_update_owner_maps_to_user_column(self, repo, owners, books):
        listing = repo.create(NewListing(owners["alice"], books["dune"]))

        updated = repo.update(listing.listing_id, ListingUpdate(owner_user_id=owners["bob"]))

        assert updated.owner_user_id == owners["bob"]
        assert repo.list_by_user(owners["bob"]) == [updated]

    def test_update_missing_listing_raises(self, repo):
        with pytest.raises(ListingNotFoundError):
            repo.update(99, ListingUpdate(description="x"))


# ============================================================================
# DELETE TESTS
# ============================================================================

class TestDelete:

    def test_delete_is_idempotent(self, repo, owners, books):
        listing = repo.create(NewListing(owners["alice"], books["dune"]))

        assert repo.delete(listing.listing_id) is True
        assert repo.delete(listing.listing_id) is False

    def test_delete_many_counts_removed_rows(self, repo, owners, books):
        first = repo.create(NewListing(owners["alice"], books["dune"]))
        second = repo.create(NewListing(owners["bob"], books["dune"]))

        assert repo.delete_many([first.listing_id, second.listing_id, 999]) == 2
        assert repo.list_all() == []

    def test_delete_many_with_nothing_to_do(self, repo):
        assert repo.delete_many([]) == 0

    def test_delete_by_book_and_user(self, repo, owners, books):
        repo.create(NewListing(owners["alice"], books["dune"]))
        repo.create(NewListing(owners["bob"], books["dune"]))
        kept = repo.create(NewListing(owners["bob"], books["emma"]))
        repo.create(NewListing(owners["alice"], books["emma"]))

        assert repo.delete_by_book(books["dune"]) == 2
        assert repo.delete_by_user(owners["alice"]) == 1
        assert repo.list_all() == [kept]
