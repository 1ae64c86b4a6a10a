"""
Tests for domain entities.
"""

import pytest

from bookswap.domain.entities import Book, ExchangeRequest, Listing, User
from bookswap.domain.value_objects import ExchangeStatus


def _request(**overrides):
    fields = dict(
        request_id=1,
        requestee_listing_id=100,
        requester_listing_id=200,
        status="pending",
        request_date=1_700_000_000,
    )
    fields.update(overrides)
    return ExchangeRequest(**fields)


class TestExchangeRequest:
    """Tests for the ExchangeRequest entity."""

    def test_status_string_is_parsed(self):
        request = _request(status="accepted")

        assert request.status is ExchangeStatus.ACCEPTED
        assert request.is_pending() is False

    def test_unknown_status_raises(self):
        with pytest.raises(ValueError, match="Unknown exchange status"):
            _request(status="traded")

    def test_same_listing_in_both_roles_raises(self):
        with pytest.raises(ValueError, match="must differ"):
            _request(requestee_listing_id=5, requester_listing_id=5)

    def test_involves_listing_in_either_role(self):
        request = _request()

        assert request.involves_listing(100)
        assert request.involves_listing(200)
        assert not request.involves_listing(300)
        assert request.listing_ids() == (100, 200)

    def test_equality_by_id(self):
        assert _request(status="pending") == _request(status="rejected")
        assert _request(request_id=1) != _request(request_id=2)
        assert len({_request(), _request()}) == 1


class TestListing:

    def test_ownership(self):
        listing = Listing(listing_id=1, owner_user_id=7, book_id=3, list_on_date=0)

        assert listing.is_owned_by(7)
        assert not listing.is_owned_by(8)

    def test_equality_by_id(self):
        a = Listing(listing_id=1, owner_user_id=7, book_id=3, list_on_date=0)
        b = Listing(listing_id=1, owner_user_id=7, book_id=3, list_on_date=0, description="x")

        assert a == b


class TestBook:

    def test_blank_title_raises(self):
        with pytest.raises(ValueError, match="title"):
            Book(book_id=1, title=" ", author="Someone", genre_id=1)

    def test_blank_author_raises(self):
        with pytest.raises(ValueError, match="author"):
            Book(book_id=1, title="Title", author="", genre_id=1)


class TestUser:

    def test_display_name_prefers_full_name(self):
        user = User(user_id=1, username="alice", email="a@example.com", date_joined=0,
                    first_name="Alice", last_name="Martin")

        assert user.display_name() == "Alice Martin"

    def test_display_name_falls_back_to_username(self):
        user = User(user_id=1, username="alice", email="a@example.com", date_joined=0)

        assert user.display_name() == "alice"
