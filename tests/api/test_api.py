"""
End-to-end tests for the HTTP API, run in-process with TestClient.
"""
import logging

import pytest
from fastapi.testclient import TestClient

from bookswap.config import Settings
from bookswap.infrastructure.auth.jwt_auth_provider import PasslibPasswordHasher
from bookswap.main import create_app

SECRET = "test-secret-that-is-long-enough-for-hs256"
API = "/api/v1"


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def client(tmp_path):
    settings = Settings(db_path=tmp_path / "api.db", jwt_secret=SECRET)
    app = create_app(settings, password_hasher=PasslibPasswordHasher(rounds=4))
    with TestClient(app) as test_client:
        yield test_client


def _register(client, username):
    response = client.post(
        f"{API}/users/register",
        json={"username": username, "email": f"{username}@example.com", "password": "long-password"},
    )
    assert response.status_code == 201, response.text
    body = response.json()
    return body["user"]["user_id"], {"Authorization": f"Bearer {body['access_token']}"}


def _list(client, headers, title, author="Someone", genre="Fantasy"):
    book = client.post(
        f"{API}/books", json={"title": title, "author": author, "genre": genre}, headers=headers
    )
    assert book.status_code == 201, book.text
    listing = client.post(f"{API}/listings", json={"book_id": book.json()["book_id"]}, headers=headers)
    assert listing.status_code == 201, listing.text
    return listing.json()["listing_id"]


@pytest.fixture
def market(client):
    """alice lists a1; bob lists b1; carol lists c1."""
    people = {name: _register(client, name) for name in ("alice", "bob", "carol")}
    listings = {
        "a1": _list(client, people["alice"][1], "Dune", "Frank Herbert", "Science Fiction"),
        "b1": _list(client, people["bob"][1], "Emma", "Jane Austen", "Romance"),
        "c1": _list(client, people["carol"][1], "Dracula", "Bram Stoker", "Horror"),
    }
    return people, listings


def _propose(client, headers, requestee, requester):
    return client.post(
        f"{API}/exchanges",
        json={"requestee_listing_id": requestee, "requester_listing_id": requester},
        headers=headers,
    )


# ============================================================================
# HEALTH AND USERS
# ============================================================================

class TestHealth:

    def test_health_reports_open_database(self, client):
        response = client.get(f"{API}/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": True}

    def test_root(self, client):
        assert client.get("/").json()["health"] == "/api/v1/health"

    def test_startup_applies_log_level(self, tmp_path):
        settings = Settings(db_path=tmp_path / "api.db", jwt_secret=SECRET, log_level="DEBUG")
        package_logger = logging.getLogger("bookswap")
        try:
            with TestClient(create_app(settings, password_hasher=PasslibPasswordHasher(rounds=4))):
                assert package_logger.level == logging.DEBUG
        finally:
            package_logger.setLevel(logging.NOTSET)


class TestUsers:

    def test_register_then_me(self, client):
        user_id, headers = _register(client, "alice")

        response = client.get(f"{API}/users/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["user_id"] == user_id
        assert "password" not in response.json()

    def test_duplicate_registration_conflicts(self, client):
        _register(client, "alice")

        response = client.post(
            f"{API}/users/register",
            json={"username": "alice", "email": "other@example.com", "password": "long-password"},
        )

        assert response.status_code == 409

    def test_short_password_is_rejected_by_the_schema(self, client):
        response = client.post(
            f"{API}/users/register",
            json={"username": "alice", "email": "alice@example.com", "password": "short"},
        )

        assert response.status_code == 422

    def test_login(self, client):
        _register(client, "alice")

        good = client.post(f"{API}/users/login", json={"username": "alice", "password": "long-password"})
        bad = client.post(f"{API}/users/login", json={"username": "alice", "password": "wrong-password"})

        assert good.status_code == 200
        assert good.json()["token_type"] == "bearer"
        assert bad.status_code == 401

    def test_missing_or_bad_token(self, client):
        missing = client.get(f"{API}/users/me")
        garbage = client.get(f"{API}/users/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert missing.status_code == 401
        assert garbage.status_code == 401
        assert garbage.headers["WWW-Authenticate"] == "Bearer"


# ============================================================================
# CATALOG
# ============================================================================

class TestCatalog:

    def test_genres_are_seeded(self, client):
        genres = client.get(f"{API}/books/genres").json()

        assert "Science Fiction" in genres
        assert len(genres) == 12

    def test_unknown_genre_is_not_found(self, client):
        _, headers = _register(client, "alice")

        response = client.post(
            f"{API}/books", json={"title": "X", "author": "Y", "genre": "Poetry"}, headers=headers
        )

        assert response.status_code == 404

    def test_search_and_details(self, client, market):
        found = client.get(f"{API}/books/search", params={"author": "austen"}).json()
        details = client.get(f"{API}/listings/details").json()

        assert [b["title"] for b in found] == ["Emma"]
        assert [d["owner_username"] for d in details] == ["alice", "bob", "carol"]

    def test_recent_listings_limit(self, client, market):
        assert len(client.get(f"{API}/listings/recent", params={"limit": 2}).json()) == 2
        assert client.get(f"{API}/listings/recent", params={"limit": 101}).status_code == 422

    def test_only_owner_may_edit_listing(self, client, market):
        people, listings = market

        response = client.put(
            f"{API}/listings/{listings['a1']}",
            json={"description": "mine now"},
            headers=people["bob"][1],
        )

        assert response.status_code == 403

    def test_missing_listing(self, client):
        assert client.get(f"{API}/listings/9999").status_code == 404


# ============================================================================
# EXCHANGES
# ============================================================================

class TestExchanges:

    def test_accept_rejects_competitors_and_retires_listings(self, client, market):
        # Arrange
        people, listings = market
        alice = people["alice"][1]
        from_bob = _propose(client, people["bob"][1], listings["a1"], listings["b1"]).json()
        from_carol = _propose(client, people["carol"][1], listings["a1"], listings["c1"]).json()

        # Act
        response = client.put(f"{API}/exchanges/{from_bob['request_id']}/accept", headers=alice)

        # Assert
        assert response.status_code == 200
        assert response.json()["status"] == "accepted"

        remaining = [listing["listing_id"] for listing in client.get(f"{API}/listings").json()]
        assert remaining == [listings["c1"]]

        carol_mine = client.get(f"{API}/exchanges/mine", headers=people["carol"][1]).json()
        assert [(r["request_id"], r["status"]) for r in carol_mine] == [(from_carol["request_id"], "rejected")]
        for party in ("alice", "bob"):
            accepted = client.get(f"{API}/exchanges/accepted", headers=people[party][1]).json()
            assert [r["request_id"] for r in accepted] == [from_bob["request_id"]]
            assert accepted[0]["requester_user_id"] == people["bob"][0]
        carol_view = client.get(f"{API}/exchanges/{from_carol['request_id']}", headers=people["carol"][1])
        assert carol_view.status_code == 404

    def test_duplicate_proposal_conflicts(self, client, market):
        people, listings = market
        bob = people["bob"][1]

        assert _propose(client, bob, listings["a1"], listings["b1"]).status_code == 201
        assert _propose(client, bob, listings["a1"], listings["b1"]).status_code == 409

    def test_self_exchange_is_bad_request(self, client, market):
        people, listings = market

        response = _propose(client, people["bob"][1], listings["b1"], listings["b1"])

        assert response.status_code == 400

    def test_offering_someone_elses_listing_is_forbidden(self, client, market):
        people, listings = market

        response = _propose(client, people["bob"][1], listings["a1"], listings["c1"])

        assert response.status_code == 403

    def test_only_requestee_owner_may_accept(self, client, market):
        people, listings = market
        request = _propose(client, people["bob"][1], listings["a1"], listings["b1"]).json()

        response = client.put(f"{API}/exchanges/{request['request_id']}/accept", headers=people["bob"][1])

        assert response.status_code == 403

    def test_accepting_missing_request(self, client, market):
        people, _ = market

        response = client.put(f"{API}/exchanges/9999/accept", headers=people["alice"][1])

        assert response.status_code == 404

    def test_reject_then_accept_is_bad_request(self, client, market):
        people, listings = market
        alice = people["alice"][1]
        request = _propose(client, people["bob"][1], listings["a1"], listings["b1"]).json()

        rejected = client.put(
            f"{API}/exchanges/{request['request_id']}/status", json={"status": "rejected"}, headers=alice
        )
        accepted = client.put(f"{API}/exchanges/{request['request_id']}/accept", headers=alice)

        assert rejected.json()["status"] == "rejected"
        assert accepted.status_code == 400

    def test_view_and_withdraw(self, client, market):
        people, listings = market
        bob = people["bob"][1]
        request = _propose(client, bob, listings["a1"], listings["b1"]).json()

        view = client.get(f"{API}/exchanges/{request['request_id']}", headers=people["alice"][1])
        outsider = client.get(f"{API}/exchanges/{request['request_id']}", headers=people["carol"][1])
        withdrawn = client.delete(f"{API}/exchanges/{request['request_id']}", headers=bob)

        assert view.json()["requester_listing"]["listing_id"] == listings["b1"]
        assert outsider.status_code == 403
        assert withdrawn.json() == {"deleted": True}
        assert client.get(f"{API}/exchanges/requestee/{listings['a1']}", headers=people["alice"][1]).json() == []
