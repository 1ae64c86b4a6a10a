"""
Tests for JwtAuthProvider and PasslibPasswordHasher.
"""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from bookswap.domain.entities import User
from bookswap.domain.errors import InvalidTokenError, UserNotFoundError
from bookswap.infrastructure.auth.jwt_auth_provider import JwtAuthProvider, PasslibPasswordHasher

SECRET = "test-secret-that-is-long-enough-for-hs256"


# ============================================================================
# FAKES
# ============================================================================

class FakeUserRepository:
    """Only the lookup the provider needs."""

    def __init__(self, *users: User) -> None:
        self._by_name = {u.username: u for u in users}
        self.lookups: list[str] = []

    def get_by_username(self, username: str) -> User:
        self.lookups.append(username)
        if username not in self._by_name:
            raise UserNotFoundError(f"User with username {username} not found")
        return self._by_name[username]


@pytest.fixture
def provider():
    users = FakeUserRepository(User(user_id=7, username="alice", email="a@example.com", date_joined=0))
    return JwtAuthProvider(SECRET, users)


# ============================================================================
# TOKEN TESTS
# ============================================================================

class TestTokens:

    def test_issued_token_verifies_to_identity(self, provider):
        token = provider.issue_token("alice")

        assert provider.verify(token) == "alice"

    def test_token_carries_subject_and_expiry(self, provider):
        now = datetime.now(timezone.utc)

        token = provider.issue_token("alice", now=now)
        payload = jwt.decode(token, SECRET, algorithms=["HS256"])

        assert payload["sub"] == "alice"
        assert payload["exp"] - payload["iat"] == 86400

    def test_expired_token_is_rejected(self, provider):
        token = provider.issue_token("alice", now=datetime.now(timezone.utc) - timedelta(days=2))

        with pytest.raises(InvalidTokenError):
            provider.verify(token)

    def test_token_signed_with_other_secret_is_rejected(self, provider):
        other = JwtAuthProvider("another-secret-that-is-also-long-enough", FakeUserRepository())

        with pytest.raises(InvalidTokenError):
            provider.verify(other.issue_token("alice"))

    def test_garbage_is_rejected(self, provider):
        with pytest.raises(InvalidTokenError):
            provider.verify("not.a.token")

    def test_token_without_subject_is_rejected(self, provider):
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
        token = jwt.encode({"exp": exp}, SECRET, algorithm="HS256")

        with pytest.raises(InvalidTokenError):
            provider.verify(token)

    def test_missing_secret_is_a_configuration_error(self):
        with pytest.raises(ValueError):
            JwtAuthProvider("", FakeUserRepository())

    def test_non_positive_lifetime_is_refused(self):
        with pytest.raises(ValueError):
            JwtAuthProvider(SECRET, FakeUserRepository(), expires_in=0)


# ============================================================================
# IDENTITY RESOLUTION TESTS
# ============================================================================

class TestResolveIdentity:

    def test_resolves_username_to_user_id(self, provider):
        assert provider.resolve_identity("alice") == 7

    def test_unknown_identity_raises(self, provider):
        with pytest.raises(UserNotFoundError):
            provider.resolve_identity("mallory")


# ============================================================================
# PASSWORD HASHING TESTS
# ============================================================================

class TestPasswordHasher:

    @pytest.fixture
    def hasher(self):
        # Minimum bcrypt cost keeps the suite fast
        return PasslibPasswordHasher(rounds=4)

    def test_hash_verifies_only_the_original_password(self, hasher):
        hashed = hasher.hash("correct horse battery")

        assert hashed != "correct horse battery"
        assert hasher.verify("correct horse battery", hashed)
        assert not hasher.verify("wrong horse", hashed)

    def test_hashes_are_salted(self, hasher):
        assert hasher.hash("same password") != hasher.hash("same password")

    def test_unrecognised_hash_does_not_verify(self, hasher):
        assert hasher.verify("anything", "plain-text-not-a-hash") is False
