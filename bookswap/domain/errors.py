"""
Domain error taxonomy.

Every failure a caller can observe maps to one of five families so it can
be reported accurately ("already requested" vs "not your book" vs "not
found"):

- NotFoundError: the entity is absent
- ValidationError: malformed, self-referential or duplicate input
- AuthenticationError: the caller's identity could not be established
- AuthorizationError: the caller is known but lacks rights
- PersistenceError: a transaction failed or a post-write check failed;
  the whole unit has been rolled back

Storage-layer faults (sqlite3.Error) are wrapped into the nearest of these
at the adapter boundary.
"""


class DomainError(Exception):
    """Root of all errors raised by the bookswap domain."""


# ---------------------------------------------------------------------------
# Families
# ---------------------------------------------------------------------------


class NotFoundError(DomainError):
    """The requested entity does not exist."""


class ValidationError(DomainError):
    """The request is malformed or violates a domain invariant."""


class AuthenticationError(DomainError):
    """The caller's identity could not be verified."""


class AuthorizationError(DomainError):
    """The caller is not allowed to perform the operation."""


class PersistenceError(DomainError):
    """The storage layer failed; the unit of work was rolled back."""


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class ListingNotFoundError(NotFoundError):
    pass


class ExchangeNotFoundError(NotFoundError):
    pass


class UserNotFoundError(NotFoundError):
    pass


class BookNotFoundError(NotFoundError):
    pass


class GenreNotFoundError(NotFoundError):
    pass


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class InvalidExchangeError(ValidationError):
    """Listings missing, identical, or owned by the same user."""


class DuplicateExchangeError(ValidationError):
    """A request already exists for the same ordered listing pair."""


class InvalidStatusError(ValidationError):
    """Unknown status value, or a transition that must go through accept."""


class UserExistsError(ValidationError):
    """Username or email already registered."""


# ---------------------------------------------------------------------------
# Authentication / authorization
# ---------------------------------------------------------------------------


class InvalidTokenError(AuthenticationError):
    pass


class InvalidCredentialsError(AuthenticationError):
    pass


class NotAuthorizedError(AuthorizationError):
    pass


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class ListingPersistenceError(PersistenceError):
    pass


class ExchangeCreationError(PersistenceError):
    pass


class ExchangeUpdateError(PersistenceError):
    pass


class BookPersistenceError(PersistenceError):
    pass


class UserPersistenceError(PersistenceError):
    pass
