"""
Identity/Authorization Gate.

Turns a caller's token into a numeric user ID and answers ownership
questions about listings. Token verification is delegated entirely to the
AuthProvider port; nothing here is cryptographic.
"""

import logging
from typing import Optional

from bookswap.domain.entities import Listing
from bookswap.domain.errors import ListingNotFoundError, NotAuthorizedError
from bookswap.domain.ports import AuthProvider, ListingRepository

logger = logging.getLogger(__name__)


class AuthorizationGate:
    """
    Resolves callers and checks listing ownership.

    Usage:
        gate = AuthorizationGate(auth_provider, listing_repo)
        user_id = gate.authenticate(token)
        if gate.owns_listing(user_id, 100):
            ...
    """

    def __init__(self, auth_provider: AuthProvider, listings: ListingRepository) -> None:
        self._auth = auth_provider
        self._listings = listings

    def authenticate(self, token: str) -> int:
        """
        Verify a token and resolve it to a user ID.

        Raises:
            InvalidTokenError: If the provider rejects the token
            UserNotFoundError: If the identity has no user record
        """
        identity = self._auth.verify(token)
        return self.resolve_user_id(identity)

    def resolve_user_id(self, identity: str) -> int:
        return self._auth.resolve_identity(identity)

    def owner_of(self, listing_id: int) -> Optional[int]:
        """Owner of the listing, or None if the listing does not exist."""
        try:
            return self._listings.get_by_id(listing_id).owner_user_id
        except ListingNotFoundError:
            return None

    def owns_listing(self, user_id: int, listing_id: int) -> bool:
        """A missing listing is owned by nobody."""
        return self.owner_of(listing_id) == user_id

    def require_listing_owner(self, user_id: int, listing_id: int) -> Listing:
        """
        Load a listing and make sure the user owns it.

        Raises:
            ListingNotFoundError: If the listing does not exist
            NotAuthorizedError: If someone else owns it
        """
        listing = self._listings.get_by_id(listing_id)
        if not listing.is_owned_by(user_id):
            logger.warning(f"User {user_id} denied access to listing {listing_id}")
            raise NotAuthorizedError(
                f"User {user_id} does not own listing {listing_id}"
            )
        return listing
