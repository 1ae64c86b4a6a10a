"""
Domain layer - Core business logic and entities.

This layer contains the marketplace entities, value objects and error
taxonomy, and defines the ports (interfaces) that the infrastructure layer
must implement.

It has NO dependencies on external frameworks, databases, or APIs.
"""

from .entities import Book, ExchangeRequest, ExchangeView, Listing, ListingDetails, User
from .value_objects import (
    BookUpdate,
    ExchangeStatus,
    ListingUpdate,
    NewBook,
    NewListing,
    NewUser,
)

__all__ = [
    # Entities
    "Book",
    "ExchangeRequest",
    "ExchangeView",
    "Listing",
    "ListingDetails",
    "User",
    # Value Objects
    "BookUpdate",
    "ExchangeStatus",
    "ListingUpdate",
    "NewBook",
    "NewListing",
    "NewUser",
]
