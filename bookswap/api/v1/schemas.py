"""
Request and response bodies of the HTTP API.
"""

from typing import Literal

from pydantic import BaseModel, Field


ExchangeStatusValue = Literal["pending", "accepted", "rejected", "completed", "cancelled"]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """
    Request body for POST /users/register.
    """
    username: str = Field(min_length=1, max_length=64, description="Unique login name")
    email: str = Field(min_length=3, description="Unique contact address")
    password: str = Field(min_length=8, description="Plain-text password, hashed on arrival")
    first_name: str | None = None
    last_name: str | None = None
    location: str | None = None
    bio: str | None = None
    profile_picture_url: str | None = None


class LoginRequest(BaseModel):
    username: str
    password: str


class User(BaseModel):
    """
    API representation of a User entity. Credentials are never included.
    """
    user_id: int
    username: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    location: str | None = None
    bio: str | None = None
    profile_picture_url: str | None = None
    date_joined: int = Field(description="Unix timestamp of registration")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class RegisterResponse(TokenResponse):
    user: User


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------


class BookCreate(BaseModel):
    """
    Request body for POST /books.
    """
    title: str = Field(min_length=1, description="Book title")
    author: str = Field(min_length=1, description="Author name")
    genre: str = Field(description="One of the seeded genre names (GET /books/genres)")
    description: str | None = Field(default=None, description="Book description/summary")


class BookUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    author: str | None = Field(default=None, min_length=1)
    genre: str | None = None
    description: str | None = None


class Book(BaseModel):
    """
    API representation of a Book entity.
    """
    book_id: int = Field(description="Unique identifier for this book")
    title: str
    author: str
    genre_id: int
    genre: str | None = Field(default=None, description="Genre name")
    description: str | None = None
    created_at: str | None = Field(default=None, description="When the book was added")


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


class ListingCreate(BaseModel):
    """
    Request body for POST /listings. The caller becomes the owner.
    """
    book_id: int
    description: str | None = Field(default=None, description="Notes about this copy")
    list_on_date: int | None = Field(default=None, ge=0, description="Unix timestamp; defaults to now")


class ListingUpdate(BaseModel):
    book_id: int | None = None
    description: str | None = None
    list_on_date: int | None = Field(default=None, ge=0)


class Listing(BaseModel):
    listing_id: int
    owner_user_id: int
    book_id: int
    list_on_date: int = Field(description="Unix timestamp of when the copy was listed")
    description: str | None = None


class ListingDetails(BaseModel):
    """
    A listing with its book and the owner's username, for browsing.
    """
    listing: Listing
    book: Book
    owner_username: str | None = None


# ---------------------------------------------------------------------------
# Exchanges
# ---------------------------------------------------------------------------


class ExchangeCreate(BaseModel):
    """
    Request body for POST /exchanges.
    """
    requestee_listing_id: int = Field(description="Listing being asked for")
    requester_listing_id: int = Field(description="Caller's listing offered in return")


class ExchangeStatusUpdate(BaseModel):
    status: ExchangeStatusValue


class ExchangeRequest(BaseModel):
    request_id: int
    requestee_listing_id: int
    requester_listing_id: int
    status: ExchangeStatusValue
    request_date: int = Field(description="Unix timestamp of the proposal")
    requestee_user_id: int | None = Field(default=None, description="Owner of the requested listing")
    requester_user_id: int | None = Field(default=None, description="Owner of the offered listing")


class ExchangeView(BaseModel):
    """
    An exchange request together with both listings it references.
    """
    request: ExchangeRequest
    requestee_listing: Listing
    requester_listing: Listing


class DeleteResponse(BaseModel):
    deleted: bool
