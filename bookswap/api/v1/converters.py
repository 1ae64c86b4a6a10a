"""
Converters between domain entities/value objects and API schemas.

This module centralizes all conversion logic between the domain layer
and the API layer, maintaining clean separation of concerns. It also maps
the domain error taxonomy onto HTTP status codes.
"""

from dataclasses import asdict

from fastapi import HTTPException, status

from bookswap.domain import entities as domain
from bookswap.domain import errors
from bookswap.domain import value_objects as domain_vo
from bookswap.api.v1 import schemas as api


def domain_user_to_api(user: domain.User) -> api.User:
    return api.User(**asdict(user))


def domain_book_to_api(book: domain.Book) -> api.Book:
    """
    Convert a domain Book entity to an API Book model.

    Args:
        book: Domain Book entity

    Returns:
        API Book model
    """
    return api.Book(
        book_id=book.book_id,
        title=book.title,
        author=book.author,
        genre_id=book.genre_id,
        genre=book.genre_name,
        description=book.description,
        created_at=book.created_at,
    )


def domain_listing_to_api(listing: domain.Listing) -> api.Listing:
    return api.Listing(**asdict(listing))


def domain_listing_details_to_api(details: domain.ListingDetails) -> api.ListingDetails:
    return api.ListingDetails(
        listing=domain_listing_to_api(details.listing),
        book=domain_book_to_api(details.book),
        owner_username=details.owner_username,
    )


def domain_exchange_to_api(request: domain.ExchangeRequest) -> api.ExchangeRequest:
    return api.ExchangeRequest(
        request_id=request.request_id,
        requestee_listing_id=request.requestee_listing_id,
        requester_listing_id=request.requester_listing_id,
        status=request.status.value,
        request_date=request.request_date,
        requestee_user_id=request.requestee_user_id,
        requester_user_id=request.requester_user_id,
    )


def domain_exchange_view_to_api(view: domain.ExchangeView) -> api.ExchangeView:
    return api.ExchangeView(
        request=domain_exchange_to_api(view.request),
        requestee_listing=domain_listing_to_api(view.requestee_listing),
        requester_listing=domain_listing_to_api(view.requester_listing),
    )


def api_book_create_to_domain(body: api.BookCreate) -> domain_vo.NewBook:
    """
    Raises:
        ValueError: If title, author or genre is blank
    """
    return domain_vo.NewBook(
        title=body.title,
        author=body.author,
        genre_name=body.genre,
        description=body.description,
    )


def api_book_update_to_domain(body: api.BookUpdate) -> domain_vo.BookUpdate:
    return domain_vo.BookUpdate(
        title=body.title,
        author=body.author,
        description=body.description,
        genre_name=body.genre,
    )


def api_listing_update_to_domain(body: api.ListingUpdate) -> domain_vo.ListingUpdate:
    return domain_vo.ListingUpdate(
        description=body.description,
        list_on_date=body.list_on_date,
        book_id=body.book_id,
    )


def domain_error_to_http(error: errors.DomainError) -> HTTPException:
    """
    Map a domain error to the HTTP status a client should see.

    NotFound -> 404, Duplicate -> 409, other Validation -> 400,
    Authentication -> 401, Authorization -> 403, Persistence -> 500.
    """
    if isinstance(error, errors.NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, errors.DuplicateExchangeError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, errors.UserExistsError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, errors.ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, errors.AuthenticationError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(error),
            headers={"WWW-Authenticate": "Bearer"},
        )
    elif isinstance(error, errors.AuthorizationError):
        code = status.HTTP_403_FORBIDDEN
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR

    return HTTPException(status_code=code, detail=str(error))
