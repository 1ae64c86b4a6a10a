"""
API endpoints for the shared book catalog.

Reads are public; adding, editing or removing a book needs a signed-in
caller.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from bookswap.api.v1 import schemas as api
from bookswap.api.v1.converters import (
    api_book_create_to_domain,
    api_book_update_to_domain,
    domain_book_to_api,
    domain_error_to_http,
)
from bookswap.api.v1.dependencies import get_catalog_service, get_current_user_id
from bookswap.domain.errors import DomainError
from bookswap.domain.services import CatalogService

router = APIRouter()


@router.get("/books", response_model=list[api.Book])
def list_books(catalog: CatalogService = Depends(get_catalog_service)) -> list[api.Book]:
    return [domain_book_to_api(b) for b in catalog.list_books()]


@router.get("/books/genres", response_model=list[str])
def list_genres(catalog: CatalogService = Depends(get_catalog_service)) -> list[str]:
    return catalog.list_genres()


@router.get("/books/search", response_model=list[api.Book])
def search_books(
    title: str | None = None,
    author: str | None = None,
    genre: str | None = None,
    catalog: CatalogService = Depends(get_catalog_service),
) -> list[api.Book]:
    """
    Filter books by title and/or author substring and/or genre name.
    """
    return [domain_book_to_api(b) for b in catalog.search_books(title, author, genre)]


@router.post("/books", response_model=api.Book, status_code=status.HTTP_201_CREATED)
def create_book(
    body: api.BookCreate,
    _caller: int = Depends(get_current_user_id),
    catalog: CatalogService = Depends(get_catalog_service),
) -> api.Book:
    """
    Raises:
        400: Blank title, author or genre
        404: Unknown genre
    """
    try:
        return domain_book_to_api(catalog.create_book(api_book_create_to_domain(body)))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except DomainError as e:
        raise domain_error_to_http(e) from e


@router.get("/books/{book_id}", response_model=api.Book)
def get_book(
    book_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
) -> api.Book:
    try:
        return domain_book_to_api(catalog.get_book(book_id))
    except DomainError as e:
        raise domain_error_to_http(e) from e


@router.put("/books/{book_id}", response_model=api.Book)
def update_book(
    book_id: int,
    body: api.BookUpdate,
    _caller: int = Depends(get_current_user_id),
    catalog: CatalogService = Depends(get_catalog_service),
) -> api.Book:
    try:
        return domain_book_to_api(catalog.update_book(book_id, api_book_update_to_domain(body)))
    except DomainError as e:
        raise domain_error_to_http(e) from e


@router.delete("/books/{book_id}", response_model=api.DeleteResponse)
def delete_book(
    book_id: int,
    _caller: int = Depends(get_current_user_id),
    catalog: CatalogService = Depends(get_catalog_service),
) -> api.DeleteResponse:
    """Removes the book, its listings, and every request naming them."""
    try:
        return api.DeleteResponse(deleted=catalog.delete_book(book_id))
    except DomainError as e:
        raise domain_error_to_http(e) from e
