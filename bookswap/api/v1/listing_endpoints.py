"""
API endpoints for listings (copies of catalog books offered for exchange).
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from bookswap.api.v1 import schemas as api
from bookswap.api.v1.converters import (
    api_listing_update_to_domain,
    domain_error_to_http,
    domain_listing_details_to_api,
    domain_listing_to_api,
)
from bookswap.api.v1.dependencies import get_catalog_service, get_current_user_id
from bookswap.domain.errors import DomainError
from bookswap.domain.services import CatalogService

router = APIRouter()


@router.get("/listings", response_model=list[api.Listing])
def list_listings(catalog: CatalogService = Depends(get_catalog_service)) -> list[api.Listing]:
    return [domain_listing_to_api(listing) for listing in catalog.list_listings()]


@router.get("/listings/recent", response_model=list[api.Listing])
def list_recent_listings(
    limit: int = Query(default=10, ge=0, le=100, description="Max listings (0-100)"),
    catalog: CatalogService = Depends(get_catalog_service),
) -> list[api.Listing]:
    return [domain_listing_to_api(listing) for listing in catalog.list_recent_listings(limit)]


@router.get("/listings/details", response_model=list[api.ListingDetails])
def list_listing_details(
    catalog: CatalogService = Depends(get_catalog_service),
) -> list[api.ListingDetails]:
    """Every listing with its book and the owner's username."""
    return [domain_listing_details_to_api(d) for d in catalog.list_listings_with_details()]


@router.get("/listings/user/{user_id}", response_model=list[api.Listing])
def list_listings_by_user(
    user_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
) -> list[api.Listing]:
    return [domain_listing_to_api(listing) for listing in catalog.list_listings_by_user(user_id)]


@router.get("/listings/book/{book_id}", response_model=list[api.Listing])
def list_listings_by_book(
    book_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
) -> list[api.Listing]:
    return [domain_listing_to_api(listing) for listing in catalog.list_listings_by_book(book_id)]


@router.post("/listings", response_model=api.Listing, status_code=status.HTTP_201_CREATED)
def create_listing(
    body: api.ListingCreate,
    caller: int = Depends(get_current_user_id),
    catalog: CatalogService = Depends(get_catalog_service),
) -> api.Listing:
    """
    Offer a copy of a catalog book. The caller becomes the owner.

    Raises:
        404: Unknown book
    """
    try:
        listing = catalog.create_listing(caller, body.book_id, body.description, body.list_on_date)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except DomainError as e:
        raise domain_error_to_http(e) from e

    return domain_listing_to_api(listing)


@router.get("/listings/{listing_id}", response_model=api.Listing)
def get_listing(
    listing_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
) -> api.Listing:
    try:
        return domain_listing_to_api(catalog.get_listing(listing_id))
    except DomainError as e:
        raise domain_error_to_http(e) from e


@router.put("/listings/{listing_id}", response_model=api.Listing)
def update_listing(
    listing_id: int,
    body: api.ListingUpdate,
    caller: int = Depends(get_current_user_id),
    catalog: CatalogService = Depends(get_catalog_service),
) -> api.Listing:
    """
    Raises:
        403: Caller does not own the listing
        404: Listing (or new book) not found
    """
    try:
        listing = catalog.update_listing(caller, listing_id, api_listing_update_to_domain(body))
    except DomainError as e:
        raise domain_error_to_http(e) from e

    return domain_listing_to_api(listing)


@router.delete("/listings/{listing_id}", response_model=api.DeleteResponse)
def delete_listing(
    listing_id: int,
    caller: int = Depends(get_current_user_id),
    catalog: CatalogService = Depends(get_catalog_service),
) -> api.DeleteResponse:
    try:
        return api.DeleteResponse(deleted=catalog.delete_listing(caller, listing_id))
    except DomainError as e:
        raise domain_error_to_http(e) from e
