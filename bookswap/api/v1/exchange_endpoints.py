"""
API endpoints for the exchange-request workflow.

Every route needs a signed-in caller; the ExchangeService decides what
that caller may see or change.
"""

from fastapi import APIRouter, Depends, status

from bookswap.api.v1 import schemas as api
from bookswap.api.v1.converters import (
    domain_error_to_http,
    domain_exchange_to_api,
    domain_exchange_view_to_api,
)
from bookswap.api.v1.dependencies import get_current_user_id, get_exchange_service
from bookswap.domain.errors import DomainError
from bookswap.domain.services import ExchangeService

router = APIRouter()


@router.post("/exchanges", response_model=api.ExchangeRequest, status_code=status.HTTP_201_CREATED)
def propose_exchange(
    body: api.ExchangeCreate,
    caller: int = Depends(get_current_user_id),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.ExchangeRequest:
    """
    Offer one of the caller's listings for someone else's.

    Raises:
        400: Same listing twice, missing listing, or same owner
        403: The offered listing is not the caller's
        409: This ordered pair was already proposed
    """
    try:
        request = service.propose_exchange(
            caller, body.requestee_listing_id, body.requester_listing_id
        )
    except DomainError as e:
        raise domain_error_to_http(e) from e

    return domain_exchange_to_api(request)


@router.get("/exchanges/mine", response_model=list[api.ExchangeRequest])
def list_my_exchanges(
    caller: int = Depends(get_current_user_id),
    service: ExchangeService = Depends(get_exchange_service),
) -> list[api.ExchangeRequest]:
    return [domain_exchange_to_api(r) for r in service.list_my_exchanges(caller)]


@router.get("/exchanges/accepted", response_model=list[api.ExchangeRequest])
def list_my_accepted_exchanges(
    caller: int = Depends(get_current_user_id),
    service: ExchangeService = Depends(get_exchange_service),
) -> list[api.ExchangeRequest]:
    return [domain_exchange_to_api(r) for r in service.list_my_accepted_exchanges(caller)]


@router.get("/exchanges/requestee/{listing_id}", response_model=list[api.ExchangeRequest])
def list_incoming(
    listing_id: int,
    caller: int = Depends(get_current_user_id),
    service: ExchangeService = Depends(get_exchange_service),
) -> list[api.ExchangeRequest]:
    """Requests asking for one of the caller's listings."""
    try:
        return [domain_exchange_to_api(r) for r in service.list_incoming(caller, listing_id)]
    except DomainError as e:
        raise domain_error_to_http(e) from e


@router.get("/exchanges/requester/{listing_id}", response_model=list[api.ExchangeRequest])
def list_outgoing(
    listing_id: int,
    caller: int = Depends(get_current_user_id),
    service: ExchangeService = Depends(get_exchange_service),
) -> list[api.ExchangeRequest]:
    try:
        return [domain_exchange_to_api(r) for r in service.list_outgoing(caller, listing_id)]
    except DomainError as e:
        raise domain_error_to_http(e) from e


@router.get("/exchanges/{request_id}", response_model=api.ExchangeView)
def view_exchange(
    request_id: int,
    caller: int = Depends(get_current_user_id),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.ExchangeView:
    try:
        return domain_exchange_view_to_api(service.view_exchange(caller, request_id))
    except DomainError as e:
        raise domain_error_to_http(e) from e


@router.put("/exchanges/{request_id}/accept", response_model=api.ExchangeRequest)
def accept_exchange(
    request_id: int,
    caller: int = Depends(get_current_user_id),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.ExchangeRequest:
    """
    Accept a request for one of the caller's listings.

    Competing requests for the same listing are rejected and both listings
    are taken off the market.

    Raises:
        400: Request is not pending
        403: Caller does not own the requested listing
        404: Request or listing not found
    """
    try:
        return domain_exchange_to_api(service.accept_exchange(caller, request_id))
    except DomainError as e:
        raise domain_error_to_http(e) from e


@router.put("/exchanges/{request_id}/status", response_model=api.ExchangeRequest)
def update_exchange_status(
    request_id: int,
    body: api.ExchangeStatusUpdate,
    caller: int = Depends(get_current_user_id),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.ExchangeRequest:
    try:
        return domain_exchange_to_api(
            service.update_exchange_status(caller, request_id, body.status)
        )
    except DomainError as e:
        raise domain_error_to_http(e) from e


@router.delete("/exchanges/{request_id}", response_model=api.DeleteResponse)
def withdraw_exchange(
    request_id: int,
    caller: int = Depends(get_current_user_id),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.DeleteResponse:
    try:
        return api.DeleteResponse(deleted=service.withdraw_exchange(caller, request_id))
    except DomainError as e:
        raise domain_error_to_http(e) from e
