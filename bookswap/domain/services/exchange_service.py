"""
Exchange Orchestrator.

Composes the listing store, the exchange-request store and the
authorization gate into the use cases of the exchange workflow:
proposing a swap, accepting it, and looking at or tidying up requests.

=============================================================================
Acceptance and listing retirement
=============================================================================

Accepting a request consummates the swap, so neither book stays on offer:

    load request --> check caller owns requestee listing --> check the
    offered listing is still on the market --> accept (cascade-reject
    siblings) --> reject other pending requests naming either listing
    --> retire both listings

With atomic_retirement=True (the default) all of this runs inside one unit
of work: if a listing cannot be removed, the acceptance is rolled back too.

With atomic_retirement=False the acceptance commits first and each listing
is then removed on its own. A failed removal is logged and left for
reconciliation; the acceptance stands.

Pending requests naming either listing are rejected inside the
acceptance unit in both modes, so a book cannot be given away twice.

A listing that is already gone is logged and skipped in both modes.
=============================================================================
"""

import logging
from typing import List

from bookswap.domain.entities import ExchangeRequest, ExchangeView
from bookswap.domain.errors import (
    ExchangeNotFoundError,
    InvalidExchangeError,
    InvalidStatusError,
    ListingPersistenceError,
    NotAuthorizedError,
)
from bookswap.domain.ports import ExchangeRequestRepository, ListingRepository, UnitOfWork
from bookswap.domain.services.authorization_gate import AuthorizationGate
from bookswap.domain.value_objects import ExchangeStatus

logger = logging.getLogger(__name__)


class ExchangeService:
    """
    Use cases of the exchange-request lifecycle.

    Every method takes the caller's numeric user ID (see
    AuthorizationGate.authenticate) and enforces ownership before touching
    state.

    Usage:
        service = ExchangeService(exchange_repo, listing_repo, gate, database)
        request = service.propose_exchange(bob_id, requestee_listing_id=100,
                                           requester_listing_id=200)
        service.accept_exchange(alice_id, request.request_id)
    """

    def __init__(
        self,
        exchanges: ExchangeRequestRepository,
        listings: ListingRepository,
        gate: AuthorizationGate,
        unit_of_work: UnitOfWork,
        *,
        atomic_retirement: bool = True,
    ) -> None:
        """
        Args:
            exchanges: Exchange Request Store
            listings: Listing Store
            gate: Ownership checks for listings
            unit_of_work: Shared transaction scope of both stores
            atomic_retirement: Retire listings inside the acceptance unit
                (True) or as best-effort cleanup after it commits (False)
        """
        self._exchanges = exchanges
        self._listings = listings
        self._gate = gate
        self._uow = unit_of_work
        self._atomic_retirement = atomic_retirement

    @property
    def atomic_retirement(self) -> bool:
        return self._atomic_retirement

    # ------------------------------------------------------------------
    # Proposal
    # ------------------------------------------------------------------

    def propose_exchange(
        self,
        caller_user_id: int,
        requestee_listing_id: int,
        requester_listing_id: int,
    ) -> ExchangeRequest:
        """
        Offer the caller's listing in exchange for someone else's.

        Args:
            caller_user_id: Who is proposing
            requestee_listing_id: Listing being asked for
            requester_listing_id: Caller's listing offered in return

        Returns:
            The new pending request

        Raises:
            NotAuthorizedError: If the offered listing belongs to someone else
            InvalidExchangeError: Same listing twice, missing listing, or both
                listings owned by the same user
            DuplicateExchangeError: If this ordered pair was already proposed
        """
        owner = self._gate.owner_of(requester_listing_id)
        if owner is not None and owner != caller_user_id:
            raise NotAuthorizedError(
                f"User {caller_user_id} cannot offer listing {requester_listing_id}"
            )

        return self._exchanges.create(requestee_listing_id, requester_listing_id)

    # ------------------------------------------------------------------
    # Acceptance
    # ------------------------------------------------------------------

    def accept_exchange(self, caller_user_id: int, request_id: int) -> ExchangeRequest:
        """
        Accept a pending request and retire both listings.

        Raises:
            ExchangeNotFoundError: If the request does not exist
            InvalidExchangeError: If the request is no longer pending, or the
                offered listing is no longer on the market
            ListingNotFoundError: If the requestee listing no longer exists
            NotAuthorizedError: If the caller does not own the requestee listing
            ExchangeUpdateError: If the acceptance unit fails
            ListingPersistenceError: If retirement fails in atomic mode
        """
        with self._uow.transaction():
            # =================================================================
            # Step 1: Load and authorize
            # =================================================================
            request = self._exchanges.get_by_id(request_id)
            if not request.is_pending():
                raise InvalidExchangeError(
                    f"Exchange request {request_id} is {request.status.value}, not pending"
                )
            self._gate.require_listing_owner(caller_user_id, request.requestee_listing_id)
            if self._gate.owner_of(request.requester_listing_id) is None:
                raise InvalidExchangeError(
                    f"Listing {request.requester_listing_id} offered in exchange request "
                    f"{request_id} is no longer available"
                )

            # =================================================================
            # Step 2: Accept, cascade-reject siblings and stale requests
            # =================================================================
            accepted = self._exchanges.accept(request_id)
            stale = self._exchanges.reject_pending_for_listings(accepted.listing_ids())
            if stale:
                logger.info(
                    f"Rejected {stale} pending request(s) naming listings "
                    f"{accepted.listing_ids()} after exchange {request_id}"
                )

            # =================================================================
            # Step 3: Retire listings inside the same unit
            # =================================================================
            if self._atomic_retirement:
                self._retire_listings(accepted)

        if not self._atomic_retirement:
            self._retire_listings_best_effort(accepted)

        return accepted

    def _retire_listings(self, request: ExchangeRequest) -> None:
        for listing_id in request.listing_ids():
            if self._listings.delete(listing_id):
                logger.info(
                    f"Retired listing {listing_id} after exchange {request.request_id}"
                )
            else:
                logger.warning(
                    f"Listing {listing_id} was already gone when retiring "
                    f"exchange {request.request_id}"
                )

    def _retire_listings_best_effort(self, request: ExchangeRequest) -> None:
        for listing_id in request.listing_ids():
            try:
                removed = self._listings.delete(listing_id)
            except ListingPersistenceError as e:
                logger.error(
                    f"Failed to retire listing {listing_id} after exchange "
                    f"{request.request_id}; needs reconciliation: {e}"
                )
                continue

            if removed:
                logger.info(
                    f"Retired listing {listing_id} after exchange {request.request_id}"
                )
            else:
                logger.warning(
                    f"Listing {listing_id} was already gone when retiring "
                    f"exchange {request.request_id}"
                )

    # ------------------------------------------------------------------
    # Inspection and housekeeping
    # ------------------------------------------------------------------

    def view_exchange(self, caller_user_id: int, request_id: int) -> ExchangeView:
        """
        Load a request with both of its listings.

        Raises:
            ExchangeNotFoundError: If the request does not exist
            ListingNotFoundError: If either listing has been retired or deleted
            NotAuthorizedError: If the caller owns neither listing
        """
        request = self._exchanges.get_by_id(request_id)
        requestee = self._listings.get_by_id(request.requestee_listing_id)
        requester = self._listings.get_by_id(request.requester_listing_id)

        if not (requestee.is_owned_by(caller_user_id) or requester.is_owned_by(caller_user_id)):
            raise NotAuthorizedError(
                f"User {caller_user_id} is not a party to exchange request {request_id}"
            )

        return ExchangeView(
            request=request,
            requestee_listing=requestee,
            requester_listing=requester,
        )

    def update_exchange_status(
        self,
        caller_user_id: int,
        request_id: int,
        status: "str | ExchangeStatus",
    ) -> ExchangeRequest:
        """
        Move a request to another status in place.

        Acceptance is refused here; it has to go through accept_exchange so
        that siblings are rejected and listings retired.

        Raises:
            InvalidStatusError: Unknown status, or `accepted`
            ExchangeNotFoundError: If the request does not exist
            NotAuthorizedError: If the caller owns neither listing
        """
        try:
            new_status = ExchangeStatus.parse(status)
        except ValueError as e:
            raise InvalidStatusError(str(e)) from e

        if new_status is ExchangeStatus.ACCEPTED:
            raise InvalidStatusError(
                "Requests can only be accepted through the accept operation"
            )

        with self._uow.transaction():
            request = self._exchanges.get_by_id(request_id)
            self._require_party(caller_user_id, request)
            updated = self._exchanges.update_status(request_id, new_status)

        logger.info(
            f"Exchange request {request_id}: {request.status.value} -> {new_status.value} "
            f"(by user {caller_user_id})"
        )
        return updated

    def withdraw_exchange(self, caller_user_id: int, request_id: int) -> bool:
        """
        Delete a request the caller proposed.

        Returns:
            False if the request did not exist, True once it is removed

        Raises:
            NotAuthorizedError: If the caller does not own the offered listing
        """
        with self._uow.transaction():
            try:
                request = self._exchanges.get_by_id(request_id)
            except ExchangeNotFoundError:
                return False

            if self._gate.owner_of(request.requester_listing_id) != caller_user_id:
                raise NotAuthorizedError(
                    f"Only the proposer can withdraw exchange request {request_id}"
                )
            removed = self._exchanges.delete(request_id)

        logger.info(f"Exchange request {request_id} withdrawn by user {caller_user_id}")
        return removed

    def list_my_exchanges(self, caller_user_id: int) -> List[ExchangeRequest]:
        """Requests where the caller owns either listing."""
        return self._exchanges.list_by_user(caller_user_id)

    def list_my_accepted_exchanges(self, caller_user_id: int) -> List[ExchangeRequest]:
        return self._exchanges.list_accepted_by_user(caller_user_id)

    def list_incoming(self, caller_user_id: int, listing_id: int) -> List[ExchangeRequest]:
        """Requests asking for one of the caller's listings."""
        self._gate.require_listing_owner(caller_user_id, listing_id)
        return self._exchanges.list_by_requestee_listing(listing_id)

    def list_outgoing(self, caller_user_id: int, listing_id: int) -> List[ExchangeRequest]:
        """Requests offering one of the caller's listings."""
        self._gate.require_listing_owner(caller_user_id, listing_id)
        return self._exchanges.list_by_requester_listing(listing_id)

    def _require_party(self, user_id: int, request: ExchangeRequest) -> None:
        owners = {self._gate.owner_of(listing_id) for listing_id in request.listing_ids()}
        if user_id not in owners:
            raise NotAuthorizedError(
                f"User {user_id} is not a party to exchange request {request.request_id}"
            )
