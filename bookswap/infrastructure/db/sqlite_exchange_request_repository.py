"""
SQLite implementation of the ExchangeRequestRepository port.

This adapter owns the exchange_requests table and the two operations that
must be atomic against the store:

- create: self-exchange / missing listing / same-owner checks, the
  ordered-pair duplicate check and the insert all run in one write unit.
  The UNIQUE(requestee_listing_id, requester_listing_id) index backs the
  duplicate check for writers that raced past it.
- accept: the target request is accepted and every other request for the
  same requestee listing is rejected in one write unit.

Each request records the owners of both listings at proposal time, so the
per-user queries keep working after the listings have been retired.
"""

import logging
import sqlite3
import time
from typing import Dict, Iterable, List, Optional

from bookswap.domain.entities import ExchangeRequest
from bookswap.domain.errors import (
    DuplicateExchangeError,
    ExchangeCreationError,
    ExchangeNotFoundError,
    ExchangeUpdateError,
    InvalidExchangeError,
    InvalidStatusError,
)
from bookswap.domain.ports import ExchangeRequestRepository
from bookswap.domain.value_objects import ExchangeStatus
from bookswap.infrastructure.db.database import SqliteDatabase

logger = logging.getLogger(__name__)

_UPDATABLE_COLUMNS = ("status", "request_date")


class SqliteExchangeRequestRepository(ExchangeRequestRepository):
    """Exchange Request Store backed by the shared SqliteDatabase handle."""

    def __init__(self, database: SqliteDatabase) -> None:
        self._db = database

    def _row_to_request(self, row: sqlite3.Row) -> ExchangeRequest:
        """Convert a database row to an ExchangeRequest entity."""
        return ExchangeRequest(
            request_id=row["request_id"],
            requestee_listing_id=row["requestee_listing_id"],
            requester_listing_id=row["requester_listing_id"],
            status=ExchangeStatus(row["status"]),
            request_date=row["request_date"],
            requestee_user_id=row["requestee_user_id"],
            requester_user_id=row["requester_user_id"],
        )

    def _fetch(self, conn: sqlite3.Connection, request_id: int) -> Optional[ExchangeRequest]:
        row = conn.execute(
            "SELECT * FROM exchange_requests WHERE request_id = ?",
            (request_id,),
        ).fetchone()
        return self._row_to_request(row) if row is not None else None

    def _select(self, query: str, params: tuple = ()) -> List[ExchangeRequest]:
        with self._db.connection() as conn:
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_request(row) for row in rows]

    @staticmethod
    def _pair_exists(conn: sqlite3.Connection, requestee_listing_id: int, requester_listing_id: int) -> bool:
        row = conn.execute(
            """
            SELECT COUNT(*) AS cnt FROM exchange_requests
            WHERE requestee_listing_id = ? AND requester_listing_id = ?
            """,
            (requestee_listing_id, requester_listing_id),
        ).fetchone()
        return row["cnt"] > 0

    @staticmethod
    def _listing_owners(conn: sqlite3.Connection, *listing_ids: int) -> Dict[int, int]:
        placeholders = ", ".join("?" for _ in listing_ids)
        rows = conn.execute(
            f"SELECT listing_id, user_id FROM book_listings WHERE listing_id IN ({placeholders})",
            listing_ids,
        ).fetchall()
        return {row["listing_id"]: row["user_id"] for row in rows}

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def exists(self, requestee_listing_id: int, requester_listing_id: int) -> bool:
        with self._db.connection() as conn:
            return self._pair_exists(conn, requestee_listing_id, requester_listing_id)

    def create(self, requestee_listing_id: int, requester_listing_id: int) -> ExchangeRequest:
        """Validate and insert a pending request as one atomic unit."""
        if requestee_listing_id == requester_listing_id:
            raise InvalidExchangeError(
                "Cannot create an exchange request between a listing and itself"
            )

        try:
            with self._db.transaction() as conn:
                owners = self._listing_owners(conn, requestee_listing_id, requester_listing_id)
                if requestee_listing_id not in owners or requester_listing_id not in owners:
                    raise InvalidExchangeError("One or both listings not found")

                if owners[requestee_listing_id] == owners[requester_listing_id]:
                    raise InvalidExchangeError(
                        "Cannot create exchange request between listings owned by the same user"
                    )

                if self._pair_exists(conn, requestee_listing_id, requester_listing_id):
                    raise DuplicateExchangeError(
                        "An exchange request already exists between these listings"
                    )

                cursor = conn.execute(
                    """
                    INSERT INTO exchange_requests (
                        requestee_listing_id, requester_listing_id, status, request_date,
                        requestee_user_id, requester_user_id
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        requestee_listing_id,
                        requester_listing_id,
                        ExchangeStatus.PENDING.value,
                        int(time.time()),
                        owners[requestee_listing_id],
                        owners[requester_listing_id],
                    ),
                )
                created = self._fetch(conn, cursor.lastrowid)
                if created is None:
                    raise ExchangeCreationError(
                        "Failed to retrieve created exchange request. Transaction failed and rolled back."
                    )
        except sqlite3.IntegrityError as e:
            # Lost a race against a concurrent writer of the same pair
            raise DuplicateExchangeError(
                "An exchange request already exists between these listings"
            ) from e
        except sqlite3.Error as e:
            raise ExchangeCreationError(f"Failed to create exchange request: {e}") from e

        logger.info(
            f"Created exchange request {created.request_id}: "
            f"listing {requester_listing_id} offered for listing {requestee_listing_id}"
        )
        return created

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def update_status(self, request_id: int, status: ExchangeStatus) -> ExchangeRequest:
        return self.update(request_id, status=status)

    def update(self, request_id: int, **changes) -> ExchangeRequest:
        """
        Partial update of status and/or request_date.

        Raises:
            InvalidStatusError: If a status value is not an ExchangeStatus
            ExchangeNotFoundError: If the row is missing after the write
            ExchangeUpdateError: If the write fails
        """
        unknown = set(changes) - set(_UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update exchange request fields: {sorted(unknown)}")

        if "status" in changes:
            try:
                changes["status"] = ExchangeStatus.parse(changes["status"]).value
            except ValueError as e:
                raise InvalidStatusError(str(e)) from e

        try:
            with self._db.transaction() as conn:
                if changes:
                    assignments = ", ".join(f"{column} = ?" for column in changes)
                    conn.execute(
                        f"UPDATE exchange_requests SET {assignments} WHERE request_id = ?",
                        (*changes.values(), request_id),
                    )
                updated = self._fetch(conn, request_id)
                if updated is None:
                    raise ExchangeNotFoundError(
                        f"Exchange request with ID {request_id} not found"
                    )
        except sqlite3.Error as e:
            raise ExchangeUpdateError(f"Failed to update exchange request {request_id}: {e}") from e

        return updated

    def accept(self, request_id: int) -> ExchangeRequest:
        """
        Accept a request and reject its siblings.

        Steps, all inside one write unit:
        1. Load the target request
        2. Set its status to accepted
        3. Set every other request with the same requestee listing to
           rejected, whatever their previous status
        4. Read the accepted request back
        """
        try:
            with self._db.transaction() as conn:
                target = self._fetch(conn, request_id)
                if target is None:
                    raise ExchangeNotFoundError(
                        f"Exchange request with ID {request_id} not found"
                    )

                conn.execute(
                    "UPDATE exchange_requests SET status = ? WHERE request_id = ?",
                    (ExchangeStatus.ACCEPTED.value, request_id),
                )
                cursor = conn.execute(
                    """
                    UPDATE exchange_requests
                    SET status = ?
                    WHERE requestee_listing_id = ? AND request_id != ?
                    """,
                    (ExchangeStatus.REJECTED.value, target.requestee_listing_id, request_id),
                )
                rejected = cursor.rowcount

                accepted = self._fetch(conn, request_id)
                if accepted is None:
                    raise ExchangeUpdateError(
                        "Failed to retrieve accepted exchange request. Transaction failed and rolled back."
                    )
        except sqlite3.Error as e:
            raise ExchangeUpdateError(f"Failed to accept exchange request {request_id}: {e}") from e

        logger.info(
            f"Accepted exchange request {request_id}; rejected {rejected} other request(s) "
            f"for listing {accepted.requestee_listing_id}"
        )
        return accepted

    def reject_pending_for_listings(self, listing_ids: Iterable[int]) -> int:
        """
        Reject every pending request naming any of the listings, in
        either role.

        Returns:
            Number of requests rejected
        """
        ids = list(listing_ids)
        if not ids:
            return 0

        placeholders = ", ".join("?" for _ in ids)
        try:
            with self._db.transaction() as conn:
                cursor = conn.execute(
                    f"""
                    UPDATE exchange_requests
                    SET status = ?
                    WHERE status = ?
                      AND (requestee_listing_id IN ({placeholders})
                           OR requester_listing_id IN ({placeholders}))
                    """,
                    (ExchangeStatus.REJECTED.value, ExchangeStatus.PENDING.value, *ids, *ids),
                )
                return cursor.rowcount
        except sqlite3.Error as e:
            raise ExchangeUpdateError(
                f"Failed to reject pending requests for listings {ids}: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete(self, request_id: int) -> bool:
        try:
            with self._db.transaction() as conn:
                cursor = conn.execute(
                    "DELETE FROM exchange_requests WHERE request_id = ?",
                    (request_id,),
                )
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise ExchangeUpdateError(f"Failed to delete exchange request {request_id}: {e}") from e

    def delete_by_listing(self, listing_id: int) -> int:
        try:
            with self._db.transaction() as conn:
                cursor = conn.execute(
                    """
                    DELETE FROM exchange_requests
                    WHERE requestee_listing_id = ? OR requester_listing_id = ?
                    """,
                    (listing_id, listing_id),
                )
                return cursor.rowcount
        except sqlite3.Error as e:
            raise ExchangeUpdateError(
                f"Failed to delete exchange requests for listing {listing_id}: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, request_id: int) -> ExchangeRequest:
        with self._db.connection() as conn:
            request = self._fetch(conn, request_id)
        if request is None:
            raise ExchangeNotFoundError(f"Exchange request with ID {request_id} not found")
        return request

    def list_all(self) -> List[ExchangeRequest]:
        return self._select("SELECT * FROM exchange_requests ORDER BY request_id")

    def list_by_requestee_listing(self, listing_id: int) -> List[ExchangeRequest]:
        return self._select(
            "SELECT * FROM exchange_requests WHERE requestee_listing_id = ? ORDER BY request_id",
            (listing_id,),
        )

    def list_by_requester_listing(self, listing_id: int) -> List[ExchangeRequest]:
        return self._select(
            "SELECT * FROM exchange_requests WHERE requester_listing_id = ? ORDER BY request_id",
            (listing_id,),
        )

    def list_by_user(self, user_id: int) -> List[ExchangeRequest]:
        return self._select(
            """
            SELECT * FROM exchange_requests
            WHERE requestee_user_id = ? OR requester_user_id = ?
            ORDER BY request_id
            """,
            (user_id, user_id),
        )

    def list_accepted_by_user(self, user_id: int) -> List[ExchangeRequest]:
        return self._select(
            """
            SELECT * FROM exchange_requests
            WHERE (requestee_user_id = ? OR requester_user_id = ?) AND status = ?
            ORDER BY request_id
            """,
            (user_id, user_id, ExchangeStatus.ACCEPTED.value),
        )

    def list_by_status(self, status: ExchangeStatus) -> List[ExchangeRequest]:
        try:
            value = ExchangeStatus.parse(status).value
        except ValueError as e:
            raise InvalidStatusError(str(e)) from e
        return self._select(
            "SELECT * FROM exchange_requests WHERE status = ? ORDER BY request_id",
            (value,),
        )
