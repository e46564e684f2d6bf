"""Persistence layer for vacation requests."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, timezone
from threading import Lock
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from ..errors import OverlapError, PersistenceError
from .models import VacationRequest

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS vacation_requests (
        id BIGSERIAL PRIMARY KEY,
        customer_id TEXT NOT NULL,
        child_name TEXT NOT NULL,
        from_date DATE NOT NULL,
        to_date DATE NOT NULL,
        shift_days INTEGER NOT NULL CHECK (shift_days > 0 AND shift_days <= 3650),
        reason TEXT,
        subscription_id TEXT NOT NULL,
        billing_attempt_id TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CHECK (from_date <= to_date)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS vacation_requests_customer_child_idx
        ON vacation_requests (customer_id, child_name, from_date)
    """,
)

_OVERLAP_QUERY = """
    SELECT *
    FROM vacation_requests
    WHERE customer_id = %(customer_id)s
      AND child_name = %(child_name)s
      AND from_date <= %(to_date)s
      AND %(from_date)s <= to_date
    ORDER BY id
    LIMIT 1
"""


def overlap_error(conflict: VacationRequest) -> OverlapError:
    return OverlapError(
        f"You have already submitted a vacation request from {conflict.from_date.isoformat()} "
        f"to {conflict.to_date.isoformat()}. Overlapping requests are not allowed.",
        conflict_from=conflict.from_date,
        conflict_to=conflict.to_date,
    )


def _row_to_vacation(row: dict) -> VacationRequest:
    return VacationRequest(
        id=int(row["id"]),
        customer_id=row["customer_id"],
        child_name=row["child_name"],
        from_date=row["from_date"],
        to_date=row["to_date"],
        shift_days=int(row["shift_days"]),
        reason=row.get("reason"),
        subscription_id=row["subscription_id"],
        billing_attempt_id=row["billing_attempt_id"],
        created_at=row.get("created_at"),
    )


@contextmanager
def managed_connection(
    conn: Optional[PgConnection],
    connect: Callable[[], PgConnection],
) -> Iterator[Tuple[PgConnection, bool]]:
    """Context manager that manages transaction boundaries for optional connections."""

    if conn is not None:
        yield conn, False
        return

    connection = connect()
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


class PostgresVacationRepository:
    """Stores vacation requests in PostgreSQL.

    Every public method runs in its own transaction unless an explicit
    connection is supplied, in which case the caller owns commit and rollback.
    """

    def __init__(
        self,
        *,
        dsn: Optional[str] = None,
        connect_timeout: int = 5,
        conn: Optional[PgConnection] = None,
    ) -> None:
        if dsn is None and conn is None:
            raise ValueError("Either dsn or conn is required")
        self._dsn = dsn
        self._connect_timeout = connect_timeout
        self._conn = conn

    def _connect(self) -> PgConnection:
        return psycopg2.connect(self._dsn, connect_timeout=self._connect_timeout)

    @contextmanager
    def _cursor(self) -> Iterator[PgCursor]:
        try:
            with managed_connection(self._conn, self._connect) as (connection, _managed):
                cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
                try:
                    yield cursor
                finally:
                    cursor.close()
        except psycopg2.Error as exc:
            logger.exception("Vacation store operation failed")
            raise PersistenceError("Database error") from exc

    def ensure_schema(self) -> None:
        with self._cursor() as cursor:
            for statement in SCHEMA_STATEMENTS:
                cursor.execute(statement)

    def find_overlapping(
        self,
        customer_id: str,
        child_name: str,
        from_date: date,
        to_date: date,
    ) -> Optional[VacationRequest]:
        with self._cursor() as cursor:
            cursor.execute(
                _OVERLAP_QUERY,
                {
                    "customer_id": customer_id,
                    "child_name": child_name,
                    "from_date": from_date,
                    "to_date": to_date,
                },
            )
            row = cursor.fetchone()
            return _row_to_vacation(row) if row else None

    def insert(self, request: VacationRequest) -> VacationRequest:
        """Insert ``request`` unless a concurrent writer stored an overlapping range."""

        params = {
            "customer_id": request.customer_id,
            "child_name": request.child_name,
            "from_date": request.from_date,
            "to_date": request.to_date,
            "shift_days": request.shift_days,
            "reason": request.reason,
            "subscription_id": request.subscription_id,
            "billing_attempt_id": request.billing_attempt_id,
        }
        with self._cursor() as cursor:
            # Serializes writers for one child until this transaction ends.
            cursor.execute(
                "SELECT pg_advisory_xact_lock(hashtext(%(customer_id)s), hashtext(%(child_name)s))",
                params,
            )
            cursor.execute(_OVERLAP_QUERY, params)
            conflict = cursor.fetchone()
            if conflict:
                raise overlap_error(_row_to_vacation(conflict))

            cursor.execute(
                """
                INSERT INTO vacation_requests (
                    customer_id,
                    child_name,
                    from_date,
                    to_date,
                    shift_days,
                    reason,
                    subscription_id,
                    billing_attempt_id
                )
                VALUES (%(customer_id)s, %(child_name)s, %(from_date)s, %(to_date)s,
                        %(shift_days)s, %(reason)s, %(subscription_id)s, %(billing_attempt_id)s)
                RETURNING *
                """,
                params,
            )
            row = cursor.fetchone()
            if not row:
                raise PersistenceError("Failed to save vacation request")
            return _row_to_vacation(row)

    def list_by_customer_and_child(self, customer_id: str, child_name: str) -> List[VacationRequest]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM vacation_requests
                WHERE customer_id = %s AND child_name = %s
                ORDER BY from_date DESC, id DESC
                """,
                (customer_id, child_name),
            )
            rows = cursor.fetchall() or []
            return [_row_to_vacation(row) for row in rows]


class InMemoryVacationRepository:
    """Process-local store suitable for tests and local development."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._rows: Dict[int, VacationRequest] = {}
        self._next_id = 1

    def ensure_schema(self) -> None:
        return None

    def find_overlapping(
        self,
        customer_id: str,
        child_name: str,
        from_date: date,
        to_date: date,
    ) -> Optional[VacationRequest]:
        with self._lock:
            return self._first_overlap(customer_id, child_name, from_date, to_date)

    def insert(self, request: VacationRequest) -> VacationRequest:
        with self._lock:
            conflict = self._first_overlap(
                request.customer_id, request.child_name, request.from_date, request.to_date
            )
            if conflict is not None:
                raise overlap_error(conflict)
            stored = request.model_copy(
                update={"id": self._next_id, "created_at": datetime.now(timezone.utc)}
            )
            self._rows[stored.id] = stored
            self._next_id += 1
            return stored

    def list_by_customer_and_child(self, customer_id: str, child_name: str) -> List[VacationRequest]:
        with self._lock:
            matching = [
                row
                for row in self._rows.values()
                if row.customer_id == customer_id and row.child_name == child_name
            ]
        return sorted(matching, key=lambda row: (row.from_date, row.id), reverse=True)

    def _first_overlap(
        self,
        customer_id: str,
        child_name: str,
        from_date: date,
        to_date: date,
    ) -> Optional[VacationRequest]:
        for row_id in sorted(self._rows):
            row = self._rows[row_id]
            if row.customer_id == customer_id and row.child_name == child_name and row.overlaps(from_date, to_date):
                return row
        return None


__all__ = [
    "InMemoryVacationRepository",
    "PostgresVacationRepository",
    "SCHEMA_STATEMENTS",
    "managed_connection",
    "overlap_error",
]
