"""
Project request repository

Owns the project_requests table. Every status write is a compare-and-swap
on (status, version) so a concurrent writer can never be overwritten
silently. Entering ACTIVE is reserved for the approval service, which
writes the status together with the linked ledger expense.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import aiosqlite

from core.domain.state_machines import TRANSITIONS
from core.errors import ConcurrentModification, InvalidTransition, NotFound, ValidationError
from core.funding.types import ProjectRequest, RequestStatus, new_request_id
from core.permissions import require_admin
from core.storage.guard import store_errors
from core.types import Actor
from core.utils.change_feed import ChangeFeed
from core.utils.timezone import local_today, now_utc

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)

_SELECT = """
    SELECT request_id, title, estimated_cost, description, request_date, status,
           requester_id, requester_name, created_at, submitted_at, approved_at,
           approved_by, completed_at, version, updated_at
    FROM project_requests
"""

# Columns update_status() may set alongside the status
STATUS_EXTRA_FIELDS: frozenset[str] = frozenset({"submitted_at", "completed_at"})


def _iso(value: Any) -> Any:
    return value.isoformat() if isinstance(value, (datetime, date)) else value


def validate_proposal(title: str, estimated_cost: Any) -> Decimal:
    """Check title and cost of a new proposal

    Returns:
        estimated_cost as Decimal

    Raises:
        ValidationError: empty title, missing/non-positive/non-numeric cost
    """
    if not title or not title.strip():
        raise ValidationError("title is required")
    if estimated_cost is None or isinstance(estimated_cost, bool):
        raise ValidationError("estimated_cost is required")
    try:
        cost = Decimal(str(estimated_cost))
    except ArithmeticError:
        raise ValidationError(f"estimated_cost is not a number: {estimated_cost!r}") from None
    if not cost.is_finite() or cost <= 0:
        raise ValidationError(f"estimated_cost must be positive, got {estimated_cost}")
    return cost


class ProjectRequestRepository:
    """Project request repository

    Args:
        db: SQLite adapter

    Attributes:
        changes: Feed announcing committed creates and status changes
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db
        self.changes = ChangeFeed("requests")

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def create(
        self,
        actor: Actor,
        title: str,
        estimated_cost: Any,
        description: str = "",
        request_date: date | None = None,
        submit: bool = True,
    ) -> ProjectRequest:
        """Create a proposal

        Args:
            actor: Requester (MEMBER_ADMIN or SUPER_ADMIN)
            title: Project title
            estimated_cost: Requested amount
            description: Details
            request_date: Planned date (default today)
            submit: True -> PENDING right away, False -> DRAFT

        Returns:
            Stored request

        Raises:
            PermissionDenied: actor is not an admin
            ValidationError: invalid title/cost
            StoreUnavailable: store failure
        """
        require_admin(actor, "create funding requests")
        cost = validate_proposal(title, estimated_cost)

        now = now_utc()
        request = ProjectRequest(
            request_id=new_request_id(),
            title=title.strip(),
            estimated_cost=cost,
            description=description or "",
            request_date=request_date or local_today(),
            status=RequestStatus.PENDING if submit else RequestStatus.DRAFT,
            requester_id=actor.actor_id,
            requester_name=actor.name,
            created_at=now,
            submitted_at=now if submit else None,
            version=1,
            updated_at=now,
        )

        async with store_errors("requests.create", request_id=request.request_id):
            async with self.db.transaction() as conn:
                await conn.execute(
                    """
                    INSERT INTO project_requests (
                        request_id, title, estimated_cost, description, request_date,
                        status, requester_id, requester_name, created_at,
                        submitted_at, version, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        request.request_id,
                        request.title,
                        str(request.estimated_cost),
                        request.description,
                        request.request_date.isoformat(),
                        request.status.value,
                        request.requester_id,
                        request.requester_name,
                        _iso(request.created_at),
                        _iso(request.submitted_at),
                        request.version,
                        _iso(request.updated_at),
                    ),
                )

        logger.info(
            f"Funding request created: {request.request_id} ({request.status.value})",
            extra={"request_id": request.request_id, "actor_id": actor.actor_id},
        )
        await self.changes.publish(
            "created",
            request.request_id,
            {"status": request.status.value},
        )
        return request

    # -------------------------------------------------------------------------
    # Status writes
    # -------------------------------------------------------------------------

    async def update_status(
        self,
        request_id: str,
        status: RequestStatus,
        expected_version: int | None = None,
        extra_fields: dict[str, Any] | None = None,
    ) -> ProjectRequest:
        """Move a request to `status` (single-row write)

        A request already in `status` is returned unchanged.

        Args:
            request_id: Request ID
            status: Target status (must be one legal step away)
            expected_version: Version the caller read; None skips the check
            extra_fields: Milestone columns to set with the status
                (submitted_at, completed_at)

        Returns:
            Request after the write

        Raises:
            NotFound: no such request
            InvalidTransition: not a legal step, or the target is ACTIVE
            ConcurrentModification: version changed since the caller read it
            ValidationError: unknown extra field
            StoreUnavailable: store failure
        """
        fields = dict(extra_fields or {})
        unknown = set(fields) - STATUS_EXTRA_FIELDS
        if unknown:
            raise ValidationError(f"Cannot set {sorted(unknown)} with a status change")

        async with store_errors("requests.update_status", request_id=request_id):
            async with self.db.transaction() as conn:
                current = await self.fetch_for_update(conn, request_id)
                if current is None:
                    raise NotFound("ProjectRequest", request_id)

                if current.status == status:
                    return current

                # version before legality: a lost race is ConcurrentModification
                if expected_version is not None and current.version != expected_version:
                    raise ConcurrentModification(request_id, expected_version, current.version)

                if not any(
                    src == current.status and dst == status
                    for (src, _), dst in TRANSITIONS.items()
                ):
                    raise InvalidTransition(current.status.value, status.value)

                if status == RequestStatus.ACTIVE:
                    raise InvalidTransition(
                        current.status.value,
                        status.value,
                        reason="approval must post the linked ledger entry",
                    )

                claimed = await self.write_status(
                    conn,
                    request_id,
                    from_status=current.status,
                    to_status=status,
                    expected_version=current.version,
                    fields=fields,
                )
                if not claimed:
                    raise ConcurrentModification(request_id, current.version)

                updated = await self.fetch_for_update(conn, request_id)
                if updated is None:
                    raise NotFound("ProjectRequest", request_id)

        logger.info(
            f"Funding request {request_id}: {current.status.value} -> {status.value}",
            extra={"request_id": request_id, "version": updated.version},
        )
        await self.changes.publish(
            "status_changed",
            request_id,
            {"from": current.status.value, "to": status.value},
        )
        return updated

    async def write_status(
        self,
        conn: aiosqlite.Connection,
        request_id: str,
        from_status: RequestStatus,
        to_status: RequestStatus,
        expected_version: int,
        fields: dict[str, Any] | None = None,
    ) -> bool:
        """Conditional UPDATE on an open transaction (no commit)

        Matches only when both status and version are still what the caller
        read, and bumps the version.

        Returns:
            True if the row was claimed, False if someone else changed it
        """
        assignments = ["status = ?", "version = version + 1", "updated_at = ?"]
        params: list[Any] = [to_status.value, now_utc().isoformat()]
        for column, value in (fields or {}).items():
            assignments.append(f"{column} = ?")
            params.append(_iso(value))
        params.extend([request_id, from_status.value, expected_version])

        cursor = await conn.execute(
            f"""
            UPDATE project_requests
            SET {', '.join(assignments)}
            WHERE request_id = ? AND status = ? AND version = ?
            """,
            tuple(params),
        )
        return cursor.rowcount == 1

    async def fetch_for_update(
        self,
        conn: aiosqlite.Connection,
        request_id: str,
    ) -> ProjectRequest | None:
        """Read a request on an open transaction"""
        cursor = await conn.execute(f"{_SELECT} WHERE request_id = ?", (request_id,))
        row = await cursor.fetchone()
        return ProjectRequest.from_row(row) if row else None

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get(self, request_id: str) -> ProjectRequest | None:
        row = await self._fetchone(f"{_SELECT} WHERE request_id = ?", (request_id,))
        return ProjectRequest.from_row(row) if row else None

    async def require(self, request_id: str) -> ProjectRequest:
        """get() that raises NotFound"""
        request = await self.get(request_id)
        if request is None:
            raise NotFound("ProjectRequest", request_id)
        return request

    async def list_all(self) -> list[ProjectRequest]:
        """All requests, newest first"""
        rows = await self._fetchall(f"{_SELECT} ORDER BY created_at DESC, request_id")
        return [ProjectRequest.from_row(row) for row in rows]

    async def list_by_status(self, *statuses: RequestStatus) -> list[ProjectRequest]:
        """Requests in any of `statuses`, newest first"""
        if not statuses:
            return []
        placeholders = ", ".join("?" for _ in statuses)
        rows = await self._fetchall(
            f"{_SELECT} WHERE status IN ({placeholders}) ORDER BY created_at DESC, request_id",
            tuple(s.value for s in statuses),
        )
        return [ProjectRequest.from_row(row) for row in rows]

    async def list_by_requester(self, requester_id: str) -> list[ProjectRequest]:
        """A requester's own proposals, newest first"""
        rows = await self._fetchall(
            f"{_SELECT} WHERE requester_id = ? ORDER BY created_at DESC, request_id",
            (requester_id,),
        )
        return [ProjectRequest.from_row(row) for row in rows]

    async def count_by_status(self, status: RequestStatus) -> int:
        row = await self._fetchone(
            "SELECT COUNT(*) AS n FROM project_requests WHERE status = ?",
            (status.value,),
        )
        return int(row["n"]) if row else 0

    async def _fetchone(self, sql: str, params: tuple[Any, ...] = ()) -> Any:
        async with store_errors("requests.read"):
            async with self.db.consistent_read():
                return await self.db.fetchone(sql, params)

    async def _fetchall(self, sql: str, params: tuple[Any, ...] = ()) -> list[Any]:
        async with store_errors("requests.read"):
            async with self.db.consistent_read():
                return await self.db.fetchall(sql, params)
