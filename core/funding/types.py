"""
Funding request types
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from core.domain.state_machines import FUNDED_STATES, RequestEvent, RequestStatus
from core.ledger.types import LedgerEntry
from core.utils.timezone import parse_utc

__all__ = [
    "FUNDED_STATES",
    "RequestEvent",
    "RequestStatus",
    "ProjectRequest",
    "ApprovalOutcome",
    "new_request_id",
]


def new_request_id() -> str:
    """Request ID (pr-<12 hex>)"""
    return f"pr-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class ProjectRequest:
    """Funding request (project proposal)

    estimated_cost is the single authoritative amount: it is what approval
    posts to the ledger.

    Attributes:
        request_id: Request ID
        title: Project title
        estimated_cost: Requested amount (> 0)
        description: Free text
        request_date: Date the project is planned for
        status: Workflow status
        requester_id: Proposing member
        requester_name: Display name at creation time
        created_at / submitted_at / approved_at / completed_at: Milestones (UTC)
        approved_by: Approver actor_id
        version: Optimistic-concurrency counter, bumped on every write
        updated_at: Last write (UTC)
    """

    request_id: str
    title: str
    estimated_cost: Decimal
    description: str
    request_date: date
    status: RequestStatus
    requester_id: str
    requester_name: str
    created_at: datetime
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: str | None = None
    completed_at: datetime | None = None
    version: int = 1
    updated_at: datetime | None = None

    @property
    def is_funded(self) -> bool:
        return self.status.is_funded

    @property
    def is_public(self) -> bool:
        """Shown on the transparency page"""
        return self.status in (RequestStatus.ACTIVE, RequestStatus.COMPLETED)

    @classmethod
    def from_row(cls, row: Any) -> "ProjectRequest":
        """Build from a DB row"""
        return cls(
            request_id=row["request_id"],
            title=row["title"],
            estimated_cost=Decimal(str(row["estimated_cost"])),
            description=row["description"] or "",
            request_date=date.fromisoformat(row["request_date"][:10]),
            status=RequestStatus.parse(row["status"]),
            requester_id=row["requester_id"],
            requester_name=row["requester_name"],
            created_at=parse_utc(row["created_at"]),
            submitted_at=parse_utc(row["submitted_at"]),
            approved_at=parse_utc(row["approved_at"]),
            approved_by=row["approved_by"],
            completed_at=parse_utc(row["completed_at"]),
            version=int(row["version"]),
            updated_at=parse_utc(row["updated_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        def iso(value: datetime | None) -> str | None:
            return value.isoformat() if value else None

        return {
            "request_id": self.request_id,
            "title": self.title,
            "estimated_cost": str(self.estimated_cost),
            "description": self.description,
            "request_date": self.request_date.isoformat(),
            "status": self.status.value,
            "requester_id": self.requester_id,
            "requester_name": self.requester_name,
            "created_at": iso(self.created_at),
            "submitted_at": iso(self.submitted_at),
            "approved_at": iso(self.approved_at),
            "approved_by": self.approved_by,
            "completed_at": iso(self.completed_at),
            "version": self.version,
        }


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of ApprovalService.approve

    Attributes:
        request: Request after the call
        entry: Linked ledger expense
        already_applied: True when the call found the request already funded
            and wrote nothing
        insufficient_funds: Balance before approval was below the cost
            (advisory only; approval still went through)
        balance_before: Balance the advisory check used (None when skipped)
    """

    request: ProjectRequest
    entry: LedgerEntry | None
    already_applied: bool = False
    insufficient_funds: bool = False
    balance_before: Decimal | None = None
