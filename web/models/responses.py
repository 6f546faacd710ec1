"""
Response schemas (Pydantic)

Money is serialised as decimal strings.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field

from core.funding.types import ProjectRequest
from core.ledger.types import DailyFlow, LedgerEntry


class HealthResponse(BaseModel):
    """Health check"""

    status: str = Field(default="ok", description="Service status")
    mode: str = Field(..., description="Deployment mode (production/staging)")
    organization: str = Field(..., description="Organisation name")
    timestamp: datetime = Field(..., description="Response time (UTC)")


class LedgerEntryResponse(BaseModel):
    """Ledger entry"""

    entry_id: str = Field(..., description="Entry ID")
    amount: str = Field(..., description="Amount")
    kind: str = Field(..., description="INCOME / EXPENSE")
    description: str = Field(..., description="Description")
    entry_date: date = Field(..., description="Date")
    linked_request_id: str | None = Field(default=None, description="Funded request")
    created_by: str | None = Field(default=None, description="Posted by")
    created_at: datetime | None = Field(default=None, description="Posted at (UTC)")

    @classmethod
    def from_entry(cls, entry: LedgerEntry) -> "LedgerEntryResponse":
        return cls(
            entry_id=entry.entry_id,
            amount=str(entry.amount),
            kind=entry.kind.value,
            description=entry.description,
            entry_date=entry.entry_date,
            linked_request_id=entry.linked_request_id,
            created_by=entry.created_by,
            created_at=entry.created_at,
        )


class LedgerListResponse(BaseModel):
    """Ledger with its balance"""

    entries: list[LedgerEntryResponse] = Field(default_factory=list, description="Entries, oldest first")
    balance: str = Field(..., description="Income minus expense")
    currency: str = Field(..., description="Currency code")


class ProjectRequestResponse(BaseModel):
    """Funding request"""

    request_id: str = Field(..., description="Request ID")
    title: str = Field(..., description="Title")
    estimated_cost: str = Field(..., description="Requested amount")
    description: str = Field(..., description="Details")
    request_date: date = Field(..., description="Planned date")
    status: str = Field(..., description="Workflow status")
    requester_id: str = Field(..., description="Requester")
    requester_name: str = Field(..., description="Requester name")
    created_at: datetime = Field(..., description="Created (UTC)")
    submitted_at: datetime | None = Field(default=None, description="Submitted (UTC)")
    approved_at: datetime | None = Field(default=None, description="Approved (UTC)")
    approved_by: str | None = Field(default=None, description="Approver")
    completed_at: datetime | None = Field(default=None, description="Completion verified (UTC)")
    version: int = Field(..., description="Record version")

    @classmethod
    def from_request(cls, request: ProjectRequest) -> "ProjectRequestResponse":
        return cls(
            request_id=request.request_id,
            title=request.title,
            estimated_cost=str(request.estimated_cost),
            description=request.description,
            request_date=request.request_date,
            status=request.status.value,
            requester_id=request.requester_id,
            requester_name=request.requester_name,
            created_at=request.created_at,
            submitted_at=request.submitted_at,
            approved_at=request.approved_at,
            approved_by=request.approved_by,
            completed_at=request.completed_at,
            version=request.version,
        )


class PublicProjectResponse(BaseModel):
    """Funded project as shown publicly (no requester details)"""

    request_id: str = Field(..., description="Request ID")
    title: str = Field(..., description="Title")
    estimated_cost: str = Field(..., description="Funded amount")
    description: str = Field(..., description="Details")
    status: str = Field(..., description="ACTIVE / COMPLETED")
    approved_at: datetime | None = Field(default=None, description="Approved (UTC)")
    completed_at: datetime | None = Field(default=None, description="Completed (UTC)")


class ApprovalResponse(BaseModel):
    """Approve result"""

    request: ProjectRequestResponse = Field(..., description="Request after approval")
    entry: LedgerEntryResponse | None = Field(default=None, description="Linked expense")
    already_applied: bool = Field(default=False, description="Nothing was written (repeat call)")
    insufficient_funds: bool = Field(
        default=False,
        description="Balance was below the cost (approved anyway)",
    )
    balance_before: str | None = Field(default=None, description="Balance used for the check")


class DailyFlowResponse(BaseModel):
    """One day of the dashboard chart"""

    day: date
    income: str
    expense: str

    @classmethod
    def from_flow(cls, flow: DailyFlow) -> "DailyFlowResponse":
        return cls(day=flow.day, income=str(flow.income), expense=str(flow.expense))


class DashboardResponse(BaseModel):
    """Dashboard summary"""

    organization: str = Field(..., description="Organisation name")
    currency: str = Field(..., description="Currency code")
    balance: str = Field(..., description="Current balance")
    pending_count: int = Field(..., description="Requests waiting for approval")
    monthly_income: str = Field(..., description="Income this month")
    monthly_expense: str = Field(..., description="Expense this month")
    active_projects: list[ProjectRequestResponse] = Field(default_factory=list, description="Funded, in progress")
    sequence: int = Field(..., description="Snapshot sequence")
    as_of: datetime | None = Field(default=None, description="Snapshot time (UTC)")


class TransparencyResponse(BaseModel):
    """Public transparency page"""

    organization: str = Field(..., description="Organisation name")
    currency: str = Field(..., description="Currency code")
    balance: str = Field(..., description="Current balance")
    projects: list[PublicProjectResponse] = Field(default_factory=list, description="ACTIVE and COMPLETED projects")
    as_of: datetime = Field(..., description="Read time (UTC)")


class LedgerReportResponse(BaseModel):
    """Monthly report input"""

    year: int
    month: int
    start: date
    end: date
    entries: list[LedgerEntryResponse] = Field(default_factory=list)
    total_income: str
    total_expense: str
    net_balance: str
