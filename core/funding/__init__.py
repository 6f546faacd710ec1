"""
Funding requests

Project proposals and the approval workflow that funds them from the ledger.

Usage:
```python
from core.funding import ApprovalService, ProjectRequestRepository

requests = ProjectRequestRepository(db)
service = ApprovalService(ledger_store, requests, notifier)
outcome = await service.approve(request_id, treasurer)
```
"""

from core.funding.audit import LinkageViolation, audit_linkage, check_linkage
from core.funding.repository import ProjectRequestRepository, validate_proposal
from core.funding.service import ApprovalService
from core.funding.types import (
    FUNDED_STATES,
    ApprovalOutcome,
    ProjectRequest,
    RequestEvent,
    RequestStatus,
    new_request_id,
)

__all__ = [
    "ApprovalService",
    "ProjectRequestRepository",
    "validate_proposal",
    "ApprovalOutcome",
    "ProjectRequest",
    "RequestEvent",
    "RequestStatus",
    "FUNDED_STATES",
    "new_request_id",
    # Audit
    "audit_linkage",
    "check_linkage",
    "LinkageViolation",
]
