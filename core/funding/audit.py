"""
Linkage audit

Cross-checks requests against the ledger. A healthy store has exactly one
linked EXPENSE for every ACTIVE / PENDING_COMPLETION / COMPLETED request,
with the request's estimated_cost as its amount, and no linked entry for
any other request.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass

from core.funding.repository import ProjectRequestRepository
from core.funding.types import ProjectRequest
from core.ledger.store import LedgerStore
from core.ledger.types import LedgerEntry, TransactionKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkageViolation:
    """One broken request/ledger link

    Attributes:
        request_id: Request involved
        problem: missing_entry, duplicate_entry, unfunded_entry,
            orphan_entry, amount_mismatch, not_expense
        detail: Human-readable explanation
    """

    request_id: str
    problem: str
    detail: str


def check_linkage(
    requests: list[ProjectRequest],
    entries: list[LedgerEntry],
) -> list[LinkageViolation]:
    """Pure check over already-read rows"""
    by_request: dict[str, list[LedgerEntry]] = defaultdict(list)
    for entry in entries:
        if entry.linked_request_id:
            by_request[entry.linked_request_id].append(entry)

    violations: list[LinkageViolation] = []
    known = {r.request_id for r in requests}

    for request in requests:
        linked = by_request.get(request.request_id, [])

        if not request.is_funded:
            if linked:
                violations.append(LinkageViolation(
                    request.request_id,
                    "unfunded_entry",
                    f"{request.status.value} request has {len(linked)} linked entr"
                    f"{'y' if len(linked) == 1 else 'ies'}",
                ))
            continue

        if not linked:
            violations.append(LinkageViolation(
                request.request_id,
                "missing_entry",
                f"{request.status.value} request has no linked expense",
            ))
            continue
        if len(linked) > 1:
            violations.append(LinkageViolation(
                request.request_id,
                "duplicate_entry",
                f"{len(linked)} linked entries: {', '.join(e.entry_id for e in linked)}",
            ))

        entry = linked[0]
        if entry.kind != TransactionKind.EXPENSE:
            violations.append(LinkageViolation(
                request.request_id,
                "not_expense",
                f"{entry.entry_id} is {entry.kind.value}",
            ))
        if entry.amount != request.estimated_cost:
            violations.append(LinkageViolation(
                request.request_id,
                "amount_mismatch",
                f"{entry.entry_id} is {entry.amount}, request is {request.estimated_cost}",
            ))

    for request_id in sorted(set(by_request) - known):
        violations.append(LinkageViolation(
            request_id,
            "orphan_entry",
            f"linked entries point at an unknown request: "
            f"{', '.join(e.entry_id for e in by_request[request_id])}",
        ))

    return violations


async def audit_linkage(
    ledger: LedgerStore,
    requests: ProjectRequestRepository,
) -> list[LinkageViolation]:
    """Read both tables consistently and check every link

    Returns:
        Violations (empty list when the store is consistent)
    """
    async with ledger.db.consistent_read():
        entries = await ledger.list_entries()
        all_requests = await requests.list_all()

    violations = check_linkage(all_requests, entries)
    if violations:
        logger.warning(
            f"Linkage audit found {len(violations)} problem(s)",
            extra={"problems": [v.problem for v in violations]},
        )
    else:
        logger.info(
            f"Linkage audit clean: {len(all_requests)} requests, {len(entries)} entries",
        )
    return violations
