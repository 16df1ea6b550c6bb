from datetime import datetime
from typing import Dict, List, Optional

from expense_insights.config import AMOUNT_SIMILARITY_TOLERANCE, RELATED_CLAIMS_LIMIT
from expense_insights.db.accessor import ClaimQuery, RecordAccessor
from expense_insights.schemas import (
    ApprovalAction,
    ApprovalHistoryItem,
    Claim,
    ClaimViewData,
    ClaimViewStats,
    Employee,
    TimelineEntry,
)
from expense_insights.services.degraded import fetch_or_default
from expense_insights.services.similarity import amount_band, load_claim

ACTION_TIMELINE = {
    ApprovalAction.APPROVE.value: ("Claim Approved", "check"),
    ApprovalAction.REJECT.value: ("Claim Rejected", "x"),
    ApprovalAction.REQUEST_INFO.value: ("Information Requested", "help"),
}
GENERIC_ACTION = ("Action Taken", "activity")


def _employee_or_placeholder(accessor: RecordAccessor, claim: Claim) -> Employee:
    employee = fetch_or_default("employee", lambda: accessor.get_employee(claim.employee_id), None)
    if employee is None:
        return Employee(id=claim.employee_id, name="Unknown", department=claim.department or "Unknown")
    return employee


def approval_history(accessor: RecordAccessor, claim_id: str) -> List[ApprovalHistoryItem]:
    events = fetch_or_default("approval_history", lambda: accessor.list_approval_events(claim_id), [])
    return [
        ApprovalHistoryItem(
            id=e.id,
            action=e.action,
            approver=e.actor_name or "Unknown",
            approver_role=e.actor_role or "Unknown",
            comments=e.comment,
            timestamp=e.created_at,
        )
        for e in events
    ]


def related_claims_query(
    claim: Claim,
    limit: int = RELATED_CLAIMS_LIMIT,
    tolerance: float = AMOUNT_SIMILARITY_TOLERANCE,
) -> ClaimQuery:
    """
    Same employee's other claims that share the category or fall inside the
    amount band, newest expense first.
    """
    return ClaimQuery(
        equals={"employee_id": claim.employee_id},
        exclude_id=claim.id,
        alternatives=[
            ClaimQuery(equals={"category": claim.category}),
            ClaimQuery(ranges={"amount": amount_band(claim.amount, tolerance)}),
        ],
        order_by="expense_date",
        descending=True,
        limit=limit,
    )


def related_claims(accessor: RecordAccessor, claim: Claim) -> List[Claim]:
    query = related_claims_query(claim)
    rows = fetch_or_default("related_claims", lambda: accessor.list_claims(query), [])
    return [c for c in rows if c.id != claim.id][:RELATED_CLAIMS_LIMIT]


def claim_view_data(accessor: RecordAccessor, claim_id: str) -> ClaimViewData:
    claim = load_claim(accessor, claim_id)
    return ClaimViewData(
        claim=claim,
        receipts=fetch_or_default("receipts", lambda: accessor.list_receipts(claim_id), []),
        approval_history=approval_history(accessor, claim_id),
        related_claims=related_claims(accessor, claim),
        employee=_employee_or_placeholder(accessor, claim),
    )


def claim_timeline(accessor: RecordAccessor, claim_id: str) -> List[TimelineEntry]:
    claim = load_claim(accessor, claim_id)
    employee = _employee_or_placeholder(accessor, claim)

    timeline: List[TimelineEntry] = [
        TimelineEntry(
            id="created",
            type="created",
            title="Claim Submitted",
            description=f"Submitted by {employee.name}",
            timestamp=claim.submitted_at or datetime.combine(claim.expense_date, datetime.min.time()),
            user=employee.name,
            icon="plus",
        )
    ]

    for receipt in fetch_or_default("receipts", lambda: accessor.list_receipts(claim_id), []):
        timeline.append(
            TimelineEntry(
                id=f"receipt_{receipt.file_name}",
                type="receipt",
                title="Receipt Uploaded",
                description=f"Uploaded {receipt.file_name}",
                timestamp=receipt.uploaded_at,
                icon="paperclip",
            )
        )

    for event in fetch_or_default("approval_history", lambda: accessor.list_approval_events(claim_id), []):
        title, icon = ACTION_TIMELINE.get(event.action, GENERIC_ACTION)
        timeline.append(
            TimelineEntry(
                id=event.id,
                type="approval",
                title=title,
                description=event.comment or f"Action by {event.actor_name or 'Unknown'}",
                timestamp=event.created_at,
                user=event.actor_name,
                icon=icon,
            )
        )

    timeline.sort(key=lambda t: t.timestamp)
    return timeline


def mark_claim_as_viewed(
    accessor: RecordAccessor,
    claim_id: str,
    user_id: str,
    viewed_at: Optional[datetime] = None,
) -> None:
    """Record that `user_id` opened the claim. Repeated calls only refresh the time."""
    load_claim(accessor, claim_id)
    accessor.mark_viewed(claim_id, user_id, viewed_at or datetime.utcnow())


def claim_view_stats(accessor: RecordAccessor, claim_id: str) -> ClaimViewStats:
    load_claim(accessor, claim_id)
    views = accessor.list_claim_views(claim_id)
    by_role: Dict[str, int] = {}
    for v in views:
        role = v.viewer_role or "unknown"
        by_role[role] = by_role.get(role, 0) + 1

    return ClaimViewStats(
        total_views=len(views),
        unique_viewers=len({v.user_id for v in views}),
        last_viewed=views[0].viewed_at if views else None,
        viewers_by_role=by_role,
    )
