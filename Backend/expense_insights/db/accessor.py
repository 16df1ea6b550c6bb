"""
Read access to claims, employees, approval events and receipt metadata.

The analytics services only ever talk to a ``RecordAccessor``; the SQL
implementation below opens a short-lived session per call so that several
queries can run on worker threads at the same time.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import and_, or_, select, union
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from expense_insights.db.models import (
    ApprovalHistory,
    ClaimView,
    DepartmentBudget,
    ExpenseClaim,
    ReceiptImage,
    User,
)
from expense_insights.errors import RecordAccessError
from expense_insights.schemas import (
    ApprovalEvent,
    Claim,
    ClaimViewRecord,
    Employee,
    Receipt,
)

CLAIM_FIELDS = {c.key for c in ExpenseClaim.__table__.columns}


@dataclass
class ClaimQuery:
    """
    Filter over expense claims.

    ``ranges`` bounds are inclusive and either side may be None.
    ``alternatives`` are OR-ed together and AND-ed with the other criteria.
    """
    equals: Dict[str, Any] = field(default_factory=dict)
    ranges: Dict[str, Tuple[Optional[Any], Optional[Any]]] = field(default_factory=dict)
    any_of: Dict[str, Sequence[Any]] = field(default_factory=dict)
    exclude_id: Optional[str] = None
    alternatives: List["ClaimQuery"] = field(default_factory=list)
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None

    def fields(self) -> List[str]:
        names = list(self.equals) + list(self.ranges) + list(self.any_of)
        if self.order_by:
            names.append(self.order_by)
        for alt in self.alternatives:
            names.extend(alt.fields())
        return names


class RecordAccessor(Protocol):
    def get_claim(self, claim_id: str) -> Optional[Claim]: ...

    def get_employee(self, employee_id: str) -> Optional[Employee]: ...

    def list_claims(self, query: ClaimQuery) -> List[Claim]: ...

    def list_employees(self, department: Optional[str] = None) -> List[Employee]: ...

    def list_departments(self) -> List[str]: ...

    def get_department_budget(self, department: str) -> Optional[float]: ...

    def list_approval_events(self, claim_id: str) -> List[ApprovalEvent]: ...

    def list_receipts(self, claim_id: str) -> List[Receipt]: ...

    def mark_viewed(self, claim_id: str, user_id: str, viewed_at: datetime) -> None: ...

    def list_claim_views(self, claim_id: str) -> List[ClaimViewRecord]: ...


def _condition(query: ClaimQuery):
    clauses = []
    for name, value in query.equals.items():
        clauses.append(getattr(ExpenseClaim, name) == value)
    for name, (low, high) in query.ranges.items():
        col = getattr(ExpenseClaim, name)
        if low is not None:
            clauses.append(col >= low)
        if high is not None:
            clauses.append(col <= high)
    for name, values in query.any_of.items():
        clauses.append(getattr(ExpenseClaim, name).in_(list(values)))
    if query.exclude_id is not None:
        clauses.append(ExpenseClaim.id != query.exclude_id)
    if query.alternatives:
        clauses.append(or_(*[_condition(alt) for alt in query.alternatives]))
    return and_(*clauses) if clauses else None


class SqlRecordAccessor:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_claim(self, claim_id: str) -> Optional[Claim]:
        try:
            with self._session_factory() as session:
                row = session.get(ExpenseClaim, claim_id)
                return Claim.model_validate(row) if row else None
        except SQLAlchemyError as e:
            raise RecordAccessError(f"Failed to load claim {claim_id}") from e

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        try:
            with self._session_factory() as session:
                row = session.get(User, employee_id)
                return Employee.model_validate(row) if row else None
        except SQLAlchemyError as e:
            raise RecordAccessError(f"Failed to load employee {employee_id}") from e

    def list_claims(self, query: ClaimQuery) -> List[Claim]:
        unknown = [f for f in query.fields() if f not in CLAIM_FIELDS]
        if unknown:
            raise ValueError(f"Unknown claim field(s): {', '.join(sorted(set(unknown)))}")

        stmt = select(ExpenseClaim)
        cond = _condition(query)
        if cond is not None:
            stmt = stmt.where(cond)
        if query.order_by:
            col = getattr(ExpenseClaim, query.order_by)
            stmt = stmt.order_by(col.desc() if query.descending else col.asc())
        if query.limit is not None:
            stmt = stmt.limit(query.limit)

        try:
            with self._session_factory() as session:
                return [Claim.model_validate(r) for r in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise RecordAccessError("Claim query failed") from e

    def list_employees(self, department: Optional[str] = None) -> List[Employee]:
        stmt = select(User).order_by(User.name)
        if department is not None:
            stmt = stmt.where(User.department == department)
        try:
            with self._session_factory() as session:
                return [Employee.model_validate(r) for r in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise RecordAccessError("Employee query failed") from e

    def list_departments(self) -> List[str]:
        # Departments known from the directory, the budget table or claim tags
        stmt = union(
            select(User.department).where(User.department.is_not(None)),
            select(DepartmentBudget.department),
            select(ExpenseClaim.department).where(ExpenseClaim.department.is_not(None)),
        )
        try:
            with self._session_factory() as session:
                return sorted(session.scalars(stmt))
        except SQLAlchemyError as e:
            raise RecordAccessError("Department query failed") from e

    def get_department_budget(self, department: str) -> Optional[float]:
        try:
            with self._session_factory() as session:
                row = session.get(DepartmentBudget, department)
                return row.monthly_budget if row else None
        except SQLAlchemyError as e:
            raise RecordAccessError(f"Failed to load budget for {department}") from e

    def list_approval_events(self, claim_id: str) -> List[ApprovalEvent]:
        stmt = (
            select(ApprovalHistory, User)
            .outerjoin(User, ApprovalHistory.approver_id == User.id)
            .where(ApprovalHistory.claim_id == claim_id)
            .order_by(ApprovalHistory.created_at.asc())
        )
        try:
            with self._session_factory() as session:
                return [
                    ApprovalEvent(
                        id=h.id,
                        claim_id=h.claim_id,
                        actor_id=h.approver_id,
                        actor_name=u.name if u else None,
                        actor_role=u.role if u else None,
                        action=h.action,
                        comment=h.comments,
                        created_at=h.created_at,
                    )
                    for h, u in session.execute(stmt)
                ]
        except SQLAlchemyError as e:
            raise RecordAccessError(f"Failed to load approval history for {claim_id}") from e

    def list_receipts(self, claim_id: str) -> List[Receipt]:
        stmt = (
            select(ReceiptImage)
            .where(ReceiptImage.claim_id == claim_id)
            .order_by(ReceiptImage.uploaded_at.desc())
        )
        try:
            with self._session_factory() as session:
                return [
                    Receipt(
                        id=r.id,
                        claim_id=r.claim_id,
                        file_name=r.file_name,
                        file_url=r.file_url,
                        file_size=r.file_size,
                        uploaded_at=r.uploaded_at,
                        extracted_data=r.extracted_data,
                    )
                    for r in session.scalars(stmt)
                ]
        except SQLAlchemyError as e:
            raise RecordAccessError(f"Failed to load receipts for {claim_id}") from e

    def mark_viewed(self, claim_id: str, user_id: str, viewed_at: datetime) -> None:
        try:
            with self._session_factory() as session:
                session.merge(ClaimView(claim_id=claim_id, user_id=user_id, viewed_at=viewed_at))
                session.commit()
        except SQLAlchemyError as e:
            raise RecordAccessError(f"Failed to mark claim {claim_id} as viewed") from e

    def list_claim_views(self, claim_id: str) -> List[ClaimViewRecord]:
        stmt = (
            select(ClaimView, User)
            .outerjoin(User, ClaimView.user_id == User.id)
            .where(ClaimView.claim_id == claim_id)
            .order_by(ClaimView.viewed_at.desc())
        )
        try:
            with self._session_factory() as session:
                return [
                    ClaimViewRecord(
                        claim_id=v.claim_id,
                        user_id=v.user_id,
                        viewed_at=v.viewed_at,
                        viewer_name=u.name if u else None,
                        viewer_role=u.role if u else None,
                    )
                    for v, u in session.execute(stmt)
                ]
        except SQLAlchemyError as e:
            raise RecordAccessError(f"Failed to load views for {claim_id}") from e
