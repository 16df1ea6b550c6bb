"""
Shared fixtures: a throwaway SQLite database built from the ORM models,
a seeding helper and the SQL record accessor running against it.
"""

from datetime import date, datetime
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from expense_insights.db.accessor import SqlRecordAccessor
from expense_insights.db.models import (
    ApprovalHistory,
    Base,
    DepartmentBudget,
    ExpenseClaim,
    ReceiptImage,
    User,
)
from expense_insights.schemas import Claim

TODAY = date(2024, 6, 15)


class Seeder:
    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._counter = 0

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter:03d}"

    def _add(self, obj):
        with self.session_factory() as session:
            session.add(obj)
            session.commit()
        return obj

    def employee(self, name: str, department: str = "Operations", role: str = "employee",
                 manager_id: Optional[str] = None, id: Optional[str] = None) -> User:
        return self._add(User(
            id=id or self._next_id("emp"),
            name=name,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            department=department,
            role=role,
            manager_id=manager_id,
        ))

    def claim(self, employee: User, category: str, amount: Optional[float],
              expense_date: date = TODAY, status: str = "submitted", description: str = "",
              submitted_at: Optional[datetime] = None, id: Optional[str] = None,
              department: Optional[str] = None) -> ExpenseClaim:
        return self._add(ExpenseClaim(
            id=id or self._next_id("clm"),
            employee_id=employee.id,
            category=category,
            amount=amount,
            description=description or f"{category} expense",
            expense_date=expense_date,
            submitted_at=submitted_at or datetime.combine(expense_date, datetime.min.time()),
            status=status,
            department=department or employee.department,
        ))

    def budget(self, department: str, monthly_budget: Optional[float]) -> DepartmentBudget:
        return self._add(DepartmentBudget(department=department, monthly_budget=monthly_budget))

    def approval(self, claim: ExpenseClaim, approver: Optional[User], action: str,
                 created_at: datetime, comments: Optional[str] = None) -> ApprovalHistory:
        return self._add(ApprovalHistory(
            id=self._next_id("apr"),
            claim_id=claim.id,
            approver_id=approver.id if approver else None,
            action=action,
            comments=comments,
            created_at=created_at,
        ))

    def receipt(self, claim: ExpenseClaim, file_name: str, uploaded_at: datetime,
                extracted_data=None) -> ReceiptImage:
        return self._add(ReceiptImage(
            id=self._next_id("rcp"),
            claim_id=claim.id,
            file_name=file_name,
            file_url=f"https://files.example.com/receipts/{file_name}",
            file_size=2048,
            uploaded_at=uploaded_at,
            extracted_data=extracted_data,
        ))


class FailingAccessor:
    """Wraps an accessor and makes chosen operations raise."""

    def __init__(self, inner, fail_on=(), fail_when=None):
        self.inner = inner
        self.fail_on = set(fail_on)
        self.fail_when = fail_when

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if name in self.fail_on:
            def failing(*args, **kwargs):
                raise RuntimeError(f"{name} unavailable")
            return failing
        if name == "list_claims" and self.fail_when is not None:
            def maybe_failing(query):
                if self.fail_when(query):
                    raise RuntimeError("claim query unavailable")
                return attr(query)
            return maybe_failing
        return attr


def to_claim(row: ExpenseClaim) -> Claim:
    return Claim.model_validate(row)


@pytest.fixture
def engine(tmp_path):
    # File-backed so that concurrent accessor reads each get their own connection
    engine = create_engine(
        f"sqlite:///{tmp_path / 'claims.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)


@pytest.fixture
def accessor(session_factory):
    return SqlRecordAccessor(session_factory)
