import json
import uuid
from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String)
    email: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    department: Mapped[str] = mapped_column(String, index=True)
    role: Mapped[str] = mapped_column(String, default="employee")
    manager_id: Mapped[Optional[str]] = mapped_column(ForeignKey("users.id"), nullable=True)


class ExpenseClaim(Base):
    __tablename__ = "expense_claims"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    employee_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    category: Mapped[str] = mapped_column(String, index=True)
    amount: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    description: Mapped[str] = mapped_column(Text, default="")
    expense_date: Mapped[date] = mapped_column(Date, index=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    status: Mapped[str] = mapped_column(String, default="submitted", index=True)
    # Copy of the employee's department at submission time
    department: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)


class ApprovalHistory(Base):
    __tablename__ = "approval_history"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    claim_id: Mapped[str] = mapped_column(ForeignKey("expense_claims.id"), index=True)
    approver_id: Mapped[Optional[str]] = mapped_column(ForeignKey("users.id"), nullable=True)
    action: Mapped[str] = mapped_column(String)
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class ReceiptImage(Base):
    __tablename__ = "receipt_images"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    claim_id: Mapped[str] = mapped_column(ForeignKey("expense_claims.id"), index=True)
    file_name: Mapped[str] = mapped_column(String)
    file_url: Mapped[str] = mapped_column(String)
    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    extracted_data_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __init__(self, claim_id, file_name, file_url, uploaded_at, file_size=None, extracted_data=None, id=None):
        self.id = id or _new_id()
        self.claim_id = claim_id
        self.file_name = file_name
        self.file_url = file_url
        self.file_size = file_size
        self.uploaded_at = uploaded_at
        self.extracted_data_json = json.dumps(extracted_data) if extracted_data is not None else None

    @property
    def extracted_data(self) -> Optional[Dict[str, Any]]:
        if not self.extracted_data_json:
            return None
        return json.loads(self.extracted_data_json)


class DepartmentBudget(Base):
    __tablename__ = "department_budgets"
    department: Mapped[str] = mapped_column(String, primary_key=True)
    monthly_budget: Mapped[Optional[float]] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=True)


class ClaimView(Base):
    __tablename__ = "claim_views"
    claim_id: Mapped[str] = mapped_column(ForeignKey("expense_claims.id"), primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), primary_key=True)
    viewed_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
