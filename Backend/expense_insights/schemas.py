from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Known values only; the stored columns are free text and unknown values pass through
class ClaimStatus(str, Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    INFO_REQUESTED = "info_requested"


class ApprovalAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_INFO = "request_info"


class ApiModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Claim(ApiModel):
    id: str
    employee_id: str
    category: str
    amount: Optional[float] = None
    description: str = ""
    expense_date: date
    submitted_at: Optional[datetime] = None
    status: str = ClaimStatus.SUBMITTED.value
    department: Optional[str] = None


class Employee(ApiModel):
    id: str
    name: str
    email: Optional[str] = None
    department: str
    role: Optional[str] = None
    manager_id: Optional[str] = None


class ApprovalEvent(ApiModel):
    id: str
    claim_id: str
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    actor_role: Optional[str] = None
    action: str
    comment: Optional[str] = None
    created_at: datetime


class Receipt(ApiModel):
    id: str
    claim_id: str
    file_name: str
    file_url: str
    file_size: Optional[int] = None
    uploaded_at: datetime
    extracted_data: Optional[Dict[str, Any]] = None


class ClaimViewRecord(ApiModel):
    claim_id: str
    user_id: str
    viewed_at: datetime
    viewer_name: Optional[str] = None
    viewer_role: Optional[str] = None


class SimilarityCandidateSet(ApiModel):
    by_amount: List[Claim] = Field(default_factory=list)
    by_category: List[Claim] = Field(default_factory=list)
    by_employee: List[Claim] = Field(default_factory=list)


class PatternStatistics(ApiModel):
    average_amount_for_category: float = 0.0
    approval_rate_for_category: float = 0.0
    employee_approval_rate: float = 0.0


class SimilarClaimsAnalysis(ApiModel):
    similar_by_amount: List[Claim]
    similar_by_category: List[Claim]
    employee_claims: List[Claim]
    patterns: PatternStatistics


class CategoryShare(ApiModel):
    category: str
    amount: float
    count: int
    percentage: float


class ActivityEntry(ApiModel):
    id: str
    type: str = "expense_claim"
    description: str
    amount: float
    employee: str
    date: Optional[datetime] = None


class DepartmentRollup(ApiModel):
    department: str
    employee_count: int
    total_expenses: float
    average_expense_per_employee: float
    monthly_budget: float
    budget_configured: bool
    budget_utilization: float
    top_categories: List[CategoryShare]
    recent_activity: List[ActivityEntry]


class MonthlyTrend(ApiModel):
    month: str
    total_amount: float
    claim_count: int
    average_amount: float
    category_count: int


class ApprovalHistoryItem(ApiModel):
    id: str
    action: str
    approver: str
    approver_role: str
    comments: Optional[str] = None
    timestamp: datetime


class ClaimViewData(ApiModel):
    claim: Claim
    receipts: List[Receipt]
    approval_history: List[ApprovalHistoryItem]
    related_claims: List[Claim]
    employee: Employee


class TimelineEntry(ApiModel):
    id: str
    type: str
    title: str
    description: str
    timestamp: datetime
    user: Optional[str] = None
    icon: str


class ClaimViewStats(ApiModel):
    total_views: int
    unique_viewers: int
    last_viewed: Optional[datetime] = None
    viewers_by_role: Dict[str, int] = Field(default_factory=dict)
