import calendar
import logging
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from expense_insights.config import (
    BUDGET_ESTIMATE_FACTOR,
    DEFAULT_TREND_MONTHS,
    RECENT_ACTIVITY_LIMIT,
    TOP_CATEGORY_LIMIT,
)
from expense_insights.db.accessor import ClaimQuery, RecordAccessor
from expense_insights.errors import DepartmentNotFound
from expense_insights.schemas import (
    ActivityEntry,
    CategoryShare,
    Claim,
    DepartmentRollup,
    Employee,
    MonthlyTrend,
)
from expense_insights.services.degraded import fetch_or_default
from expense_insights.services.patterns import amount_of

logger = logging.getLogger(__name__)


def months_ago(today: date, months: int) -> date:
    """Same day `months` calendar months earlier, clamped to the month's length."""
    index = today.year * 12 + (today.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(today.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def total_amount(claims: Sequence[Claim]) -> float:
    return sum(amount_of(c) for c in claims)


def rank_categories(claims: Sequence[Claim], limit: int = TOP_CATEGORY_LIMIT) -> List[CategoryShare]:
    grand_total = total_amount(claims)
    groups: Dict[str, Dict[str, float]] = {}
    for c in claims:
        g = groups.setdefault(c.category or "Other", {"amount": 0.0, "count": 0})
        g["amount"] += amount_of(c)
        g["count"] += 1

    shares = [
        CategoryShare(
            category=name,
            amount=g["amount"],
            count=int(g["count"]),
            percentage=(g["amount"] / grand_total * 100) if grand_total > 0 else 0.0,
        )
        for name, g in groups.items()
    ]
    shares.sort(key=lambda s: s.amount, reverse=True)
    return shares[:limit]


def budget_utilization(total: float, configured_budget: Optional[float]) -> Tuple[float, bool, float]:
    """
    Returns (monthly_budget, configured, utilization_pct).

    Without a configured budget the budget is estimated as total * 1.2, which
    pins utilization at 83.3% whenever there is any spend at all.
    """
    configured = bool(configured_budget) and configured_budget > 0
    budget = float(configured_budget) if configured else total * BUDGET_ESTIMATE_FACTOR
    utilization = (total / budget * 100) if budget > 0 else 0.0
    return budget, configured, utilization


def bucket_by_month(claims: Sequence[Claim]) -> List[MonthlyTrend]:
    """Group by the month the expense occurred (expense date, not submission)."""
    buckets: Dict[str, Dict] = {}
    for c in claims:
        b = buckets.setdefault(month_key(c.expense_date), {"total": 0.0, "count": 0, "categories": set()})
        b["total"] += amount_of(c)
        b["count"] += 1
        b["categories"].add(c.category)

    return [
        MonthlyTrend(
            month=month,
            total_amount=b["total"],
            claim_count=b["count"],
            average_amount=b["total"] / b["count"] if b["count"] else 0.0,
            category_count=len(b["categories"]),
        )
        for month, b in sorted(buckets.items())
    ]


def department_claims_query(department: str, employee_ids: Sequence[str]) -> ClaimQuery:
    """
    Claims by the department's current employees, or tagged with the
    department when they were submitted.
    """
    alternatives = [ClaimQuery(equals={"department": department})]
    if employee_ids:
        alternatives.append(ClaimQuery(any_of={"employee_id": list(employee_ids)}))
    return ClaimQuery(alternatives=alternatives)


def _department_members(accessor: RecordAccessor, department: str) -> Tuple[List[Employee], Optional[float]]:
    employees = accessor.list_employees(department)
    budget = fetch_or_default("budget", lambda: accessor.get_department_budget(department), None)
    if not employees and budget is None:
        tagged = accessor.list_claims(ClaimQuery(equals={"department": department}, limit=1))
        if not tagged:
            raise DepartmentNotFound(department)
    return employees, budget


def _department_claims(
    accessor: RecordAccessor,
    department: str,
    employees: Sequence[Employee],
    since: Optional[date],
) -> List[Claim]:
    query = department_claims_query(department, [e.id for e in employees])
    if since is not None:
        query.ranges["expense_date"] = (since, None)
    return fetch_or_default("claims", lambda: accessor.list_claims(query), [])


def _employee_names(accessor: RecordAccessor, employees: Sequence[Employee], claims: Sequence[Claim]) -> Dict[str, str]:
    names = {e.id: e.name for e in employees}
    for employee_id in {c.employee_id for c in claims} - set(names):
        employee = fetch_or_default("employee", lambda: accessor.get_employee(employee_id), None)
        names[employee_id] = employee.name if employee else "Unknown"
    return names


def recent_activity(
    accessor: RecordAccessor,
    department: str,
    employees: Sequence[Employee],
    limit: int = RECENT_ACTIVITY_LIMIT,
) -> List[ActivityEntry]:
    query = department_claims_query(department, [e.id for e in employees])
    query.order_by = "submitted_at"
    query.descending = True
    query.limit = limit
    claims = fetch_or_default("recent_activity", lambda: accessor.list_claims(query), [])
    names = _employee_names(accessor, employees, claims)
    return [
        ActivityEntry(
            id=c.id,
            description=f"{c.category} - {c.description}",
            amount=amount_of(c),
            employee=names[c.employee_id],
            date=c.submitted_at,
        )
        for c in claims
    ]


def department_rollup(
    accessor: RecordAccessor,
    department: str,
    months: Optional[int] = None,
    today: Optional[date] = None,
) -> DepartmentRollup:
    """
    Summarize one department. With `months` set, only claims whose expense
    date falls inside the trailing window are counted; otherwise all claims.
    """
    employees, configured_budget = _department_members(accessor, department)
    since = months_ago(today or date.today(), months) if months else None
    claims = _department_claims(accessor, department, employees, since)

    total = total_amount(claims)
    budget, configured, utilization = budget_utilization(total, configured_budget)

    return DepartmentRollup(
        department=department,
        employee_count=len(employees),
        total_expenses=total,
        average_expense_per_employee=total / len(employees) if employees else 0.0,
        monthly_budget=budget,
        budget_configured=configured,
        budget_utilization=utilization,
        top_categories=rank_categories(claims),
        recent_activity=recent_activity(accessor, department, employees),
    )


def department_trends(
    accessor: RecordAccessor,
    department: str,
    months: int = DEFAULT_TREND_MONTHS,
    today: Optional[date] = None,
) -> List[MonthlyTrend]:
    employees, _ = _department_members(accessor, department)
    since = months_ago(today or date.today(), months)
    return bucket_by_month(_department_claims(accessor, department, employees, since))


def department_comparison(accessor: RecordAccessor, today: Optional[date] = None) -> List[DepartmentRollup]:
    rollups: List[DepartmentRollup] = []
    for dept in accessor.list_departments():
        try:
            rollups.append(department_rollup(accessor, dept, today=today))
        except Exception as e:
            logger.warning("Skipping department %s in comparison: %s", dept, e)
    return rollups
