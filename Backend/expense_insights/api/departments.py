from typing import Optional

from fastapi import APIRouter, Depends, Query

from expense_insights.api.dependencies import get_accessor, get_cache
from expense_insights.config import DEFAULT_TREND_MONTHS
from expense_insights.db.accessor import RecordAccessor
from expense_insights.services import analytics
from expense_insights.services.notifications import InsightCache

router = APIRouter()


@router.get("/departments")
def department_comparison(accessor: RecordAccessor = Depends(get_accessor)):
    return analytics.get_department_comparison(accessor)


@router.get("/departments/{department}")
def department_data(
    department: str,
    months: Optional[int] = Query(default=None, ge=1, le=120),
    accessor: RecordAccessor = Depends(get_accessor),
    cache: Optional[InsightCache] = Depends(get_cache),
):
    return analytics.get_department_data(accessor, department, months=months, cache=cache)


@router.get("/departments/{department}/trends")
def department_trends(
    department: str,
    months: int = Query(default=DEFAULT_TREND_MONTHS, ge=1, le=120),
    accessor: RecordAccessor = Depends(get_accessor),
):
    return analytics.get_department_trends(accessor, department, months=months)
