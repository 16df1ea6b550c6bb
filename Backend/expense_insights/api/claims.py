from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from expense_insights.api.dependencies import get_accessor, get_cache
from expense_insights.db.accessor import RecordAccessor
from expense_insights.services import analytics
from expense_insights.services.insights import DEFAULT_WINDOW, RepeatedCategoryWindow
from expense_insights.services.notifications import InsightCache

router = APIRouter()


class ViewRequest(BaseModel):
    user_id: str


@router.get("/claims/{claim_id}")
def claim_view_data(claim_id: str, accessor: RecordAccessor = Depends(get_accessor)):
    return analytics.get_claim_view_data(accessor, claim_id)


@router.get("/claims/{claim_id}/similar")
def similar_claims(
    claim_id: str,
    accessor: RecordAccessor = Depends(get_accessor),
    cache: Optional[InsightCache] = Depends(get_cache),
):
    return analytics.get_similar_claims_analysis(accessor, claim_id, cache=cache)


@router.get("/claims/{claim_id}/insights")
def claim_insights(
    claim_id: str,
    window: RepeatedCategoryWindow = DEFAULT_WINDOW,
    accessor: RecordAccessor = Depends(get_accessor),
    cache: Optional[InsightCache] = Depends(get_cache),
):
    return analytics.get_claim_insights(accessor, claim_id, window=window, cache=cache)


@router.get("/claims/{claim_id}/timeline")
def claim_timeline(claim_id: str, accessor: RecordAccessor = Depends(get_accessor)):
    return analytics.get_claim_timeline(accessor, claim_id)


@router.post("/claims/{claim_id}/views")
def mark_viewed(claim_id: str, req: ViewRequest, accessor: RecordAccessor = Depends(get_accessor)):
    return analytics.mark_claim_as_viewed(accessor, claim_id, req.user_id)


@router.get("/claims/{claim_id}/views")
def view_stats(claim_id: str, accessor: RecordAccessor = Depends(get_accessor)):
    return analytics.get_claim_view_stats(accessor, claim_id)
