"""
Produced interfaces for the presentation layer.

Every function takes the record accessor explicitly and returns the result
envelope: ``{"success": True, "data": ...}`` or ``{"success": False, "error": ...}``.
Only a missing subject (claim or department) or an unexpected failure yields an
error envelope; failed secondary queries just leave parts of the data empty.
"""

import functools
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from expense_insights.config import DEFAULT_THRESHOLDS, DEFAULT_TREND_MONTHS, InsightThresholds
from expense_insights.db.accessor import RecordAccessor
from expense_insights.errors import NotFoundError, fail, ok
from expense_insights.schemas import Claim, SimilarClaimsAnalysis
from expense_insights.services import claim_view, rollup
from expense_insights.services.insights import DEFAULT_WINDOW, RepeatedCategoryWindow, synthesize
from expense_insights.services.notifications import InsightCache
from expense_insights.services.patterns import aggregate
from expense_insights.services.similarity import find_related, load_claim

logger = logging.getLogger(__name__)


def _enveloped(action: str) -> Callable:
    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args, **kwargs) -> Dict[str, Any]:
            try:
                return ok(fn(*args, **kwargs))
            except NotFoundError as e:
                logger.info("%s: %s", action, e)
                return fail(str(e))
            except Exception:
                logger.exception("Failed to %s", action)
                return fail(f"Failed to {action}")

        return wrapper

    return decorator


def _cached(cache: Optional[InsightCache], kind: str, key: str, compute: Callable[[], Any]) -> Any:
    if cache is None:
        return compute()
    return cache.get_or_compute(kind, key, compute)


def analyze_claim(
    accessor: RecordAccessor,
    claim: Claim,
    thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
) -> SimilarClaimsAnalysis:
    candidates = find_related(accessor, claim, thresholds)
    return SimilarClaimsAnalysis(
        similar_by_amount=candidates.by_amount,
        similar_by_category=candidates.by_category,
        employee_claims=candidates.by_employee,
        patterns=aggregate(candidates),
    )


def claim_insights(
    accessor: RecordAccessor,
    claim_id: str,
    thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
    window: RepeatedCategoryWindow = DEFAULT_WINDOW,
) -> List[str]:
    claim = load_claim(accessor, claim_id)
    analysis = analyze_claim(accessor, claim, thresholds)
    return synthesize(claim, analysis.patterns, analysis.employee_claims, thresholds, window)


@_enveloped("get similar claims analysis")
def get_similar_claims_analysis(
    accessor: RecordAccessor,
    claim_id: str,
    thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
    cache: Optional[InsightCache] = None,
) -> Dict[str, Any]:
    return _cached(
        cache,
        "similar",
        claim_id,
        lambda: analyze_claim(accessor, load_claim(accessor, claim_id), thresholds).to_wire(),
    )


@_enveloped("generate insights")
def get_claim_insights(
    accessor: RecordAccessor,
    claim_id: str,
    thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
    window: RepeatedCategoryWindow = DEFAULT_WINDOW,
    cache: Optional[InsightCache] = None,
) -> List[str]:
    return _cached(
        cache,
        f"insights:{window.value}",
        claim_id,
        lambda: claim_insights(accessor, claim_id, thresholds, window),
    )


@_enveloped("get department data")
def get_department_data(
    accessor: RecordAccessor,
    department: str,
    months: Optional[int] = None,
    today: Optional[date] = None,
    cache: Optional[InsightCache] = None,
) -> Dict[str, Any]:
    today = today or date.today()
    since = rollup.months_ago(today, months) if months else None
    return _cached(
        cache,
        "department",
        f"{department}:{since}",
        lambda: rollup.department_rollup(accessor, department, months, today).to_wire(),
    )


@_enveloped("get department trends")
def get_department_trends(
    accessor: RecordAccessor,
    department: str,
    months: int = DEFAULT_TREND_MONTHS,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    return [t.to_wire() for t in rollup.department_trends(accessor, department, months, today)]


@_enveloped("get department comparison")
def get_department_comparison(accessor: RecordAccessor, today: Optional[date] = None) -> List[Dict[str, Any]]:
    return [r.to_wire() for r in rollup.department_comparison(accessor, today)]


@_enveloped("get claim view data")
def get_claim_view_data(accessor: RecordAccessor, claim_id: str) -> Dict[str, Any]:
    return claim_view.claim_view_data(accessor, claim_id).to_wire()


@_enveloped("get claim timeline")
def get_claim_timeline(accessor: RecordAccessor, claim_id: str) -> List[Dict[str, Any]]:
    return [t.to_wire() for t in claim_view.claim_timeline(accessor, claim_id)]


@_enveloped("mark claim as viewed")
def mark_claim_as_viewed(accessor: RecordAccessor, claim_id: str, user_id: str) -> Dict[str, Any]:
    claim_view.mark_claim_as_viewed(accessor, claim_id, user_id)
    return {"claimId": claim_id, "userId": user_id}


@_enveloped("get view statistics")
def get_claim_view_stats(accessor: RecordAccessor, claim_id: str) -> Dict[str, Any]:
    return claim_view.claim_view_stats(accessor, claim_id).to_wire()
