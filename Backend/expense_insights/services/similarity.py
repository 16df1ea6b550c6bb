import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple

from expense_insights.config import DEFAULT_THRESHOLDS, InsightThresholds
from expense_insights.db.accessor import ClaimQuery, RecordAccessor
from expense_insights.errors import ClaimNotFound
from expense_insights.schemas import Claim, SimilarityCandidateSet
from expense_insights.services.degraded import fetch_or_default

logger = logging.getLogger(__name__)


def amount_band(amount: Optional[float], tolerance: float) -> Tuple[float, float]:
    """
    Inclusive amount range around `amount`. A zero amount collapses to (0, 0).
    """
    base = amount or 0.0
    return base * (1 - tolerance), base * (1 + tolerance)


def amount_query(claim: Claim, th: InsightThresholds = DEFAULT_THRESHOLDS) -> ClaimQuery:
    return ClaimQuery(
        ranges={"amount": amount_band(claim.amount, th.amount_tolerance)},
        exclude_id=claim.id,
        limit=th.by_amount_limit,
    )


def category_query(claim: Claim, th: InsightThresholds = DEFAULT_THRESHOLDS) -> ClaimQuery:
    return ClaimQuery(
        equals={"category": claim.category},
        exclude_id=claim.id,
        limit=th.by_category_limit,
    )


def employee_query(claim: Claim, th: InsightThresholds = DEFAULT_THRESHOLDS) -> ClaimQuery:
    return ClaimQuery(
        equals={"employee_id": claim.employee_id},
        exclude_id=claim.id,
        order_by="expense_date",
        descending=True,
        limit=th.employee_history_limit,
    )


def _bounded(claims: List[Claim], source_id: str, cap: int) -> List[Claim]:
    # Self-exclusion and caps hold regardless of what the accessor returned
    return [c for c in claims if c.id != source_id][:cap]


def find_related(
    accessor: RecordAccessor,
    claim: Claim,
    thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
) -> SimilarityCandidateSet:
    """
    Fetch the three candidate lists for `claim` concurrently and wait for all of
    them. A failing branch yields an empty list instead of an error.
    """
    queries: Dict[str, ClaimQuery] = {
        "by_amount": amount_query(claim, thresholds),
        "by_category": category_query(claim, thresholds),
        "by_employee": employee_query(claim, thresholds),
    }
    caps = {
        "by_amount": thresholds.by_amount_limit,
        "by_category": thresholds.by_category_limit,
        "by_employee": thresholds.employee_history_limit,
    }

    with ThreadPoolExecutor(max_workers=len(queries), thread_name_prefix="related-claims") as pool:
        futures = {
            name: pool.submit(fetch_or_default, name, lambda q=q: accessor.list_claims(q), [])
            for name, q in queries.items()
        }
        results = {name: f.result() for name, f in futures.items()}

    logger.debug(
        "Related claims for %s: %s",
        claim.id,
        {name: len(rows) for name, rows in results.items()},
    )

    return SimilarityCandidateSet(
        **{name: _bounded(rows, claim.id, caps[name]) for name, rows in results.items()}
    )


def load_claim(accessor: RecordAccessor, claim_id: str) -> Claim:
    """Load the subject claim. Missing claims and failed lookups are both hard errors."""
    claim = accessor.get_claim(claim_id)
    if claim is None:
        raise ClaimNotFound(claim_id)
    return claim


def find_related_for_id(
    accessor: RecordAccessor,
    claim_id: str,
    thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
) -> SimilarityCandidateSet:
    return find_related(accessor, load_claim(accessor, claim_id), thresholds)
