from decimal import ROUND_HALF_UP, Decimal
from typing import List

from expense_insights.schemas import Claim, ClaimStatus, PatternStatistics, SimilarityCandidateSet


def amount_of(claim: Claim) -> float:
    return float(claim.amount or 0.0)


def mean_amount(claims: List[Claim]) -> float:
    # Null amounts count as 0 and still count towards the denominator
    if not claims:
        return 0.0
    return sum(amount_of(c) for c in claims) / len(claims)


def approval_rate(claims: List[Claim]) -> float:
    if not claims:
        return 0.0
    approved = sum(1 for c in claims if c.status == ClaimStatus.APPROVED.value)
    return 100.0 * approved / len(claims)


def aggregate(candidates: SimilarityCandidateSet) -> PatternStatistics:
    return PatternStatistics(
        average_amount_for_category=mean_amount(candidates.by_category),
        approval_rate_for_category=approval_rate(candidates.by_category),
        employee_approval_rate=approval_rate(candidates.by_employee),
    )


def round_half_up(value: float) -> int:
    """Round to the nearest whole number, halves away from zero."""
    rounded = Decimal(str(abs(value))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(rounded) if value >= 0 else -int(rounded)
