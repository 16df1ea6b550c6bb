from enum import Enum
from typing import List, Sequence

from expense_insights.config import DEFAULT_THRESHOLDS, InsightThresholds
from expense_insights.schemas import Claim, PatternStatistics
from expense_insights.services.patterns import amount_of, round_half_up


class RepeatedCategoryWindow(str, Enum):
    # The employee's N most recent claims by expense date, the current one included
    INCLUDING_CURRENT = "including_current"
    # The employee's N most recent claims other than the current one
    EXCLUDING_CURRENT = "excluding_current"


DEFAULT_WINDOW = RepeatedCategoryWindow.INCLUDING_CURRENT


def _pct(value: float) -> str:
    return f"{value:g}"


def recent_claims_window(
    claim: Claim,
    history: Sequence[Claim],
    size: int,
    window: RepeatedCategoryWindow = DEFAULT_WINDOW,
) -> List[Claim]:
    others = [c for c in history if c.id != claim.id]
    if window == RepeatedCategoryWindow.INCLUDING_CURRENT:
        others = [claim] + others
    # Stable sort keeps the current claim ahead of others sharing its date
    ordered = sorted(others, key=lambda c: c.expense_date, reverse=True)
    return ordered[:size]


def has_repeated_category(
    claim: Claim,
    history: Sequence[Claim],
    thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
    window: RepeatedCategoryWindow = DEFAULT_WINDOW,
) -> bool:
    recent = recent_claims_window(claim, history, thresholds.repeated_category_window, window)
    matches = sum(1 for c in recent if c.category == claim.category)
    return matches >= thresholds.repeated_category_min_matches


def amount_insight(claim: Claim, stats: PatternStatistics, thresholds: InsightThresholds) -> List[str]:
    avg = stats.average_amount_for_category
    if avg <= 0:
        return []
    pct_diff = 100.0 * (amount_of(claim) - avg) / avg
    if pct_diff > thresholds.amount_deviation_pct:
        return [f"This claim is {round_half_up(pct_diff)}% higher than average for {claim.category} category"]
    if pct_diff < -thresholds.amount_deviation_pct:
        return [f"This claim is {round_half_up(abs(pct_diff))}% lower than average for {claim.category} category"]
    return []


def synthesize(
    claim: Claim,
    stats: PatternStatistics,
    history: Sequence[Claim] = (),
    thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
    window: RepeatedCategoryWindow = DEFAULT_WINDOW,
) -> List[str]:
    """
    Turn pattern statistics into insight sentences.

    Rules are evaluated independently and emitted in a fixed order: amount
    deviation, category approval rate, employee reliability, repeated category.
    `history` is the employee's other claims (newest expense first).
    """
    insights: List[str] = []

    insights.extend(amount_insight(claim, stats, thresholds))

    if stats.approval_rate_for_category < thresholds.low_category_approval_pct:
        insights.append(
            f"Claims in this category have a {round_half_up(stats.approval_rate_for_category)}% approval rate"
        )

    if stats.employee_approval_rate > thresholds.high_employee_approval_pct:
        insights.append(f"This employee has a high approval rate (>{_pct(thresholds.high_employee_approval_pct)}%)")
    elif stats.employee_approval_rate < thresholds.low_employee_approval_pct:
        insights.append(f"This employee has a low approval rate (<{_pct(thresholds.low_employee_approval_pct)}%)")

    if has_repeated_category(claim, history, thresholds, window):
        insights.append("Employee has submitted multiple claims in this category recently")

    return insights
