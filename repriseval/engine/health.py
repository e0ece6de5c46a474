"""
Financial health score (0-100) over four weighted dimensions.

- Profitability (30%): EBE, net and gross margins
- Liquidity (25%): BFR days, customer/supplier days, inventory days
- Solvency (25%): leverage and cash-flow capacity
- Activity (20%): trend and growth of revenue and EBE

Undefined ratios neither add nor remove points.
"""

from typing import Optional, Sequence, Tuple

import structlog

from repriseval.engine.models import HealthScore, RatioSet, Trend, TrendAnalysis
from repriseval.engine.numeric import round_half_up

logger = structlog.get_logger(__name__)

WEIGHTS = {"profitability": 0.30, "liquidity": 0.25, "solvency": 0.25, "activity": 0.20}

INTERPRETATIONS = (
    (80, "Excellent financial health: strong performance and a robust financial structure."),
    (60, "Good financial health: performing business with some room for improvement."),
    (40, "Average financial health: some indicators require attention."),
    (20, "Fragile financial health: identified risks need close attention."),
    (0, "Critical financial situation: major risks, immediate action recommended."),
)


def _tier(value: Optional[float], tiers: Sequence[Tuple[float, int]], default: int = 0) -> int:
    """Points of the first tier whose floor ``value`` reaches."""
    if value is None:
        return 0
    for floor, points in tiers:
        if value >= floor:
            return points
    return default


def _clamp(score: float) -> float:
    return max(0, min(score, 100))


def profitability_score(ratios: RatioSet) -> float:
    score = 0
    score += _tier(ratios.ebe_margin_pct, ((15, 40), (10, 30), (5, 20), (0, 10)))
    score += _tier(ratios.net_margin_pct, ((8, 40), (5, 30), (2, 20), (0, 10)))
    score += _tier(ratios.gross_margin_pct, ((50, 20), (30, 15), (15, 10), (0, 5)))
    return min(score, 100)


def liquidity_score(ratios: RatioSet) -> float:
    score = 50
    bfr_days = ratios.bfr_days
    if bfr_days is not None:
        if bfr_days < 0:
            score += 30
        elif bfr_days < 30:
            score += 20
        elif bfr_days < 60:
            score += 10
        else:
            score -= 10

    customer_days = ratios.customer_days
    if customer_days is not None and customer_days > 0:
        if customer_days <= 30:
            score += 20
        elif customer_days <= 60:
            score += 10
        else:
            score -= 10

    supplier_days = ratios.supplier_days
    if supplier_days is not None and supplier_days > 0:
        score += _tier(supplier_days, ((60, 20), (45, 15), (30, 10)))

    inventory_days = ratios.inventory_days
    if inventory_days is not None and inventory_days > 0:
        if inventory_days <= 30:
            score += 10
        elif inventory_days <= 60:
            score += 5

    return _clamp(score)


def solvency_score(ratios: RatioSet) -> float:
    score = 50
    leverage = ratios.leverage_pct
    if leverage is not None:
        if leverage <= 50:
            score += 40
        elif leverage <= 100:
            score += 30
        elif leverage <= 150:
            score += 15
        elif leverage <= 200:
            score += 5
        else:
            score -= 20

    capacity = ratios.cash_flow_capacity
    if capacity is not None:
        if capacity > 50000:
            score += 40
        elif capacity > 20000:
            score += 30
        elif capacity > 0:
            score += 15
        else:
            score -= 10

    return _clamp(score)


def activity_score(trends: TrendAnalysis) -> float:
    score = 50
    if trends.trend == Trend.GROWTH:
        score += 40
    elif trends.trend == Trend.STABLE:
        score += 20
    else:
        score -= 20

    for growth, tiers in (
        (trends.revenue_growth_pct, ((20, 30), (10, 20), (5, 15), (0, 10))),
        (trends.ebe_growth_pct, ((20, 30), (10, 20), (0, 10))),
    ):
        points = next((p for floor, p in tiers if growth > floor), None)
        if points is not None:
            score += points
        elif growth < -10:
            score -= 20

    return _clamp(score)


def calculate_health_score(
    ratios: Optional[RatioSet],
    trends: Optional[TrendAnalysis],
) -> Optional[HealthScore]:
    """Weighted health score; None without ratios or trends."""
    if ratios is None or trends is None:
        return None

    parts = {
        "profitability": profitability_score(ratios),
        "liquidity": liquidity_score(ratios),
        "solvency": solvency_score(ratios),
        "activity": activity_score(trends),
    }
    overall = round_half_up(sum(parts[name] * weight for name, weight in WEIGHTS.items()))
    interpretation = next(text for floor, text in INTERPRETATIONS if overall >= floor)

    logger.debug("Health score calculated", overall=overall, **parts)

    return HealthScore(
        overall=overall,
        profitability=round_half_up(parts["profitability"]),
        liquidity=round_half_up(parts["liquidity"]),
        solvency=round_half_up(parts["solvency"]),
        activity=round_half_up(parts["activity"]),
        interpretation=interpretation,
    )
