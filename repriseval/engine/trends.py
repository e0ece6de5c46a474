"""
Trend analysis across the analysed years.
"""

from typing import Dict, Optional

import structlog

from repriseval.engine.models import FinancialIndicatorSet, Trend, TrendAnalysis, YearlyGrowth
from repriseval.engine.numeric import round_half_up

logger = structlog.get_logger(__name__)

# Weights of the trend score
TREND_WEIGHTS = {"revenue": 0.4, "ebe": 0.3, "net_result": 0.3}
TREND_BAND = 5.0


def growth_pct(old: float, new: float) -> float:
    """Growth from ``old`` to ``new`` in percent, 1 decimal; a zero base counts as 100% growth."""
    if old == 0:
        return 100.0 if new > 0 else 0.0
    return round_half_up((new - old) / abs(old) * 100, 1)


def evolution_pct(indicators: Dict[int, FinancialIndicatorSet], name: str) -> Optional[float]:
    """
    Evolution of an indicator between the first and last analysed year.

    Returns None with fewer than two years or a zero first value.
    """
    years = sorted(indicators)
    if len(years) < 2:
        return None
    first = indicators[years[0]].value(name) or 0
    last = indicators[years[-1]].value(name) or 0
    if first == 0:
        return None
    return round_half_up((last - first) / abs(first) * 100, 1)


def analyze_trends(indicators: Dict[int, FinancialIndicatorSet]) -> Optional[TrendAnalysis]:
    """Growth rates and overall trend; None with fewer than two years."""
    years = sorted(indicators)
    if len(years) < 2:
        return None

    first, last = indicators[years[0]], indicators[years[-1]]
    growth = {
        name: growth_pct(first.value(name) or 0, last.value(name) or 0)
        for name in TREND_WEIGHTS
    }
    score = sum(growth[name] * weight for name, weight in TREND_WEIGHTS.items())
    if score > TREND_BAND:
        trend = Trend.GROWTH
    elif score < -TREND_BAND:
        trend = Trend.DECLINE
    else:
        trend = Trend.STABLE

    yearly = []
    for previous_year, year in zip(years, years[1:]):
        before, after = indicators[previous_year], indicators[year]
        yearly.append(YearlyGrowth(
            year=year,
            previous_year=previous_year,
            revenue_growth_pct=growth_pct(before.value("revenue") or 0, after.value("revenue") or 0),
            ebe_growth_pct=growth_pct(before.value("ebe") or 0, after.value("ebe") or 0),
            net_result_growth_pct=growth_pct(before.value("net_result") or 0, after.value("net_result") or 0),
        ))

    logger.debug("Trends analysed", first_year=years[0], last_year=years[-1], trend=trend.value)

    return TrendAnalysis(
        first_year=years[0],
        last_year=years[-1],
        revenue_growth_pct=growth["revenue"],
        ebe_growth_pct=growth["ebe"],
        net_result_growth_pct=growth["net_result"],
        trend=trend,
        yearly_growth=yearly,
    )
