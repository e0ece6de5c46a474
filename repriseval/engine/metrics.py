"""
Named metrics read by the alert rule table.

Each metric is a pure function of the analysis context returning a number,
a string, a bool, or None when the data it needs is not available. A rule
condition on a None metric never fires.
"""

from typing import Any, Callable, Dict, Optional

from repriseval.engine.models import AnalysisContext, DocumentKind, RatioSet
from repriseval.engine.numeric import round_half_up
from repriseval.engine.trends import evolution_pct

MetricFunction = Callable[[AnalysisContext], Any]

METRICS: Dict[str, MetricFunction] = {}


def metric(name: str) -> Callable[[MetricFunction], MetricFunction]:
    """Register a metric under ``name``."""
    def decorator(func: MetricFunction) -> MetricFunction:
        METRICS[name] = func
        return func
    return decorator


def _ratio(ctx: AnalysisContext, name: str) -> Optional[float]:
    ratios: Optional[RatioSet] = ctx.accounting.ratios
    return ratios.get(name) if ratios is not None else None


def _benchmark(ctx: AnalysisContext, name: str) -> Optional[float]:
    benchmark = ctx.accounting.benchmark
    return benchmark.ratios.get(name) if benchmark is not None else None


def _positive(value: Optional[float]) -> Optional[float]:
    return value if value is not None and value > 0 else None


def _abs(value: Optional[float]) -> Optional[float]:
    return abs(value) if value is not None else None


# =============================================================================
# Accounting
# =============================================================================

@metric("years_analyzed")
def years_analyzed(ctx: AnalysisContext) -> int:
    return len(ctx.accounting.indicators)


@metric("ebe_evolution_pct")
def ebe_evolution_pct(ctx: AnalysisContext) -> Optional[float]:
    return evolution_pct(ctx.accounting.indicators, "ebe")


@metric("ebe_evolution_abs_pct")
def ebe_evolution_abs_pct(ctx: AnalysisContext) -> Optional[float]:
    return _abs(ebe_evolution_pct(ctx))


@metric("revenue_evolution_pct")
def revenue_evolution_pct(ctx: AnalysisContext) -> Optional[float]:
    return evolution_pct(ctx.accounting.indicators, "revenue")


@metric("revenue_evolution_abs_pct")
def revenue_evolution_abs_pct(ctx: AnalysisContext) -> Optional[float]:
    return _abs(revenue_evolution_pct(ctx))


@metric("trend")
def trend(ctx: AnalysisContext) -> Optional[str]:
    trends = ctx.accounting.trends
    return trends.trend.value if trends is not None else None


@metric("net_result")
def net_result(ctx: AnalysisContext) -> Optional[float]:
    latest = ctx.accounting.latest
    return latest.value("net_result") if latest is not None else None


@metric("latest_revenue_missing")
def latest_revenue_missing(ctx: AnalysisContext) -> Optional[bool]:
    latest = ctx.accounting.latest
    if latest is None:
        return None
    return not latest.revenue


for _name in (
    "ebe_margin_pct",
    "net_margin_pct",
    "leverage_pct",
    "customer_days",
    "inventory_days",
    "bfr_days",
    "cash_flow_capacity",
):
    metric(_name)(lambda ctx, _n=_name: _ratio(ctx, _n))


# =============================================================================
# Sector benchmark
# =============================================================================

@metric("sector_name")
def sector_name(ctx: AnalysisContext) -> Optional[str]:
    benchmark = ctx.accounting.benchmark
    return benchmark.name if benchmark is not None else None


@metric("sector_ebe_margin_pct")
def sector_ebe_margin_pct(ctx: AnalysisContext) -> Optional[float]:
    return _benchmark(ctx, "ebe_margin_pct")


@metric("ebe_margin_to_sector")
def ebe_margin_to_sector(ctx: AnalysisContext) -> Optional[float]:
    margin = _ratio(ctx, "ebe_margin_pct")
    sector = _positive(_benchmark(ctx, "ebe_margin_pct"))
    if margin is None or sector is None:
        return None
    return margin / sector


@metric("sector_leverage_pct")
def sector_leverage_pct(ctx: AnalysisContext) -> Optional[float]:
    return _benchmark(ctx, "leverage_pct")


@metric("leverage_to_sector")
def leverage_to_sector(ctx: AnalysisContext) -> Optional[float]:
    leverage = _ratio(ctx, "leverage_pct")
    sector = _positive(_benchmark(ctx, "leverage_pct"))
    if leverage is None or sector is None:
        return None
    return leverage / sector


# =============================================================================
# Valuation
# =============================================================================

@metric("valuation_min")
def valuation_min(ctx: AnalysisContext) -> Optional[float]:
    values = _positive_method_values(ctx)
    return min(values) if len(values) >= 2 else None


@metric("valuation_max")
def valuation_max(ctx: AnalysisContext) -> Optional[float]:
    values = _positive_method_values(ctx)
    return max(values) if len(values) >= 2 else None


@metric("valuation_spread")
def valuation_spread(ctx: AnalysisContext) -> Optional[float]:
    values = _positive_method_values(ctx)
    if len(values) < 2:
        return None
    return max(values) / min(values)


def _positive_method_values(ctx: AnalysisContext):
    if ctx.valuation is None:
        return []
    return [value for value in ctx.valuation.method_values() if value > 0]


@metric("asking_price")
def asking_price(ctx: AnalysisContext) -> Optional[float]:
    return _positive(ctx.business_info.asking_price)


@metric("valuation_high")
def valuation_high(ctx: AnalysisContext) -> Optional[float]:
    if ctx.valuation is None:
        return None
    return _positive(ctx.valuation.range_high)


@metric("asking_price_to_high")
def asking_price_to_high(ctx: AnalysisContext) -> Optional[float]:
    price, high = asking_price(ctx), valuation_high(ctx)
    if price is None or high is None:
        return None
    return price / high


@metric("asking_price_premium_pct")
def asking_price_premium_pct(ctx: AnalysisContext) -> Optional[float]:
    ratio = asking_price_to_high(ctx)
    return round_half_up((ratio - 1) * 100, 1) if ratio is not None else None


@metric("ebe_reference")
def ebe_reference(ctx: AnalysisContext) -> Optional[float]:
    if ctx.valuation is None or ctx.valuation.ebe_method is None:
        return None
    return ctx.valuation.ebe_method.reference


@metric("ebe_method_value")
def ebe_method_value(ctx: AnalysisContext) -> Optional[float]:
    if ctx.valuation is None or ctx.valuation.ebe_method is None:
        return None
    return ctx.valuation.ebe_method.value


# =============================================================================
# Real estate
# =============================================================================

@metric("annual_rent")
def annual_rent(ctx: AnalysisContext) -> Optional[float]:
    if ctx.real_estate is None:
        return None
    return _positive(ctx.real_estate.annual_rent)


@metric("rent_to_revenue_pct")
def rent_to_revenue_pct(ctx: AnalysisContext) -> Optional[float]:
    rent = annual_rent(ctx)
    latest = ctx.accounting.latest
    if rent is None or latest is None or latest.revenue <= 0:
        return None
    return round_half_up(rent / latest.revenue * 100, 1)


@metric("remaining_lease_months")
def remaining_lease_months(ctx: AnalysisContext) -> Optional[float]:
    return ctx.real_estate.remaining_lease_months if ctx.real_estate is not None else None


@metric("lease_present")
def lease_present(ctx: AnalysisContext) -> Optional[bool]:
    return ctx.real_estate.lease_present if ctx.real_estate is not None else None


# =============================================================================
# Data quality
# =============================================================================

@metric("has_balance_sheet")
def has_balance_sheet(ctx: AnalysisContext) -> bool:
    return ctx.has_document(DocumentKind.BALANCE_SHEET, DocumentKind.CONSOLIDATED_FILING)


@metric("has_income_statement")
def has_income_statement(ctx: AnalysisContext) -> bool:
    return ctx.has_document(DocumentKind.INCOME_STATEMENT, DocumentKind.CONSOLIDATED_FILING)


@metric("latest_data_year")
def latest_data_year(ctx: AnalysisContext) -> Optional[int]:
    years = set(ctx.extracted_years) | set(ctx.accounting.years)
    return max(years) if years else None


@metric("as_of_year")
def as_of_year(ctx: AnalysisContext) -> int:
    return ctx.as_of_year


@metric("data_age_years")
def data_age_years(ctx: AnalysisContext) -> Optional[int]:
    latest = latest_data_year(ctx)
    return ctx.as_of_year - latest if latest is not None else None
