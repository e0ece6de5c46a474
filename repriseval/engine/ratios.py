"""
Ratio computation from the latest indicator set and balance-sheet aggregates.

Margins are percentages of revenue with one decimal, turnover and payment
ratios are whole days of revenue (or of purchases for suppliers), leverage
is debt over equity in percent. A ratio whose basis is undefined stays None.
"""

from typing import Optional

import structlog

from repriseval.engine.models import BalanceSheetAggregates, FinancialIndicatorSet, RatioSet
from repriseval.engine.numeric import round_half_up

logger = structlog.get_logger(__name__)

DAYS_PER_YEAR = 365


def _positive(value: Optional[float]) -> bool:
    return value is not None and value > 0


class RatioCalculator:
    """Computes a RatioSet for one year."""

    def calculate(
        self,
        indicators: FinancialIndicatorSet,
        balance_sheet: Optional[BalanceSheetAggregates] = None,
        headcount: Optional[float] = None,
    ) -> RatioSet:
        sheet = balance_sheet or BalanceSheetAggregates()
        revenue = indicators.revenue
        ratios = RatioSet(year=indicators.year)

        commercial_margin = indicators.value("commercial_margin") or 0
        production = indicators.value("production") or 0
        ebe = indicators.value("ebe") or 0
        net_result = indicators.value("net_result") or 0
        value_added = indicators.value("value_added") or 0

        if revenue > 0:
            ratios.gross_margin_pct = self._margin(commercial_margin + production, revenue)
            ratios.ebe_margin_pct = self._margin(ebe, revenue)
            ratios.net_margin_pct = self._margin(net_result, revenue)
            ratios.value_added_rate_pct = self._margin(value_added, revenue)

            if _positive(sheet.inventory):
                ratios.inventory_days = round_half_up(sheet.inventory / revenue * DAYS_PER_YEAR)
            if _positive(sheet.trade_receivables):
                ratios.customer_days = round_half_up(sheet.trade_receivables / revenue * DAYS_PER_YEAR)

        purchases = indicators.value("goods_purchases")
        if _positive(purchases) and _positive(sheet.trade_payables):
            ratios.supplier_days = round_half_up(sheet.trade_payables / purchases * DAYS_PER_YEAR)

        if any(v is not None for v in (sheet.inventory, sheet.trade_receivables, sheet.trade_payables)):
            ratios.bfr = round_half_up(
                (sheet.inventory or 0) + (sheet.trade_receivables or 0) - (sheet.trade_payables or 0)
            )
            if revenue > 0:
                ratios.bfr_days = round_half_up(ratios.bfr / revenue * DAYS_PER_YEAR)

        if _positive(sheet.equity) and sheet.total_debt is not None:
            ratios.leverage_pct = round_half_up(sheet.total_debt / sheet.equity * 100, 1)

        ratios.cash_flow_capacity = round_half_up(
            net_result + (indicators.value("depreciation_charges") or 0)
        )

        staff = sheet.headcount if _positive(sheet.headcount) else headcount
        if _positive(staff):
            ratios.productivity = round_half_up(value_added / staff)

        logger.debug(
            "Ratios calculated",
            year=indicators.year,
            ebe_margin_pct=ratios.ebe_margin_pct,
            leverage_pct=ratios.leverage_pct,
        )
        return ratios

    @staticmethod
    def _margin(value: float, revenue: float) -> float:
        return round_half_up(value / revenue * 100, 1)


def get_ratio_calculator() -> RatioCalculator:
    """Factory function to get a ratio calculator."""
    return RatioCalculator()
