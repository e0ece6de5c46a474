"""
Indicator computer (SIG cascade) for the RepriseVal engine.

Derives the French "soldes intermediaires de gestion" from resolved figures:

    commercial_margin = goods_sales - goods_purchases
    production        = services_revenue + inventory_change_production + capitalized_production
    value_added       = commercial_margin + production - external_charges
    ebe               = value_added + operating_subsidies - taxes - personnel_charges
    operating_result  = ebe + other_operating_income - other_operating_charges - depreciation_charges
    current_result    = operating_result + financial_result
    net_result        = current_result + exceptional_result - income_tax

A total already present in the resolved source always wins over the formula.
Values are carried unrounded through the cascade and rounded once on output.
"""

from typing import Dict, List, Optional

import structlog

from repriseval.engine.models import (
    FinancialIndicatorSet,
    IndicatorValue,
    ResolvedYearFigures,
    SourceMethod,
)
from repriseval.engine.numeric import percent_of, round_half_up

logger = structlog.get_logger(__name__)

PRIMARY_INDICATORS = (
    "revenue",
    "commercial_margin",
    "production",
    "value_added",
    "ebe",
    "operating_result",
    "financial_result",
    "current_result",
    "exceptional_result",
    "net_result",
)

SECONDARY_INDICATORS = (
    "goods_sales",
    "goods_purchases",
    "external_charges",
    "operating_subsidies",
    "taxes",
    "wages",
    "social_charges",
    "personnel_charges",
    "owner_compensation",
    "other_operating_income",
    "other_operating_charges",
    "depreciation_charges",
    "financial_income",
    "financial_charges",
    "exceptional_income",
    "exceptional_charges",
    "income_tax",
)

LEGACY_FIELDS = ("goods_purchases", "production", "personnel_charges", "income_tax")


class IndicatorComputer:
    """Computes the full indicator set of one resolved year."""

    def compute(self, resolved: ResolvedYearFigures) -> FinancialIndicatorSet:
        source: Dict[str, float] = {
            name: value for name, value in resolved.figures.items() if value is not None
        }
        source.update(resolved.direct_indicators)
        formula_derived = resolved.source_method != SourceMethod.STRUCTURED
        warnings: List[str] = []

        def given(name: str) -> Optional[float]:
            return source.get(name)

        def amount(name: str) -> float:
            value = source.get(name)
            return value if value is not None else 0.0

        def total(name: str, computed: float) -> float:
            value = source.get(name)
            return value if value is not None else computed

        values: Dict[str, float] = {}

        # Sub-totals rebuilt from their parts
        for name, plus, minus in (
            ("personnel_charges", ("wages", "social_charges"), ()),
            ("financial_result", ("financial_income",), ("financial_charges",)),
            ("exceptional_result", ("exceptional_income",), ("exceptional_charges",)),
        ):
            if given(name) is None and any(given(part) is not None for part in plus + minus):
                values[name] = sum(amount(p) for p in plus) - sum(amount(m) for m in minus)
            else:
                values[name] = amount(name)

        if formula_derived and given("goods_purchases") is None and given("external_charges") is None:
            warnings.append("goods_purchases and external_charges missing, substituted 0")

        revenue = amount("revenue")
        commercial_margin = total("commercial_margin", amount("goods_sales") - amount("goods_purchases"))
        production = total(
            "production",
            amount("services_revenue")
            + amount("inventory_change_production")
            + amount("capitalized_production"),
        )
        value_added = total("value_added", commercial_margin + production - amount("external_charges"))
        ebe = total(
            "ebe",
            value_added + amount("operating_subsidies") - amount("taxes") - values["personnel_charges"],
        )
        operating_result = total(
            "operating_result",
            ebe
            + amount("other_operating_income")
            - amount("other_operating_charges")
            - amount("depreciation_charges"),
        )
        current_result = total("current_result", operating_result + values["financial_result"])
        net_result = total(
            "net_result",
            current_result + values["exceptional_result"] - amount("income_tax"),
        )

        values.update(
            revenue=revenue,
            commercial_margin=commercial_margin,
            production=production,
            value_added=value_added,
            ebe=ebe,
            operating_result=operating_result,
            current_result=current_result,
            net_result=net_result,
        )

        rounded_revenue = round_half_up(revenue)
        indicators: Dict[str, IndicatorValue] = {}
        for name in PRIMARY_INDICATORS:
            indicators[name] = self._emit(values[name], rounded_revenue)
        for name in SECONDARY_INDICATORS:
            if name in indicators:
                continue
            if given(name) is not None:
                indicators[name] = self._emit(source[name], rounded_revenue)
            elif name == "personnel_charges" and values[name]:
                indicators[name] = self._emit(values[name], rounded_revenue)

        legacy = {
            name: indicators[name].value if name in indicators else 0
            for name in LEGACY_FIELDS
        }

        low_confidence = resolved.low_confidence or bool(warnings)
        logger.debug(
            "Indicators computed",
            year=resolved.year,
            source=resolved.source_method.value,
            revenue=rounded_revenue,
            ebe=indicators["ebe"].value,
            low_confidence=low_confidence,
        )

        return FinancialIndicatorSet(
            year=resolved.year,
            indicators=indicators,
            source_method=resolved.source_method,
            confidence=resolved.confidence,
            low_confidence=low_confidence,
            formula_derived=formula_derived,
            legacy=legacy,
            warnings=warnings,
        )

    @staticmethod
    def _emit(value: float, revenue: float) -> IndicatorValue:
        rounded = round_half_up(value)
        return IndicatorValue(value=rounded, percent_of_revenue=percent_of(rounded, revenue))


def get_indicator_computer() -> IndicatorComputer:
    """Factory function to get an indicator computer."""
    return IndicatorComputer()
