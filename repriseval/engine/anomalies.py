"""
Anomaly detector.

Flags missing data, logically impossible values, statistical outliers and
indicator totals that do not re-derive from their components.
"""

from typing import Callable, List, Optional

import structlog

from repriseval.engine.models import (
    AnalysisContext,
    Anomaly,
    AnomalyReport,
    AnomalyType,
    DocumentKind,
    Severity,
)

logger = structlog.get_logger(__name__)


class AnomalyDetector:
    """
    Detects anomalies across the analysis context.

    Each detector appends to the shared list and runs in isolation: a
    detector that fails is logged and skipped.
    """

    CALCULATION_TOLERANCE = 1000.0
    NEGATIVE_MARGIN_FLOOR = -1000
    SIGNIFICANT_EBE = 10000
    PREMISES_PRICE_CEILING = 10_000_000

    def __init__(self, calculation_tolerance: Optional[float] = None):
        self.calculation_tolerance = (
            self.CALCULATION_TOLERANCE if calculation_tolerance is None else calculation_tolerance
        )
        self.detectors: List[Callable[[AnalysisContext, List[Anomaly]], None]] = [
            self._detect_missing_data,
            self._detect_impossible_values,
            self._detect_ratio_outliers,
            self._detect_calculation_errors,
            self._detect_valuation_anomalies,
            self._detect_real_estate_anomalies,
        ]

    def detect(self, context: AnalysisContext) -> AnomalyReport:
        anomalies: List[Anomaly] = []
        for detector in self.detectors:
            found: List[Anomaly] = []
            try:
                detector(context, found)
            except Exception as e:
                logger.debug("Anomaly detector skipped", detector=detector.__name__, error=str(e))
                continue
            anomalies.extend(found)

        by_severity = {severity.value: 0 for severity in Severity}
        for anomaly in anomalies:
            by_severity[anomaly.severity.value] += 1

        logger.info("Anomalies detected", total=len(anomalies), **by_severity)
        return AnomalyReport(anomalies=anomalies, total=len(anomalies), by_severity=by_severity)

    # =========================================================================
    # Missing data
    # =========================================================================

    def _detect_missing_data(self, ctx: AnalysisContext, found: List[Anomaly]) -> None:
        if not ctx.records:
            found.append(Anomaly(
                type=AnomalyType.MISSING_DATA,
                severity=Severity.CRITICAL,
                description="No document has been provided",
                recommendation="Provide balance sheets and income statements",
            ))
            return

        if not ctx.has_document(DocumentKind.BALANCE_SHEET, DocumentKind.CONSOLIDATED_FILING):
            found.append(Anomaly(
                type=AnomalyType.MISSING_DATA,
                severity=Severity.CRITICAL,
                description="Balance sheet missing",
                recommendation="Request the balance sheets of the last three years",
            ))
        if not ctx.has_document(DocumentKind.INCOME_STATEMENT, DocumentKind.CONSOLIDATED_FILING):
            found.append(Anomaly(
                type=AnomalyType.MISSING_DATA,
                severity=Severity.CRITICAL,
                description="Income statement missing",
                recommendation="Request the income statements of the last three years",
            ))

        years = ctx.accounting.years
        if len(years) < 2:
            found.append(Anomaly(
                type=AnomalyType.MISSING_DATA,
                severity=Severity.WARNING,
                description=f"Only {len(years)} year(s) analysed",
                involved_values={"years": years},
                recommendation="Request at least three years of accounts",
            ))

        for year, unresolved in sorted(ctx.accounting.unresolved.items()):
            found.append(Anomaly(
                type=AnomalyType.MISSING_DATA,
                severity=Severity.WARNING,
                description=f"Figures for {year} could not be resolved: {unresolved.reason}",
                involved_values={"year": year, "records": unresolved.record_count},
                recommendation=f"Provide a readable income statement for {year}",
            ))

        for year in ctx.accounting.low_confidence_years:
            found.append(Anomaly(
                type=AnomalyType.MISSING_DATA,
                severity=Severity.INFO,
                description=f"Figures for {year} were extracted with low confidence",
                involved_values={"year": year, "confidence": ctx.accounting.indicators[year].confidence},
                recommendation=f"Check the {year} figures against the original documents",
            ))

    # =========================================================================
    # Logical impossibilities
    # =========================================================================

    def _detect_impossible_values(self, ctx: AnalysisContext, found: List[Anomaly]) -> None:
        for year in ctx.accounting.years:
            indicators = ctx.accounting.indicators[year]
            revenue = indicators.revenue
            net_result = indicators.value("net_result") or 0
            commercial_margin = indicators.value("commercial_margin") or 0
            ebe = indicators.value("ebe") or 0

            if abs(net_result) > abs(revenue):
                found.append(Anomaly(
                    type=AnomalyType.INCONSISTENCY,
                    severity=Severity.CRITICAL,
                    description=f"{year}: net result ({net_result:,.0f}) exceeds revenue ({revenue:,.0f})",
                    involved_values={"year": year, "net_result": net_result, "revenue": revenue},
                    recommendation="Check the extraction of the income statement",
                ))

            if commercial_margin < self.NEGATIVE_MARGIN_FLOOR and (indicators.value("goods_purchases") or 0) > 0:
                found.append(Anomaly(
                    type=AnomalyType.INCONSISTENCY,
                    severity=Severity.WARNING,
                    description=f"{year}: strongly negative commercial margin ({commercial_margin:,.0f})",
                    involved_values={"year": year, "commercial_margin": commercial_margin},
                    recommendation="Check goods sales and purchases, including inventory changes",
                ))

            if ebe > self.SIGNIFICANT_EBE and net_result < -2 * ebe:
                found.append(Anomaly(
                    type=AnomalyType.INCONSISTENCY,
                    severity=Severity.WARNING,
                    description=f"{year}: net loss ({net_result:,.0f}) far exceeds a positive EBE ({ebe:,.0f})",
                    involved_values={"year": year, "ebe": ebe, "net_result": net_result},
                    recommendation="Look for exceptional charges or depreciation anomalies",
                ))

    # =========================================================================
    # Ratio outliers
    # =========================================================================

    def _detect_ratio_outliers(self, ctx: AnalysisContext, found: List[Anomaly]) -> None:
        ratios = ctx.accounting.ratios
        if ratios is None:
            return

        checks = (
            ("gross_margin_pct", 100, Severity.CRITICAL, AnomalyType.INCONSISTENCY,
             "Gross margin of {value:.1f}% exceeds 100%", "Check purchases and revenue"),
            ("ebe_margin_pct", 50, Severity.WARNING, AnomalyType.OUTLIER,
             "EBE margin of {value:.1f}% is unusually high", "Check for missing charges"),
            ("customer_days", 180, Severity.WARNING, AnomalyType.OUTLIER,
             "Customer payment terms of {value:.0f} days", "Check receivables for bad debts"),
            ("leverage_pct", 300, Severity.CRITICAL, AnomalyType.OUTLIER,
             "Leverage of {value:.1f}% of equity", "Review the debt schedule"),
            ("bfr_days", 120, Severity.WARNING, AnomalyType.OUTLIER,
             "Working capital requirement of {value:.0f} days", "Review inventory and receivables"),
        )
        for name, ceiling, severity, anomaly_type, description, recommendation in checks:
            value = ratios.get(name)
            if value is not None and value > ceiling:
                found.append(Anomaly(
                    type=anomaly_type,
                    severity=severity,
                    description=description.format(value=value),
                    involved_values={"year": ratios.year, name: value},
                    recommendation=recommendation,
                ))

        if ratios.cash_flow_capacity is not None and ratios.cash_flow_capacity < 0:
            found.append(Anomaly(
                type=AnomalyType.INCONSISTENCY,
                severity=Severity.CRITICAL,
                description=f"Negative cash-flow capacity ({ratios.cash_flow_capacity:,.0f})",
                involved_values={"year": ratios.year, "cash_flow_capacity": ratios.cash_flow_capacity},
                recommendation="Check the financing of operations",
            ))

    # =========================================================================
    # Formula re-derivation
    # =========================================================================

    def _detect_calculation_errors(self, ctx: AnalysisContext, found: List[Anomaly]) -> None:
        for year in ctx.accounting.years:
            indicators = ctx.accounting.indicators[year]

            goods_sales = indicators.value("goods_sales")
            goods_purchases = indicators.value("goods_purchases")
            stored_margin = indicators.value("commercial_margin")
            if goods_sales is not None and goods_purchases is not None and stored_margin is not None:
                expected = goods_sales - goods_purchases
                self._compare(found, year, "commercial_margin", stored_margin, expected)

            stored_net = indicators.value("net_result")
            if stored_net is not None:
                expected = (
                    (indicators.value("current_result") or 0)
                    + (indicators.value("exceptional_result") or 0)
                    - (indicators.value("income_tax") or 0)
                )
                self._compare(found, year, "net_result", stored_net, expected)

    def _compare(self, found: List[Anomaly], year: int, name: str, stored: float, expected: float) -> None:
        gap = stored - expected
        if abs(gap) > self.calculation_tolerance:
            found.append(Anomaly(
                type=AnomalyType.CALCULATION_ERROR,
                severity=Severity.WARNING,
                description=f"{year}: {name} of {stored:,.0f} does not match its components ({expected:,.0f})",
                involved_values={"year": year, "stored": stored, "expected": expected, "gap": gap},
                recommendation=f"Recompute {name} from the detailed income statement",
            ))

    # =========================================================================
    # Valuation and real estate
    # =========================================================================

    def _detect_valuation_anomalies(self, ctx: AnalysisContext, found: List[Anomaly]) -> None:
        valuation = ctx.valuation
        if valuation is None:
            return

        ebe_method = valuation.ebe_method
        if (
            ebe_method is not None
            and ebe_method.reference is not None
            and ebe_method.reference < 0
            and (ebe_method.value or 0) > 0
        ):
            found.append(Anomaly(
                type=AnomalyType.INCONSISTENCY,
                severity=Severity.WARNING,
                description="EBE multiple applied to a negative EBE",
                involved_values={"ebe": ebe_method.reference, "value": ebe_method.value},
                recommendation="Use the asset method for a loss-making business",
            ))

        values = [v for v in valuation.method_values() if v > 0]
        if len(values) == 3 and max(values) > 2 * min(values):
            found.append(Anomaly(
                type=AnomalyType.OUTLIER,
                severity=Severity.WARNING,
                description=f"Valuation methods range from {min(values):,.0f} to {max(values):,.0f}",
                involved_values={"min": min(values), "max": max(values)},
                recommendation="Explain the gap between methods",
            ))

    def _detect_real_estate_anomalies(self, ctx: AnalysisContext, found: List[Anomaly]) -> None:
        real_estate = ctx.real_estate
        if real_estate is None:
            return

        latest = ctx.accounting.latest
        rent = real_estate.annual_rent
        if rent is not None and latest is not None and latest.revenue > 0 and rent > latest.revenue * 0.3:
            found.append(Anomaly(
                type=AnomalyType.OUTLIER,
                severity=Severity.WARNING,
                description=f"Annual rent of {rent:,.0f} exceeds 30% of revenue",
                involved_values={"annual_rent": rent, "revenue": latest.revenue},
                recommendation="Renegotiate the rent",
            ))

        if real_estate.premises_price is not None and real_estate.premises_price > self.PREMISES_PRICE_CEILING:
            found.append(Anomaly(
                type=AnomalyType.OUTLIER,
                severity=Severity.INFO,
                description=f"Premises priced at {real_estate.premises_price:,.0f}",
                involved_values={"premises_price": real_estate.premises_price},
                recommendation="Check the premises price with an independent appraisal",
            ))


def get_anomaly_detector(calculation_tolerance: Optional[float] = None) -> AnomalyDetector:
    """Factory function to get an anomaly detector."""
    return AnomalyDetector(calculation_tolerance=calculation_tolerance)
