"""
Cross-validation of independently derived figures.

Each check compares two artifacts that should agree (extracted revenue and
indicator revenue, valuation EBE and indicator EBE, ...) and yields one
CoherenceCheck, or nothing when the data it needs is absent. Checks are
independent of each other; a check that fails to run is logged and skipped.
"""

from typing import Callable, List, Optional

import structlog

from repriseval.engine.models import (
    AnalysisContext,
    CheckStatus,
    CoherenceCheck,
    CoherenceReport,
    ExtractionRecord,
    ValuationMethod,
)
from repriseval.engine.numeric import deviation_pct, round_half_up

logger = structlog.get_logger(__name__)

PREMISES_KEYWORDS = ("premises", "real estate", "property", "murs", "immobilier")


class CoherenceChecker:
    """
    Runs the coherence checks over an analysis context.

    Thresholds are percentages of the indicator-side figure.
    """

    REVENUE_OK_PCT = 2.0
    REVENUE_ERROR_PCT = 10.0
    VALUATION_ERROR_PCT = 5.0
    HEALTH_LOW = 40
    HEALTH_HIGH = 70

    def __init__(self):
        self.checks: List[Callable[[AnalysisContext], Optional[CoherenceCheck]]] = [
            self._check_extraction_present,
            self._check_accounting_present,
            self._check_year_agreement,
            self._check_revenue_extraction,
            self._check_ebe_valuation,
            self._check_revenue_valuation,
            self._check_premises_in_valuation,
            self._check_health_vs_method,
        ]

    def validate(self, context: AnalysisContext) -> CoherenceReport:
        results: List[CoherenceCheck] = []
        for check in self.checks:
            try:
                result = check(context)
            except Exception as e:
                logger.debug("Coherence check skipped", check=check.__name__, error=str(e))
                continue
            if result is not None:
                results.append(result)

        passed = sum(1 for c in results if c.status == CheckStatus.OK)
        warnings = sum(1 for c in results if c.status == CheckStatus.WARNING)
        errors = sum(1 for c in results if c.status == CheckStatus.ERROR)

        logger.info(
            "Coherence checks complete",
            checks=len(results),
            passed=passed,
            warnings=warnings,
            errors=errors,
        )
        return CoherenceReport(
            checks=results,
            total=len(results),
            passed=passed,
            warnings=warnings,
            errors=errors,
        )

    # =========================================================================
    # Presence
    # =========================================================================

    def _check_extraction_present(self, ctx: AnalysisContext) -> CoherenceCheck:
        if ctx.records:
            return CoherenceCheck(
                name="extraction_present",
                status=CheckStatus.OK,
                description=f"{len(ctx.records)} extraction record(s) received",
                involved_values={"records": len(ctx.records)},
            )
        return CoherenceCheck(
            name="extraction_present",
            status=CheckStatus.ERROR,
            description="No document has been extracted",
            recommendation="Provide the annual accounts of the business",
        )

    def _check_accounting_present(self, ctx: AnalysisContext) -> CoherenceCheck:
        years = ctx.accounting.years
        if years:
            return CoherenceCheck(
                name="accounting_present",
                status=CheckStatus.OK,
                description=f"Indicators computed for {len(years)} year(s)",
                involved_values={"years": years},
            )
        return CoherenceCheck(
            name="accounting_present",
            status=CheckStatus.ERROR,
            description="No financial indicators could be computed",
            recommendation="Check that the income statements were extracted",
        )

    def _check_year_agreement(self, ctx: AnalysisContext) -> Optional[CoherenceCheck]:
        extracted = ctx.extracted_years
        analysed = ctx.accounting.years
        if not extracted:
            return None

        missing = [year for year in extracted if year not in analysed]
        values = {"extracted_years": extracted, "analysed_years": analysed}
        if missing:
            return CoherenceCheck(
                name="year_agreement",
                status=CheckStatus.WARNING,
                description=f"Extracted years not analysed: {', '.join(str(y) for y in missing)}",
                involved_values={**values, "missing_years": missing},
                recommendation="Check the extraction of the documents for those years",
            )
        return CoherenceCheck(
            name="year_agreement",
            status=CheckStatus.OK,
            description="Every extracted year was analysed",
            involved_values=values,
        )

    # =========================================================================
    # Cross-figure agreement
    # =========================================================================

    def _check_revenue_extraction(self, ctx: AnalysisContext) -> Optional[CoherenceCheck]:
        latest = ctx.accounting.latest
        if latest is None or latest.revenue == 0:
            return None

        extracted = self._independent_revenue(ctx, latest.year, latest.source_method)
        if extracted is None:
            return None

        deviation = deviation_pct(extracted.figures["revenue"], latest.revenue)
        values = {
            "year": latest.year,
            "indicator_revenue": latest.revenue,
            "extracted_revenue": extracted.figures["revenue"],
            "extracted_from": extracted.source_method.value,
            "deviation_pct": round_half_up(deviation, 1),
        }

        if deviation > self.REVENUE_ERROR_PCT:
            status = CheckStatus.ERROR
        elif deviation >= self.REVENUE_OK_PCT:
            status = CheckStatus.WARNING
        else:
            status = CheckStatus.OK

        return CoherenceCheck(
            name="revenue_extraction_vs_indicators",
            status=status,
            description=(
                f"Extracted revenue differs by {values['deviation_pct']:.1f}% "
                f"from indicator revenue for {latest.year}"
            ),
            involved_values=values,
            recommendation=None if status == CheckStatus.OK else "Check revenue against the original income statement",
        )

    @staticmethod
    def _independent_revenue(ctx: AnalysisContext, year: int, resolved_method) -> Optional[ExtractionRecord]:
        """Most confident record of the year with a revenue figure, other sources first."""
        candidates = [
            r for r in ctx.records
            if r.year == year and r.is_financial and (r.figures.get("revenue") or 0) > 0
        ]
        if not candidates:
            return None
        others = [r for r in candidates if r.source_method != resolved_method]
        return max(others or candidates, key=lambda r: r.confidence)

    def _check_ebe_valuation(self, ctx: AnalysisContext) -> Optional[CoherenceCheck]:
        method = ctx.valuation.ebe_method if ctx.valuation is not None else None
        return self._valuation_check(
            ctx, "ebe_valuation_vs_indicators", "EBE", "ebe",
            method.reference if method is not None else None,
        )

    def _check_revenue_valuation(self, ctx: AnalysisContext) -> Optional[CoherenceCheck]:
        method = ctx.valuation.revenue_method if ctx.valuation is not None else None
        return self._valuation_check(
            ctx, "revenue_valuation_vs_indicators", "Revenue", "revenue",
            method.reference if method is not None else None,
        )

    def _valuation_check(
        self,
        ctx: AnalysisContext,
        name: str,
        label: str,
        indicator: str,
        reference: Optional[float],
    ) -> Optional[CoherenceCheck]:
        latest = ctx.accounting.latest
        if latest is None or reference is None:
            return None
        computed = latest.value(indicator) or 0
        if computed == 0 and reference == 0:
            deviation = 0.0
        else:
            # None when the indicators show zero against a non-zero reference
            deviation = deviation_pct(reference, computed)

        values = {
            "year": latest.year,
            "indicator_value": computed,
            "valuation_reference": reference,
            "deviation_pct": round_half_up(deviation, 1) if deviation is not None else None,
        }
        if deviation is None:
            return CoherenceCheck(
                name=name,
                status=CheckStatus.ERROR,
                description=(
                    f"{label} used by the valuation ({reference:,.0f}) is not supported "
                    f"by the indicators, which show zero for {latest.year}"
                ),
                involved_values=values,
                recommendation="Align the valuation on the figures of the latest accounts",
            )
        if deviation > self.VALUATION_ERROR_PCT:
            return CoherenceCheck(
                name=name,
                status=CheckStatus.ERROR,
                description=(
                    f"{label} used by the valuation ({reference:,.0f}) differs by "
                    f"{values['deviation_pct']:.1f}% from the indicators ({computed:,.0f})"
                ),
                involved_values=values,
                recommendation="Align the valuation on the figures of the latest accounts",
            )
        return CoherenceCheck(
            name=name,
            status=CheckStatus.OK,
            description=f"{label} used by the valuation matches the indicators",
            involved_values=values,
        )

    # =========================================================================
    # Valuation consistency
    # =========================================================================

    def _check_premises_in_valuation(self, ctx: AnalysisContext) -> Optional[CoherenceCheck]:
        if ctx.real_estate is None or ctx.valuation is None:
            return None
        price = ctx.real_estate.premises_price
        if price is None or price <= 0:
            return None

        justification = ctx.valuation.justification.lower()
        if any(keyword in justification for keyword in PREMISES_KEYWORDS):
            return CoherenceCheck(
                name="premises_in_valuation",
                status=CheckStatus.OK,
                description="The valuation accounts for the premises",
                involved_values={"premises_price": price},
            )
        return CoherenceCheck(
            name="premises_in_valuation",
            status=CheckStatus.WARNING,
            description=f"Premises priced at {price:,.0f} EUR are not mentioned in the valuation",
            involved_values={"premises_price": price},
            recommendation="State whether the premises are included in the price",
        )

    def _check_health_vs_method(self, ctx: AnalysisContext) -> Optional[CoherenceCheck]:
        health = ctx.accounting.health
        if health is None or ctx.valuation is None or ctx.valuation.retained_method is None:
            return None

        method = ctx.valuation.retained_method
        values = {"health_score": health.overall, "retained_method": method.value}
        if health.overall < self.HEALTH_LOW and method == ValuationMethod.EBE:
            return CoherenceCheck(
                name="health_vs_valuation_method",
                status=CheckStatus.WARNING,
                description=f"Weak financial health ({health.overall}/100) but EBE valuation retained",
                involved_values=values,
                recommendation="Check that an earnings multiple is relevant for this business",
            )
        if health.overall >= self.HEALTH_HIGH and method == ValuationMethod.ASSET:
            return CoherenceCheck(
                name="health_vs_valuation_method",
                status=CheckStatus.WARNING,
                description=f"Good financial health ({health.overall}/100) but asset valuation retained",
                involved_values=values,
                recommendation="Check that the asset method does not undervalue the business",
            )
        return CoherenceCheck(
            name="health_vs_valuation_method",
            status=CheckStatus.OK,
            description=f"Valuation method consistent with financial health ({health.overall}/100)",
            involved_values=values,
        )


def get_coherence_checker() -> CoherenceChecker:
    """Factory function to get a coherence checker."""
    return CoherenceChecker()
