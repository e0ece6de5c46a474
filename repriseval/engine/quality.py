"""
Quality and confidence scorer.

Aggregates the outputs of the alert engine, the coherence checker and the
anomaly detector into:

- completeness: is the required data present (0-100)
- reliability: 100 minus fixed penalties per issue, floored at 0
- recency: step function of the age of the latest accounts
- overall confidence: 35% completeness, 40% reliability, 25% recency

plus due-diligence verifications and documents to request. Upstream
results are read, never recomputed.
"""

from typing import Dict, List

import structlog

from repriseval.engine.models import (
    AlertReport,
    AnalysisContext,
    AnomalyReport,
    CheckStatus,
    CoherenceReport,
    ConfidenceBreakdown,
    ConfidenceScore,
    DocumentKind,
    DocumentRequest,
    QualityReport,
    REQUEST_PRIORITY_ORDER,
    RequestPriority,
    Severity,
    Verification,
)
from repriseval.engine.numeric import round_half_up

logger = structlog.get_logger(__name__)

WEIGHTS = {"completeness": 0.35, "reliability": 0.40, "recency": 0.25}

# Age of the latest accounts in years -> recency score
RECENCY_STEPS = {0: 100, 1: 90, 2: 70, 3: 50, 4: 30}
RECENCY_FLOOR = 10

PENALTIES = {
    "critical_alert": 15,
    "warning_alert": 5,
    "error_check": 10,
    "warning_check": 3,
    "critical_anomaly": 12,
    "warning_anomaly": 4,
    "low_confidence_year": 5,
}

INTERPRETATIONS = (
    (80, "High quality data: the analysis can be relied upon."),
    (60, "Good quality data: a few verifications are recommended."),
    (40, "Average quality: several verifications are needed before deciding."),
    (20, "Low quality: data is insufficient for a reliable analysis."),
    (0, "Very low quality: additional data must be collected."),
)


class QualityScorer:
    """Scores the data behind an analysis and lists what is missing."""

    def assess(
        self,
        context: AnalysisContext,
        alerts: AlertReport,
        coherence: CoherenceReport,
        anomalies: AnomalyReport,
    ) -> QualityReport:
        completeness = self.completeness(context)
        reliability = self.reliability(context, alerts, coherence, anomalies)
        recency = self.recency(context)

        overall = round_half_up(
            completeness * WEIGHTS["completeness"]
            + reliability * WEIGHTS["reliability"]
            + recency * WEIGHTS["recency"]
        )
        confidence = ConfidenceScore(
            overall=overall,
            breakdown=self._breakdown(context, completeness, reliability),
            interpretation=next(text for floor, text in INTERPRETATIONS if overall >= floor),
        )

        logger.info(
            "Quality assessed",
            overall=overall,
            completeness=completeness,
            reliability=reliability,
            recency=recency,
        )

        return QualityReport(
            completeness=completeness,
            reliability=reliability,
            recency=recency,
            confidence=confidence,
            verifications=self._verifications(context, coherence, anomalies),
            documents_to_request=self._documents_to_request(context),
            missing_critical=self._missing_critical(context),
            low_confidence_years=context.accounting.low_confidence_years,
        )

    # =========================================================================
    # Scores
    # =========================================================================

    def completeness(self, ctx: AnalysisContext) -> int:
        score = 0
        accounting = ctx.accounting

        if ctx.records:
            if ctx.has_document(DocumentKind.BALANCE_SHEET, DocumentKind.CONSOLIDATED_FILING):
                score += 10
            if ctx.has_document(DocumentKind.INCOME_STATEMENT, DocumentKind.CONSOLIDATED_FILING):
                score += 10
            years = len(ctx.extracted_years)
            if years >= 3:
                score += 10
            elif years == 2:
                score += 7
            elif years == 1:
                score += 4

        if accounting.indicators:
            score += 10
        if accounting.ratios is not None:
            score += 10
        if accounting.trends is not None:
            score += 5
        if accounting.comparisons:
            score += 5

        valuation = ctx.valuation
        if valuation is not None:
            if valuation.ebe_method is not None:
                score += 7
            if valuation.revenue_method is not None:
                score += 7
            if valuation.asset_method is not None:
                score += 6

        real_estate = ctx.real_estate
        if real_estate is not None:
            if real_estate.lease_present or real_estate.monthly_rent is not None:
                score += 10
            if real_estate.premises_price is not None:
                score += 10

        return score

    def reliability(
        self,
        ctx: AnalysisContext,
        alerts: AlertReport,
        coherence: CoherenceReport,
        anomalies: AnomalyReport,
    ) -> int:
        score = 100
        score -= alerts.summary.by_severity[Severity.CRITICAL.value] * PENALTIES["critical_alert"]
        score -= alerts.summary.by_severity[Severity.WARNING.value] * PENALTIES["warning_alert"]
        score -= coherence.errors * PENALTIES["error_check"]
        score -= coherence.warnings * PENALTIES["warning_check"]
        score -= anomalies.by_severity[Severity.CRITICAL.value] * PENALTIES["critical_anomaly"]
        score -= anomalies.by_severity[Severity.WARNING.value] * PENALTIES["warning_anomaly"]
        score -= len(ctx.accounting.low_confidence_years) * PENALTIES["low_confidence_year"]
        return max(0, min(score, 100))

    def recency(self, ctx: AnalysisContext) -> int:
        years = ctx.extracted_years
        if not years:
            return 0
        age = max(ctx.as_of_year - years[-1], 0)
        return RECENCY_STEPS.get(age, RECENCY_FLOOR)

    def _breakdown(self, ctx: AnalysisContext, completeness: int, reliability: int) -> ConfidenceBreakdown:
        valuation_score = 0
        valuation = ctx.valuation
        if valuation is not None:
            for method, points in (
                (valuation.ebe_method, 30),
                (valuation.revenue_method, 25),
                (valuation.asset_method, 20),
            ):
                if method is not None and (method.value or 0) > 0:
                    valuation_score += points
            if (valuation.recommended_value or 0) > 0:
                valuation_score += 25

        real_estate = ctx.real_estate
        has_real_estate = real_estate is not None and (
            bool(real_estate.lease_present)
            or real_estate.monthly_rent is not None
            or real_estate.premises_price is not None
        )

        return ConfidenceBreakdown(
            extraction=min(completeness + 10, 100) if ctx.records else 0,
            accounting=min(reliability + 10, 100) if ctx.accounting.indicators else 0,
            valuation=min(valuation_score, 100),
            real_estate=75 if has_real_estate else 0,
        )

    # =========================================================================
    # Due-diligence lists
    # =========================================================================

    def _missing_critical(self, ctx: AnalysisContext) -> List[str]:
        if not ctx.records:
            return ["Accounting documents (balance sheets, income statements)"]

        missing = []
        has_indicators = bool(ctx.accounting.indicators)
        if not ctx.has_document(DocumentKind.BALANCE_SHEET, DocumentKind.CONSOLIDATED_FILING):
            missing.append("Detailed balance sheets")
        if not has_indicators and not ctx.has_document(
            DocumentKind.INCOME_STATEMENT, DocumentKind.CONSOLIDATED_FILING
        ):
            missing.append("Complete income statements")
        if len(ctx.accounting.years) < 2:
            missing.append("At least two years of accounts")
        for year in sorted(ctx.accounting.unresolved):
            missing.append(f"Figures for {year}")

        latest = ctx.accounting.latest
        if latest is not None:
            if latest.revenue == 0:
                missing.append("Revenue")
            elif latest.value("ebe") == 0:
                missing.append("EBE")
            if latest.revenue > 100000 and not latest.value("personnel_charges"):
                missing.append("Personnel charges")
        return missing

    def _verifications(
        self,
        ctx: AnalysisContext,
        coherence: CoherenceReport,
        anomalies: AnomalyReport,
    ) -> List[Verification]:
        verifications = []

        for check in coherence.checks:
            if check.status == CheckStatus.ERROR:
                verifications.append(Verification(
                    priority=1,
                    action=f"Verify: {check.name}",
                    reason=check.description,
                ))
        for anomaly in anomalies.anomalies:
            if anomaly.severity == Severity.CRITICAL:
                verifications.append(Verification(
                    priority=1,
                    action=f"Fix anomaly: {anomaly.description}",
                    reason=anomaly.recommendation or anomaly.description,
                ))

        years = ctx.extracted_years
        if years and ctx.as_of_year - years[-1] > 1:
            verifications.append(Verification(
                priority=2,
                action="Request the most recent accounts",
                reason=f"Latest accounts are for {years[-1]} ({ctx.as_of_year - years[-1]} years old)",
            ))

        for year in ctx.accounting.low_confidence_years:
            verifications.append(Verification(
                priority=2,
                action=f"Check the {year} figures against the original documents",
                reason="Figures were extracted with low confidence",
            ))

        health = ctx.accounting.health
        valuation = ctx.valuation
        if health is not None and valuation is not None:
            value = valuation.recommended_value or 0
            if health.overall < 50 and value > 500000:
                verifications.append(Verification(
                    priority=2,
                    action="Review the consistency between financial health and valuation",
                    reason=f"Weak health score ({health.overall}/100) for a valuation of {value:,.0f} EUR",
                ))

        latest = ctx.accounting.latest
        real_estate = ctx.real_estate
        if real_estate is not None and real_estate.annual_rent and latest is not None and latest.revenue > 0:
            share = real_estate.annual_rent / latest.revenue * 100
            if share > 15:
                verifications.append(Verification(
                    priority=3,
                    action="Consider acquiring the premises",
                    reason=f"High rent ({share:.1f}% of revenue)",
                ))

        return sorted(verifications, key=lambda v: v.priority)

    def _documents_to_request(self, ctx: AnalysisContext) -> List[DocumentRequest]:
        if not ctx.records:
            return [DocumentRequest(
                document="Balance sheets and income statements for the last 3 years",
                priority=RequestPriority.BLOCKING,
                reason="No accounting document was provided",
            )]

        requests: Dict[str, DocumentRequest] = {}

        def request(document: str, priority: RequestPriority, reason: str) -> None:
            if document not in requests:
                requests[document] = DocumentRequest(document=document, priority=priority, reason=reason)

        if not ctx.has_document(DocumentKind.BALANCE_SHEET, DocumentKind.CONSOLIDATED_FILING):
            request("Balance sheets for the last 3 years", RequestPriority.BLOCKING,
                    "Needed to analyse the financial structure")
        if not ctx.has_document(DocumentKind.INCOME_STATEMENT, DocumentKind.CONSOLIDATED_FILING):
            request("Income statements for the last 3 years", RequestPriority.BLOCKING,
                    "Needed to analyse profitability")
        if len(ctx.extracted_years) < 3:
            request("Accounts for the missing years", RequestPriority.IMPORTANT,
                    "At least 3 years are needed to analyse trends")
        for year in sorted(ctx.accounting.unresolved):
            request(f"Readable income statement for {year}", RequestPriority.IMPORTANT,
                    f"Revenue and EBE for {year} could not be read")
        if not ctx.has_document(DocumentKind.CONSOLIDATED_FILING):
            request("Complete tax filing", RequestPriority.IMPORTANT,
                    "To verify the figures and find undisclosed items")
        request("General ledger or trial balance", RequestPriority.USEFUL,
                "To analyse specific accounts in detail")
        lease_known = ctx.real_estate is not None and bool(ctx.real_estate.lease_present)
        if not lease_known and ctx.accounting.indicators:
            request("Commercial lease", RequestPriority.IMPORTANT,
                    "Needed to assess rent conditions and lease security")
        request("Employment contracts and payroll detail", RequestPriority.USEFUL,
                "To analyse personnel costs")
        request("Fixed-asset and depreciation schedule", RequestPriority.USEFUL,
                "To assess investment and renewal needs")
        request("Recent cash position", RequestPriority.IMPORTANT,
                "To know the current cash situation")

        return sorted(requests.values(), key=lambda r: REQUEST_PRIORITY_ORDER[r.priority])


def get_quality_scorer() -> QualityScorer:
    """Factory function to get a quality scorer."""
    return QualityScorer()
