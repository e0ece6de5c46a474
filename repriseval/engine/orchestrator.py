"""
Orchestrator for the RepriseVal engine.

Single synchronous pass, recomputed in full on every call:
Pass 1: Resolve (one canonical figure set per year)
Pass 2: Indicators (SIG cascade per resolved year)
Pass 3: Trends, ratios, sector comparison, health score
Pass 4: Alerts and cross-validation (independent, same context)
Pass 5: Quality and confidence scoring
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

import structlog
from pydantic import ValidationError

from repriseval.engine.alerts import get_alert_engine
from repriseval.engine.anomalies import get_anomaly_detector
from repriseval.engine.benchmarks import compare_to_sector, get_sector_benchmark
from repriseval.engine.cross_validation import get_coherence_checker
from repriseval.engine.health import calculate_health_score
from repriseval.engine.indicators import get_indicator_computer
from repriseval.engine.models import (
    AccountingAnalysis,
    AnalysisContext,
    AnalysisInput,
    AnalysisResult,
    ResolvedYearFigures,
)
from repriseval.engine.quality import get_quality_scorer
from repriseval.engine.ratios import get_ratio_calculator
from repriseval.engine.resolver import get_value_resolver
from repriseval.engine.trends import analyze_trends
from repriseval.exceptions import EngineError, InvalidContextError, RepriseValError
from repriseval.schemas.analysis import AnalysisRequest

logger = structlog.get_logger(__name__)


@dataclass
class EngineOptions:
    """Configuration options for the engine."""
    # Resolver gate
    low_confidence_threshold: float = 0.7
    # Alerts
    vigilance_points_limit: int = 5
    # Formula re-derivation tolerance, in currency units
    calculation_tolerance: float = 1000.0


def build_accounting(
    analysis_input: AnalysisInput,
    options: EngineOptions,
) -> AccountingAnalysis:
    """Passes 1 to 3: everything derived from the extraction records."""
    resolutions = get_value_resolver(options.low_confidence_threshold).resolve(analysis_input.records)
    computer = get_indicator_computer()

    accounting = AccountingAnalysis()
    resolved = {}
    for year, resolution in resolutions.items():
        if isinstance(resolution, ResolvedYearFigures):
            resolved[year] = resolution
            accounting.indicators[year] = computer.compute(resolution)
        else:
            accounting.unresolved[year] = resolution

    accounting.trends = analyze_trends(accounting.indicators)
    accounting.benchmark = get_sector_benchmark(analysis_input.business_info.sector_code)

    latest = accounting.latest
    if latest is not None:
        accounting.ratios = get_ratio_calculator().calculate(
            latest,
            resolved[latest.year].balance_sheet,
            headcount=analysis_input.business_info.headcount,
        )
        accounting.comparisons = compare_to_sector(accounting.ratios, accounting.benchmark)

    accounting.health = calculate_health_score(accounting.ratios, accounting.trends)
    return accounting


def run_analysis(
    analysis_input: AnalysisInput,
    options: Optional[EngineOptions] = None,
) -> AnalysisResult:
    """
    Main entry point for the RepriseVal engine.

    Pure: the same input always yields the same result, and nothing outside
    the input (clock, environment, network) is read.

    Args:
        analysis_input: Validated records and business context
        options: Engine options

    Returns:
        AnalysisResult with indicators, ratios, alerts, checks and scores

    Raises:
        EngineError: a pipeline stage failed unexpectedly
    """
    options = options or EngineOptions()
    stage = "accounting"
    logger.info(
        "Analysis started",
        records=len(analysis_input.records),
        sector=analysis_input.business_info.sector_code,
        as_of_year=analysis_input.as_of_year,
    )

    try:
        accounting = build_accounting(analysis_input, options)

        context = AnalysisContext(
            accounting=accounting,
            records=tuple(analysis_input.records),
            business_info=analysis_input.business_info,
            as_of_year=analysis_input.as_of_year,
            valuation=analysis_input.valuation,
            real_estate=analysis_input.real_estate,
        )

        stage = "alerts"
        alerts = get_alert_engine(options.vigilance_points_limit).evaluate(context)
        stage = "coherence"
        coherence = get_coherence_checker().validate(context)
        stage = "anomalies"
        anomalies = get_anomaly_detector(options.calculation_tolerance).detect(context)
        stage = "quality"
        quality = get_quality_scorer().assess(context, alerts, coherence, anomalies)
    except RepriseValError:
        raise
    except Exception as e:
        logger.error("Analysis failed", stage=stage, error=str(e), exc_info=True)
        raise EngineError(stage, f"Analysis failed during {stage}: {e}") from e

    logger.info(
        "Analysis complete",
        years=accounting.years,
        alerts=alerts.summary.total,
        coherence_errors=coherence.errors,
        anomalies=anomalies.total,
        confidence=quality.confidence.overall,
    )

    return AnalysisResult(
        as_of_year=analysis_input.as_of_year,
        indicators=accounting.indicators,
        unresolved_years=[accounting.unresolved[y] for y in sorted(accounting.unresolved)],
        trends=accounting.trends,
        ratios=accounting.ratios,
        benchmark=accounting.benchmark,
        comparisons=accounting.comparisons,
        health=accounting.health,
        alerts=alerts,
        coherence=coherence,
        anomalies=anomalies,
        quality=quality,
    )


def parse_analysis_input(payload: Mapping[str, Any]) -> AnalysisInput:
    """
    Validate a raw payload and convert it into engine input.

    Raises:
        InvalidContextError: the payload does not have the expected shape
    """
    try:
        request = AnalysisRequest.model_validate(payload)
    except ValidationError as e:
        errors = [
            {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
            for err in e.errors()
        ]
        raise InvalidContextError(errors) from e
    if request.as_of_year is None:
        raise InvalidContextError([{"loc": ["as_of_year"], "msg": "Field required", "type": "missing"}])
    return request.to_engine_input()


def run_analysis_payload(
    payload: Mapping[str, Any],
    options: Optional[EngineOptions] = None,
) -> AnalysisResult:
    """
    Validate a raw payload once, then run the analysis.

    A malformed payload yields an empty result carrying a single top-level
    error instead of partial output.
    """
    try:
        analysis_input = parse_analysis_input(payload)
    except InvalidContextError as e:
        logger.warning("Invalid analysis context", errors=len(e.details["errors"]))
        as_of_year = payload.get("as_of_year") if isinstance(payload, Mapping) else None
        return AnalysisResult(
            as_of_year=as_of_year if isinstance(as_of_year, int) else 0,
            error=e.to_dict(),
        )
    return run_analysis(analysis_input, options)
