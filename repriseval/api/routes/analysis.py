"""
Analysis API routes.

Runs the full analysis pass and exposes the reference tables it uses.
"""
from datetime import date
from typing import List

import structlog
from fastapi import APIRouter, Query

from repriseval.config import get_settings
from repriseval.engine.alerts import load_rules
from repriseval.engine.benchmarks import find_sector_benchmark, get_sector_benchmark
from repriseval.engine.orchestrator import EngineOptions, run_analysis
from repriseval.exceptions import UnknownSectorError
from repriseval.reference.sector_benchmarks import BENCHMARK_TABLE_VERSION
from repriseval.schemas.analysis import (
    AlertRuleResponse,
    AnalysisRequest,
    AnalysisResponse,
    BenchmarkResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


def engine_options() -> EngineOptions:
    """Engine options from the application settings."""
    settings = get_settings()
    return EngineOptions(
        low_confidence_threshold=settings.low_confidence_threshold,
        vigilance_points_limit=settings.vigilance_points_limit,
        calculation_tolerance=settings.calculation_tolerance,
    )


@router.post("/analysis", response_model=AnalysisResponse)
async def analyze(request: AnalysisRequest) -> AnalysisResponse:
    """
    Run a full analysis pass on extraction records and business context.

    The year used for data-age checks is taken from the request, then from
    the ``default_as_of_year`` setting, then from today's date.
    """
    if request.as_of_year is None:
        settings = get_settings()
        as_of_year = settings.default_as_of_year or date.today().year
        request = request.model_copy(update={"as_of_year": as_of_year})

    result = run_analysis(request.to_engine_input(), engine_options())
    return AnalysisResponse.model_validate(result.to_dict())


@router.get("/benchmarks/{sector_code}", response_model=BenchmarkResponse)
async def get_benchmark(
    sector_code: str,
    strict: bool = Query(False, description="Return 404 instead of the default benchmark"),
) -> BenchmarkResponse:
    """Get the sector benchmark the engine would use for a NAF code."""
    benchmark = find_sector_benchmark(sector_code)
    if benchmark is None:
        if strict:
            raise UnknownSectorError(sector_code)
        benchmark = get_sector_benchmark(sector_code)

    return BenchmarkResponse(
        sector_code=sector_code,
        matched=not benchmark.is_default,
        code=benchmark.code,
        name=benchmark.name,
        ratios=benchmark.ratios,
        version=BENCHMARK_TABLE_VERSION,
    )


@router.get("/alert-rules", response_model=List[AlertRuleResponse])
async def list_alert_rules() -> List[AlertRuleResponse]:
    """List the alert rule table in evaluation order."""
    return [
        AlertRuleResponse(
            id=rule.id,
            category=rule.category.value,
            severity=rule.severity.value,
            conditions=[[c.metric, c.operator, c.threshold] for c in rule.conditions],
            title=rule.title,
        )
        for rule in load_rules()
    ]
