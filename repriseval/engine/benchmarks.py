"""
Sector benchmark lookup and ratio positioning.

Lookup is an exact match on the NAF code; unknown codes fall back to the
default benchmark. A ratio is "inline" within +/-10% of the sector average,
otherwise above or below. For ratios where a lower number is favourable the
position is flipped, so "above" always means better than the sector.
"""

from typing import List, Optional

import structlog

from repriseval.engine.models import Position, RatioComparison, RatioSet, SectorBenchmark
from repriseval.engine.numeric import round_half_up
from repriseval.reference.sector_benchmarks import (
    DEFAULT_SECTOR_CODE,
    RATIO_COLUMNS,
    SECTOR_BENCHMARKS,
)

logger = structlog.get_logger(__name__)

INLINE_BAND_PCT = 10.0

# Lower is better
INVERTED_RATIOS = frozenset({
    "inventory_days",
    "customer_days",
    "bfr_days",
    "leverage_pct",
})


def _build(code: str) -> SectorBenchmark:
    name, values = SECTOR_BENCHMARKS[code]
    return SectorBenchmark(
        code=code,
        name=name,
        ratios=dict(zip(RATIO_COLUMNS, values)),
        is_default=code == DEFAULT_SECTOR_CODE,
    )


def find_sector_benchmark(sector_code: Optional[str]) -> Optional[SectorBenchmark]:
    """Exact-match lookup; None when the code is unknown."""
    code = (sector_code or "").strip()
    if not code or code == DEFAULT_SECTOR_CODE or code not in SECTOR_BENCHMARKS:
        return None
    return _build(code)


def get_sector_benchmark(sector_code: Optional[str]) -> SectorBenchmark:
    """Benchmark for a sector code, or the default benchmark."""
    benchmark = find_sector_benchmark(sector_code)
    if benchmark is None:
        logger.info("Sector benchmark defaulted", sector_code=sector_code)
        return _build(DEFAULT_SECTOR_CODE)
    return benchmark


def compare_ratio(ratio_name: str, value: float, sector_average: float) -> RatioComparison:
    """Position one ratio against its sector average."""
    if sector_average == 0:
        deviation = 0.0
    else:
        deviation = (value - sector_average) / abs(sector_average) * 100

    inverted = ratio_name in INVERTED_RATIOS
    if deviation > INLINE_BAND_PCT:
        position = Position.BELOW if inverted else Position.ABOVE
    elif deviation < -INLINE_BAND_PCT:
        position = Position.ABOVE if inverted else Position.BELOW
    else:
        position = Position.INLINE

    return RatioComparison(
        ratio_name=ratio_name,
        value=round_half_up(value, 1),
        sector_average=round_half_up(sector_average, 1),
        deviation_pct=round_half_up(deviation, 1),
        position=position,
        inverted=inverted,
    )


def compare_to_sector(ratios: RatioSet, benchmark: SectorBenchmark) -> List[RatioComparison]:
    """Compare every defined ratio that the benchmark covers, in table order."""
    comparisons = []
    for name in RATIO_COLUMNS:
        value = ratios.get(name)
        if value is None or name not in benchmark.ratios:
            continue
        comparisons.append(compare_ratio(name, value, benchmark.ratios[name]))

    logger.debug(
        "Sector comparison done",
        sector=benchmark.code,
        compared=len(comparisons),
    )
    return comparisons
