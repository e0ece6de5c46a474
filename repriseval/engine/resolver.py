"""
Value resolver for the RepriseVal engine.

Picks one canonical figure set per fiscal year from the extraction records
of that year. Resolution strategies are tried in a fixed order and the
first one with an applicable record wins:

1. Structured extraction carrying revenue, EBE and net result indicators
2. Vision key-values carrying revenue or EBE
3. Heuristic table parse carrying revenue or EBE

Within a strategy the most confident record wins; ties keep input order.
Years where no strategy applies are reported as unresolved rather than zero.
"""

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence, Union

import structlog

from repriseval.engine.models import (
    BalanceSheetAggregates,
    DocumentKind,
    ExtractionRecord,
    ResolvedYearFigures,
    SourceMethod,
    UnresolvedYear,
)

logger = structlog.get_logger(__name__)

YearResolution = Union[ResolvedYearFigures, UnresolvedYear]

# Indicators an extraction may already carry as computed totals
DIRECT_INDICATOR_NAMES = (
    "commercial_margin",
    "value_added",
    "ebe",
    "operating_result",
    "current_result",
    "net_result",
)

# Indicators a structured extraction must carry to be used verbatim
LOAD_BEARING_INDICATORS = ("revenue", "ebe", "net_result")

BALANCE_SHEET_FIELDS = (
    "inventory",
    "trade_receivables",
    "trade_payables",
    "total_debt",
    "equity",
    "headcount",
)


def _has_any(figures: Dict[str, float], names: Iterable[str]) -> bool:
    return any(figures.get(name) is not None for name in names)


# =============================================================================
# Strategies
# =============================================================================

class ResolutionStrategy:
    """Base class: decides whether a record applies and builds its figures."""

    name = "base"
    source_method: SourceMethod

    def applies(self, record: ExtractionRecord) -> bool:
        raise NotImplementedError

    def figures(self, record: ExtractionRecord) -> Dict[str, float]:
        return dict(record.figures)

    def direct_indicators(self, record: ExtractionRecord) -> Dict[str, float]:
        return {
            name: record.figures[name]
            for name in DIRECT_INDICATOR_NAMES
            if record.figures.get(name) is not None
        }


class StructuredIndicatorStrategy(ResolutionStrategy):
    """Pre-computed indicator sets from structured extraction, used verbatim."""

    name = "structured_indicators"
    source_method = SourceMethod.STRUCTURED

    def applies(self, record: ExtractionRecord) -> bool:
        if record.source_method != self.source_method or not record.indicators:
            return False
        return all(record.indicators.get(name) is not None for name in LOAD_BEARING_INDICATORS)

    def direct_indicators(self, record: ExtractionRecord) -> Dict[str, float]:
        return {
            name: value
            for name, value in (record.indicators or {}).items()
            if value is not None
        }


class VisionKeyValueStrategy(ResolutionStrategy):
    """Key/value bags read by the vision extractor."""

    name = "vision_key_values"
    source_method = SourceMethod.VISION

    def applies(self, record: ExtractionRecord) -> bool:
        return (
            record.source_method == self.source_method
            and bool(record.figures)
            and _has_any(record.figures, ("revenue", "ebe"))
        )


class HeuristicTableStrategy(ResolutionStrategy):
    """Raw rows recovered by table-parsing heuristics, lowest trust."""

    name = "heuristic_tables"
    source_method = SourceMethod.HEURISTIC

    def applies(self, record: ExtractionRecord) -> bool:
        return (
            record.source_method == self.source_method
            and _has_any(record.figures, ("revenue", "ebe", "services_revenue"))
        )

    def figures(self, record: ExtractionRecord) -> Dict[str, float]:
        figures = dict(record.figures)
        if figures.get("revenue") is None and figures.get("services_revenue") is not None:
            figures["revenue"] = figures["services_revenue"]
        if (
            figures.get("goods_sales") is None
            and figures.get("services_revenue") is None
            and figures.get("revenue") is not None
        ):
            figures["goods_sales"] = figures["revenue"]
        return figures


DEFAULT_STRATEGIES = (
    StructuredIndicatorStrategy(),
    VisionKeyValueStrategy(),
    HeuristicTableStrategy(),
)


# =============================================================================
# Resolver
# =============================================================================

class ValueResolver:
    """
    Resolves extraction records into one figure set per year.

    Pure: records are never modified and nothing is persisted.
    """

    LOW_CONFIDENCE_THRESHOLD = 0.7

    def __init__(
        self,
        strategies: Sequence[ResolutionStrategy] = DEFAULT_STRATEGIES,
        low_confidence_threshold: Optional[float] = None,
    ):
        self.strategies = tuple(strategies)
        self.low_confidence_threshold = (
            self.LOW_CONFIDENCE_THRESHOLD
            if low_confidence_threshold is None
            else low_confidence_threshold
        )

    def resolve(self, records: Iterable[ExtractionRecord]) -> Dict[int, YearResolution]:
        """Resolve every year present in the financial records, ascending."""
        by_year: Dict[int, List[ExtractionRecord]] = {}
        for record in records:
            if record.is_financial:
                by_year.setdefault(record.year, []).append(record)

        resolutions: Dict[int, YearResolution] = OrderedDict()
        for year in sorted(by_year):
            resolutions[year] = self.resolve_year(year, by_year[year])

        resolved = sum(1 for r in resolutions.values() if isinstance(r, ResolvedYearFigures))
        logger.info(
            "Figures resolved",
            years=len(resolutions),
            resolved=resolved,
            unresolved=len(resolutions) - resolved,
        )
        return resolutions

    def resolve_year(self, year: int, records: Sequence[ExtractionRecord]) -> YearResolution:
        """Apply the strategies in order to the records of a single year."""
        candidates = [r for r in records if r.year == year and r.is_financial]

        for strategy in self.strategies:
            applicable = [r for r in candidates if strategy.applies(r)]
            if not applicable:
                continue

            winner = max(applicable, key=lambda r: r.confidence)
            low_confidence = winner.confidence < self.low_confidence_threshold
            if low_confidence:
                logger.warning(
                    "Low confidence year",
                    year=year,
                    strategy=strategy.name,
                    confidence=winner.confidence,
                )

            return ResolvedYearFigures(
                year=year,
                source_method=strategy.source_method,
                confidence=winner.confidence,
                strategy=strategy.name,
                figures=strategy.figures(winner),
                direct_indicators=strategy.direct_indicators(winner),
                balance_sheet=self._balance_sheet(candidates, winner),
                low_confidence=low_confidence,
                document_name=winner.document_name,
            )

        logger.warning("Year unresolved", year=year, records=len(candidates))
        return UnresolvedYear(
            year=year,
            reason="No record carries a revenue or EBE figure",
            record_count=len(candidates),
        )

    def _balance_sheet(
        self,
        records: Sequence[ExtractionRecord],
        winner: ExtractionRecord,
    ) -> BalanceSheetAggregates:
        """Balance-sheet amounts from the most confident record that has them."""
        sheets = [
            r for r in records
            if r.document_kind in (DocumentKind.BALANCE_SHEET, DocumentKind.CONSOLIDATED_FILING)
            and _has_any(r.figures, BALANCE_SHEET_FIELDS)
        ]
        source = max(sheets, key=lambda r: r.confidence) if sheets else winner
        return BalanceSheetAggregates(
            **{name: source.figures.get(name) for name in BALANCE_SHEET_FIELDS}
        )


def get_value_resolver(low_confidence_threshold: Optional[float] = None) -> ValueResolver:
    """Factory function to get a value resolver."""
    return ValueResolver(low_confidence_threshold=low_confidence_threshold)
