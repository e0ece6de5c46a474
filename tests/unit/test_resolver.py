"""
Unit tests for the value resolver.

Tests strategy priority, fallbacks, unresolved years and confidence gating.
"""
import pytest

from repriseval.engine.models import (
    DocumentKind,
    ResolvedYearFigures,
    SourceMethod,
    UnresolvedYear,
)
from repriseval.engine.resolver import (
    HeuristicTableStrategy,
    StructuredIndicatorStrategy,
    ValueResolver,
    VisionKeyValueStrategy,
    get_value_resolver,
)


@pytest.fixture
def conflicting_records(make_record):
    """Three records for 2023 disagreeing on revenue."""
    structured = make_record(
        source_method=SourceMethod.STRUCTURED,
        confidence=0.8,
        indicators={"revenue": 500000, "ebe": 50000, "net_result": 20000},
    )
    vision = make_record(
        source_method=SourceMethod.VISION,
        confidence=0.95,
        figures={"revenue": 480000, "ebe": 45000},
    )
    heuristic = make_record(
        source_method=SourceMethod.HEURISTIC,
        confidence=0.99,
        figures={"revenue": 470000},
    )
    return structured, vision, heuristic


class TestPriorityResolution:
    """Tests for the ordered strategy list."""

    def test_structured_wins(self, conflicting_records):
        """Structured indicators win regardless of confidence."""
        resolution = get_value_resolver().resolve(conflicting_records)[2023]

        assert isinstance(resolution, ResolvedYearFigures)
        assert resolution.source_method == SourceMethod.STRUCTURED
        assert resolution.direct_indicators["revenue"] == 500000

    def test_falls_back_to_vision(self, conflicting_records):
        """Without a structured record the vision record is used."""
        _, vision, heuristic = conflicting_records
        resolution = get_value_resolver().resolve([heuristic, vision])[2023]

        assert resolution.source_method == SourceMethod.VISION
        assert resolution.figures["revenue"] == 480000

    def test_falls_back_to_heuristic(self, conflicting_records):
        """With only a heuristic record, it is used."""
        _, _, heuristic = conflicting_records
        resolution = get_value_resolver().resolve([heuristic])[2023]

        assert resolution.source_method == SourceMethod.HEURISTIC
        assert resolution.figures["revenue"] == 470000

    def test_incomplete_structured_record_is_skipped(self, make_record):
        """A structured record missing net result does not apply."""
        structured = make_record(
            source_method=SourceMethod.STRUCTURED,
            indicators={"revenue": 500000, "ebe": 50000},
        )
        vision = make_record(figures={"revenue": 480000})

        resolution = get_value_resolver().resolve([structured, vision])[2023]

        assert resolution.strategy == VisionKeyValueStrategy.name

    def test_most_confident_record_wins_within_strategy(self, make_record):
        low = make_record(figures={"revenue": 100000}, confidence=0.6)
        high = make_record(figures={"revenue": 200000}, confidence=0.9)

        resolution = get_value_resolver().resolve([low, high])[2023]

        assert resolution.figures["revenue"] == 200000

    def test_confidence_tie_keeps_input_order(self, make_record):
        first = make_record(figures={"revenue": 100000}, confidence=0.8)
        second = make_record(figures={"revenue": 200000}, confidence=0.8)

        resolution = get_value_resolver().resolve([first, second])[2023]

        assert resolution.figures["revenue"] == 100000

    def test_custom_strategy_order(self, conflicting_records):
        """The priority policy is the strategy list itself."""
        resolver = ValueResolver(strategies=[HeuristicTableStrategy(), StructuredIndicatorStrategy()])

        resolution = resolver.resolve(conflicting_records)[2023]

        assert resolution.source_method == SourceMethod.HEURISTIC


class TestYears:
    """Tests for per-year grouping."""

    def test_years_are_ascending(self, income_statements):
        resolutions = get_value_resolver().resolve(reversed(income_statements))

        assert list(resolutions) == [2021, 2022, 2023]

    def test_unresolved_year_is_not_zero(self, make_record):
        """A year without revenue or EBE is reported, not zero-filled."""
        sheet = make_record(
            year=2022,
            figures={"equity": 50000},
            document_kind=DocumentKind.BALANCE_SHEET,
        )

        resolution = get_value_resolver().resolve([sheet])[2022]

        assert isinstance(resolution, UnresolvedYear)
        assert resolution.record_count == 1

    def test_non_financial_documents_are_ignored(self, make_record):
        lease = make_record(
            year=2020,
            figures={"revenue": 1},
            document_kind=DocumentKind.LEASE,
        )

        assert get_value_resolver().resolve([lease]) == {}

    def test_input_records_are_not_modified(self, make_record):
        record = make_record(figures={"services_revenue": 90000}, source_method=SourceMethod.HEURISTIC)

        get_value_resolver().resolve([record])

        assert "revenue" not in record.figures


class TestConfidence:
    """Tests for the low-confidence gate."""

    def test_low_confidence_flagged(self, make_record):
        record = make_record(figures={"revenue": 100000}, confidence=0.5)

        resolution = get_value_resolver().resolve([record])[2023]

        assert resolution.low_confidence is True

    def test_threshold_is_configurable(self, make_record):
        record = make_record(figures={"revenue": 100000}, confidence=0.5)

        resolution = get_value_resolver(low_confidence_threshold=0.4).resolve([record])[2023]

        assert resolution.low_confidence is False

    def test_threshold_is_inclusive(self, make_record):
        record = make_record(figures={"revenue": 100000}, confidence=0.7)

        resolution = get_value_resolver().resolve([record])[2023]

        assert resolution.low_confidence is False


class TestHeuristicStrategy:
    """Tests for heuristic table fallbacks."""

    def test_services_revenue_used_as_revenue(self, make_record):
        record = make_record(figures={"services_revenue": 90000}, source_method=SourceMethod.HEURISTIC)

        figures = HeuristicTableStrategy().figures(record)

        assert figures["revenue"] == 90000
        assert "goods_sales" not in figures

    def test_revenue_used_as_goods_sales(self, make_record):
        record = make_record(figures={"revenue": 90000}, source_method=SourceMethod.HEURISTIC)

        figures = HeuristicTableStrategy().figures(record)

        assert figures["goods_sales"] == 90000


class TestBalanceSheet:
    """Tests for balance-sheet aggregates selection."""

    def test_balance_sheet_taken_from_balance_sheet_record(self, income_statements, balance_sheet):
        resolution = get_value_resolver().resolve(income_statements + [balance_sheet])[2023]

        assert resolution.source_method == SourceMethod.VISION
        assert resolution.balance_sheet.equity == 100000
        assert resolution.balance_sheet.headcount == 6

    def test_balance_sheet_empty_without_data(self, income_statements):
        resolution = get_value_resolver().resolve(income_statements)[2021]

        assert resolution.balance_sheet.has_data is False
