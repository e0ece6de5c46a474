"""
Unit tests for ratios, sector benchmarks and the health score.
"""
import pytest

from repriseval.engine.benchmarks import (
    compare_ratio,
    compare_to_sector,
    find_sector_benchmark,
    get_sector_benchmark,
)
from repriseval.engine.health import calculate_health_score, liquidity_score, profitability_score
from repriseval.engine.models import BalanceSheetAggregates, BusinessInfo, Position, RatioSet
from repriseval.engine.orchestrator import EngineOptions, build_accounting
from repriseval.reference.sector_benchmarks import DEFAULT_SECTOR_CODE, RATIO_COLUMNS


@pytest.fixture
def accounting(analysis_input):
    return build_accounting(analysis_input, EngineOptions())


class TestRatios:
    """Tests for the sample business ratios."""

    def test_margins(self, accounting):
        ratios = accounting.ratios

        assert ratios.year == 2023
        assert ratios.gross_margin_pct == 70.0
        assert ratios.ebe_margin_pct == 14.7
        assert ratios.net_margin_pct == 9.6
        assert ratios.value_added_rate_pct == 50.0

    def test_days(self, accounting):
        ratios = accounting.ratios

        assert ratios.inventory_days == 10
        assert ratios.customer_days == 4
        assert ratios.supplier_days == 54
        assert ratios.bfr == -3500
        assert ratios.bfr_days == -3

    def test_structure(self, accounting):
        ratios = accounting.ratios

        assert ratios.leverage_pct == 90.0
        assert ratios.cash_flow_capacity == 55000
        assert ratios.productivity == 37500

    def test_undefined_ratios_stay_none(self, analysis_input, make_record):
        analysis_input.records = [make_record(figures={"ebe": 10000})]

        ratios = build_accounting(analysis_input, EngineOptions()).ratios

        assert ratios.ebe_margin_pct is None
        assert ratios.leverage_pct is None
        assert ratios.bfr is None


class TestSectorLookup:
    """Tests for sector benchmark lookup."""

    def test_exact_match(self):
        benchmark = get_sector_benchmark("56.10")

        assert benchmark.code == "56.10"
        assert benchmark.is_default is False
        assert set(benchmark.ratios) == set(RATIO_COLUMNS)

    @pytest.mark.parametrize("code", ["99.99", "", None, "56.1", DEFAULT_SECTOR_CODE])
    def test_unknown_code_falls_back_to_default(self, code):
        assert find_sector_benchmark(code) is None
        assert get_sector_benchmark(code).is_default is True

    def test_sector_mismatch_still_compares(self, analysis_input):
        """An unrecognized code uses the default benchmark and never throws."""
        analysis_input.business_info = BusinessInfo(sector_code="99.99")

        accounting = build_accounting(analysis_input, EngineOptions())

        assert accounting.benchmark.code == DEFAULT_SECTOR_CODE
        assert len(accounting.comparisons) == len(RATIO_COLUMNS)


class TestComparison:
    """Tests for ratio positioning against the sector."""

    def test_inverted_ratio_below_average_is_favourable(self):
        """Turnover days 20% below the sector average are 'above'."""
        comparison = compare_ratio("inventory_days", 24, 30)

        assert comparison.deviation_pct == -20.0
        assert comparison.position == Position.ABOVE
        assert comparison.inverted is True

    def test_inverted_ratio_above_average_is_unfavourable(self):
        assert compare_ratio("customer_days", 36, 30).position == Position.BELOW

    def test_regular_ratio(self):
        assert compare_ratio("ebe_margin_pct", 14.7, 12).position == Position.ABOVE
        assert compare_ratio("ebe_margin_pct", 9, 12).position == Position.BELOW

    def test_supplier_days_not_inverted(self):
        assert compare_ratio("supplier_days", 54, 30).position == Position.ABOVE

    @pytest.mark.parametrize("value", [11, 12, 13.2])
    def test_inline_band(self, value):
        assert compare_ratio("ebe_margin_pct", value, 12).position == Position.INLINE

    def test_sample_comparisons(self, accounting):
        by_name = {c.ratio_name: c for c in accounting.comparisons}

        assert [c.ratio_name for c in accounting.comparisons] == list(RATIO_COLUMNS)
        assert by_name["gross_margin_pct"].position == Position.INLINE
        assert by_name["ebe_margin_pct"].position == Position.ABOVE
        assert by_name["inventory_days"].position == Position.BELOW

    def test_undefined_ratio_omitted(self):
        ratios = RatioSet(year=2023, ebe_margin_pct=10.0)

        comparisons = compare_to_sector(ratios, get_sector_benchmark("56.10"))

        assert [c.ratio_name for c in comparisons] == ["ebe_margin_pct"]


class TestHealthScore:
    """Tests for the financial health score."""

    def test_sample_health(self, accounting):
        health = accounting.health

        assert health.profitability == 90
        assert health.liquidity == 100
        assert health.solvency == 100
        assert health.activity == 100
        assert health.overall == 97
        assert health.interpretation.startswith("Excellent")

    def test_undefined_ratios_score_nothing(self):
        ratios = RatioSet(year=2023)

        assert profitability_score(ratios) == 0
        assert liquidity_score(ratios) == 50

    def test_requires_trends(self, accounting):
        assert calculate_health_score(accounting.ratios, None) is None


class TestBalanceSheetAggregates:
    def test_has_data(self):
        assert BalanceSheetAggregates().has_data is False
        assert BalanceSheetAggregates(equity=1).has_data is True
