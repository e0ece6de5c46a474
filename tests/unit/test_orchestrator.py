"""
Unit tests for the analysis orchestrator.
"""
import pytest

from repriseval.engine.models import AnalysisInput
from repriseval.engine.orchestrator import (
    EngineOptions,
    parse_analysis_input,
    run_analysis,
    run_analysis_payload,
)
from repriseval.exceptions import EngineError, InvalidContextError


class TestRunAnalysis:
    """Tests for a full analysis pass."""

    def test_sample_business(self, analysis_input):
        result = run_analysis(analysis_input)

        assert sorted(result.indicators) == [2021, 2022, 2023]
        assert result.unresolved_years == []
        assert result.health.overall == 97
        assert result.alerts.summary.total == 0
        assert result.coherence.errors == 0
        assert result.anomalies.total == 0
        assert result.quality.confidence.overall == 94
        assert result.error is None

    def test_deterministic(self, analysis_input):
        """The same input always yields the same output."""
        assert run_analysis(analysis_input).to_dict() == run_analysis(analysis_input).to_dict()

    def test_empty_input_does_not_raise(self):
        result = run_analysis(AnalysisInput(as_of_year=2024))

        assert result.indicators == {}
        assert result.ratios is None
        assert result.health is None
        assert result.alerts.summary.by_severity["critical"] == 2

    def test_options_reach_the_engine(self, analysis_input, make_record):
        analysis_input.records = analysis_input.records + [
            make_record(year=2020, figures={"revenue": 380000, "goods_purchases": 1}, confidence=0.4),
        ]

        strict = run_analysis(analysis_input)
        lenient = run_analysis(analysis_input, EngineOptions(low_confidence_threshold=0.3))

        assert strict.quality.low_confidence_years == [2020]
        assert lenient.quality.low_confidence_years == []

    def test_stage_failure_is_wrapped(self, analysis_input, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr("repriseval.engine.orchestrator.get_quality_scorer", broken)

        with pytest.raises(EngineError) as exc_info:
            run_analysis(analysis_input)

        assert exc_info.value.details == {"stage": "quality"}

    def test_serialization(self, analysis_input):
        data = run_analysis(analysis_input).to_dict()

        assert data["indicators"]["2023"]["indicators"]["ebe"] == {
            "value": 66000,
            "percent_of_revenue": 14.67,
        }
        assert data["benchmark"]["code"] == "56.10"
        assert data["trends"]["trend"] == "growth"


class TestPayload:
    """Tests for raw payload validation."""

    def test_valid_payload(self, analysis_payload):
        analysis_input = parse_analysis_input(analysis_payload)

        assert analysis_input.as_of_year == 2024
        assert len(analysis_input.records) == 4
        assert analysis_input.valuation.ebe_method.reference == 66000

    def test_payload_matches_fixture(self, analysis_payload, analysis_input):
        assert run_analysis_payload(analysis_payload).to_dict() == run_analysis(analysis_input).to_dict()

    @pytest.mark.parametrize("mutate", [
        lambda p: p["records"][0].update(confidence=1.5),
        lambda p: p["records"][0].update(document_kind="invoice"),
        lambda p: p["records"][0]["figures"].update(revenue="1 234,56"),
        lambda p: p.update(records="not a list"),
        lambda p: p.pop("as_of_year"),
        lambda p: p["records"][0]["figures"].update(revenue=float("nan")),
        lambda p: p["records"][0]["figures"].update(ebe=float("inf")),
        lambda p: p["records"][0].update(indicators={"revenue": {"value": float("-inf")}}),
        lambda p: p["valuation"]["ebe_method"].update(ebe_reference=float("nan")),
        lambda p: p["valuation"].update(recommended_value=float("inf")),
        lambda p: p["real_estate"].update(monthly_rent=float("inf")),
        lambda p: p["business_info"].update(headcount=float("nan")),
    ])
    def test_malformed_payload_returns_single_error(self, analysis_payload, mutate):
        """A malformed context gives one top-level error and empty results."""
        mutate(analysis_payload)

        result = run_analysis_payload(analysis_payload)

        assert result.error["error_code"] == "RPV-100"
        assert result.error["details"]["errors"]
        assert result.indicators == {}
        assert result.alerts is None
        assert result.quality is None

    def test_payload_edits_stay_local(self, analysis_payload, request):
        """Editing a payload must not leak into the shared sample figures."""
        analysis_payload["records"][0]["figures"]["revenue"] = "1 234,56"
        analysis_payload["records"][-1]["figures"]["equity"] = -1

        income_statements = request.getfixturevalue("income_statements")
        balance_sheet = request.getfixturevalue("balance_sheet")

        assert income_statements[0].figures["revenue"] == 400000
        assert balance_sheet.figures["equity"] == 100000

    def test_records_are_read_only(self, analysis_payload):
        analysis_input = parse_analysis_input(analysis_payload)
        record = analysis_input.records[0]

        with pytest.raises(TypeError):
            record.figures["revenue"] = 0
        analysis_payload["records"][0]["figures"]["revenue"] = 0
        assert record.figures["revenue"] == 400000

    def test_parse_raises(self):
        with pytest.raises(InvalidContextError):
            parse_analysis_input({"as_of_year": 2024, "records": [{"year": "soon"}]})

    def test_indicator_objects_are_flattened(self, analysis_payload):
        analysis_payload["records"].append({
            "year": 2023,
            "document_kind": "consolidated-filing",
            "source_method": "structured-extraction",
            "confidence": 0.8,
            "indicators": {
                "revenue": {"value": 450000, "percent_of_revenue": 100},
                "ebe": 66000,
                "net_result": {"value": 43000},
            },
        })

        analysis_input = parse_analysis_input(analysis_payload)

        assert analysis_input.records[-1].indicators == {
            "revenue": 450000,
            "ebe": 66000,
            "net_result": 43000,
        }
