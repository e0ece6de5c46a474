"""
Unit tests for the quality and confidence scorer.
"""
import pytest

from repriseval.engine.alerts import get_alert_engine
from repriseval.engine.anomalies import get_anomaly_detector
from repriseval.engine.cross_validation import get_coherence_checker
from repriseval.engine.models import AnalysisInput, RequestPriority
from repriseval.engine.quality import PENALTIES, get_quality_scorer


@pytest.fixture
def assess():
    """Run the upstream validators and score the context."""

    def _assess(context):
        return get_quality_scorer().assess(
            context,
            get_alert_engine().evaluate(context),
            get_coherence_checker().validate(context),
            get_anomaly_detector().detect(context),
        )

    return _assess


class TestScores:
    """Tests for completeness, reliability and recency."""

    def test_sample_business(self, assess, analysis_context):
        report = assess(analysis_context)

        assert report.completeness == 90
        assert report.reliability == 100
        assert report.recency == 90
        assert report.confidence.overall == 94
        assert report.confidence.interpretation.startswith("High quality")

    def test_empty_context(self, assess, make_context):
        report = assess(make_context(AnalysisInput(as_of_year=2024)))

        assert report.completeness == 0
        assert report.recency == 0
        # 2 critical + 1 warning alerts, 2 error checks, 1 critical anomaly
        assert report.reliability == 100 - 2 * 15 - 5 - 2 * 10 - 12
        assert report.confidence.breakdown.extraction == 0

    @pytest.mark.parametrize("as_of_year,expected", [
        (2022, 100),
        (2023, 100),
        (2024, 90),
        (2025, 70),
        (2026, 50),
        (2027, 30),
        (2028, 10),
        (2035, 10),
    ])
    def test_recency_steps(self, make_context, analysis_input, as_of_year, expected):
        analysis_input.as_of_year = as_of_year

        assert get_quality_scorer().recency(make_context(analysis_input)) == expected

    def test_reliability_never_negative(self, assess, make_context, make_record):
        records = [
            make_record(year=year, figures={"revenue": 1000, "net_result": -50000})
            for year in (2019, 2020)
        ]

        report = assess(make_context(AnalysisInput(as_of_year=2024, records=records)))

        assert 0 <= report.reliability <= 100

    def test_low_confidence_year_penalised(self, assess, make_context, analysis_input, make_record):
        baseline = assess(make_context(analysis_input)).reliability
        analysis_input.records = analysis_input.records + [
            make_record(year=2020, figures={"revenue": 380000, "goods_purchases": 1}, confidence=0.4),
        ]

        report = assess(make_context(analysis_input))

        assert report.low_confidence_years == [2020]
        assert report.reliability == baseline - PENALTIES["low_confidence_year"]


class TestDueDiligence:
    """Tests for verifications and documents to request."""

    def test_no_documents(self, assess, make_context):
        report = assess(make_context(AnalysisInput(as_of_year=2024)))

        assert len(report.documents_to_request) == 1
        assert report.documents_to_request[0].priority == RequestPriority.BLOCKING
        assert report.missing_critical == ["Accounting documents (balance sheets, income statements)"]

    def test_requests_sorted_by_priority(self, assess, make_context, income_statements):
        report = assess(make_context(AnalysisInput(as_of_year=2024, records=income_statements)))
        priorities = [r.priority for r in report.documents_to_request]

        assert priorities[0] == RequestPriority.BLOCKING
        assert priorities == sorted(
            priorities,
            key=[RequestPriority.BLOCKING, RequestPriority.IMPORTANT, RequestPriority.USEFUL].index,
        )
        assert len({r.document for r in report.documents_to_request}) == len(report.documents_to_request)

    def test_sample_business_requests(self, assess, analysis_context):
        report = assess(analysis_context)
        documents = [r.document for r in report.documents_to_request]

        assert "Balance sheets for the last 3 years" not in documents
        assert "Commercial lease" not in documents
        assert "Complete tax filing" in documents
        assert report.missing_critical == []

    def test_verifications_sorted(self, assess, make_context, analysis_input):
        analysis_input.as_of_year = 2027

        report = assess(make_context(analysis_input))
        priorities = [v.priority for v in report.verifications]

        assert priorities == sorted(priorities)
        assert any(v.action == "Request the most recent accounts" for v in report.verifications)
