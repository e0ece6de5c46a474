"""
Pytest configuration and fixtures.

The sample business is a restaurant (NAF 56.10) with three years of
income statements read by the vision extractor and one balance sheet.
"""
from typing import Callable, Dict, Generator, Optional

import pytest
from fastapi.testclient import TestClient

from repriseval.engine.models import (
    AnalysisContext,
    AnalysisInput,
    BusinessInfo,
    DocumentKind,
    ExtractionRecord,
    MethodValuation,
    RealEstateContext,
    SourceMethod,
    ValuationContext,
    ValuationMethod,
)
from repriseval.engine.orchestrator import EngineOptions, build_accounting
from repriseval.main import app

AS_OF_YEAR = 2024

# year -> income statement figures; EBE works out to 56,000 / 63,400 / 66,000
INCOME_STATEMENT_FIGURES = {
    2021: {
        "revenue": 400000, "goods_sales": 400000, "goods_purchases": 120000,
        "external_charges": 80000, "taxes": 8000, "wages": 100000, "social_charges": 36000,
        "depreciation_charges": 12000, "financial_charges": 4000, "income_tax": 6000,
    },
    2022: {
        "revenue": 430000, "goods_sales": 430000, "goods_purchases": 129000,
        "external_charges": 86000, "taxes": 8600, "wages": 105000, "social_charges": 38000,
        "depreciation_charges": 12000, "financial_charges": 3500, "income_tax": 7000,
    },
    2023: {
        "revenue": 450000, "goods_sales": 450000, "goods_purchases": 135000,
        "external_charges": 90000, "taxes": 9000, "wages": 110000, "social_charges": 40000,
        "depreciation_charges": 12000, "financial_charges": 3000, "income_tax": 8000,
    },
}

BALANCE_SHEET_FIGURES = {
    "inventory": 12000,
    "trade_receivables": 4500,
    "trade_payables": 20000,
    "total_debt": 90000,
    "equity": 100000,
    "headcount": 6,
}


@pytest.fixture
def make_record() -> Callable[..., ExtractionRecord]:
    """Factory for extraction records with sensible defaults."""

    def _make(
        year: int = 2023,
        figures: Optional[Dict[str, float]] = None,
        document_kind: DocumentKind = DocumentKind.INCOME_STATEMENT,
        source_method: SourceMethod = SourceMethod.VISION,
        confidence: float = 0.9,
        indicators: Optional[Dict[str, float]] = None,
        document_name: Optional[str] = None,
    ) -> ExtractionRecord:
        return ExtractionRecord(
            year=year,
            document_kind=document_kind,
            source_method=source_method,
            confidence=confidence,
            figures=dict(figures or {}),
            indicators=indicators,
            document_name=document_name,
        )

    return _make


@pytest.fixture
def income_statements(make_record):
    """Three years of income statements."""
    return [
        make_record(year=year, figures=figures, document_name=f"compte_resultat_{year}.pdf")
        for year, figures in INCOME_STATEMENT_FIGURES.items()
    ]


@pytest.fixture
def balance_sheet(make_record) -> ExtractionRecord:
    """Balance sheet of the latest year."""
    return make_record(
        year=2023,
        figures=BALANCE_SHEET_FIGURES,
        document_kind=DocumentKind.BALANCE_SHEET,
        document_name="bilan_2023.pdf",
    )


@pytest.fixture
def sample_records(income_statements, balance_sheet):
    return income_statements + [balance_sheet]


@pytest.fixture
def business_info() -> BusinessInfo:
    return BusinessInfo(sector_code="56.10", name="Le Petit Bistrot", headcount=6)


@pytest.fixture
def valuation() -> ValuationContext:
    """Valuation consistent with the 2023 accounts."""
    return ValuationContext(
        ebe_method=MethodValuation(value=264000, reference=66000),
        revenue_method=MethodValuation(value=270000, reference=450000),
        asset_method=MethodValuation(value=150000),
        recommended_value=250000,
        range_low=200000,
        range_high=280000,
        retained_method=ValuationMethod.EBE,
        justification="EBE multiple of 4, premises excluded",
    )


@pytest.fixture
def real_estate() -> RealEstateContext:
    return RealEstateContext(
        monthly_rent=3000,
        remaining_lease_months=60,
        lease_present=True,
        rent_review_clause=True,
    )


@pytest.fixture
def analysis_input(sample_records, business_info, valuation, real_estate) -> AnalysisInput:
    """Complete, consistent input for a healthy business."""
    return AnalysisInput(
        as_of_year=AS_OF_YEAR,
        records=sample_records,
        business_info=business_info,
        valuation=valuation,
        real_estate=real_estate,
    )


@pytest.fixture
def make_context() -> Callable[[AnalysisInput], AnalysisContext]:
    """Factory building the evaluation context shared by alerts and validators."""

    def _make(analysis_input: AnalysisInput) -> AnalysisContext:
        return AnalysisContext(
            accounting=build_accounting(analysis_input, EngineOptions()),
            records=tuple(analysis_input.records),
            business_info=analysis_input.business_info,
            as_of_year=analysis_input.as_of_year,
            valuation=analysis_input.valuation,
            real_estate=analysis_input.real_estate,
        )

    return _make


@pytest.fixture
def analysis_context(make_context, analysis_input) -> AnalysisContext:
    return make_context(analysis_input)


@pytest.fixture
def analysis_payload() -> dict:
    """JSON body of the sample analysis, as sent to the API."""
    records = [
        {
            "year": year,
            "document_kind": "income-statement",
            "source_method": "vision-key-values",
            "confidence": 0.9,
            "figures": dict(figures),
        }
        for year, figures in INCOME_STATEMENT_FIGURES.items()
    ]
    records.append({
        "year": 2023,
        "document_kind": "balance-sheet",
        "source_method": "vision-key-values",
        "confidence": 0.9,
        "figures": dict(BALANCE_SHEET_FIGURES),
    })
    return {
        "as_of_year": AS_OF_YEAR,
        "records": records,
        "business_info": {"sector_code": "56.10", "name": "Le Petit Bistrot", "headcount": 6},
        "valuation": {
            "ebe_method": {"value": 264000, "ebe_reference": 66000},
            "revenue_method": {"value": 270000, "revenue_reference": 450000},
            "asset_method": {"value": 150000},
            "recommended_value": 250000,
            "range_low": 200000,
            "range_high": 280000,
            "retained_method": "ebe",
            "justification": "EBE multiple of 4, premises excluded",
        },
        "real_estate": {"monthly_rent": 3000, "remaining_lease_months": 60, "lease_present": True},
    }


@pytest.fixture(scope="function")
def client() -> Generator[TestClient, None, None]:
    """Create a test client for the API."""
    with TestClient(app) as test_client:
        yield test_client
