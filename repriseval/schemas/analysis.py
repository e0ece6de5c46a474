"""
Pydantic schemas for the analysis API.

The request models are the single place where the input shape is checked;
once converted with ``to_engine_input`` the engine trusts its input.
Figures must already be finite plain numbers: NaN, infinities and
locale-formatted strings such as "1 234,56" are rejected.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from repriseval.engine.models import (
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


# =============================================================================
# Request Models
# =============================================================================

class IndicatorIn(BaseModel):
    """A pre-computed indicator with its share of revenue."""

    model_config = ConfigDict(allow_inf_nan=False)

    value: Optional[float] = Field(None, description="Indicator amount")
    percent_of_revenue: Optional[float] = Field(None, description="Share of revenue, in percent")


class ExtractionRecordIn(BaseModel):
    """One document's figures for one fiscal year."""

    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    year: int = Field(..., ge=1900, le=2200, description="Fiscal year")
    document_kind: DocumentKind = Field(..., description="Kind of source document")
    source_method: SourceMethod = Field(..., description="How the figures were extracted")
    confidence: float = Field(..., ge=0, le=1, description="Extractor self-reported confidence (0-1)")
    figures: Dict[str, Optional[float]] = Field(default_factory=dict, description="Raw financial figures")
    indicators: Optional[Dict[str, Union[float, IndicatorIn, None]]] = Field(
        None, description="Pre-computed indicators, as amounts or {value, percent_of_revenue}"
    )
    document_name: Optional[str] = Field(None, description="Source file name")

    @field_validator("indicators")
    @classmethod
    def flatten_indicators(cls, value):
        if value is None:
            return None
        flattened = {}
        for name, indicator in value.items():
            if isinstance(indicator, IndicatorIn):
                indicator = indicator.value
            flattened[name] = indicator
        return flattened

    def to_engine(self) -> ExtractionRecord:
        return ExtractionRecord(
            year=self.year,
            document_kind=self.document_kind,
            source_method=self.source_method,
            confidence=self.confidence,
            figures={k: v for k, v in self.figures.items() if v is not None},
            indicators=(
                {k: v for k, v in self.indicators.items() if v is not None}
                if self.indicators is not None
                else None
            ),
            document_name=self.document_name,
        )


class BusinessInfoIn(BaseModel):
    """The business under review."""

    model_config = ConfigDict(allow_inf_nan=False)

    sector_code: str = Field("", description="NAF activity code, e.g. '56.10'")
    name: Optional[str] = Field(None, description="Business name")
    asking_price: Optional[float] = Field(None, ge=0, description="Price asked by the seller")
    headcount: Optional[float] = Field(None, ge=0, description="Number of employees")


class MethodValuationIn(BaseModel):
    """Value produced by one valuation method."""

    model_config = ConfigDict(allow_inf_nan=False)

    value: Optional[float] = Field(None, description="Valuation produced by the method")
    reference: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("reference", "ebe_reference", "revenue_reference"),
        description="Figure the method was applied to (EBE or revenue)",
    )


class ValuationIn(BaseModel):
    """Externally computed valuation."""

    model_config = ConfigDict(allow_inf_nan=False)

    ebe_method: Optional[MethodValuationIn] = None
    revenue_method: Optional[MethodValuationIn] = None
    asset_method: Optional[MethodValuationIn] = None
    recommended_value: Optional[float] = None
    range_low: Optional[float] = None
    range_high: Optional[float] = None
    retained_method: Optional[ValuationMethod] = None
    justification: str = ""

    def to_engine(self) -> ValuationContext:
        def method(value: Optional[MethodValuationIn]) -> Optional[MethodValuation]:
            return MethodValuation(value=value.value, reference=value.reference) if value else None

        return ValuationContext(
            ebe_method=method(self.ebe_method),
            revenue_method=method(self.revenue_method),
            asset_method=method(self.asset_method),
            recommended_value=self.recommended_value,
            range_low=self.range_low,
            range_high=self.range_high,
            retained_method=self.retained_method,
            justification=self.justification,
        )


class RealEstateIn(BaseModel):
    """Lease and premises information."""

    model_config = ConfigDict(allow_inf_nan=False)

    monthly_rent: Optional[float] = Field(None, ge=0, description="Monthly rent excluding charges")
    remaining_lease_months: Optional[float] = Field(None, description="Months left on the lease")
    lease_present: Optional[bool] = Field(None, description="Whether a lease document was provided")
    rent_review_clause: Optional[bool] = Field(None, description="Whether the lease has a rent review clause")
    premises_price: Optional[float] = Field(None, ge=0, description="Price of the premises if for sale")


class AnalysisRequest(BaseModel):
    """Full input of one analysis pass."""

    model_config = ConfigDict(allow_inf_nan=False)

    records: List[ExtractionRecordIn] = Field(default_factory=list, description="Extraction records")
    business_info: BusinessInfoIn = Field(default_factory=BusinessInfoIn)
    valuation: Optional[ValuationIn] = None
    real_estate: Optional[RealEstateIn] = None
    as_of_year: Optional[int] = Field(
        None, ge=1900, le=2200, description="Current year used for data-age checks"
    )

    def to_engine_input(self) -> AnalysisInput:
        info = self.business_info
        real_estate = self.real_estate
        return AnalysisInput(
            as_of_year=self.as_of_year,
            records=[record.to_engine() for record in self.records],
            business_info=BusinessInfo(
                sector_code=info.sector_code,
                name=info.name,
                asking_price=info.asking_price,
                headcount=info.headcount,
            ),
            valuation=self.valuation.to_engine() if self.valuation else None,
            real_estate=(
                RealEstateContext(**real_estate.model_dump()) if real_estate is not None else None
            ),
        )


# =============================================================================
# Response Models
# =============================================================================

class AnalysisResponse(BaseModel):
    """Serialized analysis result."""

    as_of_year: int
    indicators: Dict[str, Any] = Field(default_factory=dict, description="Indicator set per year")
    unresolved_years: List[Dict[str, Any]] = Field(default_factory=list)
    trends: Optional[Dict[str, Any]] = None
    ratios: Optional[Dict[str, Any]] = None
    benchmark: Optional[Dict[str, Any]] = None
    comparisons: List[Dict[str, Any]] = Field(default_factory=list)
    health: Optional[Dict[str, Any]] = None
    alerts: Optional[Dict[str, Any]] = None
    coherence: Optional[Dict[str, Any]] = None
    anomalies: Optional[Dict[str, Any]] = None
    quality: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None


class BenchmarkResponse(BaseModel):
    """Sector benchmark used for a code."""

    sector_code: str = Field(..., description="Requested code")
    matched: bool = Field(..., description="False when the default benchmark was used")
    code: str
    name: str
    ratios: Dict[str, float]
    version: str


class AlertRuleResponse(BaseModel):
    """One row of the alert rule table."""

    id: str
    category: str
    severity: str
    conditions: List[List[Any]]
    title: str
