"""
Data structures for the RepriseVal analysis engine.

Inputs (immutable, checked once at the boundary):
- ExtractionRecord: one document's figures for one fiscal year
- BusinessInfo, ValuationContext, RealEstateContext

Derived per pass (recomputed in full, never mutated afterwards):
- ResolvedYearFigures / UnresolvedYear
- FinancialIndicatorSet (SIG), TrendAnalysis, RatioSet, RatioComparison
- Alert, CoherenceCheck, Anomaly, ConfidenceScore
- AnalysisResult
"""

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple


class DocumentKind(str, Enum):
    """Kind of accounting document an extraction record came from."""
    BALANCE_SHEET = "balance-sheet"
    INCOME_STATEMENT = "income-statement"
    CONSOLIDATED_FILING = "consolidated-filing"
    LEASE = "lease"
    SALE_OFFER = "sale-offer"
    TRANSACTION_COST = "transaction-cost"
    OTHER = "other"


# Document kinds that carry year figures
FINANCIAL_DOCUMENT_KINDS = frozenset({
    DocumentKind.BALANCE_SHEET,
    DocumentKind.INCOME_STATEMENT,
    DocumentKind.CONSOLIDATED_FILING,
})


class SourceMethod(str, Enum):
    """How an extraction record was produced, most trusted first."""
    STRUCTURED = "structured-extraction"
    VISION = "vision-key-values"
    HEURISTIC = "heuristic-table-parse"


class ConfidenceLevel(str, Enum):
    """Confidence levels for decisions."""
    HIGH = "high"      # >= 0.85
    MEDIUM = "medium"  # >= 0.65
    LOW = "low"        # >= 0.40
    VERY_LOW = "very_low"  # < 0.40

    @classmethod
    def from_score(cls, score: float) -> "ConfidenceLevel":
        if score >= 0.85:
            return cls.HIGH
        if score >= 0.65:
            return cls.MEDIUM
        if score >= 0.40:
            return cls.LOW
        return cls.VERY_LOW


class Severity(str, Enum):
    """Alert and anomaly severity, most severe first."""
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


SEVERITY_ORDER = {Severity.CRITICAL: 0, Severity.WARNING: 1, Severity.INFO: 2}


class AlertCategory(str, Enum):
    """Alert rule categories."""
    PROFITABILITY = "profitability"
    LEVERAGE = "leverage"
    GROWTH = "growth"
    LIQUIDITY = "liquidity"
    VALUATION = "valuation"
    REAL_ESTATE = "real-estate"
    DATA_QUALITY = "data-quality"


class CheckStatus(str, Enum):
    """Outcome of a coherence check."""
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


class AnomalyType(str, Enum):
    """Kinds of anomaly reported by the detector."""
    MISSING_DATA = "missing_data"
    INCONSISTENCY = "inconsistency"
    OUTLIER = "outlier"
    CALCULATION_ERROR = "calculation_error"


class Position(str, Enum):
    """Position of a ratio relative to its sector benchmark."""
    ABOVE = "above"
    INLINE = "inline"
    BELOW = "below"


class Trend(str, Enum):
    """Overall activity trend across the analysed years."""
    GROWTH = "growth"
    STABLE = "stable"
    DECLINE = "decline"


class ValuationMethod(str, Enum):
    """Valuation methods a buyer can retain."""
    EBE = "ebe"
    REVENUE = "revenue"
    ASSET = "asset"


class RequestPriority(str, Enum):
    """Priority of a document to collect during due diligence."""
    BLOCKING = "blocking"
    IMPORTANT = "important"
    USEFUL = "useful"


REQUEST_PRIORITY_ORDER = {
    RequestPriority.BLOCKING: 0,
    RequestPriority.IMPORTANT: 1,
    RequestPriority.USEFUL: 2,
}


# =============================================================================
# Inputs
# =============================================================================

@dataclass(frozen=True)
class ExtractionRecord:
    """One document's contribution for one fiscal year."""
    year: int
    document_kind: DocumentKind
    source_method: SourceMethod
    confidence: float
    figures: Mapping[str, float] = field(default_factory=dict)
    indicators: Optional[Mapping[str, float]] = None
    document_name: Optional[str] = None

    def __post_init__(self):
        # Read-only copies of the caller's mappings
        object.__setattr__(self, "figures", MappingProxyType(dict(self.figures)))
        if self.indicators is not None:
            object.__setattr__(self, "indicators", MappingProxyType(dict(self.indicators)))

    def figure(self, name: str) -> Optional[float]:
        return self.figures.get(name)

    @property
    def is_financial(self) -> bool:
        return self.document_kind in FINANCIAL_DOCUMENT_KINDS


@dataclass(frozen=True)
class BusinessInfo:
    """Business under review."""
    sector_code: str = ""
    name: Optional[str] = None
    asking_price: Optional[float] = None
    headcount: Optional[float] = None


@dataclass(frozen=True)
class MethodValuation:
    """Value produced by one valuation method and the figure it was based on."""
    value: Optional[float] = None
    reference: Optional[float] = None


@dataclass(frozen=True)
class ValuationContext:
    """Externally computed valuation of the business."""
    ebe_method: Optional[MethodValuation] = None
    revenue_method: Optional[MethodValuation] = None
    asset_method: Optional[MethodValuation] = None
    recommended_value: Optional[float] = None
    range_low: Optional[float] = None
    range_high: Optional[float] = None
    retained_method: Optional[ValuationMethod] = None
    justification: str = ""

    def method_values(self) -> List[float]:
        """Values of the methods that produced one, in EBE/revenue/asset order."""
        values = []
        for method in (self.ebe_method, self.revenue_method, self.asset_method):
            if method is not None and method.value is not None:
                values.append(method.value)
        return values


@dataclass(frozen=True)
class RealEstateContext:
    """Lease and premises information."""
    monthly_rent: Optional[float] = None
    remaining_lease_months: Optional[float] = None
    lease_present: Optional[bool] = None
    rent_review_clause: Optional[bool] = None
    premises_price: Optional[float] = None

    @property
    def annual_rent(self) -> Optional[float]:
        if self.monthly_rent is None:
            return None
        return self.monthly_rent * 12


@dataclass
class AnalysisInput:
    """Validated input of one evaluation pass."""
    as_of_year: int
    records: List[ExtractionRecord] = field(default_factory=list)
    business_info: BusinessInfo = field(default_factory=BusinessInfo)
    valuation: Optional[ValuationContext] = None
    real_estate: Optional[RealEstateContext] = None


# =============================================================================
# Resolution
# =============================================================================

@dataclass(frozen=True)
class BalanceSheetAggregates:
    """Balance-sheet amounts used by the ratio computation."""
    inventory: Optional[float] = None
    trade_receivables: Optional[float] = None
    trade_payables: Optional[float] = None
    total_debt: Optional[float] = None
    equity: Optional[float] = None
    headcount: Optional[float] = None

    @property
    def has_data(self) -> bool:
        return any(getattr(self, f.name) is not None for f in fields(self))


@dataclass(frozen=True)
class ResolvedYearFigures:
    """Canonical figure set for one year after priority resolution."""
    year: int
    source_method: SourceMethod
    confidence: float
    strategy: str
    figures: Dict[str, float]
    direct_indicators: Dict[str, float]
    balance_sheet: BalanceSheetAggregates
    low_confidence: bool = False
    document_name: Optional[str] = None

    @property
    def confidence_level(self) -> ConfidenceLevel:
        return ConfidenceLevel.from_score(self.confidence)


@dataclass(frozen=True)
class UnresolvedYear:
    """Marker for a year whose records carry neither revenue nor EBE."""
    year: int
    reason: str
    record_count: int = 0


# =============================================================================
# Indicators, trends and ratios
# =============================================================================

@dataclass(frozen=True)
class IndicatorValue:
    """One SIG line: rounded value and its share of revenue."""
    value: float
    percent_of_revenue: float


@dataclass
class FinancialIndicatorSet:
    """Standard indicator cascade for one year."""
    year: int
    indicators: Dict[str, IndicatorValue]
    source_method: SourceMethod
    confidence: float
    low_confidence: bool = False
    formula_derived: bool = True
    legacy: Dict[str, float] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def value(self, name: str) -> Optional[float]:
        indicator = self.indicators.get(name)
        return indicator.value if indicator is not None else None

    @property
    def revenue(self) -> float:
        return self.value("revenue") or 0


@dataclass(frozen=True)
class YearlyGrowth:
    """Growth between two consecutive analysed years."""
    year: int
    previous_year: int
    revenue_growth_pct: float
    ebe_growth_pct: float
    net_result_growth_pct: float


@dataclass
class TrendAnalysis:
    """Evolution of the main indicators over the analysed years."""
    first_year: int
    last_year: int
    revenue_growth_pct: float
    ebe_growth_pct: float
    net_result_growth_pct: float
    trend: Trend
    yearly_growth: List[YearlyGrowth] = field(default_factory=list)


@dataclass
class RatioSet:
    """Relative ratios for one year; None means the ratio is undefined."""
    year: int
    gross_margin_pct: Optional[float] = None
    ebe_margin_pct: Optional[float] = None
    net_margin_pct: Optional[float] = None
    value_added_rate_pct: Optional[float] = None
    inventory_days: Optional[float] = None
    customer_days: Optional[float] = None
    supplier_days: Optional[float] = None
    bfr: Optional[float] = None
    bfr_days: Optional[float] = None
    leverage_pct: Optional[float] = None
    cash_flow_capacity: Optional[float] = None
    productivity: Optional[float] = None

    def get(self, name: str) -> Optional[float]:
        return getattr(self, name, None)


@dataclass(frozen=True)
class SectorBenchmark:
    """Reference ratios for a sector code."""
    code: str
    name: str
    ratios: Dict[str, float]
    is_default: bool = False


@dataclass(frozen=True)
class RatioComparison:
    """Position of one ratio relative to the sector benchmark."""
    ratio_name: str
    value: float
    sector_average: float
    deviation_pct: float
    position: Position
    inverted: bool = False


@dataclass(frozen=True)
class HealthScore:
    """Financial health over four weighted dimensions (0-100)."""
    overall: int
    profitability: int
    liquidity: int
    solvency: int
    activity: int
    interpretation: str


@dataclass
class AccountingAnalysis:
    """Everything derived from the extraction records for the accounting side."""
    indicators: Dict[int, FinancialIndicatorSet] = field(default_factory=dict)
    unresolved: Dict[int, UnresolvedYear] = field(default_factory=dict)
    trends: Optional[TrendAnalysis] = None
    ratios: Optional[RatioSet] = None
    benchmark: Optional[SectorBenchmark] = None
    comparisons: List[RatioComparison] = field(default_factory=list)
    health: Optional[HealthScore] = None

    @property
    def years(self) -> List[int]:
        return sorted(self.indicators)

    @property
    def latest_year(self) -> Optional[int]:
        years = self.years
        return years[-1] if years else None

    @property
    def latest(self) -> Optional[FinancialIndicatorSet]:
        year = self.latest_year
        return self.indicators[year] if year is not None else None

    @property
    def low_confidence_years(self) -> List[int]:
        return [year for year in self.years if self.indicators[year].low_confidence]


@dataclass
class AnalysisContext:
    """Evaluation context shared by the alert engine and the validators."""
    accounting: AccountingAnalysis
    records: Tuple[ExtractionRecord, ...]
    business_info: BusinessInfo
    as_of_year: int
    valuation: Optional[ValuationContext] = None
    real_estate: Optional[RealEstateContext] = None

    def has_document(self, *kinds: DocumentKind) -> bool:
        return any(record.document_kind in kinds for record in self.records)

    @property
    def extracted_years(self) -> List[int]:
        return sorted({record.year for record in self.records if record.is_financial})


# =============================================================================
# Findings
# =============================================================================

@dataclass(frozen=True)
class Alert:
    """A rule firing against the current context."""
    rule_id: str
    category: AlertCategory
    severity: Severity
    title: str
    message: str
    impact: str
    recommendation: str
    values: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AlertSummary:
    """Counts of fired alerts."""
    total: int
    by_severity: Dict[str, int]
    by_category: Dict[str, int]


@dataclass
class AlertReport:
    """Sorted alerts with summary and vigilance digest."""
    alerts: List[Alert]
    summary: AlertSummary
    vigilance_points: List[str]


@dataclass(frozen=True)
class CoherenceCheck:
    """Agreement check between independently derived figures."""
    name: str
    status: CheckStatus
    description: str
    involved_values: Dict[str, Any] = field(default_factory=dict)
    recommendation: Optional[str] = None


@dataclass
class CoherenceReport:
    """All coherence checks plus counts by status."""
    checks: List[CoherenceCheck]
    total: int
    passed: int
    warnings: int
    errors: int


@dataclass(frozen=True)
class Anomaly:
    """A logically impossible, extreme or missing value."""
    type: AnomalyType
    severity: Severity
    description: str
    involved_values: Dict[str, Any] = field(default_factory=dict)
    recommendation: Optional[str] = None


@dataclass
class AnomalyReport:
    """All anomalies plus counts by severity."""
    anomalies: List[Anomaly]
    total: int
    by_severity: Dict[str, int]


@dataclass(frozen=True)
class DocumentRequest:
    """A document the buyer should request from the seller."""
    document: str
    priority: RequestPriority
    reason: str


@dataclass(frozen=True)
class Verification:
    """A due-diligence action, priority 1 being the most urgent."""
    priority: int
    action: str
    reason: str


@dataclass(frozen=True)
class ConfidenceBreakdown:
    extraction: int
    accounting: int
    valuation: int
    real_estate: int


@dataclass(frozen=True)
class ConfidenceScore:
    """Overall confidence in the analysis."""
    overall: int
    breakdown: ConfidenceBreakdown
    interpretation: str


@dataclass
class QualityReport:
    """Completeness, reliability, recency and what to collect next."""
    completeness: int
    reliability: int
    recency: int
    confidence: ConfidenceScore
    verifications: List[Verification] = field(default_factory=list)
    documents_to_request: List[DocumentRequest] = field(default_factory=list)
    missing_critical: List[str] = field(default_factory=list)
    low_confidence_years: List[int] = field(default_factory=list)


@dataclass
class AnalysisResult:
    """Output of one full evaluation pass."""
    as_of_year: int
    indicators: Dict[int, FinancialIndicatorSet] = field(default_factory=dict)
    unresolved_years: List[UnresolvedYear] = field(default_factory=list)
    trends: Optional[TrendAnalysis] = None
    ratios: Optional[RatioSet] = None
    benchmark: Optional[SectorBenchmark] = None
    comparisons: List[RatioComparison] = field(default_factory=list)
    health: Optional[HealthScore] = None
    alerts: Optional[AlertReport] = None
    coherence: Optional[CoherenceReport] = None
    anomalies: Optional[AnomalyReport] = None
    quality: Optional[QualityReport] = None
    error: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return to_serializable(self)


def to_serializable(obj: Any) -> Any:
    """Convert engine dataclasses into JSON-compatible structures."""
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_serializable(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Mapping):
        return {str(key): to_serializable(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_serializable(item) for item in obj]
    return obj
