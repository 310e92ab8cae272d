from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from .data.base import MarketSnapshot
from .valuation.types import DocumentExtraction, RealEstateFactors

# ----- Request -----

class PolicyFactsIn(BaseModel):
    # Range checks happen in the normalizer so rejections name the field
    company: Optional[str] = None
    product_type: Optional[str] = None
    contract_period_years: Optional[float] = None
    paid_years: Optional[float] = None
    annual_premium: Optional[float] = None
    total_premium: Optional[float] = None
    surrender_value: Optional[float] = None
    currency: Optional[str] = None
    has_real_estate_rider: bool = False
    location: Optional[str] = None

class DocumentExtractionIn(BaseModel):
    fields: Dict[str, Union[str, float, int, None]] = Field(default_factory=dict)
    present: Dict[str, bool] = Field(default_factory=dict)

    def to_domain(self) -> DocumentExtraction:
        return DocumentExtraction(fields=dict(self.fields), present=dict(self.present))

class MarketSnapshotIn(BaseModel):
    interest_rate: float
    inflation_rate: float
    currency_rate: float = 1.0
    volatility: float

    def to_domain(self) -> MarketSnapshot:
        return MarketSnapshot(**self.model_dump())

class RealEstateFactorsIn(BaseModel):
    property_value: float = Field(ge=0)
    annual_rental_income: float = Field(default=0.0, ge=0)
    appreciation_rate: float = Field(default=0.0, ge=-1)
    linkage_ratio: float = Field(default=1.0, ge=0, le=1)
    occupancy_rate: float = Field(default=1.0, ge=0, le=1)
    price_volatility: float = Field(default=0.1, ge=0)

    def to_domain(self) -> RealEstateFactors:
        return RealEstateFactors(**self.model_dump())

class ValuationRequest(BaseModel):
    policy: PolicyFactsIn
    document: Optional[DocumentExtractionIn] = None
    market: Optional[MarketSnapshotIn] = None
    real_estate: Optional[RealEstateFactorsIn] = None

# ----- Response -----

class DocumentOut(BaseModel):
    confidence: float = Field(ge=0, le=1)
    missing_fields: List[str]
    validation_errors: List[str]
    suggested_corrections: Dict[str, str]

class RecommendationsOut(BaseModel):
    immediate: List[str]
    short_term: List[str]
    long_term: List[str]
    risk_mitigation: List[str]

class WarningOut(BaseModel):
    source: str
    reason: str

class ValuationResponse(BaseModel):
    final_value: float = Field(ge=0)
    base_value: float
    platform_price: float
    premium_rate: float
    currency: str
    risk_grade: str
    confidence: float = Field(ge=0.1, le=1.0)
    composite_risk: float
    breakdown: Dict[str, Any]
    risk_factors: Dict[str, float]
    document: DocumentOut
    scenarios: Dict[str, float]
    projections: Dict[str, float]
    recommendations: RecommendationsOut
    warnings: List[WarningOut]
    degraded: bool
    disclaimer: str = "This valuation is an estimate and not a financial or actuarial appraisal."
    etag: str | None = None

class InvalidInputResponse(BaseModel):
    error: str = "invalid_input"
    fields: List[str]
    message: str
