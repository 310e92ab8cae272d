from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from ..core.errors import DegradedDataWarning

# ----- Inputs -----

@dataclass(frozen=True)
class PolicyFacts:
    company: str
    product_type: str
    contract_period_years: int
    paid_years: int
    annual_premium: float
    total_premium: float
    surrender_value: float
    currency: str
    has_real_estate_rider: bool = False
    location: Optional[str] = None

    @property
    def remaining_years(self) -> int:
        return self.contract_period_years - self.paid_years

    @property
    def paid_ratio(self) -> float:
        return self.paid_years / self.contract_period_years


@dataclass(frozen=True)
class DocumentExtraction:
    """Fields recovered from a scanned policy document by an upstream OCR step."""
    fields: Mapping[str, Any] = field(default_factory=dict)
    present: Mapping[str, bool] = field(default_factory=dict)

    def has(self, name: str) -> bool:
        if name in self.present:
            return bool(self.present[name])
        value = self.fields.get(name)
        if value is None:
            return False
        return str(value).strip() != ""

    def get(self, name: str) -> Any:
        return self.fields.get(name)


@dataclass(frozen=True)
class RealEstateFactors:
    property_value: float
    annual_rental_income: float = 0.0
    appreciation_rate: float = 0.0
    linkage_ratio: float = 1.0      # share of the property attributable to the policy
    occupancy_rate: float = 1.0
    price_volatility: float = 0.1


# ----- Component outputs -----

@dataclass(frozen=True)
class DocumentAssessment:
    confidence: float
    missing_fields: Tuple[str, ...]
    validation_errors: Tuple[str, ...]
    suggested_corrections: Mapping[str, str]
    provided: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidence": round(self.confidence, 4),
            "missing_fields": list(self.missing_fields),
            "validation_errors": list(self.validation_errors),
            "suggested_corrections": dict(self.suggested_corrections),
        }


@dataclass(frozen=True)
class BaseValue:
    value: float
    pv_surrender: float
    pv_premiums: float
    return_ratio: float
    floored: bool


@dataclass(frozen=True)
class MarketAdjustment:
    adjustment_factor: float
    volatility_score: float
    sub_confidence: float
    interest_partial: float
    inflation_partial: float
    currency_partial: float
    volatility_partial: float


@dataclass(frozen=True)
class RiskFactors:
    company_strength: float
    product_performance: float
    market_volatility: float
    regulatory_risk: float
    liquidity_risk: float

    def risk_terms(self) -> Tuple[float, ...]:
        """All five factors oriented so that higher means riskier."""
        return (
            1.0 - self.company_strength,
            1.0 - self.product_performance,
            self.market_volatility,
            self.regulatory_risk,
            self.liquidity_risk,
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "company_strength": round(self.company_strength, 4),
            "product_performance": round(self.product_performance, 4),
            "market_volatility": round(self.market_volatility, 4),
            "regulatory_risk": round(self.regulatory_risk, 4),
            "liquidity_risk": round(self.liquidity_risk, 4),
        }


@dataclass(frozen=True)
class RiskAssessment:
    factors: RiskFactors
    composite: float
    risk_adjustment: float


@dataclass(frozen=True)
class LiquidityAssessment:
    market_liquidity: float
    trading_volume: float
    matching_time: float
    fee_impact: float
    score: float
    liquidity_adjustment: float

    @property
    def liquidity_risk(self) -> float:
        return 1.0 - self.score


@dataclass(frozen=True)
class RegulatoryAssessment:
    compliance_score: float
    regulatory_risk: float
    regulatory_adjustment: float
    issues: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RealEstateAssessment:
    property_value_contribution: float
    rental_income_contribution: float
    appreciation_contribution: float
    risk_score: float
    real_estate_adjustment: float
    sub_confidence: float


# ----- Result -----

class RiskGrade(str, Enum):
    AAA = "AAA"
    AA = "AA"
    A = "A"
    BBB = "BBB"
    BB = "BB"
    B = "B"
    CCC = "CCC"
    CC = "CC"
    C = "C"
    D = "D"

    @property
    def rank(self) -> int:
        """0 is the best grade, 9 the worst."""
        return list(RiskGrade).index(self)


@dataclass(frozen=True)
class Recommendations:
    immediate: Tuple[str, ...] = ()
    short_term: Tuple[str, ...] = ()
    long_term: Tuple[str, ...] = ()
    risk_mitigation: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, list]:
        return {
            "immediate": list(self.immediate),
            "short_term": list(self.short_term),
            "long_term": list(self.long_term),
            "risk_mitigation": list(self.risk_mitigation),
        }


@dataclass(frozen=True)
class ValuationResult:
    final_value: float
    base_value: float
    risk_grade: RiskGrade
    confidence: float
    composite_risk: float
    breakdown: Mapping[str, float]
    recommendations: Recommendations
    risk_factors: RiskFactors
    document: DocumentAssessment
    platform_price: float
    premium_rate: float
    scenarios: Mapping[str, float]
    projections: Mapping[str, float]
    currency: str
    warnings: Tuple[DegradedDataWarning, ...] = ()

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)

    def to_dict(self) -> Dict[str, Any]:
        """Flat JSON-friendly payload; breakdown keys match the aggregation terms."""
        return {
            "final_value": round(self.final_value, 2),
            "base_value": round(self.base_value, 2),
            "platform_price": round(self.platform_price, 2),
            "premium_rate": round(self.premium_rate, 2),
            "currency": self.currency,
            "risk_grade": self.risk_grade.value,
            "confidence": round(self.confidence, 4),
            "composite_risk": round(self.composite_risk, 4),
            "breakdown": {k: (v if isinstance(v, bool) else round(v, 4)) for k, v in self.breakdown.items()},
            "risk_factors": self.risk_factors.to_dict(),
            "document": self.document.to_dict(),
            "scenarios": {k: round(v, 2) for k, v in self.scenarios.items()},
            "projections": {k: round(v, 2) for k, v in self.projections.items()},
            "recommendations": self.recommendations.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
            "degraded": self.degraded,
        }
