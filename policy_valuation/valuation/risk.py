"""
Five-factor risk assessment.

Company and product scores come from the rating provider; the market,
regulatory and liquidity factors are recomputed here from the same pure
helpers their own analyzers use. No analyzer depends on another's output.
"""
from ..core.utils import clamp, mean
from ..data.base import CompanyRating, MarketSnapshot
from .liquidity import analyze_liquidity
from .market import volatility_score
from .regulatory import regulatory_risk
from .types import PolicyFacts, RiskAssessment, RiskFactors

MIN_RISK_ADJUSTMENT = 0.7


def composite_risk(factors: RiskFactors) -> float:
    return clamp(mean(factors.risk_terms()))


def assess_risk(
    policy: PolicyFacts,
    snapshot: MarketSnapshot,
    rating: CompanyRating,
    reference_ticket: float,
    fee_rate: float,
    fixed_fee: float,
) -> RiskAssessment:
    liquidity = analyze_liquidity(policy, snapshot, reference_ticket, fee_rate, fixed_fee)
    factors = RiskFactors(
        company_strength=clamp(rating.company_strength),
        product_performance=clamp(rating.product_performance),
        market_volatility=volatility_score(snapshot),
        regulatory_risk=regulatory_risk(policy),
        liquidity_risk=clamp(liquidity.liquidity_risk),
    )
    composite = composite_risk(factors)
    return RiskAssessment(
        factors=factors,
        composite=composite,
        risk_adjustment=max(MIN_RISK_ADJUSTMENT, 1.0 - composite * 0.2),
    )
