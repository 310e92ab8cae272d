"""
Threshold rules that turn component outputs into guidance.

Each rule is checked on its own and rules fire in table order, so the same
inputs always produce the same lists in the same order.
"""
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .types import (
    DocumentAssessment,
    LiquidityAssessment,
    MarketAdjustment,
    PolicyFacts,
    RealEstateAssessment,
    Recommendations,
    RegulatoryAssessment,
    RiskAssessment,
)

IMMEDIATE = "immediate"
SHORT_TERM = "short_term"
LONG_TERM = "long_term"
RISK_MITIGATION = "risk_mitigation"


@dataclass(frozen=True)
class RecommendationInputs:
    policy: PolicyFacts
    document: DocumentAssessment
    market: MarketAdjustment
    risk: RiskAssessment
    liquidity: LiquidityAssessment
    regulatory: RegulatoryAssessment
    real_estate: Optional[RealEstateAssessment] = None
    market_degraded: bool = False


@dataclass(frozen=True)
class Rule:
    category: str
    applies: Callable[[RecommendationInputs], bool]
    message: Callable[[RecommendationInputs], str]


def _fixed(text: str) -> Callable[[RecommendationInputs], str]:
    return lambda _: text


RULES: Tuple[Rule, ...] = (
    # Immediate: data the valuation could not trust
    Rule(IMMEDIATE,
         lambda i: not i.document.provided,
         _fixed("Upload the policy document so key fields can be verified.")),
    Rule(IMMEDIATE,
         lambda i: i.document.provided and i.document.confidence < 0.7,
         _fixed("Re-scan the policy document; the extracted data is low quality.")),
    Rule(IMMEDIATE,
         lambda i: i.document.provided and bool(i.document.missing_fields),
         lambda i: "Provide the missing document fields: " + ", ".join(i.document.missing_fields) + "."),
    Rule(IMMEDIATE,
         lambda i: bool(i.document.validation_errors),
         lambda i: f"Correct {len(i.document.validation_errors)} invalid document field(s) before listing."),
    Rule(IMMEDIATE,
         lambda i: i.market_degraded,
         _fixed("Live market data was unavailable; re-run the valuation before pricing.")),

    # Short term: pricing and timing of the listing
    Rule(SHORT_TERM,
         lambda i: i.market.adjustment_factor >= 1.03,
         _fixed("Market conditions favour sellers; consider listing now.")),
    Rule(SHORT_TERM,
         lambda i: i.market.adjustment_factor <= 0.97,
         _fixed("Market conditions are unfavourable; consider waiting for rates to ease.")),
    Rule(SHORT_TERM,
         lambda i: i.liquidity.score < 0.5,
         _fixed("Expect a long matching time; a price below the valuation will attract buyers sooner.")),
    Rule(SHORT_TERM,
         lambda i: i.liquidity.fee_impact < 0.5,
         _fixed("Transfer fees are large relative to this policy; compare them against surrendering.")),
    Rule(SHORT_TERM,
         lambda i: i.regulatory.regulatory_risk > 0.3,
         _fixed("Confirm transfer eligibility with the insurer before accepting an offer.")),

    # Long term: holding versus selling
    Rule(LONG_TERM,
         lambda i: i.risk.factors.product_performance >= 0.75,
         _fixed("The product performs well over time; holding to maturity may return more than a transfer.")),
    Rule(LONG_TERM,
         lambda i: i.policy.remaining_years > 10,
         lambda i: f"{i.policy.remaining_years} years remain; buyers will discount the long premium commitment."),
    Rule(LONG_TERM,
         lambda i: i.real_estate is not None and i.real_estate.appreciation_contribution > 0,
         _fixed("The property-linked rider is expected to appreciate; keep it with the policy.")),

    # Risk mitigation
    Rule(RISK_MITIGATION,
         lambda i: i.risk.composite >= 0.5,
         _fixed("Composite risk is high; obtain an independent actuarial review.")),
    Rule(RISK_MITIGATION,
         lambda i: i.risk.factors.company_strength < 0.6,
         _fixed("Insurer strength is below average; request the latest solvency disclosure.")),
    Rule(RISK_MITIGATION,
         lambda i: i.risk.factors.market_volatility > 0.6,
         _fixed("Markets are volatile; use an escrowed settlement with a price-protection window.")),
    Rule(RISK_MITIGATION,
         lambda i: i.real_estate is not None and i.real_estate.risk_score > 0.5,
         _fixed("The linked property carries high vacancy or price risk; obtain a fresh appraisal.")),
)


def generate_recommendations(inputs: RecommendationInputs) -> Recommendations:
    buckets = {IMMEDIATE: [], SHORT_TERM: [], LONG_TERM: [], RISK_MITIGATION: []}
    for rule in RULES:
        if rule.applies(inputs):
            buckets[rule.category].append(rule.message(inputs))
    return Recommendations(
        immediate=tuple(buckets[IMMEDIATE]),
        short_term=tuple(buckets[SHORT_TERM]),
        long_term=tuple(buckets[LONG_TERM]),
        risk_mitigation=tuple(buckets[RISK_MITIGATION]),
    )
