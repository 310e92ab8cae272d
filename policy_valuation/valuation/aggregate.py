"""
Combines the baseline with every adjustment, in one place.

Market, risk, liquidity and regulatory factors scale the baseline
proportionally. Real estate and the document nudge are separate value
components and are added. The result never drops below half the baseline.
"""
from typing import Dict, Optional

from ..core.utils import clamp
from ..data.base import MarketSnapshot
from .liquidity import ADJUSTMENT_RANGE as LIQUIDITY_RANGE
from .types import (
    DocumentAssessment,
    LiquidityAssessment,
    MarketAdjustment,
    RealEstateAssessment,
    RegulatoryAssessment,
    RiskAssessment,
)

FLOOR_RATIO = 0.5
MARKET_RANGE = (0.8, 1.2)
RISK_RANGE = (0.7, 1.0)
REGULATORY_RANGE = (0.9, 1.0)

# (minimum confidence, share of baseline), evaluated in order
DOCUMENT_TIERS = (
    (0.9, 0.02),
    (0.7, 0.0),
    (0.4, -0.01),
)
LOWEST_DOCUMENT_TIER = -0.02
MISSING_FIELD_PENALTY = 0.005
VALIDATION_ERROR_PENALTY = 0.01

SCENARIO_SHIFTS = {"optimistic": 1.05, "realistic": 1.0, "conservative": 0.95}

# Horizon name -> years ahead
PROJECTION_HORIZONS = {"six_month": 0.5, "one_year": 1.0, "three_year": 3.0, "five_year": 5.0}

MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 1.0


def document_adjustment(base_value: float, document: DocumentAssessment) -> float:
    share = LOWEST_DOCUMENT_TIER
    for threshold, tier_share in DOCUMENT_TIERS:
        if document.confidence >= threshold:
            share = tier_share
            break
    share -= MISSING_FIELD_PENALTY * len(document.missing_fields)
    share -= VALIDATION_ERROR_PENALTY * len(document.validation_errors)
    return base_value * share


def aggregate(
    base_value: float,
    market: MarketAdjustment,
    risk: RiskAssessment,
    liquidity: LiquidityAssessment,
    regulatory: RegulatoryAssessment,
    document: DocumentAssessment,
    real_estate: Optional[RealEstateAssessment] = None,
    shift: float = 1.0,
) -> Dict[str, float]:
    """
    Returns the breakdown; ``final_value`` is
    max(base × market × risk × liquidity × regulatory + real_estate + document, 0.5 × base).

    ``shift`` scales the market and liquidity factors for scenario runs.
    """
    market_adj = clamp(market.adjustment_factor * shift, *MARKET_RANGE)
    risk_adj = clamp(risk.risk_adjustment, *RISK_RANGE)
    liquidity_adj = clamp(liquidity.liquidity_adjustment * shift, *LIQUIDITY_RANGE)
    regulatory_adj = clamp(regulatory.regulatory_adjustment, *REGULATORY_RANGE)

    real_estate_adj = real_estate.real_estate_adjustment if real_estate else 0.0
    document_adj = document_adjustment(base_value, document)

    adjusted = base_value * market_adj * risk_adj * liquidity_adj * regulatory_adj
    unfloored = adjusted + real_estate_adj + document_adj
    floor = FLOOR_RATIO * base_value

    return {
        "base_value": base_value,
        "market_adjustment": market_adj,
        "risk_adjustment": risk_adj,
        "liquidity_adjustment": liquidity_adj,
        "regulatory_adjustment": regulatory_adj,
        "real_estate_adjustment": real_estate_adj,
        "document_adjustment": document_adj,
        "adjusted_value": adjusted,
        "floor_value": floor,
        "floor_applied": unfloored < floor,
        "final_value": max(unfloored, floor, 0.0),
    }


def scenario_values(base_value, market, risk, liquidity, regulatory, document, real_estate=None) -> Dict[str, float]:
    return {
        name: aggregate(base_value, market, risk, liquidity, regulatory, document, real_estate, shift)["final_value"]
        for name, shift in SCENARIO_SHIFTS.items()
    }


def market_projections(final_value: float, snapshot: MarketSnapshot) -> Dict[str, float]:
    """
    Value of the policy at each horizon if it keeps compounding at the
    snapshot interest rate. A negative rate projects a decline.
    """
    growth = 1.0 + max(snapshot.interest_rate, -0.99)
    return {name: final_value * growth ** years for name, years in PROJECTION_HORIZONS.items()}


def overall_confidence(
    document: DocumentAssessment,
    market: MarketAdjustment,
    risk: RiskAssessment,
    liquidity: LiquidityAssessment,
    regulatory: RegulatoryAssessment,
    real_estate: Optional[RealEstateAssessment] = None,
    rating_confidence: float = 1.0,
) -> float:
    confidence = (
        0.8
        * document.confidence
        * market.sub_confidence
        * (1.0 - risk.composite * 0.3)
        * liquidity.score
        * (1.0 - regulatory.regulatory_risk * 0.2)
        * rating_confidence
    )
    if real_estate is not None:
        confidence *= real_estate.sub_confidence
    return clamp(confidence, MIN_CONFIDENCE, MAX_CONFIDENCE)
