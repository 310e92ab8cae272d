import math

from ..core.utils import clamp, mean
from ..data.base import MarketSnapshot
from .market import NEUTRAL_INTEREST_RATE, volatility_score
from .types import LiquidityAssessment, PolicyFacts

ADJUSTMENT_RANGE = (0.6, 1.2)
# Ticket sizes a hundredfold away from the reference score zero
VOLUME_LOG_SPAN = math.log(100.0)


def market_liquidity(snapshot: MarketSnapshot) -> float:
    """Buyers thin out when markets are volatile or cash yields are high."""
    rate_drag = max(snapshot.interest_rate - NEUTRAL_INTEREST_RATE, 0.0) * 5.0
    return clamp(1.0 - 0.5 * volatility_score(snapshot) - rate_drag)


def trading_volume(policy: PolicyFacts, reference_ticket: float) -> float:
    if policy.surrender_value <= 0 or reference_ticket <= 0:
        return 0.0
    distance = abs(math.log(policy.surrender_value / reference_ticket))
    return clamp(1.0 - distance / VOLUME_LOG_SPAN)


def matching_time(policy: PolicyFacts) -> float:
    """Mostly paid-up policies leave the buyer less to fund, so they match faster."""
    return clamp(0.4 + 0.6 * policy.paid_ratio)


def fee_impact(policy: PolicyFacts, fee_rate: float, fixed_fee: float) -> float:
    if policy.surrender_value <= 0:
        return 0.0
    return clamp(1.0 - 5.0 * (fixed_fee / policy.surrender_value + fee_rate))


def analyze_liquidity(
    policy: PolicyFacts,
    snapshot: MarketSnapshot,
    reference_ticket: float,
    fee_rate: float,
    fixed_fee: float,
) -> LiquidityAssessment:
    components = (
        market_liquidity(snapshot),
        trading_volume(policy, reference_ticket),
        matching_time(policy),
        fee_impact(policy, fee_rate, fixed_fee),
    )
    score = mean(components)
    return LiquidityAssessment(
        market_liquidity=components[0],
        trading_volume=components[1],
        matching_time=components[2],
        fee_impact=components[3],
        score=score,
        liquidity_adjustment=clamp(0.8 + score * 0.4, *ADJUSTMENT_RANGE),
    )
