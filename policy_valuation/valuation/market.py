from ..core.utils import clamp
from ..data.base import MarketSnapshot
from .types import MarketAdjustment, PolicyFacts

# Neutral market: no premium or discount at these levels
NEUTRAL_INTEREST_RATE = 0.045
NEUTRAL_INFLATION_RATE = 0.025
NEUTRAL_CURRENCY_RATE = 1.0
NEUTRAL_VOLATILITY = 0.15

PARTIAL_LIMIT = 0.05
MAX_VOLATILITY = 0.5

LIVE_CONFIDENCE = 0.9
DEGRADED_CONFIDENCE = 0.6


def _partial(value: float) -> float:
    return clamp(value, -PARTIAL_LIMIT, PARTIAL_LIMIT)


def volatility_score(snapshot: MarketSnapshot) -> float:
    return clamp(snapshot.volatility / MAX_VOLATILITY)


def analyze_market(policy: PolicyFacts, snapshot: MarketSnapshot, degraded: bool = False) -> MarketAdjustment:
    """
    Four bounded partials (each within ±5%) summed into one factor.

    Rates above neutral make an existing policy's locked-in return less
    attractive; a stronger policy currency makes it more attractive.
    """
    # Longer remaining terms carry more rate duration
    duration = 0.5 + 0.5 * clamp(policy.remaining_years / 10.0)
    interest = _partial(duration * (NEUTRAL_INTEREST_RATE - snapshot.interest_rate))
    inflation = _partial(NEUTRAL_INFLATION_RATE - snapshot.inflation_rate)
    currency = _partial(0.5 * (snapshot.currency_rate - NEUTRAL_CURRENCY_RATE))
    volatility = _partial(-0.25 * (snapshot.volatility - NEUTRAL_VOLATILITY))

    return MarketAdjustment(
        adjustment_factor=1.0 + interest + inflation + currency + volatility,
        volatility_score=volatility_score(snapshot),
        sub_confidence=DEGRADED_CONFIDENCE if degraded else LIVE_CONFIDENCE,
        interest_partial=interest,
        inflation_partial=inflation,
        currency_partial=currency,
        volatility_partial=volatility,
    )
