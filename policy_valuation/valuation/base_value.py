import numpy as np

from ..core.utils import clamp
from .types import BaseValue, PolicyFacts

SURRENDER_WEIGHT = 0.7
PREMIUM_STREAM_WEIGHT = 0.3
RETURN_MULTIPLIER = 0.05
RETURN_RATIO_RANGE = (-1.0, 2.0)
SURRENDER_FLOOR_RATIO = 0.8


def discount_factors(years: int, rate: float) -> np.ndarray:
    """1/(1+r)^t for t = 1..years. Used for short fixed horizons."""
    t = np.arange(1, years + 1, dtype="float64")
    return (1.0 + rate) ** -t


def discount_factor(years: int, rate: float) -> float:
    """1/(1+r)^n in closed form."""
    return float(np.power(1.0 + rate, -float(years)))


def annuity_factor(years: int, rate: float) -> float:
    """Sum of 1/(1+r)^t for t = 1..n, i.e. (1 - (1+r)^-n) / r."""
    if rate == 0:
        return float(years)
    return (1.0 - discount_factor(years, rate)) / rate


def calculate_base_value(policy: PolicyFacts, discount_rate: float) -> BaseValue:
    """
    Actuarial baseline from policy facts alone.

    Blends the present value of the declared surrender value with the present
    value of the premium stream, nudged by the policy's simple return ratio,
    and never drops below 80% of the surrender value.
    """
    n = policy.contract_period_years
    pv_surrender = policy.surrender_value * discount_factor(n, discount_rate)
    pv_premiums = policy.annual_premium * annuity_factor(n, discount_rate)

    if policy.total_premium > 0:
        return_ratio = (policy.surrender_value + pv_premiums - policy.total_premium) / policy.total_premium
    else:
        return_ratio = 0.0
    return_ratio = clamp(return_ratio, *RETURN_RATIO_RANGE)

    blended = SURRENDER_WEIGHT * pv_surrender + PREMIUM_STREAM_WEIGHT * pv_premiums
    value = blended * (1.0 + RETURN_MULTIPLIER * return_ratio)
    floor = SURRENDER_FLOOR_RATIO * policy.surrender_value

    return BaseValue(
        value=max(value, floor, 0.0),
        pv_surrender=pv_surrender,
        pv_premiums=pv_premiums,
        return_ratio=return_ratio,
        floored=value < floor,
    )
