from ..core.utils import clamp
from .base_value import discount_factors
from .types import RealEstateAssessment, RealEstateFactors

HORIZON_YEARS = 5
RENTAL_HAIRCUT = 0.2
PROPERTY_WEIGHT = 0.1
APPRECIATION_WEIGHT = 0.5
MAX_PRICE_VOLATILITY = 0.3


def analyze_real_estate(factors: RealEstateFactors, discount_rate: float) -> RealEstateAssessment:
    """
    Values a property-linked rider as a separate asset component.

    The result is added to the aggregate, never multiplied into it.
    """
    linkage = clamp(factors.linkage_ratio)
    linked_value = max(factors.property_value, 0.0) * linkage
    discounts = discount_factors(HORIZON_YEARS, discount_rate)

    property_part = PROPERTY_WEIGHT * linked_value
    rent = max(factors.annual_rental_income, 0.0) * linkage * (1.0 - RENTAL_HAIRCUT)
    rental_part = float(rent * discounts.sum())
    growth = (1.0 + factors.appreciation_rate) ** HORIZON_YEARS - 1.0
    appreciation_part = float(APPRECIATION_WEIGHT * linked_value * growth * discounts[-1])

    risk = clamp(
        0.5 * (1.0 - clamp(factors.occupancy_rate))
        + 0.5 * clamp(factors.price_volatility / MAX_PRICE_VOLATILITY)
    )
    total = property_part + rental_part + appreciation_part

    return RealEstateAssessment(
        property_value_contribution=property_part,
        rental_income_contribution=rental_part,
        appreciation_contribution=appreciation_part,
        risk_score=risk,
        real_estate_adjustment=total * (1.0 - 0.5 * risk),
        sub_confidence=clamp(0.9 - 0.4 * risk, 0.3, 0.9),
    )
