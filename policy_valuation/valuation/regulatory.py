from ..core.utils import clamp, mean, normalize_key
from .documents import ISO_CURRENCIES
from .types import PolicyFacts, RegulatoryAssessment

# Jurisdictions whose secondary-market transfer rules are supported
SUPPORTED_CURRENCIES = frozenset({"USD", "HKD", "MOP"})

# Product family keyword -> regulatory risk; first match wins
PRODUCT_REGULATORY_RISK = (
    ("investment", 0.35),
    ("ilas", 0.35),
    ("linked", 0.35),
    ("annuity", 0.15),
    ("pension", 0.15),
    ("whole life", 0.1),
    ("endowment", 0.1),
    ("savings", 0.05),
)
UNKNOWN_PRODUCT_RISK = 0.2

EARLY_TRANSFER_YEARS = 2
EARLY_TRANSFER_RISK = 0.3


def jurisdiction_risk(policy: PolicyFacts) -> float:
    if policy.currency in SUPPORTED_CURRENCIES:
        return 0.0
    if policy.currency in ISO_CURRENCIES:
        return 0.2
    return 0.5


def product_risk(policy: PolicyFacts) -> float:
    key = normalize_key(policy.product_type)
    for keyword, risk in PRODUCT_REGULATORY_RISK:
        if keyword in key:
            return risk
    return UNKNOWN_PRODUCT_RISK


def early_transfer_risk(policy: PolicyFacts) -> float:
    return EARLY_TRANSFER_RISK if policy.paid_years < EARLY_TRANSFER_YEARS else 0.0


def regulatory_risk(policy: PolicyFacts) -> float:
    return clamp(mean((jurisdiction_risk(policy), product_risk(policy), early_transfer_risk(policy))))


def analyze_regulatory(policy: PolicyFacts) -> RegulatoryAssessment:
    issues = []
    if jurisdiction_risk(policy) > 0:
        issues.append(f"Policy currency {policy.currency} is outside the supported transfer jurisdictions.")
    if product_risk(policy) >= 0.3:
        issues.append("Investment-linked products need suitability checks before transfer.")
    if early_transfer_risk(policy) > 0:
        issues.append(f"Fewer than {EARLY_TRANSFER_YEARS} years paid; insurer consent is usually required.")

    risk = regulatory_risk(policy)
    return RegulatoryAssessment(
        compliance_score=1.0 - risk,
        regulatory_risk=risk,
        regulatory_adjustment=max(0.9, 1.0 - risk * 0.1),
        issues=tuple(issues),
    )
