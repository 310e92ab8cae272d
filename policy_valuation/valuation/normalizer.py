"""Validate raw policy facts and fill documented defaults."""
import math
from typing import Any, Mapping

from ..core.config import settings
from ..core.errors import InvalidInputError
from .types import PolicyFacts

REQUIRED_FIELDS = ("company", "product_type", "contract_period_years", "paid_years", "annual_premium")
MONEY_FIELDS = ("annual_premium", "total_premium", "surrender_value")

# Surrender charge assumed when no surrender value was declared.
DEFAULT_SURRENDER_RATIO = 0.9
# Longest policy term accepted; longer terms are rejected, not truncated.
MAX_CONTRACT_YEARS = 100


def _number(raw: Mapping[str, Any], name: str, bad: list[str]) -> float | None:
    value = raw.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        bad.append(name)
        return None
    if not math.isfinite(number):
        bad.append(name)
        return None
    return number


def _whole_years(value: float | None, name: str, bad: list[str]) -> int | None:
    if value is None:
        return None
    if value != int(value):
        bad.append(name)
        return None
    return int(value)


def normalize_policy(raw: Mapping[str, Any]) -> PolicyFacts:
    """
    Returns a fully populated PolicyFacts or raises InvalidInputError listing
    every offending field. Nothing is silently sanitized.
    """
    bad: list[str] = []

    company = str(raw.get("company") or "").strip()
    product_type = str(raw.get("product_type") or "").strip()
    if not company:
        bad.append("company")
    if not product_type:
        bad.append("product_type")

    numbers = {name: _number(raw, name, bad) for name in
               ("contract_period_years", "paid_years", *MONEY_FIELDS)}
    for name in REQUIRED_FIELDS:
        if name in numbers and numbers[name] is None and name not in bad:
            bad.append(name)

    contract = _whole_years(numbers["contract_period_years"], "contract_period_years", bad)
    paid = _whole_years(numbers["paid_years"], "paid_years", bad)

    if contract is not None and not 0 < contract <= MAX_CONTRACT_YEARS:
        bad.append("contract_period_years")
    if paid is not None and paid < 0:
        bad.append("paid_years")
    if contract is not None and paid is not None and contract > 0 and paid > contract:
        bad.append("paid_years")
    for name in MONEY_FIELDS:
        if numbers[name] is not None and numbers[name] < 0:
            bad.append(name)

    if bad:
        raise InvalidInputError(bad)

    annual = numbers["annual_premium"]
    total = numbers["total_premium"]
    if total is None:
        total = annual * contract
    surrender = numbers["surrender_value"]
    if surrender is None:
        surrender = DEFAULT_SURRENDER_RATIO * annual * paid

    currency = str(raw.get("currency") or settings.DEFAULT_CURRENCY).strip().upper()
    location = raw.get("location")

    return PolicyFacts(
        company=company,
        product_type=product_type,
        contract_period_years=contract,
        paid_years=paid,
        annual_premium=annual,
        total_premium=total,
        surrender_value=surrender,
        currency=currency,
        has_real_estate_rider=bool(raw.get("has_real_estate_rider", False)),
        location=str(location).strip() if location else None,
    )
