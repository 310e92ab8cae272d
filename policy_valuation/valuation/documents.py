"""
Scores fields extracted from a scanned policy document.

The score only says how much the pipeline trusts the data it was handed;
it never decides whether a document is genuine.

    confidence = (1.0 - 0.1 * missing - 0.15 * errors + 0.1 * optional_fraction) / 1.1

The division by the best achievable raw score keeps a complete, clean
extraction below the clamp ceiling unless every optional field is present
too, so each additional penalty always lowers the result.
"""
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from ..core.utils import clamp
from .types import DocumentAssessment, DocumentExtraction

REQUIRED_FIELDS = ("policy_number", "insured_name", "issue_date", "maturity_date")
OPTIONAL_FIELDS = (
    "company",
    "product_type",
    "currency",
    "annual_premium",
    "surrender_value",
    "contract_period_years",
)
DATE_FIELDS = ("issue_date", "maturity_date")

MISSING_PENALTY = 0.10
ERROR_PENALTY = 0.15
COMPLETENESS_BONUS = 0.10

POLICY_NUMBER_RE = re.compile(r"^[A-Z0-9]{6,20}$", re.IGNORECASE)

# Canonical layout first; the rest are accepted but get an ISO suggestion.
DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d", "%d/%m/%Y")
SUGGESTIBLE_DATE_FORMATS = ("%d-%m-%Y", "%d.%m.%Y", "%Y%m%d", "%d %b %Y", "%d %B %Y", "%b %d, %Y")

ISO_CURRENCIES = frozenset({
    "AED", "AUD", "BRL", "CAD", "CHF", "CNY", "CZK", "DKK", "EUR", "GBP",
    "HKD", "IDR", "ILS", "INR", "JPY", "KRW", "MOP", "MXN", "MYR", "NOK",
    "NZD", "PHP", "PLN", "SAR", "SEK", "SGD", "THB", "TRY", "TWD", "USD",
    "VND", "ZAR",
})
CURRENCY_SYMBOLS = {
    "$": "USD", "US$": "USD", "HK$": "HKD", "S$": "SGD", "NT$": "TWD",
    "€": "EUR", "£": "GBP", "¥": "JPY", "₩": "KRW", "RMB": "CNY", "元": "CNY",
    "원": "KRW",
}


def parse_document_date(value: Any) -> Optional[date]:
    """Parse a date in one of the accepted layouts; None when it is not a valid calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _suggest_date(value: Any) -> Optional[str]:
    text = str(value).strip()
    for fmt in SUGGESTIBLE_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    return None


def _suggest_policy_number(value: Any) -> Optional[str]:
    # Separators and spacing are OCR noise, not part of the number
    candidate = re.sub(r"[^A-Za-z0-9]", "", str(value)).upper()
    if POLICY_NUMBER_RE.match(candidate):
        return candidate
    return None


def _suggest_currency(value: Any) -> Optional[str]:
    text = str(value).strip()
    if text.upper() in ISO_CURRENCIES:
        return text.upper()
    return CURRENCY_SYMBOLS.get(text.upper()) or CURRENCY_SYMBOLS.get(text)


def validate_document(extraction: Optional[DocumentExtraction]) -> DocumentAssessment:
    if extraction is None or not (extraction.fields or extraction.present):
        return DocumentAssessment(
            confidence=0.0,
            missing_fields=REQUIRED_FIELDS,
            validation_errors=(),
            suggested_corrections={},
            provided=False,
        )

    missing: List[str] = []
    errors: List[str] = []
    corrections: Dict[str, str] = {}

    for name in REQUIRED_FIELDS:
        if not extraction.has(name):
            missing.append(name)

    parsed_dates: Dict[str, date] = {}
    for name in DATE_FIELDS:
        if name in missing:
            continue
        raw = extraction.get(name)
        parsed = parse_document_date(raw) if raw is not None else None
        if parsed is None:
            errors.append(f"{name}: not a valid calendar date ({raw!r})")
            suggestion = _suggest_date(raw) if raw is not None else None
            if suggestion:
                corrections[name] = suggestion
        else:
            parsed_dates[name] = parsed
            if str(raw).strip() != parsed.isoformat():
                corrections[name] = parsed.isoformat()

    if len(parsed_dates) == 2 and parsed_dates["maturity_date"] <= parsed_dates["issue_date"]:
        errors.append("maturity_date: must fall after issue_date")

    if "policy_number" not in missing:
        raw = extraction.get("policy_number")
        if raw is None or not POLICY_NUMBER_RE.match(str(raw).strip()):
            errors.append(f"policy_number: expected 6-20 alphanumeric characters ({raw!r})")
            suggestion = _suggest_policy_number(raw) if raw is not None else None
            if suggestion:
                corrections["policy_number"] = suggestion

    if extraction.has("currency"):
        raw = extraction.get("currency")
        if raw is None or str(raw).strip() not in ISO_CURRENCIES:
            errors.append(f"currency: not a recognized ISO 4217 code ({raw!r})")
            suggestion = _suggest_currency(raw) if raw is not None else None
            if suggestion:
                corrections["currency"] = suggestion

    present_optional = sum(1 for name in OPTIONAL_FIELDS if extraction.has(name))
    raw_score = (
        1.0
        - MISSING_PENALTY * len(missing)
        - ERROR_PENALTY * len(errors)
        + COMPLETENESS_BONUS * present_optional / len(OPTIONAL_FIELDS)
    )
    confidence = clamp(raw_score / (1.0 + COMPLETENESS_BONUS))

    return DocumentAssessment(
        confidence=confidence,
        missing_fields=tuple(missing),
        validation_errors=tuple(errors),
        suggested_corrections=corrections,
        provided=True,
    )
