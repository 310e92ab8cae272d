import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import httpx

from .base import CompanyRating, CompanyRatingProvider, NEUTRAL_SCORE
from ..core.config import settings
from ..core.errors import CollaboratorError
from ..core.utils import clamp, normalize_key

BUNDLED_TABLE = Path(__file__).with_name("ratings.json")


def company_strength(entry: Mapping[str, Any], rating_scores: Mapping[str, float]) -> float:
    """Credit rating carries half the weight; solvency and persistence a quarter each."""
    rating = rating_scores.get(entry.get("credit_rating", ""), NEUTRAL_SCORE)
    solvency = clamp(float(entry.get("solvency_ratio", 0.0)) / 4.5)
    persistence = clamp(float(entry.get("persistence_rate", 0.0)))
    return clamp(0.5 * rating + 0.25 * solvency + 0.25 * persistence)


def product_performance(entry: Mapping[str, Any]) -> float:
    return clamp(
        0.6
        + 4.0 * float(entry.get("expected_return", 0.0))
        + 2.0 * float(entry.get("guaranteed_rate", 0.0))
        - float(entry.get("lapse_rate", 0.0))
        - 0.5 * float(entry.get("expense_ratio", 0.0))
    )


def _index(entries, score) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for entry in entries:
        value = score(entry)
        for name in (entry["name"], *entry.get("aliases", ())):
            out[normalize_key(name)] = value
    return out


class TableRatingProvider(CompanyRatingProvider):
    """
    Ratings from a structured table (bundled ratings.json by default).
    Adding an insurer or product is a data entry, never a code change.
    Unknown keys fall back to the neutral score and are flagged.
    """
    def __init__(self, table: Optional[Mapping[str, Any]] = None, neutral: float = NEUTRAL_SCORE):
        table = table if table is not None else load_rating_table()
        scores = table.get("credit_rating_scores", {})
        self.neutral = neutral
        self.companies = _index(table.get("companies", []), lambda e: company_strength(e, scores))
        self.products = _index(table.get("products", []), product_performance)

    async def lookup(self, company: str, product_type: str) -> CompanyRating:
        strength = self.companies.get(normalize_key(company))
        performance = self.products.get(normalize_key(product_type))
        return CompanyRating(
            company_strength=self.neutral if strength is None else strength,
            product_performance=self.neutral if performance is None else performance,
            known_company=strength is not None,
            known_product=performance is not None,
        )


class HttpRatingProvider(CompanyRatingProvider):
    """
    Client for an external ratings service exposing GET /ratings.
    A 404 means "unknown key" and maps to neutral scores, not an error.
    """
    def __init__(self, base_url: str, timeout: float = settings.COLLABORATOR_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def lookup(self, company: str, product_type: str) -> CompanyRating:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                r = await client.get(
                    f"{self.base_url}/ratings",
                    params={"company": company, "product_type": product_type},
                )
                if r.status_code == 404:
                    return CompanyRating(NEUTRAL_SCORE, NEUTRAL_SCORE, known_company=False, known_product=False)
                r.raise_for_status()
                j = r.json()
            except httpx.HTTPError as exc:
                raise CollaboratorError("rating", str(exc) or type(exc).__name__) from exc
        strength = j.get("company_strength")
        performance = j.get("product_performance")
        return CompanyRating(
            company_strength=NEUTRAL_SCORE if strength is None else clamp(float(strength)),
            product_performance=NEUTRAL_SCORE if performance is None else clamp(float(performance)),
            known_company=strength is not None,
            known_product=performance is not None,
        )


def load_rating_table(path: Optional[str] = None) -> Dict[str, Any]:
    path = path or settings.RATING_TABLE_PATH
    if path:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    return json.loads(BUNDLED_TABLE.read_text(encoding="utf-8"))


def rating_client() -> CompanyRatingProvider:
    """
    Factory picks table or http based on env flags.
    """
    if settings.RATING_PROVIDER == "http" and settings.RATING_BASE_URL:
        return HttpRatingProvider(settings.RATING_BASE_URL)
    return TableRatingProvider()
