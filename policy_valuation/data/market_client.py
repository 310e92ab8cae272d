from typing import Optional
from .base import MarketDataProvider, MarketSnapshot, DEFAULT_MARKET_SNAPSHOT
from ..core.errors import CollaboratorError
from ..core.utils import fnv1a_32, seeded_rand, normalize_key
from ..core.config import settings
import httpx

class MockMarketData(MarketDataProvider):
    """
    Deterministic market feed. Jitters the Hong Kong defaults by a seed
    derived from company/product/location so repeat calls agree.
    """
    async def fetch(self, company: str, product_type: str, location: Optional[str] = None) -> MarketSnapshot:
        seed = fnv1a_32("|".join(normalize_key(p) for p in (company, product_type, location or "")))
        r = seeded_rand(seed, 4)
        base = DEFAULT_MARKET_SNAPSHOT
        return MarketSnapshot(
            interest_rate=round(base.interest_rate + (r[0] - 0.5) * 0.01, 5),    # ±0.5pp
            inflation_rate=round(base.inflation_rate + (r[1] - 0.5) * 0.01, 5),  # ±0.5pp
            currency_rate=round(base.currency_rate + (r[2] - 0.5) * 0.04, 5),    # ±2%
            volatility=round(base.volatility + (r[3] - 0.5) * 0.1, 5),           # ±5pp
        )

class HttpMarketData(MarketDataProvider):
    """
    Client for a market-data microservice exposing GET /market-snapshot.
    """
    def __init__(self, base_url: str, timeout: float = settings.COLLABORATOR_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def fetch(self, company: str, product_type: str, location: Optional[str] = None) -> MarketSnapshot:
        params = {"company": company, "product_type": product_type}
        if location:
            params["location"] = location
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                r = await client.get(f"{self.base_url}/market-snapshot", params=params)
                r.raise_for_status()
                j = r.json()
            except httpx.HTTPError as exc:
                raise CollaboratorError("market", str(exc) or type(exc).__name__) from exc
        try:
            return MarketSnapshot(
                interest_rate=float(j["interest_rate"]),
                inflation_rate=float(j["inflation_rate"]),
                currency_rate=float(j["currency_rate"]),
                volatility=float(j["volatility"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise CollaboratorError("market", f"malformed snapshot: {exc}") from exc

def market_client() -> MarketDataProvider:
    """
    Factory picks mock or http based on env flags.
    """
    if settings.MARKET_PROVIDER == "http" and settings.MARKET_BASE_URL:
        return HttpMarketData(settings.MARKET_BASE_URL)
    return MockMarketData()
