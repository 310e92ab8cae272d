from typing import Generic, Optional, Protocol, TypeVar, Union
from dataclasses import dataclass
from ..core.utils import is_finite_number

# ----- Data shapes (thin & explicit) -----

@dataclass(frozen=True)
class MarketSnapshot:
    interest_rate: float      # e.g. 0.045 for 4.5%
    inflation_rate: float
    currency_rate: float      # policy currency index vs settlement baseline, 1.0 = parity
    volatility: float         # annualized, e.g. 0.15

    def is_finite(self) -> bool:
        return all(
            is_finite_number(v)
            for v in (self.interest_rate, self.inflation_rate, self.currency_rate, self.volatility)
        )

    def to_dict(self) -> dict:
        return {
            "interest_rate": self.interest_rate,
            "inflation_rate": self.inflation_rate,
            "currency_rate": self.currency_rate,
            "volatility": self.volatility,
        }

# Hong Kong market defaults: risk-free 4.5%, CPI 2.5%
DEFAULT_MARKET_SNAPSHOT = MarketSnapshot(
    interest_rate=0.045,
    inflation_rate=0.025,
    currency_rate=1.0,
    volatility=0.15,
)

@dataclass(frozen=True)
class CompanyRating:
    company_strength: float          # 0..1, higher is stronger
    product_performance: float       # 0..1, higher is better
    known_company: bool = True
    known_product: bool = True

    @property
    def complete(self) -> bool:
        return self.known_company and self.known_product

NEUTRAL_SCORE = 0.6
NEUTRAL_RATING = CompanyRating(
    company_strength=NEUTRAL_SCORE,
    product_performance=NEUTRAL_SCORE,
    known_company=False,
    known_product=False,
)

# ----- Fetch outcomes -----

T = TypeVar("T")

@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    degraded = False
    reason: Optional[str] = None

@dataclass(frozen=True)
class Degraded(Generic[T]):
    """A fallback value standing in for a failed or missing fetch."""
    value: T
    reason: str
    degraded = True

Fetched = Union[Ok[T], Degraded[T]]

# ----- Protocols (interfaces) -----

class MarketDataProvider(Protocol):
    async def fetch(self, company: str, product_type: str, location: Optional[str] = None) -> MarketSnapshot: ...

class CompanyRatingProvider(Protocol):
    async def lookup(self, company: str, product_type: str) -> CompanyRating: ...
