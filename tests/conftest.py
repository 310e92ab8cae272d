import asyncio

import pytest

from policy_valuation.core.cache import SnapshotCache
from policy_valuation.core.config import Settings
from policy_valuation.data.base import DEFAULT_MARKET_SNAPSHOT, MarketSnapshot
from policy_valuation.data.rating_client import TableRatingProvider
from policy_valuation.services.valuation_service import ValuationService
from policy_valuation.valuation.types import DocumentExtraction


class FakeMarket:
    """Returns a fixed snapshot and counts calls."""
    def __init__(self, snapshot: MarketSnapshot = DEFAULT_MARKET_SNAPSHOT, delay: float = 0.0):
        self.snapshot = snapshot
        self.delay = delay
        self.calls = 0

    async def fetch(self, company, product_type, location=None):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.snapshot


class FailingMarket:
    def __init__(self, exc: Exception | None = None):
        self.exc = exc or RuntimeError("upstream unavailable")
        self.calls = 0

    async def fetch(self, company, product_type, location=None):
        self.calls += 1
        raise self.exc


class HangingMarket:
    async def fetch(self, company, product_type, location=None):
        await asyncio.sleep(60)


@pytest.fixture
def aia_policy() -> dict:
    return {
        "company": "AIA",
        "product_type": "Savings Plan",
        "contract_period_years": 10,
        "paid_years": 5,
        "annual_premium": 3000,
        "total_premium": 15000,
        "surrender_value": 12000,
        "currency": "USD",
    }


@pytest.fixture
def complete_document() -> DocumentExtraction:
    return DocumentExtraction(fields={
        "policy_number": "AIA12345678",
        "insured_name": "Chan Tai Man",
        "issue_date": "2019-03-01",
        "maturity_date": "2029-03-01",
        "company": "AIA",
        "product_type": "Savings Plan",
        "currency": "USD",
        "annual_premium": 3000,
        "surrender_value": 12000,
        "contract_period_years": 10,
    })


@pytest.fixture
def test_settings() -> Settings:
    return Settings(COLLABORATOR_TIMEOUT_SECONDS=0.2, REQUEST_TIMEOUT_SECONDS=5)


@pytest.fixture
def make_service(test_settings):
    def factory(market=None, ratings=None, cache=None, config=None) -> ValuationService:
        return ValuationService(
            market=market or FakeMarket(),
            ratings=ratings or TableRatingProvider(),
            cache=cache or SnapshotCache(),
            config=config or test_settings,
        )
    return factory
