import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, List, Mapping, Optional

from ..core.cache import SnapshotCache, snapshot_cache, snapshot_key
from ..core.config import Settings, settings
from ..core.errors import CollaboratorError, CollaboratorTimeoutError, DegradedDataWarning
from ..core.metrics import DEGRADED_INPUTS, SNAPSHOT_FETCHES, VALUATIONS, VALUATION_LATENCY
from ..data.base import (
    DEFAULT_MARKET_SNAPSHOT,
    NEUTRAL_RATING,
    CompanyRating,
    CompanyRatingProvider,
    Degraded,
    Fetched,
    MarketDataProvider,
    MarketSnapshot,
    Ok,
)
from ..data.market_client import market_client
from ..data.rating_client import rating_client
from ..valuation.aggregate import aggregate, market_projections, overall_confidence, scenario_values
from ..valuation.base_value import calculate_base_value
from ..valuation.documents import validate_document
from ..valuation.grading import grade_for
from ..valuation.liquidity import analyze_liquidity
from ..valuation.market import analyze_market
from ..valuation.normalizer import normalize_policy
from ..valuation.real_estate import analyze_real_estate
from ..valuation.recommendations import RecommendationInputs, generate_recommendations
from ..valuation.regulatory import analyze_regulatory
from ..valuation.risk import assess_risk
from ..valuation.types import (
    DocumentExtraction,
    PolicyFacts,
    RealEstateFactors,
    ValuationResult,
)

logger = logging.getLogger(__name__)

# Confidence multiplier when company/product ratings fell back to neutral scores
RATING_DEGRADED_CONFIDENCE = 0.85


@dataclass(frozen=True)
class ValuationInput:
    policy: Mapping[str, Any]
    document: Optional[DocumentExtraction] = None
    market: Optional[MarketSnapshot] = None
    real_estate: Optional[RealEstateFactors] = None


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class ValuationService:
    """
    Orchestrates:
      policy facts → normalize → (market snapshot ∥ company rating)
      → (market ∥ risk ∥ liquidity ∥ regulatory ∥ real estate) → aggregate
      → confidence, grade, recommendations

    Only InvalidInputError escapes. Collaborator failures become fallback
    values plus a DegradedDataWarning and a confidence penalty.
    """
    def __init__(
        self,
        market: Optional[MarketDataProvider] = None,
        ratings: Optional[CompanyRatingProvider] = None,
        cache: Optional[SnapshotCache] = None,
        config: Settings = settings,
        today: Callable[[], date] = _utc_today,
    ):
        self.market = market or market_client()
        self.ratings = ratings or rating_client()
        self.cache = cache or snapshot_cache()
        self.config = config
        self.today = today

    async def value_policy(self, request: ValuationInput) -> ValuationResult:
        policy = normalize_policy(request.policy)
        start = time.perf_counter()
        result = await asyncio.wait_for(
            self._evaluate(policy, request),
            timeout=self.config.REQUEST_TIMEOUT_SECONDS,
        )
        VALUATION_LATENCY.observe(time.perf_counter() - start)
        VALUATIONS.labels(grade=result.risk_grade.value).inc()
        logger.info(
            "valuation complete",
            extra={
                "company": policy.company,
                "product_type": policy.product_type,
                "final_value": round(result.final_value, 2),
                "risk_grade": result.risk_grade.value,
                "confidence": round(result.confidence, 4),
                "degraded": result.degraded,
            },
        )
        return result

    # ----- collaborator resolution -----

    async def resolve_market(self, policy: PolicyFacts, override: Optional[MarketSnapshot] = None) -> Fetched[MarketSnapshot]:
        if override is not None:
            if override.is_finite():
                SNAPSHOT_FETCHES.labels(outcome="override").inc()
                return Ok(override)
            SNAPSHOT_FETCHES.labels(outcome="degraded").inc()
            return Degraded(DEFAULT_MARKET_SNAPSHOT, "supplied market snapshot has non-finite values")

        key = snapshot_key(policy.company, policy.product_type, self.today())
        timeout = self.config.COLLABORATOR_TIMEOUT_SECONDS
        try:
            snapshot = await asyncio.wait_for(
                self.cache.get_or_fetch(
                    key, lambda: self.market.fetch(policy.company, policy.product_type, policy.location)
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            reason = str(CollaboratorTimeoutError("market", timeout))
        except CollaboratorError as exc:
            reason = str(exc)
        except Exception as exc:  # collaborator boundary: any provider fault degrades
            logger.warning("market provider failed", exc_info=True)
            reason = f"market: {type(exc).__name__}: {exc}"
        else:
            SNAPSHOT_FETCHES.labels(outcome="live").inc()
            return Ok(snapshot)

        SNAPSHOT_FETCHES.labels(outcome="degraded").inc()
        fallback = self.cache.last_good(key)
        if fallback is not None:
            reason += "; using last cached snapshot"
        else:
            fallback = DEFAULT_MARKET_SNAPSHOT
            reason += "; using default snapshot"
        logger.warning("market snapshot degraded", extra={"cache_key": key, "reason": reason})
        return Degraded(fallback, reason)

    async def resolve_rating(self, policy: PolicyFacts) -> Fetched[CompanyRating]:
        timeout = self.config.COLLABORATOR_TIMEOUT_SECONDS
        try:
            rating = await asyncio.wait_for(
                self.ratings.lookup(policy.company, policy.product_type), timeout=timeout
            )
        except asyncio.TimeoutError:
            return Degraded(NEUTRAL_RATING, str(CollaboratorTimeoutError("rating", timeout)))
        except CollaboratorError as exc:
            return Degraded(NEUTRAL_RATING, str(exc))
        except Exception as exc:  # collaborator boundary: any provider fault degrades
            logger.warning("rating provider failed", exc_info=True)
            return Degraded(NEUTRAL_RATING, f"rating: {type(exc).__name__}: {exc}")

        unknown = [
            label for label, known in (("company", rating.known_company), ("product", rating.known_product))
            if not known
        ]
        if unknown:
            return Degraded(rating, f"rating: unknown {' and '.join(unknown)}; neutral scores used")
        return Ok(rating)

    # ----- pipeline -----

    async def _real_estate(self, policy: PolicyFacts, factors: Optional[RealEstateFactors]):
        if not policy.has_real_estate_rider or factors is None:
            return None
        return await asyncio.to_thread(analyze_real_estate, factors, self.config.DISCOUNT_RATE)

    async def _evaluate(self, policy: PolicyFacts, request: ValuationInput) -> ValuationResult:
        cfg = self.config
        warnings: List[DegradedDataWarning] = []

        document = validate_document(request.document)
        if not document.provided:
            warnings.append(DegradedDataWarning("document", "no document extraction supplied"))
        elif document.missing_fields or document.validation_errors:
            warnings.append(DegradedDataWarning(
                "document",
                f"{len(document.missing_fields)} missing and "
                f"{len(document.validation_errors)} invalid field(s)",
            ))

        market_fetch, rating_fetch = await asyncio.gather(
            self.resolve_market(policy, request.market),
            self.resolve_rating(policy),
        )
        if market_fetch.degraded:
            warnings.append(DegradedDataWarning("market", market_fetch.reason))
        if rating_fetch.degraded:
            warnings.append(DegradedDataWarning("rating", rating_fetch.reason))
        if policy.has_real_estate_rider and request.real_estate is None:
            warnings.append(DegradedDataWarning("real_estate", "rider declared but no property factors supplied"))
        elif request.real_estate is not None and not policy.has_real_estate_rider:
            logger.info("real estate factors ignored: policy declares no rider")

        snapshot = market_fetch.value
        base = calculate_base_value(policy, cfg.DISCOUNT_RATE)
        liquidity_args = (cfg.REFERENCE_TICKET, cfg.PLATFORM_FEE_RATE, cfg.TRANSFER_FIXED_FEE)

        market, risk, liquidity, regulatory, real_estate = await asyncio.gather(
            asyncio.to_thread(analyze_market, policy, snapshot, market_fetch.degraded),
            asyncio.to_thread(assess_risk, policy, snapshot, rating_fetch.value, *liquidity_args),
            asyncio.to_thread(analyze_liquidity, policy, snapshot, *liquidity_args),
            asyncio.to_thread(analyze_regulatory, policy),
            self._real_estate(policy, request.real_estate),
        )

        breakdown = aggregate(base.value, market, risk, liquidity, regulatory, document, real_estate)
        final_value = breakdown.pop("final_value")
        scenarios = scenario_values(base.value, market, risk, liquidity, regulatory, document, real_estate)
        confidence = overall_confidence(
            document, market, risk, liquidity, regulatory, real_estate,
            rating_confidence=RATING_DEGRADED_CONFIDENCE if rating_fetch.degraded else 1.0,
        )
        recommendations = generate_recommendations(RecommendationInputs(
            policy=policy,
            document=document,
            market=market,
            risk=risk,
            liquidity=liquidity,
            regulatory=regulatory,
            real_estate=real_estate,
            market_degraded=market_fetch.degraded,
        ))

        for warning in warnings:
            DEGRADED_INPUTS.labels(source=warning.source).inc()

        surrender = policy.surrender_value
        return ValuationResult(
            final_value=final_value,
            base_value=base.value,
            risk_grade=grade_for(risk.composite),
            confidence=confidence,
            composite_risk=risk.composite,
            breakdown=breakdown,
            recommendations=recommendations,
            risk_factors=risk.factors,
            document=document,
            platform_price=final_value * (1.0 - cfg.PLATFORM_FEE_RATE),
            premium_rate=(final_value - surrender) / surrender * 100.0 if surrender > 0 else 0.0,
            scenarios=scenarios,
            projections=market_projections(final_value, snapshot),
            currency=policy.currency,
            warnings=tuple(warnings),
        )
