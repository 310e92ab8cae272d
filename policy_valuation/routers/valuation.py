import json
from functools import lru_cache

from fastapi import APIRouter, Depends, Header, Response

from ..schemas import InvalidInputResponse, ValuationRequest, ValuationResponse
from ..services.valuation_service import ValuationInput, ValuationService
from ..core.security import require_api_key, rate_limit
from ..core.utils import weak_etag

router = APIRouter()

@lru_cache(maxsize=1)
def service_dep() -> ValuationService:
    # One instance per process so the market snapshot cache is shared.
    return ValuationService()

@router.post(
    "/valuation",
    response_model=ValuationResponse,
    responses={422: {"model": InvalidInputResponse}, 504: {"description": "Valuation timed out"}},
)
async def post_valuation(
    body: ValuationRequest,
    response: Response,
    if_none_match: str | None = Header(default=None, alias="if-none-match"),
    _auth = Depends(require_api_key),     # API key guard
    _lim  = Depends(rate_limit),          # Rate limiting
    svc: ValuationService = Depends(service_dep),
):
    """
    Values one policy. InvalidInputError (422) and the request timeout (504)
    are mapped by the app-level exception handlers.
    """
    result = await svc.value_policy(ValuationInput(
        policy=body.policy.model_dump(),
        document=body.document.to_domain() if body.document else None,
        market=body.market.to_domain() if body.market else None,
        real_estate=body.real_estate.to_domain() if body.real_estate else None,
    ))

    payload = result.to_dict()
    etag = weak_etag(json.dumps(payload, sort_keys=True, separators=(',',':')).encode("utf-8"))
    if if_none_match and if_none_match == etag:
        return Response(status_code=304, headers={"ETag": etag})
    payload["etag"] = etag
    response.headers["ETag"] = etag
    return payload
