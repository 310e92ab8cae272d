import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .routers.valuation import router as valuation_router, service_dep
from .schemas import InvalidInputResponse
from .core.config import settings
from .core.errors import InvalidInputError
from .core.logging import configure_logging, CorrelationIdMiddleware
from .core.metrics import PromMiddleware, metrics_endpoint

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("starting", extra={"env": settings.ENV, "market_provider": settings.MARKET_PROVIDER,
                                   "rating_provider": settings.RATING_PROVIDER})
    yield
    # Only close the shared cache if a request ever built the service
    if service_dep.cache_info().currsize:
        await service_dep().cache.aclose()

async def invalid_input_handler(request: Request, exc: InvalidInputError):
    body = InvalidInputResponse(fields=exc.fields, message=str(exc))
    return JSONResponse(status_code=422, content=body.model_dump())

async def timeout_handler(request: Request, exc: asyncio.TimeoutError):
    logger.warning("valuation timed out", extra={"path": request.url.path})
    return JSONResponse(status_code=504, content={"detail": "Valuation timed out"})

def create_app() -> FastAPI:
    """
    App factory so tests and ASGI servers can instantiate cleanly.
    """
    configure_logging()

    app = FastAPI(
        title="Insurance Policy Transfer Valuation API",
        version="1.0.0",
        description="Prices in-force insurance policies for secondary-market transfer, "
                    "with confidence scoring, risk grading and recommendations.",
        lifespan=lifespan,
    )

    allow_origins = [o.strip() for o in settings.ALLOW_ORIGINS.split(",")] if settings.ALLOW_ORIGINS else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["ETag", "X-Request-Id"],
    )
    app.add_middleware(CorrelationIdMiddleware)
    if settings.PROMETHEUS_ENABLED:
        app.add_middleware(PromMiddleware)

    # Domain errors map to status codes in one place
    app.add_exception_handler(InvalidInputError, invalid_input_handler)
    app.add_exception_handler(asyncio.TimeoutError, timeout_handler)

    @app.get("/v1/health", tags=["meta"])
    def health():
        return {"status": "ok"}

    @app.get("/v1/ping", tags=["meta"])
    def ping():
        return {"pong": True}

    if settings.PROMETHEUS_ENABLED:
        app.add_route("/v1/metrics", metrics_endpoint, methods=["GET"])

    app.include_router(valuation_router, prefix="/v1", tags=["valuation"])
    return app

app = create_app()
