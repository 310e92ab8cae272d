import os
from pydantic import BaseModel

class Settings(BaseModel):
    # Basic
    ENV: str = os.getenv("ENV", "dev")
    DEFAULT_CURRENCY: str = os.getenv("CURRENCY", "USD")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Valuation constants
    DISCOUNT_RATE: float = float(os.getenv("DISCOUNT_RATE", "0.045"))          # HK risk-free rate
    PLATFORM_FEE_RATE: float = float(os.getenv("PLATFORM_FEE_RATE", "0.03"))
    TRANSFER_FIXED_FEE: float = float(os.getenv("TRANSFER_FIXED_FEE", "50"))
    REFERENCE_TICKET: float = float(os.getenv("REFERENCE_TICKET", "50000"))   # typical buyer ticket size

    # Market snapshot cache
    MARKET_CACHE_TTL_SECONDS: int = int(os.getenv("MARKET_CACHE_TTL_SECONDS", "300"))
    MARKET_CACHE_MAXSIZE: int = int(os.getenv("MARKET_CACHE_MAXSIZE", "1024"))

    # Timeouts
    COLLABORATOR_TIMEOUT_SECONDS: float = float(os.getenv("COLLABORATOR_TIMEOUT_SECONDS", "10"))
    REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))

    # Collaborators
    MARKET_PROVIDER: str = os.getenv("MARKET_PROVIDER", "mock")    # mock | http
    MARKET_BASE_URL: str | None = os.getenv("MARKET_BASE_URL")
    RATING_PROVIDER: str = os.getenv("RATING_PROVIDER", "table")   # table | http
    RATING_BASE_URL: str | None = os.getenv("RATING_BASE_URL")
    RATING_TABLE_PATH: str | None = os.getenv("RATING_TABLE_PATH")  # defaults to bundled ratings.json

    # Security
    API_KEY: str | None = os.getenv("API_KEY")
    RATE_LIMIT_RPM: int = int(os.getenv("RATE_LIMIT_RPM", "60"))

    # CORS
    ALLOW_ORIGINS: str = os.getenv("ALLOW_ORIGINS", "*")

    # Shared cache backend
    USE_REDIS: bool = os.getenv("USE_REDIS", "false").lower() == "true"
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Metrics
    PROMETHEUS_ENABLED: bool = os.getenv("PROMETHEUS_ENABLED", "true").lower() == "true"

settings = Settings()
