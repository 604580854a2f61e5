from functools import lru_cache
from typing import Literal
import os
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "StorefrontReco"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"
    LOG_COLOR: bool = True

    # Mongo (empty URI = no connection at startup)
    MONGO_URI: str = ""
    MONGO_DB: str = "storefront"
    store_timeout_ms: int = 3000               # maxTimeMS on aggregations

    # Redis (optional; in-memory cache when unset)
    REDIS_URL: str = ""

    # CORS, CSV of origins
    ALLOWED_ORIGINS: str = ""

    # Popularity weights
    RECO_WEIGHT_VIEW: float = Field(1.0, ge=0)
    RECO_WEIGHT_CART: float = Field(3.0, ge=0)
    RECO_WEIGHT_FAVORITE: float = Field(5.0, ge=0)
    RECO_WEIGHT_ORDER: float = Field(10.0, ge=0)

    # New inventory boost: linear from recency_boost (age 0) to 1.0 (window end)
    recency_boost: float = Field(1.5, ge=1)
    recency_window_days: float = Field(7, gt=0)

    # Trending
    trending_window_days: int = 7
    trending_boost: float = Field(1.5, ge=0)   # score = window event count * trending_boost

    # Personalization
    history_days: int = 90
    affinity_weight: float = Field(2.0, ge=0)
    min_history_events: int = Field(5, ge=1)

    # Cache config
    reco_cache_ttl: int = 60                   # seconds
    mixed_session_ttl: int = 5 * 60            # seconds
    reco_cache_prefix: str = "reco"

    # Limits
    default_limit: int = 12
    max_limit: int = 50
    mixed_max_limit: int = 48
    mixed_source_depth: int = 96               # per-source candidates in the mixed feed
    rank_depth: int = 1000                     # longest ranking kept per category

    # HTTP caching directive
    cache_control: str = "public, max-age=60, stale-while-revalidate=300"

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True, extra="ignore")

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
