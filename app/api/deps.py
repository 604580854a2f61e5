# app/api/deps.py
from typing import Annotated
from fastapi import Depends, Request
from app.core.config import get_settings
from app.core.versioning import resolve_version
from app.db.mongo import get_db
from app.db.redis import get_redis
from app.domain.repositories.activity_repo import ActivityRepo
from app.domain.repositories.product_repo import ProductRepo
from app.domain.repositories.reco_cache_repo import InMemoryRecoCache, RecoCache, RedisRecoCache
from app.domain.repositories.user_repo import UserRepo
from app.domain.services.aggregator_svc import RecommendationAggregator

VersionDep = Annotated[str, Depends(resolve_version)]

# Dependency for injecting the MongoDB database into endpoints/services
async def mongo_db(db = Depends(get_db)):
    return db

# Dependency for injecting the Redis client into endpoints/services
def redis_dep():
    return get_redis()

def reco_cache(request: Request, redis = Depends(redis_dep)) -> RecoCache:
    """Redis when connected, else one in-memory cache per application instance."""
    if redis is not None:
        return RedisRecoCache(redis)
    cache = getattr(request.app.state, "reco_cache", None)
    if cache is None:
        cache = request.app.state.reco_cache = InMemoryRecoCache()
    return cache

def activity_repo(db = Depends(mongo_db)) -> ActivityRepo:
    return ActivityRepo(db, timeout_ms=get_settings().store_timeout_ms)

def get_aggregator(
    version: VersionDep,
    db = Depends(mongo_db),
    cache: RecoCache = Depends(reco_cache),
) -> RecommendationAggregator:
    settings = get_settings()
    products = ProductRepo(db, timeout_ms=settings.store_timeout_ms)
    return RecommendationAggregator(
        signals=products,
        activity=ActivityRepo(db, timeout_ms=settings.store_timeout_ms),
        catalog=products,
        users=UserRepo(db),
        cache=cache,
        settings=settings,
        version=version,
    )

AggregatorDep = Annotated[RecommendationAggregator, Depends(get_aggregator)]
