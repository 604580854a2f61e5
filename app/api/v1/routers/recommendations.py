# app/api/v1/routers/recommendations.py
from datetime import datetime, timezone
from typing import Optional
import logging
import time

from fastapi import APIRouter, Query, Response

from app.api.deps import AggregatorDep
from app.api.v1.schemas.reco import CacheInvalidationOut, RecoBundleData, RecoBundleOut, RecoPageOut
from app.core.config import get_settings
from app.domain.models.identity import Identity
from app.domain.models.reco import Reason, RecoLimits
from app.utils.params import clamp_limit, clamp_offset, clamp_page, parse_int

logger = logging.getLogger(__name__)

router = APIRouter(tags=["recommendations"])


@router.get("/recommendations/mixed", response_model=RecoPageOut)
async def mixed_recommendations(
    response: Response,
    aggregator: AggregatorDep,
    user_id: Optional[str] = Query(None, alias="userId"),
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
) -> RecoPageOut:
    """
    Infinite-scroll feed without a product context.
    `offset` wins over `page` when both are given.
    """
    settings = get_settings()
    lim = clamp_limit(limit, settings.default_limit, settings.mixed_max_limit)
    off = clamp_offset(offset) if offset is not None else (clamp_page(page) - 1) * lim
    logger.info("Request: mixed user_id=%s limit=%s offset=%s", user_id, lim, off)

    t0 = time.perf_counter()
    result = await aggregator.get_mixed(Identity.parse(user_id), lim, off)
    logger.info("Response: mixed items=%s total=%s in %.4fs", result.count, result.total, time.perf_counter() - t0)
    response.headers["Cache-Control"] = settings.cache_control
    return RecoPageOut.from_page(result)


@router.delete("/recommendations/cache", response_model=CacheInvalidationOut)
async def invalidate_cache(
    aggregator: AggregatorDep,
    prefix: str = Query("", description="Key prefix after the namespace, e.g. 'v1:popular'"),
) -> CacheInvalidationOut:
    n = await aggregator.invalidate(prefix)
    return CacheInvalidationOut(prefix=prefix, invalidated=n)


@router.get("/recommendations/{user_id}", response_model=RecoBundleOut)
async def all_recommendations(
    user_id: str,
    response: Response,
    aggregator: AggregatorDep,
    personalized_limit: Optional[str] = Query(None, alias="personalizedLimit"),
    popular_limit: Optional[str] = Query(None, alias="popularLimit"),
    trending_limit: Optional[str] = Query(None, alias="trendingLimit"),
) -> RecoBundleOut:
    """
    Home-page bundle: personalized, popular and trending, fetched concurrently.
    'guest' (or an unknown id) gets the popular ranking as its personalized list.
    """
    settings = get_settings()
    limits = RecoLimits(
        personalized=clamp_limit(personalized_limit, settings.default_limit, settings.max_limit),
        popular=clamp_limit(popular_limit, settings.default_limit, settings.max_limit),
        trending=clamp_limit(trending_limit, settings.default_limit, settings.max_limit),
    )
    identity = Identity.parse(user_id)
    logger.info("Request: all_recommendations user_id=%s limits=%s", user_id, limits.model_dump())

    t0 = time.perf_counter()
    bundle = await aggregator.get_all(identity, limits)
    logger.info("Response: all_recommendations count=%s in %.4fs", bundle.count, time.perf_counter() - t0)
    response.headers["Cache-Control"] = settings.cache_control
    return RecoBundleOut(
        data=RecoBundleData(personalized=bundle.personalized, popular=bundle.popular, trending=bundle.trending),
        count=bundle.count,
        user_id=identity.user_id,
        generated_at=datetime.now(timezone.utc),
    )


async def _category_page(
    category: Reason,
    user_id: str,
    response: Response,
    aggregator,
    page: Optional[str],
    limit: Optional[str],
    window_days: Optional[int] = None,
) -> RecoPageOut:
    settings = get_settings()
    lim = clamp_limit(limit, settings.default_limit, settings.max_limit)
    pg = clamp_page(page)
    logger.info("Request: %s user_id=%s page=%s limit=%s", category.value, user_id, pg, lim)

    t0 = time.perf_counter()
    result = await aggregator.get_category_page(category, Identity.parse(user_id), pg, lim, window_days=window_days)
    logger.info(
        "Response: %s items=%s total=%s in %.4fs", category.value, result.count, result.total, time.perf_counter() - t0
    )
    response.headers["Cache-Control"] = settings.cache_control
    return RecoPageOut.from_page(result)


@router.get("/recommendations/{user_id}/personalized", response_model=RecoPageOut)
async def personalized_recommendations(
    user_id: str,
    response: Response,
    aggregator: AggregatorDep,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
) -> RecoPageOut:
    return await _category_page(Reason.PERSONALIZED, user_id, response, aggregator, page, limit)


@router.get("/recommendations/{user_id}/popular", response_model=RecoPageOut)
async def popular_recommendations(
    user_id: str,
    response: Response,
    aggregator: AggregatorDep,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
) -> RecoPageOut:
    return await _category_page(Reason.POPULAR, user_id, response, aggregator, page, limit)


@router.get("/recommendations/{user_id}/trending", response_model=RecoPageOut)
async def trending_recommendations(
    user_id: str,
    response: Response,
    aggregator: AggregatorDep,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    window_days: Optional[str] = Query(None, alias="windowDays"),
) -> RecoPageOut:
    days = parse_int(window_days, get_settings().trending_window_days)
    days = min(max(days, 1), 90)
    return await _category_page(Reason.TRENDING, user_id, response, aggregator, page, limit, window_days=days)
