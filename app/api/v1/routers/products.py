# app/api/v1/routers/products.py
from typing import Optional
import time
import logging

from fastapi import APIRouter, Query, Response

from app.api.deps import AggregatorDep
from app.api.v1.schemas.reco import RecoPageOut
from app.core.config import get_settings
from app.domain.models.identity import Identity
from app.utils.params import clamp_limit, clamp_offset, clamp_page

logger = logging.getLogger(__name__)

router = APIRouter(tags=["products"])


@router.get("/products/{product_id}/mixed-recommendations", response_model=RecoPageOut)
async def product_mixed_recommendations(
    product_id: str,
    response: Response,
    aggregator: AggregatorDep,
    user_id: Optional[str] = Query(None, alias="userId"),
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
) -> RecoPageOut:
    """
    "You may also like" feed for a product page: similar, personalized,
    trending and popular merged without duplicates. Page through with
    `offset` (or `page`) while keeping `limit` fixed.
    """
    settings = get_settings()
    lim = clamp_limit(limit, settings.default_limit, settings.mixed_max_limit)
    off = clamp_offset(offset) if offset is not None else (clamp_page(page) - 1) * lim
    logger.info(
        "Request: product_mixed product_id=%s user_id=%s limit=%s offset=%s", product_id, user_id, lim, off
    )

    start_time = time.perf_counter()
    res = await aggregator.get_mixed(Identity.parse(user_id), lim, off, product_id=product_id)
    logger.info(
        "Response: product_mixed product_id=%s count=%s total=%s elapsed_time=%.4fs",
        product_id, res.count, res.total, time.perf_counter() - start_time,
    )
    response.headers["Cache-Control"] = settings.cache_control
    return RecoPageOut.from_page(res)


@router.get("/products/{product_id}/similar", response_model=RecoPageOut)
async def similar_products(
    product_id: str,
    response: Response,
    aggregator: AggregatorDep,
    limit: Optional[str] = Query(None),
) -> RecoPageOut:
    """Same category, price within ±30%, ranked by popularity."""
    settings = get_settings()
    lim = clamp_limit(limit, settings.default_limit, settings.max_limit)
    logger.info("Request: similar_products product_id=%s limit=%s", product_id, lim)

    start_time = time.perf_counter()
    res = await aggregator.get_similar(product_id, lim)
    logger.info(
        "Response: similar_products product_id=%s count=%s elapsed_time=%.4fs",
        product_id, res.count, time.perf_counter() - start_time,
    )
    response.headers["Cache-Control"] = settings.cache_control
    return RecoPageOut.from_page(res)
