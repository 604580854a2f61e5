# app/api/v1/routers/activity.py
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query

from app.api.deps import activity_repo
from app.api.v1.schemas.reco import ActivitySummaryOut
from app.domain.services.activity_summary_svc import get_activity_summary_svc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("/summary", response_model=ActivitySummaryOut)
async def activity_summary(
    timeframe: str = Query("day", description="day | week | month"),
    product_id: Optional[str] = Query(None, alias="productId"),
    activity = Depends(activity_repo),
) -> ActivitySummaryOut:
    """Counts of VIEW / CART_ADD / FAVORITE / PURCHASE events over the timeframe."""
    logger.info("Request: activity_summary timeframe=%s product_id=%s", timeframe, product_id)
    res = await get_activity_summary_svc(activity, timeframe=timeframe, product_id=product_id)
    return ActivitySummaryOut(**res)
