import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from app.domain.models.activity import ActivityType
from app.domain.repositories.base import ActivityStore
from app.domain.services.constants import TIMEFRAMES

logger = logging.getLogger(__name__)


async def get_activity_summary_svc(
    activity: ActivityStore,
    timeframe: str = "day",
    product_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Event counts per activity type over the last day / week / month,
    optionally for a single product. Unknown timeframes read as 'day'.
    """
    t0 = time.perf_counter()
    if timeframe not in TIMEFRAMES:
        timeframe = "day"
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=TIMEFRAMES[timeframe])

    counts = await activity.count_events_by_type(since, product_id=product_id)
    by_type = {t.name: counts.get(t.value, 0) for t in ActivityType}
    logger.info(
        "activity_summary done timeframe=%s product_id=%s total=%s time=%.3fs",
        timeframe, product_id, sum(by_type.values()), time.perf_counter() - t0,
    )
    return {
        "timeframe": timeframe,
        "since": since.isoformat(),
        "product_id": product_id,
        "counts": by_type,
        "total": sum(by_type.values()),
    }
