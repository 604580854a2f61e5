import logging
import time
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from app.core.config import Settings, get_settings
from app.domain.models.reco import Reason, RecoItem
from app.domain.repositories.base import ActivityStore, SignalStore
from app.domain.services.popularity_svc import PopularityScorer

logger = logging.getLogger(__name__)


class TrendingAnalyzer:
    """
    Products ranked by activity volume over a trailing window.
    Trending is a best-effort signal: store failures yield an empty list.
    """

    def __init__(
        self,
        activity: ActivityStore,
        signals: SignalStore,
        scorer: PopularityScorer,
        settings: Optional[Settings] = None,
    ):
        self.activity = activity
        self.signals = signals
        self.scorer = scorer
        self.settings = settings or get_settings()

    async def trending(
        self,
        limit: Optional[int],
        window_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[RecoItem]:
        try:
            return await self._trending(limit, window_days, now)
        except Exception as e:
            logger.warning("trending degraded to empty window_days=%s limit=%s err=%s", window_days, limit, e)
            return []

    async def _trending(self, limit: Optional[int], window_days: Optional[int], now: Optional[datetime]) -> List[RecoItem]:
        t0 = time.perf_counter()
        now = now or datetime.now(timezone.utc)
        days = window_days or self.settings.trending_window_days
        since = now - timedelta(days=days)

        counts = {pid: n for pid, n in (await self.activity.count_events_by_product(since)).items() if n > 0}
        if not counts:
            logger.info("trending no activity since=%s", since.isoformat())
            return []

        signals = {s.product_id: s for s in await self.signals.get_product_signals(list(counts))}
        ranked = []
        for pid, n in counts.items():
            sig = signals.get(pid)
            if sig is None or not sig.available:
                continue
            ranked.append((n, self.scorer.score(sig, now), pid))
        ranked.sort(key=lambda t: (-t[0], -t[1], t[2]))

        boost = self.settings.trending_boost
        items = [RecoItem(product_id=pid, score=n * boost, reason=Reason.TRENDING) for n, _, pid in ranked[:limit]]
        logger.info(
            "trending done window_days=%s active=%s items=%s total_time=%.3fs",
            days, len(counts), len(items), time.perf_counter() - t0,
        )
        return items
