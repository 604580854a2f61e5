import asyncio
import logging
import time
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import AbstractSet, Dict, List, Optional

from app.core.config import Settings, get_settings
from app.domain.models.activity import ActivityEvent
from app.domain.models.reco import Reason, RecoItem
from app.domain.repositories.base import ActivityStore, SignalStore
from app.domain.services.constants import INTEREST_WEIGHTS
from app.domain.services.popularity_svc import PopularityScorer

logger = logging.getLogger(__name__)


def category_interests(events: List[ActivityEvent], categories: Dict[str, Optional[str]]) -> Dict[str, float]:
    """Sum of interest weights per category over the user's events."""
    interests: Dict[str, float] = defaultdict(float)
    for ev in events:
        cat = categories.get(ev.product_id)
        if cat:
            interests[cat] += INTEREST_WEIGHTS[ev.activity_type]
    return dict(interests)


class PersonalizationEngine:
    """
    Per-user ranking: popularity prior scaled by the user's category affinity.

      score = popularity * (1 + affinity_weight * share * confidence)

    `share` is the category's part of the user's total interest and
    `confidence` grows with history size up to `min_history_events`, so a thin
    history stays close to the plain popularity ranking.

    Only call this for known users. Any failure falls back to the popularity
    ranking tagged 'personalized'; `personalize` never raises.
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

    async def personalize(self, user_id: str, limit: Optional[int], now: Optional[datetime] = None) -> List[RecoItem]:
        t0 = time.perf_counter()
        now = now or datetime.now(timezone.utc)
        try:
            items = await self._personalize(user_id, limit, now)
        except Exception as e:
            logger.warning("personalize failed user_id=%s; popularity fallback. err=%s", user_id, e)
            items = await self.fallback(limit, now)
        logger.info("personalize done user_id=%s items=%s total_time=%.3fs", user_id, len(items), time.perf_counter() - t0)
        return items

    async def fallback(
        self,
        limit: Optional[int],
        now: Optional[datetime] = None,
        exclude: AbstractSet[str] = frozenset(),
    ) -> List[RecoItem]:
        try:
            signals = await self.signals.list_active_product_signals()
        except Exception as e:
            logger.error("personalize fallback unavailable err=%s", e)
            return []
        signals = [s for s in signals if s.product_id not in exclude]
        return self.scorer.rank(signals, limit, reason=Reason.PERSONALIZED, now=now)

    async def _personalize(self, user_id: str, limit: Optional[int], now: datetime) -> List[RecoItem]:
        if not user_id or not user_id.strip():
            raise ValueError("empty user id")

        since = now - timedelta(days=self.settings.history_days)
        # interests come from the recent window; purchases are excluded whatever their age
        events, purchased = await asyncio.gather(
            self.activity.list_events_for_subject(user_id, since=since),
            self.activity.list_purchased_product_ids(user_id),
        )
        if not events:
            logger.info("personalize cold start user_id=%s; popularity fallback", user_id)
            return await self.fallback(limit, now, exclude=purchased)

        seen = {ev.product_id for ev in events}
        history = await self.signals.get_product_signals(list(seen))
        interests = category_interests(events, {s.product_id: s.category_id for s in history})
        total = sum(interests.values())
        confidence = min(1.0, len(events) / self.settings.min_history_events)
        logger.debug(
            "personalize user_id=%s events=%s purchased=%s interests=%s confidence=%.2f",
            user_id, len(events), len(purchased), interests, confidence,
        )

        scored = []
        for sig in await self.signals.list_active_product_signals():
            if not sig.available or sig.product_id in purchased:
                continue
            share = interests.get(sig.category_id, 0.0) / total if total else 0.0
            boost = 1.0 + self.settings.affinity_weight * share * confidence
            scored.append((self.scorer.score(sig, now) * boost, sig.product_id))
        scored.sort(key=lambda t: (-t[0], t[1]))

        return [RecoItem(product_id=pid, score=sc, reason=Reason.PERSONALIZED) for sc, pid in scored[:limit]]
