from __future__ import annotations
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from app.core.config import Settings, get_settings
from app.domain.models.product import ProductSignal
from app.domain.models.reco import Reason, RecoItem

_SECONDS_PER_DAY = 24 * 3600


def _count(value: Optional[int]) -> int:
    # missing counters count as 0, negative ones are data errors
    return max(0, value or 0)


def _as_utc(dt: datetime) -> datetime:
    # Mongo hands back naive datetimes that are UTC
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


class PopularityScorer:
    """
    Pure popularity score: weighted engagement counters times a recency boost.

    The boost decays linearly from `recency_boost` for a brand new product to
    1.0 once the product is `recency_window_days` old. It multiplies the
    engagement base, so a product without engagement stays at 0.
    """

    def __init__(self, settings: Optional[Settings] = None):
        s = settings or get_settings()
        self.w_view = s.RECO_WEIGHT_VIEW
        self.w_cart = s.RECO_WEIGHT_CART
        self.w_favorite = s.RECO_WEIGHT_FAVORITE
        self.w_order = s.RECO_WEIGHT_ORDER
        self.recency_boost = s.recency_boost
        self.recency_window_days = s.recency_window_days

    def base(self, signal: ProductSignal) -> float:
        return (
            _count(signal.view_count) * self.w_view
            + _count(signal.cart_count) * self.w_cart
            + _count(signal.favorite_count) * self.w_favorite
            + _count(signal.order_count) * self.w_order
        )

    def age_factor(self, created_at: Optional[datetime], now: Optional[datetime] = None) -> float:
        if created_at is None:
            return 1.0
        now = now or datetime.now(timezone.utc)
        age_days = max(0.0, (_as_utc(now) - _as_utc(created_at)).total_seconds() / _SECONDS_PER_DAY)
        if age_days >= self.recency_window_days:
            return 1.0
        return 1.0 + (self.recency_boost - 1.0) * (1.0 - age_days / self.recency_window_days)

    def score(self, signal: ProductSignal, now: Optional[datetime] = None) -> float:
        return self.base(signal) * self.age_factor(signal.created_at, now)

    def rank(
        self,
        signals: Iterable[ProductSignal],
        limit: Optional[int],
        reason: Reason = Reason.POPULAR,
        now: Optional[datetime] = None,
    ) -> List[RecoItem]:
        """
        Rank active, in-stock products by score (desc), product_id as stable tie-break.
        """
        now = now or datetime.now(timezone.utc)
        scored = [(self.score(s, now), s.product_id) for s in signals if s.available]
        scored.sort(key=lambda t: (-t[0], t[1]))
        return [RecoItem(product_id=pid, score=sc, reason=reason) for sc, pid in scored[:limit]]
