import logging
from datetime import datetime
from typing import List, Optional

from app.domain.models.reco import Reason, RecoItem
from app.domain.repositories.base import SignalStore
from app.domain.services.constants import SIMILAR_PRICE_BAND
from app.domain.services.popularity_svc import PopularityScorer

logger = logging.getLogger(__name__)


class SimilarFinder:
    """
    Substitutable products: same category, price within ±30% of the source,
    ranked by popularity. Products without a price match on category only.
    """

    def __init__(self, signals: SignalStore, scorer: PopularityScorer):
        self.signals = signals
        self.scorer = scorer

    async def similar(self, product_id: str, limit: int, now: Optional[datetime] = None) -> List[RecoItem]:
        src = await self.signals.get_product_signal(product_id)
        if not src or not src.category_id:
            logger.info("similar no source product (or no category) product_id=%s", product_id)
            return []

        candidates = await self.signals.list_active_product_signals(category_id=src.category_id)
        if src.price is not None:
            lo = src.price * (1 - SIMILAR_PRICE_BAND)
            hi = src.price * (1 + SIMILAR_PRICE_BAND)
            candidates = [c for c in candidates if c.price is not None and lo <= c.price <= hi]
        candidates = [c for c in candidates if c.product_id != product_id]

        items = self.scorer.rank(candidates, limit, reason=Reason.SIMILAR, now=now)
        logger.debug("similar product_id=%s candidates=%s items=%s", product_id, len(candidates), len(items))
        return items
