from typing import Iterable, List

from app.domain.models.product import Product
from app.domain.models.reco import RecoItem, RecoItemOut


def join_scores_with_products(scores: Iterable[RecoItem], products: Iterable[Product]) -> List[RecoItemOut]:
    """
    Attach product detail to each score, keeping score order.

    A score is dropped when its product is missing from `products`, inactive,
    or out of stock (stock == 0). Unknown stock (None) is kept.
    """
    by_id = {p.product_id: p for p in products}
    out: List[RecoItemOut] = []
    for s in scores:
        p = by_id.get(s.product_id)
        if p is None or not p.is_active or (p.stock is not None and p.stock <= 0):
            continue
        out.append(RecoItemOut(product_id=s.product_id, score=s.score, reason=s.reason, product=p))
    return out
