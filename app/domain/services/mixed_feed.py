from typing import Dict, List, Mapping, Optional, Sequence

from app.domain.models.reco import Reason, RecoItem
from app.domain.services.constants import MIXED_ORDER, REASON_PRIORITY


def _beats(a: RecoItem, b: RecoItem) -> bool:
    if a.score != b.score:
        return a.score > b.score
    return REASON_PRIORITY[a.reason] > REASON_PRIORITY[b.reason]


def dedup_and_interleave(
    sources: Mapping[Reason, Sequence[RecoItem]],
    exclude_id: Optional[str] = None,
) -> List[RecoItem]:
    """
    Merge per-source lists into one feed with unique product ids.

    1) Each product id is owned by the entry with the highest score; equal
       scores go to the more specific reason (personalized > trending >
       popular > similar).
    2) Owned entries are interleaved round-robin in MIXED_ORDER, keeping each
       source's own ranking.

    The output depends only on the input lists, so slicing it at consecutive
    offsets gives disjoint pages.
    """
    winners: Dict[str, RecoItem] = {}
    for reason in MIXED_ORDER:
        for item in sources.get(reason, ()):
            if item.product_id == exclude_id:
                continue
            current = winners.get(item.product_id)
            if current is None or _beats(item, current):
                winners[item.product_id] = item

    lanes: List[List[RecoItem]] = []
    for reason in MIXED_ORDER:
        lane, seen = [], set()
        for item in sources.get(reason, ()):
            # a source listing the same id twice keeps its first entry
            if winners.get(item.product_id) is item and item.product_id not in seen:
                seen.add(item.product_id)
                lane.append(item)
        lanes.append(lane)

    merged: List[RecoItem] = []
    for i in range(max((len(l) for l in lanes), default=0)):
        for lane in lanes:
            if i < len(lane):
                merged.append(lane[i])
    return merged
