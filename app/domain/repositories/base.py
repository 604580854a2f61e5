# app/domain/repositories/base.py
"""
Read contracts the recommendation services depend on.
Implementations raise UpstreamUnavailable when the backing store cannot be reached.
"""
from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Sequence, Set

from app.domain.models.activity import ActivityEvent
from app.domain.models.product import Product, ProductSignal


class SignalStore(Protocol):
    async def list_active_product_signals(self, category_id: Optional[str] = None) -> List[ProductSignal]: ...

    async def get_product_signal(self, product_id: str) -> Optional[ProductSignal]: ...

    async def get_product_signals(self, product_ids: Sequence[str]) -> List[ProductSignal]: ...


class ActivityStore(Protocol):
    async def count_events_by_product(self, since: datetime) -> Dict[str, int]: ...

    async def list_events_for_subject(self, subject_id: str, since: Optional[datetime] = None) -> List[ActivityEvent]: ...

    async def count_events_by_type(self, since: datetime, product_id: Optional[str] = None) -> Dict[str, int]: ...

    async def list_purchased_product_ids(self, subject_id: str) -> Set[str]: ...


class ProductCatalog(Protocol):
    async def get_products_by_ids(self, product_ids: Sequence[str]) -> List[Product]: ...


class UserDirectory(Protocol):
    async def user_exists(self, user_id: str) -> bool: ...
