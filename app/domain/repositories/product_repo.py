# app/domain/repositories/product_repo.py

from __future__ import annotations
import logging
from typing import Any, Dict, Optional, List, Sequence, Type, TypeVar

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, ValidationError
from pymongo.errors import PyMongoError

from app.core.errors import UpstreamUnavailable
from app.domain.models.product import Product, ProductSignal

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

SIGNAL_PROJECTION = {
    "_id": 0,
    "product_id": 1,
    "view_count": 1,
    "cart_count": 1,
    "favorite_count": 1,
    "order_count": 1,
    "created_at": 1,
    "is_active": 1,
    "category_id": 1,
    "price": 1,
    "stock": 1,
}

DETAIL_PROJECTION = {
    "_id": 0,
    "product_id": 1,
    "name": 1,
    "slug": 1,
    "description": 1,
    "category_id": 1,
    "brand": 1,
    "price": 1,
    "discount_price": 1,
    "currency": 1,
    "stock": 1,
    "images": 1,
    "is_active": 1,
}


def _parse(model: Type[M], doc: Dict[str, Any]) -> Optional[M]:
    """One document -> model; a malformed document is logged and skipped, never fails the batch."""
    try:
        # fields may be missing or null on legacy documents
        return model.model_validate({k: v for k, v in doc.items() if v is not None})
    except ValidationError as e:
        logger.warning(
            "skipping malformed product document model=%s product_id=%s errors=%s",
            model.__name__, doc.get("product_id"), e.error_count(),
        )
        return None


def _parse_all(model: Type[M], docs: List[Dict[str, Any]]) -> List[M]:
    return [m for m in (_parse(model, d) for d in docs) if m is not None]


class ProductRepo:
    """
    Product repository backed by the 'products' collection.
    Serves both the engagement counters (signal store) and the display
    records (catalog) since both live on the same document.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "products", timeout_ms: int = 3000):
        self.col = db[collection_name]
        self.timeout_ms = timeout_ms

    # ----- Signal store -----------------------------------------------------

    async def list_active_product_signals(self, category_id: Optional[str] = None) -> List[ProductSignal]:
        query: Dict[str, Any] = {"is_active": True}
        if category_id:
            query["category_id"] = category_id
        try:
            cursor = self.col.find(query, SIGNAL_PROJECTION, max_time_ms=self.timeout_ms)
            docs = [doc async for doc in cursor]
        except PyMongoError as e:
            raise UpstreamUnavailable("signal", e) from e
        return _parse_all(ProductSignal, docs)

    async def get_product_signal(self, product_id: str) -> Optional[ProductSignal]:
        try:
            doc = await self.col.find_one({"product_id": product_id}, SIGNAL_PROJECTION)
        except PyMongoError as e:
            raise UpstreamUnavailable("signal", e) from e
        return _parse(ProductSignal, doc) if doc else None

    async def get_product_signals(self, product_ids: Sequence[str]) -> List[ProductSignal]:
        if not product_ids:
            return []
        try:
            cursor = self.col.find({"product_id": {"$in": list(product_ids)}}, SIGNAL_PROJECTION, max_time_ms=self.timeout_ms)
            docs = [doc async for doc in cursor]
        except PyMongoError as e:
            raise UpstreamUnavailable("signal", e) from e
        return _parse_all(ProductSignal, docs)

    # ----- Catalog ----------------------------------------------------------

    async def get_products_by_ids(self, product_ids: Sequence[str]) -> List[Product]:
        """Active products only; unknown ids are simply absent from the result."""
        if not product_ids:
            return []
        try:
            cursor = self.col.find(
                {"product_id": {"$in": list(product_ids)}, "is_active": True},
                DETAIL_PROJECTION,
                max_time_ms=self.timeout_ms,
            )
            docs = [doc async for doc in cursor]
        except PyMongoError as e:
            raise UpstreamUnavailable("catalog", e) from e
        return _parse_all(Product, docs)
