from __future__ import annotations
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

from app.domain.models.product import Product

class Reason(str, Enum):
    PERSONALIZED = "personalized"
    POPULAR = "popular"
    TRENDING = "trending"
    SIMILAR = "similar"

class RecoItem(BaseModel):
    product_id: str
    score: float = Field(ge=0)
    reason: Reason
    model_config = {"frozen": True} # immuable = safe

    def retag(self, reason: Reason) -> "RecoItem":
        return self.model_copy(update={"reason": reason})

class RecoItemOut(RecoItem):
    """A recommendation joined with its product detail."""
    product: Product

class RecoLimits(BaseModel):
    personalized: int = 12
    popular: int = 12
    trending: int = 12

class RecoBundle(BaseModel):
    personalized: List[RecoItemOut] = []
    popular: List[RecoItemOut] = []
    trending: List[RecoItemOut] = []

    @property
    def count(self) -> int:
        return len(self.personalized) + len(self.popular) + len(self.trending)

class Pagination(BaseModel):
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int, offset: Optional[int] = None) -> "Pagination":
        """Page-numbered paging; with `offset`, the neighbours follow the raw offset."""
        total_pages = -(-total // limit) if limit else 0
        if offset is None:
            has_next, has_prev = page < total_pages, page > 1
        else:
            has_next, has_prev = offset + limit < total, offset > 0
        return cls(
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next=has_next,
            has_prev=has_prev,
        )

class RecommendationPage(BaseModel):
    items: List[RecoItemOut]
    total: int
    pagination: Pagination
    source_product_id: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.items)
