# app/api/v1/schemas/reco.py
from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional

from app.domain.models.reco import Pagination, RecoItemOut, RecommendationPage

class RecoBundleData(BaseModel):
    personalized: List[RecoItemOut]
    popular: List[RecoItemOut]
    trending: List[RecoItemOut]

class RecoBundleOut(BaseModel):
    success: bool = True
    data: RecoBundleData
    count: int
    user_id: Optional[str] = Field(None, serialization_alias="userId")
    generated_at: datetime = Field(serialization_alias="generatedAt")

class RecoPageOut(BaseModel):
    success: bool = True
    data: List[RecoItemOut]
    count: int
    total: int
    pagination: Pagination
    source_product_id: Optional[str] = None

    @classmethod
    def from_page(cls, page: RecommendationPage) -> "RecoPageOut":
        return cls(
            data=page.items,
            count=page.count,
            total=page.total,
            pagination=page.pagination,
            source_product_id=page.source_product_id,
        )

class ActivitySummaryOut(BaseModel):
    success: bool = True
    timeframe: str
    since: str
    product_id: Optional[str] = None
    counts: dict
    total: int

class CacheInvalidationOut(BaseModel):
    success: bool = True
    prefix: str
    invalidated: int
