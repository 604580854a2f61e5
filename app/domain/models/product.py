from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

class ProductSignal(BaseModel):
    """
    Engagement counters of a product as stored by the storefront.
    Counters are kept as-is (None / negative values are data errors the scorer tolerates).
    """
    product_id: str
    view_count: Optional[int] = 0
    cart_count: Optional[int] = 0
    favorite_count: Optional[int] = 0
    order_count: Optional[int] = 0
    created_at: Optional[datetime] = None
    is_active: bool = True
    category_id: Optional[str] = None
    price: Optional[float] = None
    stock: Optional[int] = None

    model_config = {"frozen": True}  # immuable = safe

    @property
    def available(self) -> bool:
        # unknown stock counts as available
        return self.is_active and (self.stock is None or self.stock > 0)

class Product(BaseModel):
    product_id: str
    name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[str] = None
    brand: Optional[str] = None
    price: Optional[float] = None
    discount_price: Optional[float] = None
    currency: Optional[str] = None
    stock: Optional[int] = None
    images: List[str] = []
    is_active: bool = True

    model_config = {"frozen": True}  # immuable = safe
