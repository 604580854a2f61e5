from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel

class ActivityType(str, Enum):
    # values are the `event_type` strings stored in the events collection
    VIEW = "view"
    CART_ADD = "add_to_cart"
    FAVORITE = "favorite"
    PURCHASE = "purchase"

class ActivityEvent(BaseModel):
    subject_id: str               # user_id or session_id
    product_id: str
    activity_type: ActivityType
    timestamp: Optional[datetime] = None

    model_config = {"frozen": True}
