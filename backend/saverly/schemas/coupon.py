from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class BusinessSnapshot(BaseModel):
    id: int
    name: str
    category: str
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: float
    longitude: float

    model_config = {"from_attributes": True}


class CouponSnapshot(BaseModel):
    id: int
    business_id: int
    title: str
    description: Optional[str] = None
    discount_type: str
    discount_value: float
    usage_limit_type: str
    max_uses_per_user: int
    max_total_uses: Optional[int] = None
    current_uses: int
    valid_from: datetime
    valid_until: datetime
    is_active: bool
    requires_subscription: bool

    model_config = {"from_attributes": True}


class CouponListItem(BaseModel):
    coupon: CouponSnapshot
    business: BusinessSnapshot
    distance: Optional[float] = None
