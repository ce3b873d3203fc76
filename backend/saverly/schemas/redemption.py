from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from saverly.schemas.coupon import BusinessSnapshot, CouponSnapshot
from saverly.services.redemption_service import RedemptionDetail
from saverly.utils.geo import GeoPoint


class Location(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    def to_point(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)


class CreateRedemptionRequest(BaseModel):
    coupon_id: int = Field(gt=0)
    user_id: int = Field(gt=0)
    location: Optional[Location] = None


class MarkRedeemedRequest(BaseModel):
    qr_code: str = Field(min_length=1, max_length=64)
    location: Optional[Location] = None


class CancelRedemptionRequest(BaseModel):
    user_id: Optional[int] = None


class RedemptionResponse(BaseModel):
    id: int
    user_id: int
    coupon_id: int
    business_id: int
    qr_code: str
    display_code: str
    verification_code: str
    status: str
    created_at: datetime
    expires_at: datetime
    redeemed_at: Optional[datetime] = None
    redemption_latitude: Optional[float] = None
    redemption_longitude: Optional[float] = None
    discount_amount: Optional[float] = None
    coupon: Optional[CouponSnapshot] = None
    business: Optional[BusinessSnapshot] = None

    @classmethod
    def from_detail(cls, detail: RedemptionDetail) -> "RedemptionResponse":
        r = detail.redemption
        return cls(
            id=r.id,
            user_id=r.user_id,
            coupon_id=r.coupon_id,
            business_id=r.business_id,
            qr_code=r.qr_code,
            display_code=r.display_code,
            verification_code=r.verification_code,
            status=r.status.value,
            created_at=r.created_at,
            expires_at=r.expires_at,
            redeemed_at=r.redeemed_at,
            redemption_latitude=r.redemption_latitude,
            redemption_longitude=r.redemption_longitude,
            discount_amount=r.discount_amount,
            coupon=CouponSnapshot.model_validate(detail.coupon) if detail.coupon else None,
            business=BusinessSnapshot.model_validate(detail.business) if detail.business else None,
        )


class RedemptionStats(BaseModel):
    total: int
    pending: int
    redeemed: int
    expired: int
    cancelled: int
    total_value: float
