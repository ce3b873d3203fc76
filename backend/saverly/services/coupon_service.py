"""クーポン一覧・取得"""
from datetime import datetime
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from saverly.core.database import with_store_retry
from saverly.core.errors import CouponNotFound
from saverly.models.business import Business
from saverly.models.coupon import Coupon
from saverly.utils.clock import utcnow
from saverly.utils.geo import GeoPoint, haversine_miles


class CouponListing(NamedTuple):
    coupon: Coupon
    business: Business
    distance: Optional[float] = None


def list_live_coupons(
    db: Session,
    category: Optional[str] = None,
    business_id: Optional[int] = None,
    location: Optional[GeoPoint] = None,
    max_distance: Optional[float] = None,
    now: Optional[datetime] = None,
) -> list[CouponListing]:
    """現在利用可能なクーポン一覧

    位置情報があれば距離 (マイル) を付与し、近い順に並べる。
    max_distance は位置情報がある場合のみ有効。
    """
    now = now or utcnow()
    query = (
        db.query(Coupon, Business)
        .join(Business, Business.id == Coupon.business_id)
        .filter(
            Coupon.is_active == True,
            Coupon.valid_from <= now,
            Coupon.valid_until >= now,
            Business.is_active == True,
        )
        .order_by(Coupon.priority.desc(), Coupon.created_at.desc(), Coupon.id.desc())
    )
    if category:
        query = query.filter(Business.category == category)
    if business_id is not None:
        query = query.filter(Coupon.business_id == business_id)

    rows = with_store_retry(db, query.all)

    if location is None:
        return [CouponListing(c, b) for c, b in rows]

    listings = [
        CouponListing(c, b, haversine_miles(location.latitude, location.longitude, b.latitude, b.longitude))
        for c, b in rows
    ]
    if max_distance is not None:
        listings = [item for item in listings if item.distance <= max_distance]
    listings.sort(key=lambda item: item.distance)
    return listings


def get_coupon(db: Session, coupon_id: int) -> CouponListing:
    row = with_store_retry(
        db,
        lambda: db.query(Coupon, Business)
        .join(Business, Business.id == Coupon.business_id)
        .filter(Coupon.id == coupon_id)
        .first(),
    )
    if row is None:
        raise CouponNotFound()
    return CouponListing(row[0], row[1])
