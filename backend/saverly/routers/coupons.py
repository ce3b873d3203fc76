"""クーポン一覧ルーター"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from saverly.core.database import get_db
from saverly.models.business import BUSINESS_CATEGORIES
from saverly.schemas.coupon import BusinessSnapshot, CouponListItem, CouponSnapshot
from saverly.services import coupon_service
from saverly.utils.geo import GeoPoint

router = APIRouter(prefix="/api/coupons", tags=["coupons"])


def _to_item(listing: coupon_service.CouponListing) -> CouponListItem:
    return CouponListItem(
        coupon=CouponSnapshot.model_validate(listing.coupon),
        business=BusinessSnapshot.model_validate(listing.business),
        distance=round(listing.distance, 2) if listing.distance is not None else None,
    )


@router.get("", response_model=list[CouponListItem])
def list_coupons(
    category: Optional[str] = None,
    business_id: Optional[int] = None,
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    max_distance: Optional[float] = Query(None, gt=0),
    db: Session = Depends(get_db),
):
    """利用可能なクーポン一覧 (位置情報があれば近い順)"""
    if category and category not in BUSINESS_CATEGORIES:
        raise HTTPException(status_code=422, detail="カテゴリが不正です")
    if (lat is None) != (lng is None):
        raise HTTPException(status_code=422, detail="lat と lng は両方指定してください")

    location = GeoPoint(lat, lng) if lat is not None else None
    listings = coupon_service.list_live_coupons(
        db,
        category=category,
        business_id=business_id,
        location=location,
        max_distance=max_distance,
    )
    return [_to_item(item) for item in listings]


@router.get("/{coupon_id}", response_model=CouponListItem)
def get_coupon(coupon_id: int, db: Session = Depends(get_db)):
    """クーポン詳細"""
    return _to_item(coupon_service.get_coupon(db, coupon_id))
