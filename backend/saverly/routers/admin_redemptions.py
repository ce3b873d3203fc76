"""管理画面: 引き換え統計"""
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from saverly.core.database import get_db
from saverly.schemas.redemption import RedemptionStats
from saverly.services import redemption_service

router = APIRouter(prefix="/api/admin/redemptions", tags=["admin-redemptions"])


@router.get("/stats", response_model=RedemptionStats)
def redemption_stats(business_id: Optional[int] = None, db: Session = Depends(get_db)):
    """ステータス別の引き換え件数 (店舗指定可)"""
    return redemption_service.get_redemption_stats(db, business_id=business_id)
