"""引き換えルーター"""
import json

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from saverly.core.database import get_db
from saverly.schemas.redemption import (
    CancelRedemptionRequest, CreateRedemptionRequest, MarkRedeemedRequest, RedemptionResponse,
)
from saverly.services import redemption_service
from saverly.services.countdown import RedemptionCountdown

router = APIRouter(prefix="/api/redemptions", tags=["redemptions"])


@router.post("", response_model=RedemptionResponse, status_code=201)
def create_redemption(req: CreateRedemptionRequest, db: Session = Depends(get_db)):
    """引き換えコード発行 (有効期限付き pending レコード作成)"""
    detail = redemption_service.create_redemption(
        db,
        coupon_id=req.coupon_id,
        user_id=req.user_id,
        location=req.location.to_point() if req.location else None,
    )
    return RedemptionResponse.from_detail(detail)


@router.get("", response_model=list[RedemptionResponse])
def list_redemptions(user_id: int, db: Session = Depends(get_db)):
    """ユーザーの引き換え履歴"""
    return [
        RedemptionResponse.from_detail(d)
        for d in redemption_service.list_user_redemptions(db, user_id)
    ]


@router.get("/code/{qr_code}", response_model=RedemptionResponse)
def get_by_code(qr_code: str, db: Session = Depends(get_db)):
    """スキャンコードから引き換えを取得 (店舗側)"""
    return RedemptionResponse.from_detail(redemption_service.get_redemption_by_code(db, qr_code))


@router.post("/redeem", response_model=RedemptionResponse)
def redeem(req: MarkRedeemedRequest, db: Session = Depends(get_db)):
    """引き換え確定 (店舗側スキャン)"""
    detail = redemption_service.mark_redeemed(
        db,
        req.qr_code,
        location=req.location.to_point() if req.location else None,
    )
    return RedemptionResponse.from_detail(detail)


@router.post("/{redemption_id}/cancel", response_model=RedemptionResponse)
def cancel(redemption_id: int, req: CancelRedemptionRequest, db: Session = Depends(get_db)):
    """pending の引き換えを取消"""
    detail = redemption_service.cancel_redemption(db, redemption_id, user_id=req.user_id)
    return RedemptionResponse.from_detail(detail)


@router.post("/{redemption_id}/expire")
def expire(redemption_id: int, db: Session = Depends(get_db)):
    """クライアントのカウントダウン終了時に期限切れを確定"""
    expired = redemption_service.expire_redemption(db, redemption_id)
    detail = redemption_service.get_redemption(db, redemption_id)
    return {"expired": expired, "status": detail.redemption.status.value}


@router.get("/{redemption_id}/countdown")
def countdown(redemption_id: int, db: Session = Depends(get_db)):
    """残り秒数のSSEストリーム (表示専用、DBは更新しない)

    DB参照は同期 (スレッドプール)、ストリームのみ非同期。
    クライアント切断時はストリームごとキャンセルされタイマーも止まる。
    """
    detail = redemption_service.get_redemption(db, redemption_id)
    status = detail.redemption.status
    timer = RedemptionCountdown(detail.redemption.expires_at)

    async def event_stream():
        if status.is_terminal:
            yield f"event: closed\ndata: {json.dumps({'status': status.value})}\n\n"
            return
        async for remaining in timer.ticks():
            yield f"data: {json.dumps({'remaining_seconds': remaining})}\n\n"
        if timer.expired:
            yield f"event: expired\ndata: {json.dumps({'redemption_id': redemption_id})}\n\n"

    return StreamingResponse(event_stream(), media_type="text/event-stream")
