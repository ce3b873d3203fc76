"""引き換えライフサイクル管理

Redemption レコードの作成と状態遷移はすべてこのモジュールを経由する。

状態遷移:
    pending → redeemed  (有効期限前にスキャン/確認)
    pending → expired   (有効期限切れ。スイープ or 明示的な expire 呼び出し)
    pending → cancelled (利用者/管理者による取消)
終端状態 (redeemed/expired/cancelled) からは遷移しない。
各遷移は status='pending' を条件にした単一の条件付きUPDATEで行う。

全体上限 (max_total_uses) のチェックは読み取り→INSERTで原子的ではない。
同一クーポンへの同時リクエストや、未使用の pending が複数ある状態では
上限をわずかに超えて引き換えられることがある (許容済み)。
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from saverly.core.config import settings
from saverly.core.database import with_store_retry
from saverly.core.errors import (
    CouponNotFound, CouponNotLive, EligibilityError, GlobalLimitReached, InvalidLocation, RedemptionExpired,
    RedemptionNotFound, StoreUnavailable, SubscriptionRequired, UserLimitReached, UserNotFound,
)
from saverly.core.logging import get_logger, log_event
from saverly.models.business import Business
from saverly.models.coupon import Coupon
from saverly.models.profile import Profile
from saverly.models.redemption import Redemption, RedemptionStatus
from saverly.services import analytics_service
from saverly.services.code_generator import generate_codes
from saverly.utils.clock import utcnow
from saverly.utils.geo import GeoPoint

logger = get_logger(__name__)


class RedemptionDetail(NamedTuple):
    """引き換えレコード + 表示用のクーポン/店舗スナップショット"""
    redemption: Redemption
    coupon: Optional[Coupon]
    business: Optional[Business]


def _validate_location(location: Optional[GeoPoint]):
    if location is not None and not location.is_valid():
        raise InvalidLocation()


def _load_detail(db: Session, redemption: Redemption) -> RedemptionDetail:
    coupon = with_store_retry(db, lambda: db.get(Coupon, redemption.coupon_id))
    business = with_store_retry(db, lambda: db.get(Business, redemption.business_id))
    return RedemptionDetail(redemption, coupon, business)


def _find_by_code(db: Session, scan_code: str) -> Optional[Redemption]:
    return with_store_retry(
        db,
        lambda: db.query(Redemption).filter(Redemption.qr_code == scan_code).first(),
    )


def _discount_snapshot(coupon: Coupon) -> Optional[float]:
    if coupon.discount_type == "fixed_amount":
        return coupon.discount_value
    return None


def count_user_redemptions(db: Session, coupon_id: int, user_id: int) -> int:
    """ユーザーの引き換え済み件数 (全期間。usage_limit_type は表示用ラベル)"""
    query = db.query(func.count(Redemption.id)).filter(
        Redemption.user_id == user_id,
        Redemption.coupon_id == coupon_id,
        Redemption.status == RedemptionStatus.REDEEMED,
    )
    return with_store_retry(db, query.scalar) or 0


def check_eligibility(db: Session, coupon: Coupon, profile: Profile, now: datetime):
    """引き換え資格チェック。違反した条件ごとに別の例外を投げる"""
    if not coupon.is_live(now):
        raise CouponNotLive()

    if coupon.requires_subscription and not profile.is_subscribed:
        raise SubscriptionRequired()

    if coupon.max_total_uses is not None and coupon.current_uses >= coupon.max_total_uses:
        raise GlobalLimitReached()

    if count_user_redemptions(db, coupon.id, profile.id) >= coupon.max_uses_per_user:
        raise UserLimitReached()


def create_redemption(
    db: Session,
    coupon_id: int,
    user_id: int,
    location: Optional[GeoPoint] = None,
    now: Optional[datetime] = None,
) -> RedemptionDetail:
    """pending の引き換えレコードを作成

    コード衝突 (ユニーク制約違反) はコードを再生成してリトライ。
    DB到達不可は1回だけリトライし、それでも失敗すれば StoreUnavailable。
    """
    now = now or utcnow()
    _validate_location(location)

    coupon = with_store_retry(db, lambda: db.get(Coupon, coupon_id))
    if coupon is None:
        raise CouponNotFound()

    profile = with_store_retry(db, lambda: db.get(Profile, user_id))
    if profile is None:
        raise UserNotFound()

    try:
        check_eligibility(db, coupon, profile, now)
    except EligibilityError as e:
        logger.info(f"引き換え不可: coupon_id={coupon_id}, user_id={user_id}, reason={e.code}")
        raise

    business_id = coupon.business_id
    discount_amount = _discount_snapshot(coupon)
    expires_at = now + timedelta(seconds=settings.REDEMPTION_WINDOW_SECONDS)
    timestamp_ms = int(now.replace(tzinfo=timezone.utc).timestamp() * 1000)

    store_failures = 0
    for attempt in range(1, settings.CODE_GENERATION_MAX_ATTEMPTS + 1):
        codes = generate_codes(timestamp_ms)
        redemption = Redemption(
            user_id=user_id,
            coupon_id=coupon_id,
            business_id=business_id,
            qr_code=codes.qr_code,
            display_code=codes.display_code,
            verification_code=codes.verification_code,
            status=RedemptionStatus.PENDING,
            created_at=now,
            expires_at=expires_at,
            discount_amount=discount_amount,
        )
        if location is not None:
            redemption.redemption_latitude = location.latitude
            redemption.redemption_longitude = location.longitude

        db.add(redemption)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"引き換えコード衝突→再生成: attempt={attempt}, coupon_id={coupon_id} - {e}")
            continue
        except OperationalError as e:
            db.rollback()
            store_failures += 1
            if store_failures > 1:
                logger.error(f"引き換え作成失敗 (DB到達不可): coupon_id={coupon_id}, user_id={user_id} - {e}")
                raise StoreUnavailable() from e
            logger.warning(f"引き換え作成DBエラー→リトライ: coupon_id={coupon_id} - {e}")
            continue

        with_store_retry(db, lambda: db.refresh(redemption))
        log_event(
            logger, logging.INFO, "引き換え作成",
            redemption_id=redemption.id, coupon_id=coupon_id,
            user_id=user_id, expires_at=expires_at.isoformat(),
        )
        return _load_detail(db, redemption)

    logger.error(f"引き換えコード生成リトライ上限: coupon_id={coupon_id}, user_id={user_id}")
    raise StoreUnavailable()


def _raise_for_unavailable(redemption: Optional[Redemption], now: datetime):
    """条件付きUPDATEが0件だった理由を判定して例外を投げる"""
    if redemption is not None:
        if redemption.status == RedemptionStatus.EXPIRED:
            raise RedemptionExpired()
        if redemption.status == RedemptionStatus.PENDING and redemption.expires_at <= now:
            raise RedemptionExpired()
    raise RedemptionNotFound()


def _increment_coupon_usage(db: Session, coupon_id: int):
    """クーポン利用数をDB側で +1 (失敗しても引き換えは取り消さない)"""
    try:
        db.query(Coupon).filter(Coupon.id == coupon_id).update(
            {Coupon.current_uses: Coupon.current_uses + 1},
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"クーポン利用数更新失敗: coupon_id={coupon_id} - {e}")


def mark_redeemed(
    db: Session,
    scan_code: str,
    location: Optional[GeoPoint] = None,
    now: Optional[datetime] = None,
) -> RedemptionDetail:
    """スキャンコードで引き換えを確定

    期限前かつ pending の場合のみ成功。2回目の呼び出しは RedemptionNotFound。
    """
    now = now or utcnow()
    _validate_location(location)

    values = {
        Redemption.status: RedemptionStatus.REDEEMED,
        Redemption.redeemed_at: now,
        Redemption.updated_at: now,
    }
    if location is not None:
        values[Redemption.redemption_latitude] = location.latitude
        values[Redemption.redemption_longitude] = location.longitude

    updated = with_store_retry(
        db,
        lambda: db.query(Redemption).filter(
            Redemption.qr_code == scan_code,
            Redemption.status == RedemptionStatus.PENDING,
            Redemption.expires_at > now,
        ).update(values, synchronize_session=False),
    )

    if updated == 0:
        db.rollback()
        existing = _find_by_code(db, scan_code)
        try:
            _raise_for_unavailable(existing, now)
        except (RedemptionExpired, RedemptionNotFound) as e:
            logger.info(f"引き換え確定不可: code={scan_code}, reason={e.code}")
            raise

    db.commit()

    redemption = _find_by_code(db, scan_code)
    log_event(
        logger, logging.INFO, "引き換え確定",
        redemption_id=redemption.id, coupon_id=redemption.coupon_id,
        user_id=redemption.user_id,
    )

    _increment_coupon_usage(db, redemption.coupon_id)

    detail = _load_detail(db, redemption)
    event_data = {
        "coupon_id": redemption.coupon_id,
        "business_id": redemption.business_id,
        "redemption_id": redemption.id,
    }
    if detail.coupon is not None:
        event_data["discount_type"] = detail.coupon.discount_type
        event_data["discount_value"] = detail.coupon.discount_value
    analytics_service.track_event(db, redemption.user_id, "coupon_redeem", event_data)

    return detail


def cancel_redemption(
    db: Session,
    redemption_id: int,
    user_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> RedemptionDetail:
    """pending の引き換えを取消。user_id 指定時は本人のレコードのみ"""
    now = now or utcnow()

    query = db.query(Redemption).filter(
        Redemption.id == redemption_id,
        Redemption.status == RedemptionStatus.PENDING,
        Redemption.expires_at > now,
    )
    if user_id is not None:
        query = query.filter(Redemption.user_id == user_id)

    updated = with_store_retry(
        db,
        lambda: query.update(
            {Redemption.status: RedemptionStatus.CANCELLED, Redemption.updated_at: now},
            synchronize_session=False,
        ),
    )
    if updated == 0:
        db.rollback()
        existing = with_store_retry(db, lambda: db.get(Redemption, redemption_id))
        if existing is not None and user_id is not None and existing.user_id != user_id:
            existing = None
        _raise_for_unavailable(existing, now)

    db.commit()
    redemption = with_store_retry(db, lambda: db.get(Redemption, redemption_id))
    logger.info(f"引き換え取消: redemption_id={redemption_id}, user_id={redemption.user_id}")
    return _load_detail(db, redemption)


def expire_redemption(db: Session, redemption_id: int, now: Optional[datetime] = None) -> bool:
    """期限切れの pending を1件 expired に確定。変更があれば True"""
    now = now or utcnow()
    updated = with_store_retry(
        db,
        lambda: db.query(Redemption).filter(
            Redemption.id == redemption_id,
            Redemption.status == RedemptionStatus.PENDING,
            Redemption.expires_at <= now,
        ).update(
            {Redemption.status: RedemptionStatus.EXPIRED, Redemption.updated_at: now},
            synchronize_session=False,
        ),
    )
    db.commit()
    return updated == 1


def expire_stale_redemptions(db: Session, now: Optional[datetime] = None) -> int:
    """期限切れの pending を一括で expired に。更新件数を返す"""
    now = now or utcnow()
    updated = db.query(Redemption).filter(
        Redemption.status == RedemptionStatus.PENDING,
        Redemption.expires_at <= now,
    ).update(
        {Redemption.status: RedemptionStatus.EXPIRED, Redemption.updated_at: now},
        synchronize_session=False,
    )
    db.commit()
    return updated


def get_redemption(db: Session, redemption_id: int) -> RedemptionDetail:
    redemption = with_store_retry(db, lambda: db.get(Redemption, redemption_id))
    if redemption is None:
        raise RedemptionNotFound()
    return _load_detail(db, redemption)


def get_redemption_by_code(db: Session, scan_code: str) -> RedemptionDetail:
    """スキャンコードから引き換えを取得 (状態は問わない)"""
    redemption = _find_by_code(db, scan_code)
    if redemption is None:
        raise RedemptionNotFound()
    return _load_detail(db, redemption)


def list_user_redemptions(db: Session, user_id: int) -> list[RedemptionDetail]:
    """ユーザーの引き換え履歴 (新しい順)"""
    rows = with_store_retry(
        db,
        lambda: db.query(Redemption, Coupon, Business)
        .outerjoin(Coupon, Coupon.id == Redemption.coupon_id)
        .outerjoin(Business, Business.id == Redemption.business_id)
        .filter(Redemption.user_id == user_id)
        .order_by(Redemption.created_at.desc(), Redemption.id.desc())
        .all(),
    )
    return [RedemptionDetail(r, c, b) for r, c, b in rows]


def get_redemption_stats(db: Session, business_id: Optional[int] = None) -> dict:
    """ステータス別件数と割引額合計 (割引額は引き換え済みのみ)"""
    query = db.query(
        Redemption.status,
        func.count(Redemption.id),
        func.coalesce(func.sum(Redemption.discount_amount), 0),
    )
    if business_id is not None:
        query = query.filter(Redemption.business_id == business_id)
    rows = with_store_retry(db, lambda: query.group_by(Redemption.status).all())

    stats = {"total": 0, "total_value": 0.0}
    for status in RedemptionStatus:
        stats[status.value] = 0
    for status, count, value in rows:
        key = status.value if isinstance(status, RedemptionStatus) else status
        stats[key] = count
        stats["total"] += count
        if key == RedemptionStatus.REDEEMED.value:
            stats["total_value"] = float(value or 0)
    return stats
