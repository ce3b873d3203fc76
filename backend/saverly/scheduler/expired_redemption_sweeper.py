"""期限切れ引き換えのスイープ (デフォルト5分ごと + 起動時1回)"""
from saverly.core.database import SessionLocal
from saverly.services.redemption_service import expire_stale_redemptions
from saverly.core.logging import get_logger

logger = get_logger(__name__)


def sweep_expired_redemptions() -> int:
    """有効期限を過ぎた pending を expired に確定

    失敗はログのみ (次回の実行で再試行)。プロセスは落とさない。
    """
    db = SessionLocal()
    try:
        expired = expire_stale_redemptions(db)
        if expired:
            logger.info(f"期限切れ引き換えスイープ: {expired}件をexpiredに更新")
        return expired
    except Exception as e:
        logger.error(f"期限切れ引き換えスイープエラー: {e}")
        db.rollback()
        return 0
    finally:
        db.close()
