"""利用状況イベント記録 (ベストエフォート)"""
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from saverly.models.analytics_event import AnalyticsEvent
from saverly.core.logging import get_logger

logger = get_logger(__name__)


def track_event(db: Session, user_id: Optional[int], event_type: str, event_data: dict) -> bool:
    """イベントを記録。失敗してもログのみで例外は投げない"""
    try:
        db.add(AnalyticsEvent(user_id=user_id, event_type=event_type, event_data=event_data))
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"分析イベント記録失敗: event_type={event_type}, user_id={user_id} - {e}")
        return False
