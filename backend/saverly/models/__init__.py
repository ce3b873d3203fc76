# 全モデルをインポート (Alembic autogenerate用)
from saverly.models.profile import Profile
from saverly.models.business import Business
from saverly.models.coupon import Coupon
from saverly.models.redemption import Redemption, RedemptionStatus
from saverly.models.analytics_event import AnalyticsEvent

__all__ = [
    "Profile",
    "Business",
    "Coupon",
    "Redemption",
    "RedemptionStatus",
    "AnalyticsEvent",
]
