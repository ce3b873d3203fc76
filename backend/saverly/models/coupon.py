from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Boolean, DateTime, Enum as SAEnum,
    ForeignKey, CheckConstraint, func,
)
from saverly.core.database import Base

DISCOUNT_TYPES = ("percentage", "fixed_amount", "buy_one_get_one", "free_item")
USAGE_LIMIT_TYPES = ("once", "daily", "weekly", "monthly", "unlimited")


class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint("valid_from <= valid_until", name="ck_coupons_validity_window"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    discount_type = Column(SAEnum(*DISCOUNT_TYPES, name="discount_type"), nullable=False, default="percentage")
    discount_value = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    usage_limit_type = Column(
        SAEnum(*USAGE_LIMIT_TYPES, name="usage_limit_type"),
        nullable=False,
        default="once",
        comment="ユーザー毎の利用回数を数える期間",
    )
    max_uses_per_user = Column(Integer, nullable=False, default=1)
    max_total_uses = Column(Integer, nullable=True, comment="全体の利用上限 (null=無制限)")
    current_uses = Column(Integer, nullable=False, default=0)
    valid_from = Column(DateTime, nullable=False)
    valid_until = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    requires_subscription = Column(Boolean, nullable=False, default=False)
    priority = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    def is_live(self, now) -> bool:
        """有効フラグON かつ 有効期間内"""
        return bool(self.is_active) and self.valid_from <= now <= self.valid_until
