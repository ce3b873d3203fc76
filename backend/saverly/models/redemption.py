import enum

from sqlalchemy import (
    Column, Integer, String, Float, Numeric, DateTime, Enum as SAEnum, ForeignKey, Index, func,
)
from saverly.core.database import Base


class RedemptionStatus(str, enum.Enum):
    PENDING = "pending"
    REDEEMED = "redeemed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not RedemptionStatus.PENDING


class Redemption(Base):
    __tablename__ = "redemptions"
    __table_args__ = (
        Index("ix_redemptions_user_coupon_status", "user_id", "coupon_id", "status"),
        Index("ix_redemptions_status_expires_at", "status", "expires_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    qr_code = Column(String(64), unique=True, nullable=False, comment="スキャン用コード")
    display_code = Column(String(8), nullable=False, comment="手入力用コード")
    verification_code = Column(String(6), nullable=False, comment="確認用6桁コード")
    status = Column(
        SAEnum(
            RedemptionStatus,
            name="redemption_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=RedemptionStatus.PENDING,
    )
    expires_at = Column(DateTime, nullable=False)
    redeemed_at = Column(DateTime, nullable=True)
    redemption_latitude = Column(Float, nullable=True)
    redemption_longitude = Column(Float, nullable=True)
    discount_amount = Column(Numeric(10, 2, asdecimal=False), nullable=True, comment="割引額スナップショット")
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
