from sqlalchemy import Column, Integer, String, Float, DateTime, Enum as SAEnum, func
from saverly.core.database import Base

SUBSCRIPTION_STATUSES = ("active", "inactive", "past_due", "canceled", "trialing")


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(200), nullable=False)
    subscription_status = Column(
        SAEnum(*SUBSCRIPTION_STATUSES, name="subscription_status"),
        nullable=False,
        default="inactive",
    )
    latitude = Column(Float, nullable=True, comment="自宅緯度")
    longitude = Column(Float, nullable=True, comment="自宅経度")
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    @property
    def is_subscribed(self) -> bool:
        return self.subscription_status in ("active", "trialing")
