from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, Enum as SAEnum, func
from saverly.core.database import Base

BUSINESS_CATEGORIES = (
    "restaurant", "retail", "service", "entertainment", "health", "beauty", "automotive", "other",
)


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(SAEnum(*BUSINESS_CATEGORIES, name="business_category"), nullable=False, default="other")
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    street_address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    zip_code = Column(String(20), nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
