import os

# saverly の設定読み込み前にテスト用DBへ切り替える
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEBUG"] = "false"
os.environ["REDEMPTION_WINDOW_SECONDS"] = "60"

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

import saverly.models  # noqa: F401
from saverly.core.database import Base, SessionLocal, engine
from saverly.main import app
from saverly.models.business import Business
from saverly.models.coupon import Coupon
from saverly.models.profile import Profile
from saverly.utils.clock import utcnow


@pytest.fixture
def db():
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def make_business(db):
    def _make(**overrides):
        fields = {
            "name": "Corner Cafe",
            "category": "restaurant",
            "city": "Austin",
            "state": "TX",
            "latitude": 30.2672,
            "longitude": -97.7431,
        }
        fields.update(overrides)
        business = Business(**fields)
        db.add(business)
        db.commit()
        return business

    return _make


@pytest.fixture
def make_profile(db):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "email": f"user{counter['n']}@example.com",
            "full_name": f"User {counter['n']}",
            "subscription_status": "active",
        }
        fields.update(overrides)
        profile = Profile(**fields)
        db.add(profile)
        db.commit()
        return profile

    return _make


@pytest.fixture
def make_coupon(db, make_business):
    def _make(business=None, **overrides):
        business = business or make_business()
        fields = {
            "business_id": business.id,
            "title": "20% off any coffee",
            "discount_type": "percentage",
            "discount_value": 20,
            "usage_limit_type": "once",
            "max_uses_per_user": 1,
            "max_total_uses": None,
            "current_uses": 0,
            "valid_from": datetime(2024, 1, 1),
            "valid_until": datetime(2024, 1, 31, 23, 59, 59),
            "is_active": True,
        }
        fields.update(overrides)
        coupon = Coupon(**fields)
        db.add(coupon)
        db.commit()
        return coupon

    return _make


@pytest.fixture
def live_coupon(make_coupon):
    """現在時刻で有効なクーポン (HTTPテスト用)"""
    def _make(**overrides):
        now = utcnow()
        fields = {"valid_from": now - timedelta(days=1), "valid_until": now + timedelta(days=1)}
        fields.update(overrides)
        return make_coupon(**fields)

    return _make
