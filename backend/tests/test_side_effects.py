from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from saverly.core.database import with_store_retry
from saverly.core.errors import RedemptionExpired, StoreUnavailable
from saverly.models.analytics_event import AnalyticsEvent
from saverly.models.coupon import Coupon
from saverly.models.redemption import RedemptionStatus
from saverly.services import analytics_service, redemption_service

T0 = datetime(2024, 1, 15, 10, 0, 0)


def _db_error():
    return OperationalError("UPDATE ...", {}, Exception("connection lost"))


def test_store_retry_recovers_after_one_failure(db):
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise _db_error()
        return "ok"

    assert with_store_retry(db, flaky) == "ok"
    assert len(calls) == 2


def test_store_retry_gives_up_after_second_failure(db):
    def down():
        raise _db_error()

    with pytest.raises(StoreUnavailable):
        with_store_retry(db, down)


def test_analytics_failure_is_swallowed(db, monkeypatch, caplog):
    def failing_commit():
        raise _db_error()

    monkeypatch.setattr(db, "commit", failing_commit)

    assert analytics_service.track_event(db, None, "coupon_redeem", {"coupon_id": 1}) is False
    assert "分析イベント記録失敗" in caplog.text


def test_usage_counter_failure_does_not_roll_back_redemption(db, make_coupon, make_profile, monkeypatch):
    coupon = make_coupon()
    user = make_profile()
    created = redemption_service.create_redemption(db, coupon.id, user.id, now=T0)

    real_increment = redemption_service._increment_coupon_usage

    def increment_with_failing_commit(session, coupon_id):
        real_commit = session.commit

        def failing_commit():
            raise _db_error()

        monkeypatch.setattr(session, "commit", failing_commit)
        try:
            real_increment(session, coupon_id)
        finally:
            monkeypatch.setattr(session, "commit", real_commit)

    monkeypatch.setattr(redemption_service, "_increment_coupon_usage", increment_with_failing_commit)

    detail = redemption_service.mark_redeemed(db, created.redemption.qr_code, now=T0 + timedelta(seconds=5))

    assert detail.redemption.status == RedemptionStatus.REDEEMED
    db.expire_all()
    assert db.get(Coupon, coupon.id).current_uses == 0
    assert db.query(AnalyticsEvent).count() == 1


def _fail_queries_after_first(db, monkeypatch, failures):
    """最初の db.query (条件付きUPDATE) 以降の読み取りを failures 回だけ失敗させる"""
    real_query = db.query
    state = {"calls": 0, "failed": 0}

    def query(*entities, **kwargs):
        state["calls"] += 1
        if state["calls"] > 1 and state["failed"] < failures:
            state["failed"] += 1
            raise _db_error()
        return real_query(*entities, **kwargs)

    monkeypatch.setattr(db, "query", query)
    return state


def test_expired_lookup_retries_once(db, make_coupon, make_profile, monkeypatch):
    coupon = make_coupon()
    created = redemption_service.create_redemption(db, coupon.id, make_profile().id, now=T0)
    state = _fail_queries_after_first(db, monkeypatch, failures=1)

    with pytest.raises(RedemptionExpired):
        redemption_service.mark_redeemed(db, created.redemption.qr_code, now=T0 + timedelta(minutes=2))
    assert state["failed"] == 1


def test_expired_lookup_store_down_is_unavailable(db, make_coupon, make_profile, monkeypatch):
    coupon = make_coupon()
    created = redemption_service.create_redemption(db, coupon.id, make_profile().id, now=T0)
    _fail_queries_after_first(db, monkeypatch, failures=2)

    with pytest.raises(StoreUnavailable):
        redemption_service.mark_redeemed(db, created.redemption.qr_code, now=T0 + timedelta(minutes=2))
