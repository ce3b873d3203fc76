from datetime import timedelta

from saverly.services import redemption_service
from saverly.utils.clock import utcnow


def _create(client, coupon_id, user_id, **extra):
    return client.post("/api/redemptions", json={"coupon_id": coupon_id, "user_id": user_id, **extra})


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok", "db": "connected"}


def test_create_and_redeem_flow(client, live_coupon, make_profile):
    coupon = live_coupon(max_total_uses=1)
    user = make_profile()

    res = _create(client, coupon.id, user.id, location={"latitude": 30.27, "longitude": -97.74})
    assert res.status_code == 201
    body = res.json()
    assert body["status"] == "pending"
    assert body["coupon"]["id"] == coupon.id
    assert body["business"]["name"] == "Corner Cafe"
    assert res.headers["cache-control"] == "no-store"

    lookup = client.get(f"/api/redemptions/code/{body['qr_code']}")
    assert lookup.json()["id"] == body["id"]

    redeemed = client.post("/api/redemptions/redeem", json={"qr_code": body["qr_code"]})
    assert redeemed.status_code == 200
    assert redeemed.json()["status"] == "redeemed"
    assert redeemed.json()["coupon"]["current_uses"] == 1

    again = client.post("/api/redemptions/redeem", json={"qr_code": body["qr_code"]})
    assert again.status_code == 404
    assert again.json()["code"] == "redemption_not_found"

    capped = _create(client, coupon.id, make_profile().id)
    assert capped.status_code == 409
    assert capped.json()["code"] == "global_limit_reached"


def test_error_codes_are_distinguishable(client, live_coupon, make_profile):
    user = make_profile()

    assert _create(client, 999, user.id).json()["code"] == "coupon_not_found"
    assert _create(client, live_coupon(is_active=False).id, user.id).json()["code"] == "coupon_not_live"

    gated = live_coupon(requires_subscription=True)
    res = _create(client, gated.id, make_profile(subscription_status="canceled").id)
    assert res.status_code == 402
    assert res.json()["code"] == "subscription_required"


def test_user_limit_status(client, db, live_coupon, make_profile):
    coupon = live_coupon()
    user = make_profile()
    created = _create(client, coupon.id, user.id).json()
    client.post("/api/redemptions/redeem", json={"qr_code": created["qr_code"]})

    res = _create(client, coupon.id, user.id)
    assert res.status_code == 429
    assert res.json()["code"] == "user_limit_reached"


def test_invalid_location_rejected(client, live_coupon, make_profile):
    res = _create(client, live_coupon().id, make_profile().id, location={"latitude": 100, "longitude": 0})
    assert res.status_code == 422


def test_expired_code(client, db, live_coupon, make_profile):
    coupon = live_coupon()
    user = make_profile()
    old = redemption_service.create_redemption(db, coupon.id, user.id, now=utcnow() - timedelta(minutes=2))
    code = old.redemption.qr_code
    rid = old.redemption.id

    res = client.post("/api/redemptions/redeem", json={"qr_code": code})
    assert res.status_code == 410
    assert res.json()["code"] == "redemption_expired"

    expired = client.post(f"/api/redemptions/{rid}/expire")
    assert expired.json() == {"expired": True, "status": "expired"}


def test_cancel_and_history(client, live_coupon, make_profile):
    coupon = live_coupon()
    user = make_profile()
    created = _create(client, coupon.id, user.id).json()

    res = client.post(f"/api/redemptions/{created['id']}/cancel", json={"user_id": user.id})
    assert res.json()["status"] == "cancelled"

    history = client.get("/api/redemptions", params={"user_id": user.id}).json()
    assert [r["id"] for r in history] == [created["id"]]


def test_countdown_stream_for_elapsed_code(client, db, live_coupon, make_profile):
    coupon = live_coupon()
    user = make_profile()
    old = redemption_service.create_redemption(db, coupon.id, user.id, now=utcnow() - timedelta(minutes=2))
    rid = old.redemption.id

    res = client.get(f"/api/redemptions/{rid}/countdown")

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/event-stream")
    assert 'data: {"remaining_seconds": 0}' in res.text
    assert "event: expired" in res.text
    # 表示専用: DBの状態は変わらない
    db.expire_all()
    assert redemption_service.get_redemption(db, rid).redemption.status.value == "pending"


def test_countdown_stream_for_finished_redemption(client, db, live_coupon, make_profile):
    coupon = live_coupon()
    user = make_profile()
    created = redemption_service.create_redemption(db, coupon.id, user.id)
    redemption_service.mark_redeemed(db, created.redemption.qr_code)

    res = client.get(f"/api/redemptions/{created.redemption.id}/countdown")

    assert res.status_code == 200
    assert 'event: closed\ndata: {"status": "redeemed"}' in res.text
    assert "remaining_seconds" not in res.text


def test_coupon_feed(client, live_coupon, make_business):
    near = live_coupon(business=make_business(latitude=30.27, longitude=-97.75))
    far = live_coupon(business=make_business(name="Houston", latitude=29.7604, longitude=-95.3698))

    res = client.get("/api/coupons", params={"lat": 30.2672, "lng": -97.7431})
    ids = [item["coupon"]["id"] for item in res.json()]
    assert ids == [near.id, far.id]

    assert client.get("/api/coupons", params={"lat": 30.0}).status_code == 422
    assert client.get("/api/coupons", params={"category": "spaceships"}).status_code == 422
    assert client.get(f"/api/coupons/{far.id}").json()["business"]["name"] == "Houston"


def test_admin_stats(client, live_coupon, make_profile):
    coupon = live_coupon()
    _create(client, coupon.id, make_profile().id)

    stats = client.get("/api/admin/redemptions/stats", params={"business_id": coupon.business_id}).json()
    assert stats["total"] == 1
    assert stats["pending"] == 1
