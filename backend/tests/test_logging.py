import json
import logging

from saverly.core.logging import JSONFormatter, log_event


def _record(message, **extra):
    record = logging.LogRecord("saverly.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_line_carries_service_and_data():
    formatter = JSONFormatter(service="saverly-scheduler")

    entry = json.loads(formatter.format(_record("引き換え確定", extra_data={"redemption_id": 7})))

    assert entry["service"] == "saverly-scheduler"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "saverly.test"
    assert entry["message"] == "引き換え確定"
    assert entry["data"] == {"redemption_id": 7}


def test_json_line_without_service_or_data():
    entry = json.loads(JSONFormatter().format(_record("plain")))

    assert "service" not in entry
    assert "data" not in entry


def test_log_event_attaches_structured_fields(caplog):
    logger = logging.getLogger("saverly.test")

    with caplog.at_level(logging.INFO, logger="saverly.test"):
        log_event(logger, logging.INFO, "引き換え作成", redemption_id=3, coupon_id=9)

    assert caplog.records[-1].extra_data == {"redemption_id": 3, "coupon_id": 9}
