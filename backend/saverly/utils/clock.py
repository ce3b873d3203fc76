from datetime import datetime, timezone


def utcnow() -> datetime:
    """UTCの現在時刻 (naive)。DBの DateTime カラムはUTC naiveで保存する"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
