"""引き換えコード生成

1回の引き換えにつき3種類のコードを独立に生成する:
- スキャン用コード: SAV-<ミリ秒タイムスタンプ(36進)>-<ランダム9桁>
- 表示コード: 英大文字+数字 8桁 (スキャンできない場合の手入力用)
- 確認コード: 6桁数字 (100000〜999999)

一意性の最終保証はDBのユニーク制約。衝突時は呼び出し側で再生成する。
"""
import secrets
import string
import time
from dataclasses import dataclass
from typing import Optional

SCAN_CODE_PREFIX = "SAV"
DISPLAY_CODE_LENGTH = 8
DISPLAY_CODE_ALPHABET = string.ascii_uppercase + string.digits
_BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class RedemptionCodes:
    qr_code: str
    display_code: str
    verification_code: str


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_scan_code(timestamp_ms: Optional[int] = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{SCAN_CODE_PREFIX}-{_to_base36(timestamp_ms)}-{suffix}".upper()


def generate_display_code() -> str:
    return "".join(secrets.choice(DISPLAY_CODE_ALPHABET) for _ in range(DISPLAY_CODE_LENGTH))


def generate_verification_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def generate_codes(timestamp_ms: Optional[int] = None) -> RedemptionCodes:
    return RedemptionCodes(
        qr_code=generate_scan_code(timestamp_ms),
        display_code=generate_display_code(),
        verification_code=generate_verification_code(),
    )
