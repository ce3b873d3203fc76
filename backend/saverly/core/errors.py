"""ドメインエラー定義

種別ごとに基底クラスを分ける:
- ValidationFailed: 入力不正・参照先なし (リトライしない)
- EligibilityError: 引き換え資格なし (ユーザー向けメッセージ、リトライしない)
- TerminalStateError: 引き換え済み/期限切れのコード (通常フロー、インシデントではない)
- StoreUnavailable: DB到達不可 (ローカルリトライ後に返す)
"""
from typing import Optional


class SaverlyError(Exception):
    status_code = 400
    code = "error"
    message = "エラーが発生しました"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.detail = message or self.message


class ValidationFailed(SaverlyError):
    status_code = 422
    code = "validation_failed"
    message = "入力値が不正です"


class InvalidLocation(ValidationFailed):
    code = "invalid_location"
    message = "位置情報が不正です"


class CouponNotFound(ValidationFailed):
    status_code = 404
    code = "coupon_not_found"
    message = "クーポンが見つかりません"


class UserNotFound(ValidationFailed):
    status_code = 404
    code = "user_not_found"
    message = "ユーザーが見つかりません"


class EligibilityError(SaverlyError):
    status_code = 409
    code = "not_eligible"


class CouponNotLive(EligibilityError):
    code = "coupon_not_live"
    message = "このクーポンは現在利用できません"


class GlobalLimitReached(EligibilityError):
    code = "global_limit_reached"
    message = "このクーポンは利用上限に達しました"


class UserLimitReached(EligibilityError):
    status_code = 429
    code = "user_limit_reached"
    message = "このクーポンの利用回数上限に達しています"


class SubscriptionRequired(EligibilityError):
    status_code = 402
    code = "subscription_required"
    message = "このクーポンの利用にはサブスクリプションが必要です"


class TerminalStateError(SaverlyError):
    status_code = 409
    code = "terminal_state"


class RedemptionNotFound(TerminalStateError):
    status_code = 404
    code = "redemption_not_found"
    message = "有効な引き換えコードが見つかりません"


class RedemptionExpired(TerminalStateError):
    status_code = 410
    code = "redemption_expired"
    message = "引き換えコードの有効期限が切れています"


class StoreUnavailable(SaverlyError):
    status_code = 503
    code = "store_unavailable"
    message = "一時的に処理できません。しばらくしてから再度お試しください"
