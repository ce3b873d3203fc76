"""引き換えコードの残り時間表示 (表示専用)

expires_at までの残り秒数を1秒ごとに通知する。0秒になったら表示上の
expired フラグを立てるだけで、DBの状態は変更しない。
確定的な expired 遷移はスイープか expire_redemption で行う。
"""
import asyncio
import math
from datetime import datetime
from typing import AsyncIterator, Callable, Optional

from saverly.utils.clock import utcnow


class RedemptionCountdown:
    def __init__(
        self,
        expires_at: datetime,
        clock: Callable[[], datetime] = utcnow,
        tick_seconds: float = 1.0,
    ):
        self.expires_at = expires_at
        self._clock = clock
        self._tick_seconds = tick_seconds
        self.expired = False

    def remaining_seconds(self, now: Optional[datetime] = None) -> int:
        now = now or self._clock()
        remaining = (self.expires_at - now).total_seconds()
        return max(0, math.ceil(remaining))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.remaining_seconds(now) == 0

    async def ticks(self) -> AsyncIterator[int]:
        """残り秒数を1秒ごとにyield。0をyieldしたら終了

        呼び出し側のタスクがキャンセルされるとタイマーも止まる。
        """
        while True:
            remaining = self.remaining_seconds()
            yield remaining
            if remaining == 0:
                self.expired = True
                return
            await asyncio.sleep(self._tick_seconds)
