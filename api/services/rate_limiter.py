import json
import logging
import time
from typing import Callable, Dict, Optional

from config import RATE_LIMITS, RATE_LIMIT_WINDOW_SECONDS
from utils.local_store import KeyValueStore

logger = logging.getLogger(__name__)

class RateLimiter:
    """
    以裝置儲存記錄每個 (使用者, 操作) 的 {count, timestamp}

    視窗為固定一小時：距離記錄的起始時間超過一小時才歸零重新計算，
    因此跨越視窗邊界的連續操作最多可達上限的兩倍。僅作為介面節流，
    清除裝置儲存即可繞過，不具安全性。
    """

    def __init__(
        self,
        store: KeyValueStore,
        user_id: str,
        limits: Optional[Dict[str, int]] = None,
        window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.user_id = user_id
        self.limits = limits if limits is not None else RATE_LIMITS
        self.window_seconds = window_seconds
        self.clock = clock

    def _key(self, action: str) -> str:
        return f"rate_limit_{self.user_id}_{action}"

    def _read(self, action: str) -> Optional[Dict[str, float]]:
        raw = self.store.get(self._key(action))
        if not raw:
            return None
        try:
            record = json.loads(raw)
            return {"count": int(record["count"]), "timestamp": float(record["timestamp"])}
        except (ValueError, KeyError, TypeError):
            logger.warning(f"頻率限制記錄格式錯誤，重新計算: {self._key(action)}")
            return None

    def _write(self, action: str, count: int, timestamp: float) -> None:
        self.store.set(self._key(action), json.dumps({"count": count, "timestamp": timestamp}))

    def check_rate_limit(self, action: str) -> bool:
        """
        檢查操作是否允許，允許時計數加一

        Returns:
            True 表示允許執行
        """
        limit = self.limits.get(action)
        if limit is None:
            return True

        now = self.clock()
        record = self._read(action)

        if record is None or now - record["timestamp"] > self.window_seconds:
            self._write(action, 1, now)
            return True

        if record["count"] >= limit:
            logger.info(f"使用者 {self.user_id} 的 {action} 已達每小時上限 {limit}")
            return False

        self._write(action, record["count"] + 1, record["timestamp"])
        return True

    def remaining(self, action: str) -> Optional[int]:
        """目前視窗內剩餘次數，沒有上限的操作回傳 None"""
        limit = self.limits.get(action)
        if limit is None:
            return None
        record = self._read(action)
        if record is None or self.clock() - record["timestamp"] > self.window_seconds:
            return limit
        return max(limit - record["count"], 0)

    def reset(self, action: Optional[str] = None) -> None:
        actions = [action] if action else list(self.limits.keys())
        for name in actions:
            self.store.delete(self._key(name))
