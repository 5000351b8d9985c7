"""
Per-device SOS rate limiting.

`check` gates a trigger; `record_trigger` maintains the rolling window:
the count resets once the window (or a previous block) has lapsed, and a
device that reaches the per-window maximum is blocked for a fixed period.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from ..core.config import settings
from ..core.errors import RateLimited
from ..repositories import db_models, repository

logger = logging.getLogger(__name__)


class SosRateLimiter:
    def __init__(
        self,
        window_minutes: int = settings.sos_rate_window_minutes,
        max_per_window: int = settings.sos_rate_max_per_window,
        block_minutes: int = settings.sos_rate_block_minutes,
    ):
        self.window = timedelta(minutes=window_minutes)
        self.max_per_window = max_per_window
        self.block = timedelta(minutes=block_minutes)

    @staticmethod
    def is_blocked(record: Optional[db_models.SosRateLimit], now: datetime) -> bool:
        return bool(record and record.is_blocked and record.blocked_until and record.blocked_until > now)

    def check(self, device_id: str, now: Optional[datetime] = None) -> None:
        now = now or datetime.utcnow()
        record = repository.get_rate_limit(device_id)
        if self.is_blocked(record, now):
            logger.warning("SOS rate limited for device %s until %s", device_id, record.blocked_until)
            raise RateLimited("SOS requests are rate limited")

    def record_trigger(self, device_id: str, now: Optional[datetime] = None) -> db_models.SosRateLimit:
        now = now or datetime.utcnow()
        record = repository.get_rate_limit(device_id)

        window_lapsed = record is None or record.window_start + self.window <= now
        block_lapsed = record is not None and record.is_blocked and not self.is_blocked(record, now)
        if window_lapsed or block_lapsed:
            return repository.save_rate_limit(device_id, sos_count=1, window_start=now)

        count = record.sos_count + 1
        if count >= self.max_per_window:
            blocked_until = now + self.block
            logger.warning("Device %s reached %d SOS triggers, blocked until %s", device_id, count, blocked_until)
            return repository.save_rate_limit(
                device_id,
                sos_count=count,
                window_start=record.window_start,
                is_blocked=True,
                blocked_until=blocked_until,
            )
        return repository.save_rate_limit(device_id, sos_count=count, window_start=record.window_start)
