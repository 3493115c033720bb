# services/market_status.py
from __future__ import annotations

from datetime import datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

US_EASTERN = ZoneInfo("America/New_York")

PRE_MARKET_OPEN = time(4, 0)
REGULAR_OPEN = time(9, 30)
REGULAR_CLOSE = time(16, 0)
AFTER_HOURS_CLOSE = time(20, 0)


def market_status(now: Optional[datetime] = None) -> str:
    """
    US equity session for a moment in time:
    "pre-market" | "regular" | "after-hours" | "closed".
    Exchange holidays are not modelled.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(US_EASTERN)

    if local.weekday() >= 5:
        return "closed"

    t = local.time()
    if PRE_MARKET_OPEN <= t < REGULAR_OPEN:
        return "pre-market"
    if REGULAR_OPEN <= t < REGULAR_CLOSE:
        return "regular"
    if REGULAR_CLOSE <= t < AFTER_HOURS_CLOSE:
        return "after-hours"
    return "closed"
