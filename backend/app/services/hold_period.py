"""Hold period policy: when a sale credit becomes withdrawable."""
from datetime import datetime, timedelta
from typing import Optional

from app.config import settings
from app.models.user import User


def hold_period_days(creator: Optional[User]) -> int:
    """Creator override if set, otherwise the platform default."""
    if creator is not None and creator.hold_period_days is not None:
        return max(0, creator.hold_period_days)
    return settings.HOLD_PERIOD_DAYS


def compute_available_at(creator: Optional[User], now: datetime) -> datetime:
    return now + timedelta(days=hold_period_days(creator))
