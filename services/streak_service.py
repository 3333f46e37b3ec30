"""Daily streak bookkeeping.

The calendar-day rule lives in ``compute_streak`` so it can be exercised without
a database; ``StreakTracker`` wires it to the store and the activity log.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from errors import ConflictError, PersistenceError


logger = logging.getLogger(__name__)

DEFAULT_ACTIVITY_TYPE = "task_completed"


@dataclass(frozen=True)
class StreakState:
    current_streak: int
    longest_streak: int
    last_activity_date: Optional[date]


@dataclass(frozen=True)
class StreakUpdate:
    current_streak: int
    longest_streak: int
    is_first_activity_today: bool

    def to_dict(self):
        return {
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "isFirstActivityToday": self.is_first_activity_today,
        }


def compute_streak(previous: Optional[StreakState], today: date) -> StreakUpdate:
    if previous is None or previous.last_activity_date is None:
        return StreakUpdate(current_streak=1, longest_streak=1, is_first_activity_today=True)

    current = max(0, previous.current_streak or 0)
    gap = (today - previous.last_activity_date).days
    first_today = True

    if gap == 0:
        first_today = False
    elif gap == 1:
        current += 1
    elif gap == 2:
        # A single missed day costs one point instead of the whole streak.
        current = max(0, current - 1)
    else:
        # Older dates, and dates in the future from clock skew, start over.
        current = 1

    longest = max(previous.longest_streak or 0, current)
    return StreakUpdate(current_streak=current, longest_streak=longest, is_first_activity_today=first_today)


def resolve_zone(timezone_name: str):
    if not timezone_name or timezone_name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(timezone_name)


def today_in(timezone_name: str):
    """Return a callable giving the current calendar date in ``timezone_name``."""
    zone = resolve_zone(timezone_name)

    def _today() -> date:
        return datetime.now(zone).date()

    return _today


class StreakTracker:
    def __init__(self, store, today=None):
        self.store = store
        self.today = today or today_in("UTC")

    def update_streak(self, user_id, activity_type=None, xp_earned=0, today=None) -> StreakUpdate:
        today = today or self.today()
        row = self.store.get_streak(user_id)
        previous = None
        if row is not None:
            previous = StreakState(row.current_streak, row.longest_streak, row.last_activity_date)

        update = compute_streak(previous, today)
        # ConflictError from a concurrent same-user update propagates to the caller.
        try:
            self.store.save_streak(user_id, row, update.current_streak, update.longest_streak, today)
        except PersistenceError as exc:
            logger.error("Error updating streak for %s: %s", user_id, exc)

        try:
            self.store.log_activity(user_id, activity_type or DEFAULT_ACTIVITY_TYPE, today, int(xp_earned or 0))
        except (PersistenceError, ConflictError) as exc:
            logger.warning("Could not log activity for %s: %s", user_id, exc)

        logger.info(
            "Streak for %s: current=%d longest=%d first_today=%s",
            user_id, update.current_streak, update.longest_streak, update.is_first_activity_today,
        )
        return update

    def get_streak(self, user_id, today=None):
        today = today or self.today()
        row = self.store.get_streak(user_id)
        last_activity = row.last_activity_date if row is not None else None
        return {
            "currentStreak": row.current_streak if row is not None else 0,
            "longestStreak": row.longest_streak if row is not None else 0,
            "lastActivityDate": last_activity.isoformat() if last_activity else None,
            "isActiveToday": last_activity == today,
        }
