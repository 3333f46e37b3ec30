from collections import Counter
from datetime import timedelta

from errors import ValidationError
from services.streak_service import today_in


DEFAULT_WINDOW_DAYS = 365


class ActivityAggregator:
    """Per-day activity counts for the dashboard heatmap."""

    def __init__(self, store, today=None, window_days: int = DEFAULT_WINDOW_DAYS):
        self.store = store
        self.today = today or today_in("UTC")
        self.window_days = window_days

    def default_range(self):
        end = self.today()
        return end - timedelta(days=self.window_days - 1), end

    def get_heatmap(self, user_id, start_date=None, end_date=None):
        default_start, default_end = self.default_range()
        end_date = end_date or default_end
        start_date = start_date or (end_date - (default_end - default_start))
        if start_date > end_date:
            raise ValidationError("start date must not be after end date")

        entries = self.store.activity_between(user_id, start_date, end_date)
        # Every row counts, so repeat activity on one day deepens the colour.
        counts = Counter(entry.activity_date.isoformat() for entry in entries)
        return [{"date": day, "count": counts[day]} for day in sorted(counts)]
