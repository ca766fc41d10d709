"""Recurrence rules for recurring transactions."""

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from dateutil.relativedelta import relativedelta

from .errors import ValidationError


class Frequency(str, Enum):
    """How often a recurring transaction repeats."""

    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


DAY_BASED = (Frequency.DAILY, Frequency.WEEKLY, Frequency.BIWEEKLY)
MONTH_BASED = (Frequency.MONTHLY, Frequency.QUARTERLY, Frequency.YEARLY)


@dataclass(frozen=True)
class RecurrencePattern:
    """Immutable recurrence rule.

    Occurrences are counted from an anchor: the first date on or after the
    series start that satisfies the rule. Day-of-month values past the end of
    a month are clamped (31 -> Feb 28/29).

    Attributes:
        frequency: Repeat frequency
        interval: Repeat every N units (days, weeks, months or years)
        day_of_month: 1-31, for monthly, quarterly and yearly rules
        day_of_week: 0-6 (Monday = 0), for weekly and biweekly rules
        month_of_year: 1-12, for yearly rules
    """

    frequency: Frequency
    interval: int = 1
    day_of_month: int | None = None
    day_of_week: int | None = None
    month_of_year: int | None = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "frequency", Frequency(self.frequency))
        except ValueError as e:
            raise ValidationError(f"Unsupported frequency: {self.frequency}") from e

        if self.interval < 1:
            raise ValidationError("Interval must be at least 1")
        if self.frequency in MONTH_BASED:
            if self.day_of_month is None or not 1 <= self.day_of_month <= 31:
                raise ValidationError("Day of month must be between 1 and 31")
        if self.frequency == Frequency.YEARLY:
            if self.month_of_year is None or not 1 <= self.month_of_year <= 12:
                raise ValidationError("Month of year must be between 1 and 12")
        if self.day_of_week is not None and not 0 <= self.day_of_week <= 6:
            raise ValidationError("Day of week must be between 0 (Monday) and 6 (Sunday)")

    @classmethod
    def daily(cls, interval: int = 1) -> "RecurrencePattern":
        return cls(Frequency.DAILY, interval)

    @classmethod
    def weekly(cls, day_of_week: int, interval: int = 1) -> "RecurrencePattern":
        return cls(Frequency.WEEKLY, interval, day_of_week=day_of_week)

    @classmethod
    def biweekly(cls, day_of_week: int) -> "RecurrencePattern":
        return cls(Frequency.BIWEEKLY, 1, day_of_week=day_of_week)

    @classmethod
    def monthly(cls, day_of_month: int, interval: int = 1) -> "RecurrencePattern":
        return cls(Frequency.MONTHLY, interval, day_of_month=day_of_month)

    @classmethod
    def quarterly(cls, day_of_month: int) -> "RecurrencePattern":
        return cls(Frequency.QUARTERLY, 1, day_of_month=day_of_month)

    @classmethod
    def yearly(cls, day_of_month: int, month_of_year: int, interval: int = 1) -> "RecurrencePattern":
        return cls(Frequency.YEARLY, interval, day_of_month=day_of_month, month_of_year=month_of_year)

    @property
    def step_days(self) -> int | None:
        """Days between occurrences for day-based rules."""
        if self.frequency == Frequency.DAILY:
            return self.interval
        if self.frequency == Frequency.WEEKLY:
            return 7 * self.interval
        if self.frequency == Frequency.BIWEEKLY:
            return 14 * self.interval
        return None

    @property
    def step_months(self) -> int | None:
        """Months between occurrences for month-based rules."""
        if self.frequency == Frequency.MONTHLY:
            return self.interval
        if self.frequency == Frequency.QUARTERLY:
            return 3 * self.interval
        if self.frequency == Frequency.YEARLY:
            return 12 * self.interval
        return None

    def occurrences_between(
        self,
        series_start: date,
        series_end: date | None,
        start: date,
        end: date,
    ) -> Iterator[date]:
        """Yield occurrence dates within [start, end], ascending.

        Args:
            series_start: First day the series is active
            series_end: Last day the series is active (None = open-ended)
            start: Range start (inclusive)
            end: Range end (inclusive)
        """
        if series_end is not None and series_end < end:
            end = series_end
        if start > end:
            return

        index = self._first_index_on_or_after(series_start, start)
        current = self._occurrence(series_start, index)
        while current <= end:
            yield current
            index += 1
            current = self._occurrence(series_start, index)

    def _occurrence(self, series_start: date, index: int) -> date:
        """Date of the index-th occurrence counted from the series base."""
        if self.step_days is not None:
            return self._day_anchor(series_start) + timedelta(days=index * self.step_days)
        # relativedelta(day=N) clamps N to the month length
        return self._month_base(series_start) + relativedelta(
            months=index * self.step_months, day=self.day_of_month
        )

    def _first_index_on_or_after(self, series_start: date, day: date) -> int:
        if self.step_days is not None:
            gap = (day - self._day_anchor(series_start)).days
            return max(0, -(-gap // self.step_days))

        base = self._month_base(series_start)
        index = 0 if self._occurrence(series_start, 0) >= series_start else 1
        months_apart = (day.year - base.year) * 12 + day.month - base.month
        index = max(index, months_apart // self.step_months)
        while self._occurrence(series_start, index) < day:
            index += 1
        return index

    def _day_anchor(self, series_start: date) -> date:
        if self.day_of_week is None or self.frequency == Frequency.DAILY:
            return series_start
        return series_start + timedelta(days=(self.day_of_week - series_start.weekday()) % 7)

    def _month_base(self, series_start: date) -> date:
        month = self.month_of_year if self.frequency == Frequency.YEARLY else series_start.month
        return date(series_start.year, month, 1)

    def __str__(self) -> str:
        if self.frequency == Frequency.DAILY:
            return "Daily" if self.interval == 1 else f"Every {self.interval} days"
        if self.frequency == Frequency.WEEKLY:
            every = "Weekly" if self.interval == 1 else f"Every {self.interval} weeks"
            return f"{every} on day {self.day_of_week}"
        if self.frequency == Frequency.BIWEEKLY:
            return f"Every 2 weeks on day {self.day_of_week}"
        if self.frequency == Frequency.MONTHLY:
            every = "Monthly" if self.interval == 1 else f"Every {self.interval} months"
            return f"{every} on day {self.day_of_month}"
        if self.frequency == Frequency.QUARTERLY:
            return f"Quarterly on day {self.day_of_month}"
        return f"Yearly on {self.month_of_year}/{self.day_of_month}"
