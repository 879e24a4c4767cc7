"""
Date range presets for the balancing report.

Turns a preset (daily/weekly/monthly/custom) into a concrete inclusive
[from_date, to_date] range, and tracks the preset/date interplay of the
report's range selector: choosing a preset overwrites the dates, editing
a date switches the preset to custom.
"""
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Union

from .exceptions import ValidationError
from .models import DateRange, Preset


def start_of_week(today: date) -> date:
    """Monday of the ISO week containing today (Sunday -> six days back)."""
    return today - timedelta(days=today.weekday())


def start_of_month(today: date) -> date:
    return today.replace(day=1)


def parse_ymd(value: Union[str, date]) -> date:
    """Parse a YYYY-MM-DD string."""
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError):
        raise ValidationError("date", str(value), "expected YYYY-MM-DD")


def resolve_preset(
    preset: Preset,
    today: date,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None
) -> DateRange:
    """
    Resolve a preset into a date range.

    Custom ranges are returned verbatim (not validated); call
    DateRange.validate() before fetching.
    """
    if preset == Preset.DAILY:
        return DateRange(today, today)
    if preset == Preset.WEEKLY:
        return DateRange(start_of_week(today), today)
    if preset == Preset.MONTHLY:
        return DateRange(start_of_month(today), today)
    if preset == Preset.CUSTOM:
        if from_date is None or to_date is None:
            raise ValidationError("date_range", "", "custom range needs both from and to dates")
        return DateRange(from_date, to_date)
    raise ValidationError("preset", str(preset), "unknown preset")


class RangeSelection:
    """Preset plus explicit dates, as edited by the user."""

    def __init__(
        self,
        preset: Preset = Preset.DAILY,
        today: Optional[Callable[[], date]] = None
    ):
        self._today = today or date.today
        self.preset = preset
        current = self._today()
        self.from_date = current
        self.to_date = current
        if preset != Preset.CUSTOM:
            self.choose_preset(preset)

    def choose_preset(self, preset: Preset) -> DateRange:
        """Switch preset; non-custom presets overwrite both dates."""
        self.preset = preset
        if preset != Preset.CUSTOM:
            resolved = resolve_preset(preset, self._today())
            self.from_date = resolved.from_date
            self.to_date = resolved.to_date
        return self.date_range

    def set_from_date(self, value: Union[str, date]) -> DateRange:
        self.from_date = parse_ymd(value)
        self.preset = Preset.CUSTOM
        return self.date_range

    def set_to_date(self, value: Union[str, date]) -> DateRange:
        self.to_date = parse_ymd(value)
        self.preset = Preset.CUSTOM
        return self.date_range

    @property
    def date_range(self) -> DateRange:
        return DateRange(self.from_date, self.to_date)
