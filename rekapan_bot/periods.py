from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel

from .dates import parse_stored_date, today_local
from .schemas import ActivationRecord, PeriodKind

END_OF_DAY = time(23, 59, 59, 999000)


class PeriodWindow(BaseModel):
    """Inclusive datetime range of a report period."""

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @classmethod
    def for_days(cls, first: date, last: date) -> "PeriodWindow":
        return cls(start=datetime.combine(first, time.min), end=datetime.combine(last, END_OF_DAY))


def _as_kind(period: Union[PeriodKind, str, None]) -> Optional[PeriodKind]:
    if isinstance(period, PeriodKind):
        return period
    try:
        return PeriodKind((period or "").strip().lower())
    except ValueError:
        return None


def compute_window(period: Union[PeriodKind, str], anchor: date) -> Optional[PeriodWindow]:
    """Window around ``anchor``; ``None`` for ``all`` and unknown kinds."""
    kind = _as_kind(period)
    if kind is PeriodKind.DAILY:
        return PeriodWindow.for_days(anchor, anchor)
    if kind is PeriodKind.WEEKLY:
        # Sunday belongs to the week that started the previous Monday
        monday = anchor - timedelta(days=anchor.weekday())
        return PeriodWindow.for_days(monday, monday + timedelta(days=6))
    if kind is PeriodKind.MONTHLY:
        first = anchor.replace(day=1)
        next_month = (first + timedelta(days=32)).replace(day=1)
        return PeriodWindow.for_days(first, next_month - timedelta(days=1))
    return None


def filter_by_period(
    records: Iterable[ActivationRecord],
    period: Union[PeriodKind, str],
    anchor: Optional[date] = None,
    tz_name: str = "Asia/Jakarta",
) -> List[ActivationRecord]:
    """
    Keep the records whose stored date falls inside the period window.

    Args:
        records: Data rows (header already removed)
        period: daily, weekly or monthly; anything else keeps every record
        anchor: Day the window is built around, today in ``tz_name`` when omitted
        tz_name: Timezone used to resolve today

    Returns:
        Matching records in their original order. Rows whose date cannot be
        parsed are left out.
    """
    records = list(records)
    window = compute_window(period, anchor or today_local(tz_name))
    if window is None:
        return records

    selected = []
    for record in records:
        record_day = parse_stored_date(record.record_date)
        if record_day is None:
            continue
        if window.contains(datetime.combine(record_day, time.min)):
            selected.append(record)
    return selected
