"""Indonesian date handling.

Stored rows carry a long-form date such as ``"Senin, 1 September 2025"``;
report commands take a short ``DD/MM/YYYY`` or ``DD-MM-YYYY`` anchor.
"""

import re
from datetime import date, datetime
from typing import Optional

import pytz

MONTHS = {
    "januari": 1, "februari": 2, "maret": 3, "april": 4,
    "mei": 5, "juni": 6, "juli": 7, "agustus": 8,
    "september": 9, "oktober": 10, "november": 11, "desember": 12,
}
MONTH_NAMES = {number: name.capitalize() for name, number in MONTHS.items()}

# Monday first, matching date.weekday()
WEEKDAYS = ["senin", "selasa", "rabu", "kamis", "jumat", "sabtu", "minggu"]
WEEKDAY_ALIASES = {"jum'at": "jumat", "ahad": "minggu"}

ANCHOR_PATTERN = re.compile(r"(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})")


def parse_stored_date(value: Optional[str]) -> Optional[date]:
    """Parse ``"<weekday>, <day> <month> <year>"``; ``None`` when it is not one."""
    if not value:
        return None
    parts = value.strip().lower().split()
    if len(parts) < 4:
        return None

    weekday = parts[0].rstrip(",")
    weekday = WEEKDAY_ALIASES.get(weekday, weekday)
    month = MONTHS.get(parts[2])
    if weekday not in WEEKDAYS or month is None:
        return None
    if not parts[1].isdigit() or not parts[3].isdigit():
        return None

    try:
        return date(int(parts[3]), month, int(parts[1]))
    except ValueError:
        return None


def parse_anchor_date(value: Optional[str]) -> Optional[date]:
    """First ``D/M/YYYY`` or ``D-M-YYYY`` in ``value``; ``None`` means no anchor."""
    if not value:
        return None
    match = ANCHOR_PATTERN.search(value)
    if not match:
        return None
    day, month, year = (int(group) for group in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def format_stored_date(value: date) -> str:
    """Render the long-form date written to the sheet, e.g. ``Senin, 15 September 2025``."""
    weekday = WEEKDAYS[value.weekday()].capitalize()
    return f"{weekday}, {value.day} {MONTH_NAMES[value.month]} {value.year}"


def now_local(tz_name: str) -> datetime:
    return datetime.now(pytz.timezone(tz_name))


def today_local(tz_name: str) -> date:
    return now_local(tz_name).date()


def format_timestamp(value: datetime) -> str:
    """Short local timestamp used in report footers."""
    return value.strftime("%d/%m/%Y %H.%M.%S")
