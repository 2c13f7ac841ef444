"""
Schedule sheet parser.

Turns the raw cell rows of the schedule spreadsheet into classes:

    CONFIGURATION (A:I)
        A/B  key/value rows: Location | Lokasi, "Number of Weeks", Start Date
        E/F  sheet class label → class type
        H/I  sheet coach name  → coach id

    MONDAY .. SUNDAY (A:H), first row is a header
        time | duration | class label | coach | title | capacity | price | original price

Everything here is pure: rows in, dataclasses out. Problems with individual
rows are collected as messages rather than raised, so one typo does not
block the rest of the week.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Optional, Sequence

from domain.constants import (
    DEFAULT_CLASS_CAPACITY,
    DEFAULT_CLASS_DURATION_MINUTES,
    SCHEDULE_DAY_SHEETS,
)
from domain.enums import ClassStatus

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME = re.compile(r"^(\d{1,2})[.:](\d{2})(?::\d{2})?$")
_TRAILING_WEEKDAY = re.compile(r"\s*\([^)]+\)\s*$")

_TEXT_DATE_FORMATS = (
    "%d-%b-%Y",   # 5-Jan-2026
    "%Y-%m-%d",
    "%d/%m/%Y",   # 05/01/2026 (day first, as the studio writes it)
    "%B %d, %Y",  # January 5, 2026
    "%b %d, %Y",
    "%d %B %Y",   # 5 January 2026
    "%d %b %Y",
)


@dataclass
class ScheduleConfig:
    location: str = ""
    weeks: int = 0
    start_date: str = ""  # YYYY-MM-DD, or the raw text when it could not be parsed

    @property
    def start(self) -> Optional[date]:
        if not _ISO_DATE.match(self.start_date):
            return None
        try:
            return date.fromisoformat(self.start_date)
        except ValueError:
            return None


@dataclass
class ParsedClass:
    start_time: datetime
    end_time: datetime
    title: str
    class_type: str
    coach_id: int
    coach_name: str
    location: str
    capacity: int
    price: int
    original_price: Optional[int] = None
    status: str = ClassStatus.SCHEDULED.value
    source: str = ""  # "MONDAY Row 3", for messages about this row

    def to_dict(self) -> dict:
        return {
            "date": self.start_time.date().isoformat(),
            "start_time": self.start_time.strftime("%H:%M:%S"),
            "end_time": self.end_time.strftime("%H:%M:%S"),
            "title": self.title,
            "class_type": self.class_type,
            "coach_id": self.coach_id,
            "coach_name": self.coach_name,
            "location": self.location,
            "capacity": self.capacity,
            "price": self.price,
            "original_price": self.original_price,
            "status": self.status,
        }


@dataclass
class ScheduleResult:
    classes: list[ParsedClass] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _leading_int(value: Any) -> Optional[int]:
    match = re.match(r"\s*(\d+)", _text(value))
    return int(match.group(1)) if match else None


# ════════════════════════════════════════════════════════════════════
# Cell parsers
# ════════════════════════════════════════════════════════════════════


def parse_start_date(value: Any, today: Optional[date] = None) -> str:
    """
    Normalize the Start Date cell to YYYY-MM-DD.

    Accepts date objects and the text forms the sheet has been seen with
    ("5-Jan-2026 (Monday)", "2026-01-05", "05/01/2026", "January 5, 2026").
    An empty cell means today; unrecognised text is returned unchanged so
    the sync can report it.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = _TRAILING_WEEKDAY.sub("", _text(value)).strip()
    if not text:
        return (today or date.today()).isoformat()

    for fmt in _TEXT_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue

    logger.warning(f"Unrecognised schedule start date: {text!r}")
    return text


def parse_time(value: Any) -> Optional[time]:
    """'08.00' / '8:30' / '08:00:00' → time. None when the cell is not a time."""
    match = _TIME.match(_text(value))
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def parse_duration(value: Any) -> int:
    """First number in the cell ('60 min' → 60); defaults to 60 minutes."""
    minutes = _leading_int(re.sub(r"^\D+", "", _text(value)))
    return minutes if minutes else DEFAULT_CLASS_DURATION_MINUTES


def calculate_end_time(start: datetime, duration_minutes: int) -> datetime:
    return start + timedelta(minutes=duration_minutes)


def parse_price(value: Any) -> Optional[int]:
    """Keep digits only ('Rp 150.000' → 150000). None for a blank or digit-free cell."""
    digits = re.sub(r"[^0-9]", "", _text(value))
    return int(digits) if digits else None


# ════════════════════════════════════════════════════════════════════
# CONFIGURATION sheet
# ════════════════════════════════════════════════════════════════════


def parse_configuration(
    rows: Sequence[Sequence[Any]],
    today: Optional[date] = None,
) -> tuple[ScheduleConfig, dict[str, str], dict[str, int]]:
    """Return (config, class_mapping, coach_mapping) from the CONFIGURATION rows."""
    config = ScheduleConfig()
    start_cell: Any = None
    class_mapping: dict[str, str] = {}
    coach_mapping: dict[str, int] = {}

    for row in rows:
        if not row:
            continue

        key = _text(_cell(row, 0)).lower()
        value = _cell(row, 1)
        if key in ("location", "lokasi"):
            config.location = _text(value)
        elif "weeks" in key:
            config.weeks = _leading_int(value) or 0
        elif key.replace(":", "").strip() == "start date":
            start_cell = value

        label, class_type = _text(_cell(row, 4)), _text(_cell(row, 5))
        if label and class_type:
            class_mapping[label] = class_type

        coach_name = _text(_cell(row, 7))
        coach_id = _leading_int(_cell(row, 8))
        if coach_name and coach_id:
            coach_mapping[coach_name] = coach_id

    config.start_date = parse_start_date(start_cell, today=today)
    return config, class_mapping, coach_mapping


# ════════════════════════════════════════════════════════════════════
# Day sheets
# ════════════════════════════════════════════════════════════════════


def parse_day_rows(
    day_name: str,
    rows: Sequence[Sequence[Any]],
    class_date: date,
    location: str,
    class_mapping: dict[str, str],
    coach_mapping: dict[str, int],
    result: ScheduleResult,
) -> None:
    """Append the classes of one day sheet (for one date) to result."""
    for index, row in enumerate(rows[1:], start=2):
        time_cell, label, coach_name = _cell(row, 0), _text(_cell(row, 2)), _text(_cell(row, 3))
        if not _text(time_cell) or not label or not coach_name:
            continue

        where = f"{day_name} Row {index}"
        start = parse_time(time_cell)
        if start is None:
            result.errors.append(f"{where}: Invalid time '{_text(time_cell)}'")
            continue

        class_type = class_mapping.get(label)
        if not class_type:
            result.errors.append(f"{where}: Unknown class type '{label}'")
            continue

        coach_id = coach_mapping.get(coach_name)
        if not coach_id:
            result.errors.append(f"{where}: Unknown coach '{coach_name}'")
            continue

        price = parse_price(_cell(row, 6)) or 0
        if price == 0:
            result.errors.append(f"{where}: Price is missing or invalid")

        capacity = _leading_int(_cell(row, 5))
        if capacity is None:
            capacity = DEFAULT_CLASS_CAPACITY

        start_time = datetime.combine(class_date, start)
        result.classes.append(
            ParsedClass(
                start_time=start_time,
                end_time=calculate_end_time(start_time, parse_duration(_cell(row, 1))),
                title=_text(_cell(row, 4)) or f"{label} With {coach_name}",
                class_type=class_type,
                coach_id=coach_id,
                coach_name=coach_name,
                location=location,
                capacity=capacity,
                price=price,
                original_price=parse_price(_cell(row, 7)),
                source=where,
            )
        )


def build_schedule(
    config: ScheduleConfig,
    class_mapping: dict[str, str],
    coach_mapping: dict[str, int],
    day_rows: dict[str, Sequence[Sequence[Any]]],
    location: Optional[str] = None,
) -> ScheduleResult:
    """
    Expand the weekly template over config.weeks weeks.

    Day sheet d (0 = MONDAY) of week w lands on start_date + 7w + d. A
    missing or empty day sheet contributes no classes.
    """
    start = config.start
    if start is None:
        raise ValueError(
            f'Invalid start date format. Expected YYYY-MM-DD, got: "{config.start_date}". '
            "Please check your CONFIGURATION sheet."
        )

    location = location or config.location
    result = ScheduleResult()
    for week in range(config.weeks):
        for day_index, day_name in enumerate(SCHEDULE_DAY_SHEETS):
            rows = day_rows.get(day_name) or []
            if not rows:
                continue
            class_date = start + timedelta(days=week * 7 + day_index)
            parse_day_rows(day_name, rows, class_date, location, class_mapping, coach_mapping, result)

    # The same template row fails identically every week
    result.errors = list(dict.fromkeys(result.errors))

    logger.info(
        f"📅 Schedule parsed: {len(result.classes)} classes over {config.weeks} week(s) "
        f"from {config.start_date}, {len(result.errors)} issue(s)"
    )
    return result


def schedule_summary(config: ScheduleConfig, location: str) -> dict:
    start = config.start
    end = start + timedelta(days=config.weeks * 7) if start else None
    return {
        "location": location,
        "startDate": config.start_date,
        "endDate": end.isoformat() if end else None,
        "weeks": config.weeks,
    }
