"""Open/closed evaluation for free-text weekly schedules.

Schedules look like ``"Mon-Fri: 8AM-10PM, Sat-Sun: 9AM-9PM"``. Each clause
is ``<days>: <open>-<close>`` where ``<days>`` holds day names only. The
first clause that matches the weekday and parses cleanly decides the answer.
Anything unparseable means closed.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, time

logger = logging.getLogger(__name__)

DAY_ABBREVIATIONS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

_DAY_RANGE_PATTERN = re.compile(
    r"\b(mon|tue|wed|thu|fri|sat|sun)\s*-\s*(mon|tue|wed|thu|fri|sat|sun)\b"
)
_CLAUSE_PATTERN = re.compile(
    r"^\s*(?P<days>[a-z]{3}(?:(?:\s*[-,]\s*|\s+)[a-z]{3})*)\s*:\s*(?P<window>.+)$",
    re.IGNORECASE,
)
_TIME_12H_PATTERN = re.compile(r"^(\d{1,2})(?::(\d{2}))?(AM|PM)$")
_TIME_24H_PATTERN = re.compile(r"^(\d{1,2})(?::(\d{2}))?$")


class ScheduleParseError(ValueError):
    """Raised when a schedule clause has a malformed time."""


def parse_time(raw: str) -> time:
    value = raw.upper().replace(" ", "")
    match = _TIME_12H_PATTERN.match(value)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        if not 1 <= hour <= 12:
            raise ScheduleParseError(f"hour out of range: {raw!r}")
        is_pm = match.group(3) == "PM"
        if is_pm and hour != 12:
            hour += 12
        elif not is_pm and hour == 12:
            hour = 0
    else:
        match = _TIME_24H_PATTERN.match(value)
        if not match:
            raise ScheduleParseError(f"unrecognized time: {raw!r}")
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
    try:
        return time(hour=hour, minute=minute)
    except ValueError as exc:
        raise ScheduleParseError(f"time out of range: {raw!r}") from exc


def matches_weekday(day_part: str, weekday: int) -> bool:
    """``weekday`` is ISO numbered: Monday is 1, Sunday is 7."""
    days = day_part.strip().lower()
    if DAY_ABBREVIATIONS[weekday - 1] in days:
        return True
    if "mon-fri" in days and 1 <= weekday <= 5:
        return True
    if "sat-sun" in days and weekday >= 6:
        return True
    return any(_range_covers(start, end, weekday) for start, end in _DAY_RANGE_PATTERN.findall(days))


def _range_covers(start: str, end: str, weekday: int) -> bool:
    first = DAY_ABBREVIATIONS.index(start) + 1
    last = DAY_ABBREVIATIONS.index(end) + 1
    if first <= last:
        return first <= weekday <= last
    # wraps past Sunday, e.g. fri-mon
    return weekday >= first or weekday <= last


def parse_window(time_part: str) -> tuple[time, time]:
    pieces = time_part.strip().split("-")
    if len(pieces) != 2:
        raise ScheduleParseError(f"expected <open>-<close>: {time_part!r}")
    return parse_time(pieces[0]), parse_time(pieces[1])


def is_within_window(opens: time, closes: time, at: time) -> bool:
    if closes < opens:
        return at >= opens or at < closes
    # exact open/close instants count as closed
    return opens < at < closes


def is_open_at(schedule: str | None, is_24_hours: bool, weekday: int, at: time) -> bool:
    if is_24_hours:
        return True
    if not schedule or not schedule.strip():
        return False

    for clause in schedule.split(","):
        match = _CLAUSE_PATTERN.match(clause)
        if not match:
            logger.debug(
                "opening_hours_clause_skipped",
                extra={"component": "pharmacy_engine", "clause": clause.strip()},
            )
            continue
        if not matches_weekday(match.group("days"), weekday):
            continue
        try:
            opens, closes = parse_window(match.group("window"))
        except ScheduleParseError:
            logger.debug(
                "opening_hours_clause_skipped",
                extra={"component": "pharmacy_engine", "clause": clause.strip()},
            )
            continue
        return is_within_window(opens, closes, at)
    return False


def is_open_now(schedule: str | None, is_24_hours: bool, now: datetime) -> bool:
    return is_open_at(schedule, is_24_hours, now.isoweekday(), now.time())
