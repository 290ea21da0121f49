# shiftboard/timeutils.py
from __future__ import annotations
import re
from datetime import datetime
from typing import Optional, Tuple

MINUTES_PER_DAY = 1440

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _leading_int(s: str) -> Optional[int]:
    # "07" -> 7, "7pm" -> 7, "" / "ab" -> None
    m = _LEADING_INT.match(s or "")
    if not m:
        return None
    return int(m.group(1))


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now()


def _split(hhmm: str) -> Tuple[Optional[int], int]:
    h_str, _, m_str = (hhmm or "").partition(":")
    h = _leading_int(h_str)
    m = _leading_int(m_str) or 0
    return h, max(0, min(59, m))


def normalize_time12(raw: Optional[str]) -> str:
    """
    Normalize clock-face input to 12-hour 'HH:MM' (01..12):(00..59).
    Never fails: empty or unparseable input becomes '12:00'.
    """
    if not raw:
        return "12:00"
    h, m = _split(str(raw))
    if h is None or h <= 0:
        h = 12
    h = ((h - 1) % 12) + 1
    return f"{h:02d}:{m:02d}"


def to_minutes_of_day(hhmm: str, is_am: bool) -> int:
    """12-hour 'HH:MM' + phase -> minutes since midnight (0..1439); 12 AM -> 0, 12 PM -> 720."""
    h, m = _split(hhmm)
    h = (h or 0) % 12
    h24 = h if is_am else h + 12
    return h24 * 60 + m


def now_minutes(now: Optional[datetime] = None) -> int:
    d = _now(now)
    return d.hour * 60 + d.minute


def clock12(now: Optional[datetime] = None) -> Tuple[str, bool]:
    """Current wall clock as ('HH:MM' 12-hour, is_am)."""
    d = _now(now)
    h12 = (d.hour % 12) or 12
    return f"{h12:02d}:{d.minute:02d}", d.hour < 12


def format_clock(now: Optional[datetime] = None, with_seconds: bool = False) -> str:
    # header clock, e.g. "07:45 PM" / "07:45:12 PM"
    d = _now(now)
    hhmm, is_am = clock12(d)
    secs = f":{d.second:02d}" if with_seconds else ""
    return f"{hhmm}{secs} {'AM' if is_am else 'PM'}"


def infer_next_phase(hhmm: str, now: Optional[datetime] = None) -> bool:
    """
    AM (True) / PM (False) for the NEXT occurrence of a clock-face time typed
    without a phase: whichever interpretation comes up sooner. Ties go to AM.
    """
    base = normalize_time12(hhmm)
    cur = now_minutes(now)
    delta_am = (to_minutes_of_day(base, True) - cur) % MINUTES_PER_DAY
    delta_pm = (to_minutes_of_day(base, False) - cur) % MINUTES_PER_DAY
    return delta_am <= delta_pm


def minutes_until_next(hhmm: str, is_am: bool, now: Optional[datetime] = None) -> int:
    """Minutes (0..1439) until the next occurrence of 'HH:MM' with a fixed phase."""
    base = normalize_time12(hhmm)
    cur = now_minutes(now)
    target = to_minutes_of_day(base, is_am)
    if target < cur:
        target += MINUTES_PER_DAY  # tomorrow
    return target - cur


def advance_with_phase(hhmm: str, is_am: bool, minutes_to_add: int) -> Tuple[str, bool]:
    """
    Add minutes to a time+phase and return the new ('HH:MM', is_am).
    11:50 PM + 40 -> ('12:30', True).
    """
    total = to_minutes_of_day(normalize_time12(hhmm), is_am) + int(minutes_to_add)
    total %= MINUTES_PER_DAY
    h24, m = divmod(total, 60)
    h12 = (h24 % 12) or 12
    return f"{h12:02d}:{m:02d}", h24 < 12
