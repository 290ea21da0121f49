# shiftboard/production.py
"""
Production-day arithmetic.

The plant's production day ends at 07:00, not midnight: 2026-02-26 06:30
belongs to production day 2026-02-25, 2026-02-26 07:00 to 2026-02-26.
Lot codes, best-by dates and sample timestamps all hang off that day.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional

DAY_START_HOUR = 7


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now()


def production_day(now: Optional[datetime] = None, start_hour: int = DAY_START_HOUR) -> date:
    d = _now(now)
    if d.hour < start_hour:
        return d.date() - timedelta(days=1)
    return d.date()


def production_day_id(now: Optional[datetime] = None, start_hour: int = DAY_START_HOUR) -> str:
    return production_day(now, start_hour).isoformat()


def lot_code(day: Optional[date] = None) -> str:
    """YYMMDD, e.g. '260226' for 2026-02-26."""
    d = day if day is not None else production_day()
    return d.strftime("%y%m%d")


def best_by(day: Optional[date] = None) -> str:
    """MM/YYYY one year out: '02/2027' for a 2026-02 production day."""
    d = day if day is not None else production_day()
    return f"{d.month:02d}/{d.year + 1}"


def sampled_at(hour: int, day: Optional[date] = None,
               start_hour: int = DAY_START_HOUR,
               tz: Optional[tzinfo] = None) -> str:
    """
    ISO timestamp for `hour` (0-23) of a production day. Hours before the
    day start fall on the next calendar day.
    """
    d = day if day is not None else production_day(start_hour=start_hour)
    if hour < start_hour:
        d = d + timedelta(days=1)
    stamp = datetime.combine(d, time(hour % 24))
    if tz is not None:
        return stamp.replace(tzinfo=tz).isoformat()
    return stamp.astimezone().isoformat()


def shift_number(now: Optional[datetime] = None, start_hour: int = DAY_START_HOUR) -> int:
    # 1 = first twelve hours after the day start, 2 = the rest
    d = _now(now)
    return 1 if (d.hour - start_hour) % 24 < 12 else 2


@dataclass(frozen=True)
class ProductionDayKey:
    shift_date_iso: str
    shift_number: int
    lot_code: str


def production_day_key(now: Optional[datetime] = None, start_hour: int = DAY_START_HOUR) -> ProductionDayKey:
    d = _now(now)
    day = production_day(d, start_hour)
    return ProductionDayKey(day.isoformat(), shift_number(d, start_hour), lot_code(day))


def _fnv1a32(s: str, seed: int = 0) -> int:
    h = 0x811C9DC5 ^ seed
    for ch in s:
        h ^= ord(ch)
        h = (h * 0x01000193) & 0xFFFFFFFF
    return h


def deterministic_production_day_uuid(shift_date_iso: str, shift_number: int) -> str:
    """Stable v4-shaped UUID for a (date, shift) so repeated upserts hit the same row."""
    key = f"{shift_date_iso}|{shift_number}"
    chars = list("".join(f"{_fnv1a32(key, seed):08x}" for seed in (1, 2, 3, 4)))
    chars[12] = "4"
    chars[16] = "89ab"[int(chars[16], 16) % 4]
    h = "".join(chars)
    return f"{h[0:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:32]}"
