# shiftboard/schedule.py
from __future__ import annotations
import json
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Optional, Union


def week_monday_iso(day: Optional[Union[date, datetime]] = None) -> str:
    """Monday (ISO date) of the week containing `day`."""
    d = day if day is not None else date.today()
    if isinstance(d, datetime):
        d = d.date()
    return (d - timedelta(days=d.weekday())).isoformat()


def find_shift_for_monday(monday_iso: str, schedule: Dict[str, Any]) -> Optional[str]:
    # byDate wins, entries is the fallback
    by_date = schedule.get("byDate") or {}
    if by_date.get(monday_iso):
        return str(by_date[monday_iso])
    for e in schedule.get("entries") or []:
        if isinstance(e, dict) and e.get("date") == monday_iso:
            shift = e.get("shift")
            return str(shift) if shift is not None else None
    return None


def load_schedule(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Weekly test-shift schedule:
    {"version": 1, "year": 2026, "generatedAt": "...",
     "entries": [{"date": "2026-01-05", "shift": "B"}, ...],
     "byDate": {"2026-01-05": "B", ...}}
    """
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict) or not isinstance(data.get("entries", []), list):
        raise ValueError(f"not a shift schedule: {path}")
    return data


def shift_for_week(schedule: Dict[str, Any], day: Optional[Union[date, datetime]] = None) -> Optional[str]:
    return find_shift_for_monday(week_monday_iso(day), schedule)
