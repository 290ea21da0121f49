# shiftboard/timers.py
from __future__ import annotations
import re
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .timeutils import (
    advance_with_phase,
    clock12,
    infer_next_phase,
    minutes_until_next,
    normalize_time12,
)

# kernel / evals / metal detector / samples
LABELS: Tuple[str, ...] = ("kernel", "evals", "md", "samples")
RANKED_LABELS: Tuple[str, ...] = ("kernel", "evals", "md")
PRIORITY_LABEL = "md"

TONES: Dict[str, int] = {
    "kernel": 880,
    "evals": 740,
    "md": 660,
    "samples": 520,
}

PLACEHOLDER_TIME = "00:00"

_TIME_RE = re.compile(r"^\d{1,2}:\d{2}$")


@dataclass
class TimerRecord:
    time: str = PLACEHOLDER_TIME
    is_am: Optional[bool] = None  # None = phase not anchored yet


def is_due(record: TimerRecord, now: Optional[datetime] = None) -> bool:
    """Stored time equals the current 12h wall clock and the phase matches (None matches both)."""
    if not record.time:
        return False
    current, current_is_am = clock12(now)
    phase_ok = record.is_am is None or record.is_am == current_is_am
    return record.time == current and phase_ok


def next_due(records: Dict[str, TimerRecord],
             now: Optional[datetime] = None,
             labels: Iterable[str] = RANKED_LABELS,
             priority: str = PRIORITY_LABEL) -> Optional[Tuple[str, str]]:
    """
    The (label, time) that fires next. Timers without an anchored phase or
    with a malformed time are skipped; equal distances go to `priority`.
    """
    cands = []
    for order, label in enumerate(labels):
        rec = records.get(label)
        if rec is None or rec.is_am is None:
            continue
        if not rec.time or not _TIME_RE.match(rec.time):
            continue
        delta = minutes_until_next(normalize_time12(rec.time), rec.is_am, now)
        cands.append((delta, 0 if label == priority else 1, order, label, rec.time))
    if not cands:
        return None
    cands.sort()
    _, _, _, label, t = cands[0]
    return label, t


class TimerBoard:
    """
    The four fixed timer slots plus the set of slots currently due.

    A slot stays due until it is edited, advanced or acknowledged; the per-minute
    check only ever adds to the due list. `on_change(label, record)` is called after
    every edit so the caller can persist the slot.
    """

    def __init__(self,
                 records: Optional[Dict[str, TimerRecord]] = None,
                 on_change: Optional[Callable[[str, TimerRecord], Any]] = None):
        self.records: Dict[str, TimerRecord] = {label: TimerRecord() for label in LABELS}
        if records:
            for label, rec in records.items():
                self._check_label(label)
                self.records[label] = rec
        self.due: List[str] = []
        self.on_change = on_change

    @staticmethod
    def _check_label(label: str) -> None:
        if label not in LABELS:
            raise KeyError(label)

    def __getitem__(self, label: str) -> TimerRecord:
        self._check_label(label)
        return self.records[label]

    def _store(self, label: str, time_str: str, is_am: bool) -> TimerRecord:
        rec = TimerRecord(time=time_str, is_am=is_am)
        self.records[label] = rec
        self.acknowledge(label)
        if self.on_change is not None:
            self.on_change(label, rec)
        return rec

    def set_time(self, label: str, raw: str, now: Optional[datetime] = None) -> TimerRecord:
        self._check_label(label)
        t12 = normalize_time12(raw)
        return self._store(label, t12, infer_next_phase(t12, now))

    def advance(self, label: str, minutes: int, now: Optional[datetime] = None) -> TimerRecord:
        self._check_label(label)
        cur = self.records[label]
        base = normalize_time12(cur.time)
        phase = cur.is_am if cur.is_am is not None else infer_next_phase(base, now)
        new_time, new_is_am = advance_with_phase(base, phase, minutes)
        return self._store(label, new_time, new_is_am)

    def acknowledge(self, label: str) -> None:
        self._check_label(label)
        if label in self.due:
            self.due.remove(label)

    def check_due(self, now: Optional[datetime] = None) -> List[str]:
        """Add slots that are due right now; return the ones that just became due."""
        fresh = []
        for label in LABELS:
            if label in self.due:
                continue
            if is_due(self.records[label], now):
                self.due.append(label)
                fresh.append(label)
        return fresh

    def next_due(self, now: Optional[datetime] = None) -> Optional[Tuple[str, str]]:
        return next_due(self.records, now)

    # --- backend row mapping ---

    def to_row(self) -> Dict[str, Any]:
        row: Dict[str, Any] = {}
        for label in LABELS:
            rec = self.records[label]
            row[f"{label}_time"] = rec.time or None
            row[f"{label}_am"] = rec.is_am
        return row

    @classmethod
    def from_row(cls, row: Optional[Dict[str, Any]],
                 on_change: Optional[Callable[[str, TimerRecord], Any]] = None) -> "TimerBoard":
        row = row or {}
        records = {}
        for label in LABELS:
            am = row.get(f"{label}_am")
            records[label] = TimerRecord(
                time=row.get(f"{label}_time") or PLACEHOLDER_TIME,
                is_am=None if am is None else bool(am),
            )
        return cls(records, on_change=on_change)


def poll_due(board: TimerBoard,
             on_due: Callable[[List[str]], Any],
             interval: float = 60.0,
             ticks: Optional[int] = None,
             clock: Callable[[], datetime] = datetime.now,
             sleep: Callable[[float], Any] = time.sleep) -> None:
    """
    Fixed-interval due check. Runs `ticks` checks (forever when None);
    stopping the loop is the only cancellation there is.
    """
    n = 0
    while ticks is None or n < ticks:
        fresh = board.check_due(clock())
        if fresh:
            on_due(fresh)
        n += 1
        if ticks is not None and n >= ticks:
            break
        sleep(interval)
