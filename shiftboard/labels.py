# shiftboard/labels.py
from __future__ import annotations
from datetime import datetime
from typing import Optional

from .production import DAY_START_HOUR, best_by, lot_code, production_day

LOT_PLACEHOLDER = "{{lot_code}}"
BEST_BY_PLACEHOLDER = "{{best_by}}"


def fill_template(html: str, lot: str, best: str) -> str:
    return (html or "").replace(LOT_PLACEHOLDER, lot).replace(BEST_BY_PLACEHOLDER, best)


def render_label(backend, bucket: str, user_id: str, file_name: str,
                 now: Optional[datetime] = None,
                 start_hour: int = DAY_START_HOUR,
                 lot: Optional[str] = None,
                 best: Optional[str] = None) -> str:
    """
    Download a stored HTML label template ({user_id}/{file_name}) and stamp it
    with the work day's lot code and best-by date. Either value can be
    overridden by hand, as the print dialog allows.
    """
    day = production_day(now, start_hour)
    html = backend.download_object(bucket, f"{user_id}/{file_name}")
    return fill_template(html, lot or lot_code(day), best or best_by(day))
