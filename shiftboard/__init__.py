from __future__ import annotations

from .rotation import (
    RotationResult,
    RotationState,
    pick_next_extra,
    preview_next_extra,
    reset_rotation,
    sync_to_active_order,
)
from .timeutils import (
    advance_with_phase,
    infer_next_phase,
    minutes_until_next,
    normalize_time12,
    to_minutes_of_day,
)

__all__ = [
    "RotationResult",
    "RotationState",
    "pick_next_extra",
    "preview_next_extra",
    "reset_rotation",
    "sync_to_active_order",
    "advance_with_phase",
    "infer_next_phase",
    "minutes_until_next",
    "normalize_time12",
    "to_minutes_of_day",
]
