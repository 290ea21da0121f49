# shiftboard/sampling.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .backend import BackendError
from .logging_utils import warn
from .production import DAY_START_HOUR, production_day, sampled_at
from .products import Product, find_product, strip_item_number_prefix
from .rotation import (
    StateStore,
    last_picked,
    load_state,
    pick_next_extra,
    preview_next_extra,
    record_manual_pick,
    sync_to_active_order,
)


@dataclass
class SampleOutcome:
    ok: bool
    extra: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


def _sample_label(p: Optional[Product], fallback: Optional[str] = None) -> Optional[str]:
    if p is None:
        return fallback
    if p.item_number:
        return strip_item_number_prefix(p.item_number)
    return p.product_name or p.id


class SampleBoard:
    """
    Caller-side state of the sampling widget: active ids (in display order),
    availability, the highlighted extra. Every backend write is optimistic:
    the local change happens first and is undone if the write fails.
    """

    def __init__(self, backend, store: Optional[StateStore] = None,
                 products: Optional[List[Product]] = None,
                 active_ids: Optional[Iterable[str]] = None,
                 availability: Optional[Dict[str, bool]] = None,
                 extra_id: Optional[str] = None,
                 start_hour: int = DAY_START_HOUR):
        self.backend = backend
        self.store = store
        self.products: List[Product] = list(products or [])
        self.active_ids: List[str] = list(active_ids or [])
        self.availability: Dict[str, bool] = dict(availability or {})
        self.extra_id = extra_id
        self.start_hour = start_hour
        # reported with each sample so odd picks can be traced back
        self.drag_reorder = False
        self.manual_extra_set = False

    def is_available(self, item_id: str) -> bool:
        return self.availability.get(item_id) is not False

    def eligible_ids(self) -> List[str]:
        return [i for i in self.active_ids if self.is_available(i)]

    def ensure_availability_defaults(self) -> bool:
        """Default unknown active ids to available, drop entries for inactive ids."""
        changed = False
        for i in self.active_ids:
            if i not in self.availability:
                self.availability[i] = True
                changed = True
        for k in list(self.availability):
            if k not in self.active_ids:
                del self.availability[k]
                changed = True
        return changed

    # --- active set ---

    def add_active(self, item_id: str) -> None:
        if item_id in self.active_ids:
            return
        self.active_ids.append(item_id)
        try:
            self.backend.set_active_product(item_id, True)
        except BackendError:
            self.active_ids = [i for i in self.active_ids if i != item_id]
            raise

    def remove_active(self, item_id: str) -> None:
        if item_id not in self.active_ids:
            return
        before = list(self.active_ids)
        prev_extra = self.extra_id
        self.active_ids.remove(item_id)
        if self.extra_id == item_id:
            self.extra_id = None
        try:
            self.backend.set_active_product(item_id, False)
        except BackendError:
            self.active_ids = before
            self.extra_id = prev_extra
            raise

    def reorder(self, item_ids: Iterable[str]) -> None:
        before = list(self.active_ids)
        self.active_ids = list(item_ids)
        try:
            self.backend.set_product_order(self.active_ids)
        except BackendError:
            self.active_ids = before
            raise
        self.drag_reorder = True
        sync_to_active_order(self.active_ids, self.availability, store=self.store)

    def set_extra(self, item_id: str) -> None:
        self.extra_id = item_id
        self.manual_extra_set = True

    # --- availability ---

    def toggle_availability(self, item_id: str) -> bool:
        before = self.is_available(item_id)
        will_be = not before
        prev_extra = self.extra_id
        self.availability[item_id] = will_be

        moved = False
        if will_be:
            if item_id in self.active_ids:
                self.extra_id = item_id
                moved = True
        elif self.extra_id == item_id:
            preview = preview_next_extra(self.active_ids, self.availability, store=self.store)
            nxt = preview.next
            if nxt is None:
                nxt = next((k for k in self.active_ids if k != item_id and self.is_available(k)), None)
            self.extra_id = nxt
            moved = True

        try:
            self.backend.set_availability(item_id, will_be)
        except BackendError:
            self.availability[item_id] = before
            if moved:
                self.extra_id = prev_extra
            raise

        if not will_be and moved:
            res = pick_next_extra(self.active_ids, self.availability, store=self.store)
            if res.next:
                self.extra_id = res.next
        return will_be

    # --- rotation ---

    def restore_extra(self) -> Optional[str]:
        """Highlight the last taken extra if still eligible, else the previewed next one."""
        state = load_state(self.store)
        key = last_picked(state, self.active_ids, self.availability)
        if key is None:
            key = preview_next_extra(self.active_ids, self.availability, state=state).next
        if key is not None:
            self.extra_id = key
        return key

    def take_sample(self, hour: int, now: Optional[datetime] = None) -> SampleOutcome:
        """
        Commit a rotation pick and record the sample. When the scheduler has
        nothing, the first available active id is taken and counted as picked.
        """
        res = pick_next_extra(self.active_ids, self.availability, store=self.store)
        key = res.next
        if key is None:
            key = next((i for i in self.active_ids if self.is_available(i)), None)
            if key is None:
                return SampleOutcome(False, error="No eligible extra to pick")
            record_manual_pick(key, self.active_ids, store=self.store)
        self.extra_id = key

        extra = find_product(self.products, key)
        when = sampled_at(hour, production_day(now, self.start_hour), self.start_hour)
        active_labels = [
            _sample_label(p) for p in (find_product(self.products, i) for i in self.active_ids) if p is not None
        ]

        day_id = None
        resolved = self.backend.resolve_production_day_id(when, self.start_hour)
        if resolved.get("ok"):
            day_id = resolved.get("id")
        else:
            warn(f"production day not resolved: {resolved.get('error')}")

        payload: Dict[str, Any] = {
            "production_day_id": day_id,
            "hour_code": hour,
            "sampled_at": when,
            "active_products": active_labels,
            "extra_product": _sample_label(extra) if extra else None,
            "cycle_number": 0,
            "notes": {
                "predicted_extra": strip_item_number_prefix(key),
                "selected_extra": _sample_label(extra) if extra else None,
                "drag_reorder_since_last_sample": self.drag_reorder,
                "manual_set_extra_since_last_sample": self.manual_extra_set,
            },
        }

        result = self.backend.insert_sample_record(payload)
        if not result.get("ok"):
            return SampleOutcome(False, extra=key, payload=payload, error=result.get("error"))
        self.drag_reorder = False
        self.manual_extra_set = False
        return SampleOutcome(True, extra=key, payload=payload)
