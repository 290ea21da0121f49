# shiftboard/rotation.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from .logging_utils import warn

Availability = Optional[Mapping[str, bool]]


@dataclass
class RotationState:
    pending: List[str] = field(default_factory=list)     # still owed a turn this cycle, in pick order
    completed: List[str] = field(default_factory=list)   # already taken this cycle
    last_active_snapshot: List[str] = field(default_factory=list)

    def copy(self) -> "RotationState":
        return RotationState(list(self.pending), list(self.completed), list(self.last_active_snapshot))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pending": list(self.pending),
            "completed": list(self.completed),
            "lastActiveSnapshot": list(self.last_active_snapshot),
        }

    @classmethod
    def from_dict(cls, d: Any) -> "RotationState":
        if not isinstance(d, dict):
            return cls()

        def _ids(v: Any) -> List[str]:
            return [str(x) for x in v] if isinstance(v, list) else []

        return cls(
            pending=_ids(d.get("pending")),
            completed=_ids(d.get("completed")),
            last_active_snapshot=_ids(d.get("lastActiveSnapshot")),
        )


@dataclass
class RotationResult:
    next: Optional[str]
    state: RotationState


class StateStore(Protocol):
    def load(self) -> RotationState: ...
    def save(self, state: RotationState) -> Any: ...


def _resolve_store(store: Optional[StateStore]) -> StateStore:
    if store is not None:
        return store
    from .store import default_rotation_store
    return default_rotation_store()


def _persist(store: StateStore, state: RotationState) -> None:
    # best-effort: the decision already made stands even if the write fails
    try:
        store.save(state.copy())
    except Exception as e:
        warn(f"rotation state save failed: {e}")


def _load(store: StateStore, state: Optional[RotationState]) -> RotationState:
    if state is not None:
        return state.copy()
    try:
        return store.load().copy()
    except Exception as e:
        warn(f"rotation state load failed: {e}")
        return RotationState()


def load_state(store: Optional[StateStore] = None) -> RotationState:
    """Current stored state (empty on any read problem)."""
    return _load(_resolve_store(store), None)


def _dedupe(ids: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for i in ids or []:
        if i in seen:
            continue
        seen.add(i)
        out.append(i)
    return out


def _available(availability: Availability, item_id: str) -> bool:
    # absent -> available; only an explicit False excludes
    if not availability:
        return True
    return availability.get(item_id) is not False


def _order_changed(snapshot: List[str], active: List[str]) -> bool:
    return len(snapshot) != len(active) or any(a != b for a, b in zip(snapshot, active))


def _resequence(ids: List[str], ok: set, order: Dict[str, int]) -> List[str]:
    return sorted((i for i in ids if i in ok), key=order.__getitem__)


def _decide(active_ids: Iterable[str], availability: Availability, st: RotationState) -> RotationResult:
    """
    One rotation decision over a private copy of the state.

    Order of checks: empty reset, reorder re-sequencing, new-item fast track,
    pruning, cycle refill/rollover, queue pop, fallback rebuild.
    The snapshot only moves on a fast track or a refill, so an id activated
    while unavailable is still fast-tracked once it becomes available.
    """
    active = _dedupe(active_ids)
    eligible = [i for i in active if _available(availability, i)]
    if not active or not eligible:
        return RotationResult(None, RotationState())

    ok = set(eligible)
    order = {k: n for n, k in enumerate(active)}

    # drag reorder: keep progress, follow the new order
    if _order_changed(st.last_active_snapshot, active):
        st.pending = _resequence(st.pending, ok, order)
        st.completed = _resequence(st.completed, ok, order)

    # newly activated products jump the queue
    snap = set(st.last_active_snapshot)
    fresh = [i for i in eligible if i not in snap]
    if fresh:
        pick = fresh[0]
        st.pending = [i for i in st.pending if i != pick]
        st.completed = [i for i in st.completed if i != pick]
        st.last_active_snapshot = list(active)
        return RotationResult(pick, st)

    st.completed = [i for i in st.completed if i in ok]
    done = set(st.completed)
    st.pending = [i for i in st.pending if i in ok and i not in done]

    if not st.pending:
        if all(i in done for i in eligible):
            # cycle rollover
            st.completed = []
            st.pending = list(eligible)
        else:
            st.pending = [i for i in eligible if i not in done]
        st.last_active_snapshot = list(active)

    pick: Optional[str] = None
    while st.pending:
        cand = st.pending.pop(0)
        if cand in ok:
            pick = cand
            st.completed.append(cand)
            break

    if pick is None:
        done = set(st.completed)
        st.pending = [i for i in eligible if i not in done]
        if st.pending:
            pick = st.pending.pop(0)
            st.completed.append(pick)

    done = set(st.completed)
    if all(i in done for i in eligible):
        st.pending = []

    return RotationResult(pick, st)


def pick_next_extra(active_ids: Iterable[str],
                    availability: Availability = None,
                    state: Optional[RotationState] = None,
                    store: Optional[StateStore] = None) -> RotationResult:
    """
    Decide the next extra sample and commit the cycle progress.

    `state` overrides the stored state as the starting point; the resulting
    state is always written back to `store` (the default JSON store when None).
    Never raises; `next` is None when nothing is eligible.
    """
    store = _resolve_store(store)
    res = _decide(active_ids, availability, _load(store, state))
    _persist(store, res.state)
    return res


def preview_next_extra(active_ids: Iterable[str],
                       availability: Availability = None,
                       state: Optional[RotationState] = None,
                       store: Optional[StateStore] = None) -> RotationResult:
    """Same decision as pick_next_extra, nothing written. The returned state is hypothetical."""
    if state is None:
        state = _load(_resolve_store(store), None)
    return _decide(active_ids, availability, state.copy())


def reset_rotation(store: Optional[StateStore] = None) -> RotationState:
    st = RotationState()
    _persist(_resolve_store(store), st)
    return st


def sync_to_active_order(active_ids: Iterable[str],
                         availability: Availability = None,
                         store: Optional[StateStore] = None) -> RotationState:
    """
    Re-sequence the queue after a drag reorder without picking anything.
    No-op when the order matches the snapshot.
    """
    store = _resolve_store(store)
    st = _load(store, None)
    active = _dedupe(active_ids)
    if not _order_changed(st.last_active_snapshot, active):
        return st
    ok = {i for i in active if _available(availability, i)}
    order = {k: n for n, k in enumerate(active)}
    st.pending = _resequence(st.pending, ok, order)
    st.completed = _resequence(st.completed, ok, order)
    st.last_active_snapshot = active
    _persist(store, st)
    return st


def record_manual_pick(item_id: str,
                       active_ids: Iterable[str],
                       store: Optional[StateStore] = None) -> RotationState:
    """Count an extra chosen outside the scheduler as taken for this cycle."""
    store = _resolve_store(store)
    st = _load(store, None)
    if item_id not in st.completed:
        st.completed.append(item_id)
    st.pending = [i for i in st.pending if i != item_id]
    st.last_active_snapshot = _dedupe(active_ids)
    _persist(store, st)
    return st


def last_picked(state: RotationState,
                active_ids: Iterable[str],
                availability: Availability = None) -> Optional[str]:
    # the extra to highlight again after a restart
    if not state.completed:
        return None
    last = state.completed[-1]
    if last in set(active_ids) and _available(availability, last):
        return last
    return None
