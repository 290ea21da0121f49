from datetime import date, datetime

import pytest

from shiftboard.backend import BackendError
from shiftboard.production import sampled_at
from shiftboard.products import products_from_rows
from shiftboard.sampling import SampleBoard

IDS = ["SB100", "SB200", "SB300"]
PRODUCTS = products_from_rows([
    {"item_id": "SB100", "description": "Cheddar"},
    {"item_id": "SB200", "description": "Ranch"},
    {"item_id": "SB300", "description": "Plain"},
])
MORNING = datetime(2026, 2, 26, 10, 0)


@pytest.fixture
def board(backend, settled):
    return SampleBoard(backend, store=settled(IDS), products=PRODUCTS, active_ids=IDS)


def test_take_sample_builds_payload(board, backend):
    out = board.take_sample(9, now=MORNING)
    assert out.ok
    assert out.extra == "SB100"
    assert board.extra_id == "SB100"
    p = backend.samples[0]
    assert p["production_day_id"] == "day-1"
    assert p["hour_code"] == 9
    assert p["sampled_at"] == sampled_at(9, date(2026, 2, 26))
    assert p["active_products"] == ["100", "200", "300"]
    assert p["extra_product"] == "100"
    assert p["cycle_number"] == 0
    assert p["notes"] == {
        "predicted_extra": "100",
        "selected_extra": "100",
        "drag_reorder_since_last_sample": False,
        "manual_set_extra_since_last_sample": False,
    }


def test_consecutive_samples_rotate(board):
    got = [board.take_sample(h, now=MORNING).extra for h in (8, 9, 10, 11)]
    assert got == ["SB100", "SB200", "SB300", "SB100"]


def test_unresolved_production_day_still_records(board, backend):
    backend.day_result = {"ok": False, "error": "offline"}
    out = board.take_sample(9, now=MORNING)
    assert out.ok
    assert backend.samples[0]["production_day_id"] is None


def test_failed_insert_keeps_flags(board, backend):
    board.set_extra("SB300")
    backend.sample_result = {"ok": False, "error": "bad column"}
    out = board.take_sample(9, now=MORNING)
    assert not out.ok
    assert out.error == "bad column"
    assert board.manual_extra_set is True


def test_flags_reported_then_cleared(board, backend):
    board.reorder(["SB300", "SB200", "SB100"])
    board.set_extra("SB200")
    board.take_sample(9, now=MORNING)
    notes = backend.samples[0]["notes"]
    assert notes["drag_reorder_since_last_sample"] is True
    assert notes["manual_set_extra_since_last_sample"] is True
    assert board.drag_reorder is False
    assert board.manual_extra_set is False


def test_nothing_eligible(backend, store):
    board = SampleBoard(backend, store=store, active_ids=["a"], availability={"a": False})
    out = board.take_sample(9, now=MORNING)
    assert not out.ok
    assert out.error == "No eligible extra to pick"
    assert backend.samples == []


def test_reorder_rolls_back_on_failure(make_backend, settled):
    backend = make_backend(fail={"set_product_order"})
    store = settled(IDS)
    board = SampleBoard(backend, store=store, active_ids=IDS)
    with pytest.raises(BackendError):
        board.reorder(["SB300", "SB100", "SB200"])
    assert board.active_ids == IDS
    assert board.drag_reorder is False
    assert store.saves == 0


def test_reorder_resequences_rotation(board):
    board.take_sample(8, now=MORNING)
    board.reorder(["SB300", "SB200", "SB100"])
    assert board.store.state.pending == ["SB300", "SB200"]


def test_add_active_rolls_back(make_backend):
    board = SampleBoard(make_backend(fail={"set_active_product"}), active_ids=["a"])
    with pytest.raises(BackendError):
        board.add_active("b")
    assert board.active_ids == ["a"]


def test_remove_active_clears_extra(board, backend):
    board.extra_id = "SB200"
    board.remove_active("SB200")
    assert board.active_ids == ["SB100", "SB300"]
    assert board.extra_id is None
    assert backend.calls[-1] == ("set_active_product", "SB200", False)


def test_remove_active_rolls_back(make_backend):
    board = SampleBoard(make_backend(fail={"set_active_product"}), active_ids=["a", "b"], extra_id="b")
    with pytest.raises(BackendError):
        board.remove_active("b")
    assert board.active_ids == ["a", "b"]
    assert board.extra_id == "b"


def test_marking_extra_unavailable_moves_extra(board):
    board.extra_id = "SB100"
    assert board.toggle_availability("SB100") is False
    assert board.extra_id == "SB200"
    assert board.store.state.completed == ["SB200"]


def test_marking_available_makes_it_the_extra(board):
    board.availability = {"SB200": False}
    assert board.toggle_availability("SB200") is True
    assert board.extra_id == "SB200"


def test_toggle_rolls_back_on_failure(make_backend, settled):
    store = settled(IDS)
    board = SampleBoard(make_backend(fail={"set_availability"}), store=store,
                        active_ids=IDS, extra_id="SB100")
    with pytest.raises(BackendError):
        board.toggle_availability("SB100")
    assert board.is_available("SB100")
    assert board.extra_id == "SB100"
    assert store.saves == 0


def test_restore_extra_after_restart(board, backend):
    board.take_sample(8, now=MORNING)
    again = SampleBoard(backend, store=board.store, active_ids=IDS)
    assert again.restore_extra() == "SB100"
    assert again.extra_id == "SB100"


def test_restore_extra_falls_back_to_preview(backend, store):
    board = SampleBoard(backend, store=store, active_ids=IDS)
    assert board.restore_extra() == "SB100"
    assert store.saves == 0


def test_ensure_availability_defaults():
    board = SampleBoard(None, active_ids=["a", "b"], availability={"b": False, "gone": True})
    assert board.ensure_availability_defaults() is True
    assert board.availability == {"a": True, "b": False}
    assert board.ensure_availability_defaults() is False
    assert board.eligible_ids() == ["a"]
