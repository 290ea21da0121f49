import pytest

from shiftboard.rotation import RotationState
from shiftboard.store import MemoryStateStore


@pytest.fixture
def store():
    return MemoryStateStore()


@pytest.fixture
def settled():
    """A store whose rotation already knows about a, b, c and has no cycle progress."""
    def _make(ids=("a", "b", "c")):
        return MemoryStateStore(RotationState(last_active_snapshot=list(ids)))
    return _make


class FakeBackend:
    """Records calls; fails the ones listed in `fail`."""
    def __init__(self, fail=()):
        self.fail = set(fail)
        self.calls = []
        self.samples = []
        self.sample_result = {"ok": True}
        self.day_result = {"ok": True, "id": "day-1"}

    def _call(self, name, *args):
        from shiftboard.backend import BackendError
        self.calls.append((name,) + args)
        if name in self.fail:
            raise BackendError(f"{name} failed", status=500)

    def set_active_product(self, item_id, is_active, updated_by=None):
        self._call("set_active_product", item_id, is_active)

    def set_availability(self, item_id, is_available, updated_by=None):
        self._call("set_availability", item_id, is_available)

    def set_product_order(self, item_ids, updated_by=None):
        self._call("set_product_order", list(item_ids))

    def resolve_production_day_id(self, sampled_at, start_hour=7):
        self.calls.append(("resolve_production_day_id", sampled_at))
        return self.day_result

    def insert_sample_record(self, payload):
        self.samples.append(payload)
        return self.sample_result

    def download_object(self, bucket, path):
        self.calls.append(("download_object", bucket, path))
        return "<p>LOT {{lot_code}} BB {{best_by}} / {{lot_code}}</p>"


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def make_backend():
    return FakeBackend
