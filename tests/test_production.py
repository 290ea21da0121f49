import re
from datetime import date, datetime, timedelta, timezone

from shiftboard.production import (
    best_by,
    deterministic_production_day_uuid,
    lot_code,
    production_day,
    production_day_id,
    production_day_key,
    sampled_at,
    shift_number,
)

UUID_V4 = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


def test_production_day_rolls_at_seven():
    assert production_day(datetime(2026, 2, 26, 6, 59)) == date(2026, 2, 25)
    assert production_day(datetime(2026, 2, 26, 7, 0)) == date(2026, 2, 26)
    assert production_day(datetime(2026, 3, 1, 0, 30)) == date(2026, 2, 28)
    assert production_day_id(datetime(2026, 2, 26, 23, 0)) == "2026-02-26"


def test_custom_start_hour():
    assert production_day(datetime(2026, 2, 26, 5, 0), start_hour=5) == date(2026, 2, 26)
    assert production_day(datetime(2026, 2, 26, 4, 59), start_hour=5) == date(2026, 2, 25)


def test_lot_code_and_best_by():
    day = date(2026, 2, 26)
    assert lot_code(day) == "260226"
    assert best_by(day) == "02/2027"
    assert best_by(date(2026, 12, 31)) == "12/2027"


def test_sampled_at_with_fixed_zone():
    day = date(2026, 2, 26)
    assert sampled_at(9, day, tz=timezone.utc) == "2026-02-26T09:00:00+00:00"
    # small hours belong to the next calendar day
    assert sampled_at(2, day, tz=timezone.utc) == "2026-02-27T02:00:00+00:00"


def test_sampled_at_local_has_offset():
    stamp = datetime.fromisoformat(sampled_at(15, date(2026, 2, 26)))
    assert stamp.tzinfo is not None
    assert stamp.replace(tzinfo=None) == datetime(2026, 2, 26, 15, 0)


def test_shift_number():
    assert shift_number(datetime(2026, 2, 26, 7, 0)) == 1
    assert shift_number(datetime(2026, 2, 26, 18, 59)) == 1
    assert shift_number(datetime(2026, 2, 26, 19, 0)) == 2
    assert shift_number(datetime(2026, 2, 27, 6, 59)) == 2


def test_production_day_key():
    key = production_day_key(datetime(2026, 2, 27, 2, 0))
    assert key.shift_date_iso == "2026-02-26"
    assert key.shift_number == 2
    assert key.lot_code == "260226"


def test_uuid_shape_and_stability():
    a = deterministic_production_day_uuid("2026-02-26", 1)
    assert UUID_V4.match(a)
    assert a == deterministic_production_day_uuid("2026-02-26", 1)
    assert a != deterministic_production_day_uuid("2026-02-26", 2)
    assert a != deterministic_production_day_uuid("2026-02-27", 1)


def test_uuid_shape_across_many_days():
    start = date(2026, 1, 1)
    ids = set()
    for n in range(60):
        iso = (start + timedelta(days=n)).isoformat()
        for shift in (1, 2):
            u = deterministic_production_day_uuid(iso, shift)
            assert UUID_V4.match(u)
            ids.add(u)
    assert len(ids) == 120
