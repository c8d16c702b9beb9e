from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from conftest import ts
from sostrack.database import init_db, make_engine, make_session_factory
from sostrack.errors import (
    DuplicateUser,
    InvalidLocation,
    ServiceUnavailable,
    StaleTimestamp,
    UnknownUser,
)
from sostrack import store as store_module
from sostrack.store import LocationStore


def _add(store, user_id="1", name="Asha"):
    return store.add_user(name=name, mobile_number="+911234567890", age=29, gender="female", user_id=user_id)


def test_new_user_has_no_location_and_is_offline(store):
    user = _add(store)
    assert user.id == "1"
    assert user.is_online is False
    assert user.last_location is None
    assert user.email is None


def test_generated_id_when_none_given(store):
    user = store.add_user(name="Ravi", mobile_number="555")
    assert user.id
    assert [u.id for u in store.get_all()] == [user.id]


def test_duplicate_id_rejected(store):
    _add(store)
    with pytest.raises(DuplicateUser):
        _add(store, name="Other")


def test_upsert_sets_location_and_marks_online(store):
    _add(store)
    user = store.upsert_location("1", 37.0, -122.0, ts(100))
    assert user.is_online is True
    assert user.last_location.latitude == 37.0
    assert user.last_location.longitude == -122.0
    assert user.last_location.timestamp == ts(100)


def test_stale_report_is_rejected_and_location_kept(store):
    _add(store)
    store.upsert_location("1", 37.0, -122.0, ts(100))

    with pytest.raises(StaleTimestamp) as exc:
        store.upsert_location("1", 37.1, -122.1, ts(90))
    assert exc.value.stored == ts(100)
    assert exc.value.offered == ts(90)

    (user,) = store.get_all()
    assert user.last_location.latitude == 37.0
    assert user.last_location.longitude == -122.0
    assert user.last_location.timestamp == ts(100)


def test_equal_timestamp_is_accepted(store):
    _add(store)
    store.upsert_location("1", 37.0, -122.0, ts(100))
    user = store.upsert_location("1", 37.5, -122.5, ts(100))
    assert user.last_location.latitude == 37.5


def test_newer_report_replaces_location(store):
    _add(store)
    store.upsert_location("1", 37.0, -122.0, ts(100))
    user = store.upsert_location("1", 38.0, -121.0, ts(200))
    assert (user.last_location.latitude, user.last_location.longitude) == (38.0, -121.0)
    assert user.last_location.timestamp == ts(200)


def test_timezones_are_compared_in_utc(store):
    _add(store)
    store.upsert_location("1", 10.0, 10.0, datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))
    # 12:30 in UTC+1 is 11:30 UTC, older than the stored report
    plus_one = timezone(timedelta(hours=1))
    with pytest.raises(StaleTimestamp):
        store.upsert_location("1", 11.0, 11.0, datetime(2024, 1, 1, 12, 30, tzinfo=plus_one))


@pytest.mark.parametrize("lat,lng", [(90.1, 0), (-91, 0), (0, 180.5), (0, -181)])
def test_out_of_range_location_rejected(store, lat, lng):
    _add(store)
    with pytest.raises(InvalidLocation):
        store.upsert_location("1", lat, lng, ts(100))
    assert store.get("1").last_location is None


def test_boundary_location_accepted(store):
    _add(store)
    user = store.upsert_location("1", -90, 180, ts(1))
    assert user.last_location.latitude == -90


def test_unknown_user(store):
    with pytest.raises(UnknownUser):
        store.upsert_location("nope", 1.0, 1.0, ts(1))
    with pytest.raises(UnknownUser):
        store.set_online("nope", True)
    with pytest.raises(UnknownUser):
        store.get("nope")


def test_going_offline_keeps_last_location(store):
    _add(store)
    store.upsert_location("1", 37.0, -122.0, ts(100))
    user = store.set_online("1", False)
    assert user.is_online is False
    assert user.last_location.latitude == 37.0


def test_online_without_location(store):
    _add(store)
    user = store.set_online("1", True)
    assert user.is_online is True
    assert user.last_location is None


def test_get_all_returns_detached_snapshot(store):
    _add(store, "1")
    _add(store, "2", name="Ravi")
    snapshot = store.get_all()
    store.upsert_location("1", 1.0, 1.0, ts(5))
    assert {u.id for u in snapshot} == {"1", "2"}
    assert all(u.last_location is None for u in snapshot)


def test_store_failure_surfaces_as_service_unavailable():
    # no tables created
    engine = make_engine("sqlite://")
    broken = LocationStore(make_session_factory(engine))
    with pytest.raises(ServiceUnavailable):
        broken.get_all()
    with pytest.raises(ServiceUnavailable):
        broken.upsert_location("1", 1.0, 1.0, ts(1))


def test_concurrent_reports_keep_newest(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'tracker.db'}")
    init_db(bind=engine)
    store = LocationStore(make_session_factory(engine))
    _add(store)

    seconds = [7, 3, 19, 11, 2, 17, 5, 13, 23, 1, 29, 31]

    def report(s):
        try:
            store.upsert_location("1", float(s), float(s), ts(s))
            return True
        except StaleTimestamp:
            return False

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(report, seconds))

    assert any(results)
    user = store.get("1")
    assert user.last_location.timestamp == ts(max(seconds))
    assert user.last_location.latitude == float(max(seconds))
    engine.dispose()


def test_duplicate_generated_id_is_named(store, monkeypatch):
    monkeypatch.setattr(store_module, "new_user_id", lambda: "abc")
    store.add_user(name="Asha", mobile_number="1")
    with pytest.raises(DuplicateUser) as exc:
        store.add_user(name="Ravi", mobile_number="2")
    assert exc.value.user_id == "abc"
    assert str(exc.value) == "User abc already registered"


def test_far_future_report_rejected(store):
    _add(store)
    store.upsert_location("1", 37.0, -122.0, ts(100))
    with pytest.raises(InvalidLocation):
        store.upsert_location("1", 10.0, 10.0, datetime(2999, 1, 1, tzinfo=timezone.utc))

    user = store.get("1")
    assert user.last_location.timestamp == ts(100)
    # a report stamped now is still accepted afterwards
    user = store.upsert_location("1", 38.0, -121.0, datetime.now(timezone.utc))
    assert user.last_location.latitude == 38.0


def test_small_clock_skew_is_tolerated(store):
    _add(store)
    ahead = datetime.now(timezone.utc) + timedelta(seconds=60)
    user = store.upsert_location("1", 1.0, 1.0, ahead)
    assert user.last_location.latitude == 1.0


def test_clock_skew_is_configurable():
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    strict = LocationStore(make_session_factory(engine), max_clock_skew=0)
    strict.add_user(name="Asha", mobile_number="1", user_id="1")
    with pytest.raises(InvalidLocation):
        strict.upsert_location("1", 1.0, 1.0, datetime.now(timezone.utc) + timedelta(seconds=30))
    engine.dispose()
