import threading

import pytest
from sqlalchemy.exc import OperationalError

from ridehail.errors import NotFound, StoreUnavailable
from ridehail.models import ACCEPTED, COMPLETED, IN_PROGRESS, PENDING
from ridehail.services.lifecycle import accept_ride, advance_status
from ridehail.sync import RidePoller, pending_rides_fetcher, ride_fetcher


class ScriptedFetch:
    """Return (or raise) the scripted items in order, repeating the last one."""

    def __init__(self, *items):
        self.items = list(items)
        self.calls = 0

    def __call__(self):
        item = self.items[min(self.calls, len(self.items) - 1)]
        self.calls += 1
        if isinstance(item, BaseException):
            raise item
        return item


def _no_sleep(_seconds):
    pass


def test_first_poll_is_a_change_then_only_differences():
    poller = RidePoller(ScriptedFetch("a", "a", "b"), interval=2.0, sleep=_no_sleep)

    assert poller.poll().changed is True
    assert poller.poll().changed is False
    result = poller.poll()
    assert result.changed is True
    assert result.value == "b"
    assert poller.polls == 3


@pytest.mark.parametrize(
    "error",
    [
        TimeoutError("slow"),
        StoreUnavailable(),
        OperationalError("SELECT 1", {}, Exception("database is locked")),
    ],
)
def test_transient_failure_keeps_last_known_value(error):
    poller = RidePoller(ScriptedFetch("a", error, "a"), interval=2.0, sleep=_no_sleep)
    poller.poll()

    failed = poller.poll()
    assert failed.stale
    assert failed.value == "a"
    assert failed.changed is False
    assert failed.error is error
    assert poller.failures == 1

    recovered = poller.poll()
    assert not recovered.stale
    assert recovered.changed is False


def test_non_transient_errors_propagate():
    poller = RidePoller(ScriptedFetch(NotFound("ride not found")), interval=2.0, sleep=_no_sleep)

    with pytest.raises(NotFound):
        poller.poll()


@pytest.mark.parametrize("interval", [0, -1.0])
def test_interval_must_be_positive(interval):
    with pytest.raises(ValueError):
        RidePoller(ScriptedFetch("a"), interval=interval)


def test_timeout_must_be_positive():
    with pytest.raises(ValueError):
        RidePoller(ScriptedFetch("a"), interval=2.0, timeout=0)


def test_interval_outside_recommended_range_warns(caplog):
    with caplog.at_level("WARNING", logger="ridehail.sync"):
        RidePoller(ScriptedFetch("a"), interval=10.0)

    assert "outside the recommended" in caplog.text


def test_fetch_overrunning_timeout_is_transient():
    release = threading.Event()

    def slow_fetch():
        release.wait(5)
        return "late"

    poller = RidePoller(slow_fetch, interval=1.0, timeout=0.05, sleep=_no_sleep)
    try:
        result = poller.poll()
    finally:
        release.set()
        poller.close()

    assert result.stale
    assert result.value is None
    assert poller.failures == 1


def test_poll_after_timeout_runs_a_fresh_fetch():
    release = threading.Event()
    calls = []

    def fetch():
        calls.append(len(calls))
        if len(calls) == 1:
            release.wait(5)
            return "late"
        return "fresh"

    with RidePoller(fetch, interval=1.0, timeout=0.2, sleep=_no_sleep) as poller:
        try:
            assert poller.poll().stale
            result = poller.poll()
        finally:
            release.set()

    assert not result.stale
    assert result.value == "fresh"
    assert result.changed
    assert len(calls) == 2


def test_watch_releases_its_worker_when_done():
    poller = RidePoller(ScriptedFetch("a"), interval=1.0, timeout=1.0, sleep=_no_sleep)

    assert list(poller.watch(max_polls=2)) == ["a"]
    assert poller._executor is None


def test_watch_yields_changes_only_and_respects_max_polls():
    sleeps = []
    poller = RidePoller(ScriptedFetch("a", "a", "b", "b", "c"), interval=1.5, sleep=sleeps.append)

    assert list(poller.watch(max_polls=4)) == ["a", "b"]
    assert sleeps == [1.5, 1.5, 1.5]


def test_watch_honours_stop():
    poller = RidePoller(ScriptedFetch("a", "b"), interval=1.0, sleep=_no_sleep)
    seen = []

    for value in poller.watch(stop=lambda: len(seen) >= 1):
        seen.append(value)

    assert seen == ["a"]


def test_watch_follows_a_ride_to_completion(database, db, make_ride):
    ride_id = make_ride()
    script = iter(
        [
            lambda: None,
            lambda: accept_ride(db, ride_id, "d1"),
            lambda: None,
            lambda: advance_status(db, ride_id, ACCEPTED, IN_PROGRESS),
            lambda: advance_status(db, ride_id, IN_PROGRESS, COMPLETED),
        ]
    )

    # each pause between polls lets the driver make the next move
    poller = RidePoller(ride_fetcher(database, ride_id), interval=2.0, sleep=lambda _s: next(script)())
    statuses = [ride.status for ride in poller.watch(max_polls=20)]

    assert statuses == [PENDING, ACCEPTED, IN_PROGRESS, COMPLETED]
    assert poller.polls == 6


def test_pending_rides_fetcher_sees_new_requests(database, make_ride):
    poller = RidePoller(pending_rides_fetcher(database), interval=2.0, sleep=_no_sleep)

    assert poller.poll().value == []
    ride_id = make_ride()
    result = poller.poll()

    assert result.changed
    assert [r.id for r in result.value] == [str(ride_id)]
