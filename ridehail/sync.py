"""Polling discipline for presentation clients.

Requester and driver screens never get pushed updates; they call a view on a
fixed interval and react to what changed. A poll that times out, or finds the
store unavailable, is a transient failure: the last known value stays
current and nothing is reported as changed.
"""

import concurrent.futures
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

from sqlalchemy.exc import OperationalError

from ridehail.db import Database
from ridehail.errors import StoreUnavailable
from ridehail.models import TERMINAL_STATUSES
from ridehail.services import views
from ridehail.settings import settings

logger = logging.getLogger(__name__)

RECOMMENDED_INTERVAL_SECONDS = (1.0, 3.0)

TRANSIENT_ERRORS = (TimeoutError, concurrent.futures.TimeoutError, StoreUnavailable, OperationalError)


@dataclass(frozen=True)
class PollResult:
    value: Any
    changed: bool
    error: Optional[BaseException] = None

    @property
    def stale(self) -> bool:
        return self.error is not None


def _fingerprint(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_fingerprint(v) for v in value]
    return value


def _is_terminal(value: Any) -> bool:
    return getattr(value, "status", None) in TERMINAL_STATUSES


class RidePoller:
    """Call ``fetch`` on a fixed cadence and surface only changes.

    ``timeout`` bounds each fetch; an overrun counts as a transient failure.
    """

    def __init__(
        self,
        fetch: Callable[[], Any],
        *,
        interval: float | None = None,
        timeout: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        interval = settings.POLL_INTERVAL_SECONDS if interval is None else interval
        if not interval > 0:
            raise ValueError("poll interval must be positive")
        if timeout is not None and not timeout > 0:
            raise ValueError("poll timeout must be positive")
        low, high = RECOMMENDED_INTERVAL_SECONDS
        if not low <= interval <= high:
            logger.warning("Poll interval %ss is outside the recommended %s-%ss", interval, low, high)

        self.fetch = fetch
        self.interval = interval
        self.timeout = timeout
        self._sleep = sleep
        self._executor: concurrent.futures.ThreadPoolExecutor | None = None
        self._last: Any = None
        self._has_value = False
        self.polls = 0
        self.failures = 0

    @property
    def last(self) -> Any:
        return self._last

    def _call(self) -> Any:
        if self.timeout is None:
            return self.fetch()
        if self._executor is None:
            self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="ride-poll")
        future = self._executor.submit(self.fetch)
        try:
            return future.result(timeout=self.timeout)
        except concurrent.futures.TimeoutError:
            # the overrunning fetch keeps its worker; later polls get a fresh one
            self.close()
            raise

    def poll(self) -> PollResult:
        self.polls += 1
        try:
            value = self._call()
        except TRANSIENT_ERRORS as exc:
            self.failures += 1
            logger.warning("Poll #%d failed, keeping last known value: %r", self.polls, exc)
            return PollResult(value=self._last, changed=False, error=exc)

        changed = not self._has_value or _fingerprint(value) != _fingerprint(self._last)
        self._last = value
        self._has_value = True
        return PollResult(value=value, changed=changed)

    def watch(self, *, stop: Callable[[], bool] | None = None, max_polls: int | None = None) -> Iterator[Any]:
        """Yield each new value; ends after a terminal ride, ``stop()`` or ``max_polls``."""
        count = 0
        try:
            while stop is None or not stop():
                result = self.poll()
                count += 1
                if result.changed:
                    yield result.value
                    if _is_terminal(result.value):
                        return
                if max_polls is not None and count >= max_polls:
                    return
                self._sleep(self.interval)
        finally:
            self.close()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def __enter__(self) -> "RidePoller":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _with_session(database: Database, view: Callable, *args) -> Callable[[], Any]:
    def fetch():
        db = database.session()
        try:
            return view(db, *args)
        finally:
            db.close()

    return fetch


def ride_fetcher(database: Database, ride_id: Any) -> Callable[[], Any]:
    return _with_session(database, views.ride_by_id, ride_id)


def pending_rides_fetcher(database: Database) -> Callable[[], Any]:
    return _with_session(database, views.pending_rides)


def requester_rides_fetcher(database: Database, requester_id: str) -> Callable[[], Any]:
    return _with_session(database, views.rides_by_requester, requester_id)


def driver_rides_fetcher(database: Database, driver_id: str) -> Callable[[], Any]:
    return _with_session(database, views.rides_by_driver, driver_id)
