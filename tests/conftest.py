import datetime as dt
import itertools
import os
import tempfile

import pytest

# keep settings side effects (data/log dirs) out of the user's home
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="ridehail-tests-")
os.environ.setdefault("USER_DATA_DIR", _TEST_DATA_DIR)
os.environ.setdefault("LOG_DIR", os.path.join(_TEST_DATA_DIR, "logs"))

from ridehail.db import close_db, init_db  # noqa: E402
from ridehail.schemas import Place  # noqa: E402
from ridehail.services.lifecycle import create_ride  # noqa: E402


BASE_TIME = dt.datetime(2026, 3, 1, 12, 0, tzinfo=dt.timezone.utc)


@pytest.fixture
def database(tmp_path):
    database = init_db(f"sqlite+pysqlite:///{tmp_path / 'rides.db'}", timeout=5.0)
    yield database
    close_db(database)


@pytest.fixture
def db(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_ride(db):
    """Create pending rides one minute apart, so newest-first order is known."""
    minutes = itertools.count()

    def _make(
        requester_id="r1",
        pickup=None,
        destination=None,
        fare=20.0,
        distance=5.0,
        duration=15.0,
    ):
        return create_ride(
            db,
            requester_id,
            pickup or Place(latitude=0.0, longitude=0.0, address="A"),
            destination or Place(latitude=1.0, longitude=1.0, address="B"),
            fare,
            distance,
            duration,
            now=BASE_TIME + dt.timedelta(minutes=next(minutes)),
        )

    return _make
