import datetime as dt
import logging

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ridehail.models import Base

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str, timeout: float) -> dict:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": timeout}, "pool_pre_ping": False}
        if parsed.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {
        "pool_pre_ping": True,
        "pool_timeout": timeout,
        "connect_args": {"connect_timeout": max(1, int(timeout))},
    }


@event.listens_for(Session, "before_flush")
def _touch_timestamps(session: Session, flush_context, instances):
    """Maintain updated_at (and created_at when missing) on ORM objects."""
    now = dt.datetime.now(dt.timezone.utc)

    for obj in session.new:
        if hasattr(obj, "created_at") and getattr(obj, "created_at") is None:
            setattr(obj, "created_at", now)
        if hasattr(obj, "updated_at") and getattr(obj, "updated_at") is None:
            setattr(obj, "updated_at", getattr(obj, "created_at", None) or now)

    for obj in session.dirty:
        if hasattr(obj, "updated_at"):
            setattr(obj, "updated_at", now)


class Database:
    """Process-wide ride store connection: one engine, one session factory.

    Created explicitly at startup and disposed at shutdown.
    """

    def __init__(self, url: str, *, timeout: float = 5.0):
        self.url = url
        self.engine = create_engine(url, **_engine_kwargs(url, timeout))
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, autocommit=False, expire_on_commit=False)

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self) -> None:
        self.engine.dispose()


def init_db(url: str, *, timeout: float = 5.0, create_schema: bool = True) -> Database:
    database = Database(url, timeout=timeout)
    if create_schema:
        database.create_all()
    logger.info("Ride store ready (%s)", make_url(url).render_as_string(hide_password=True))
    return database


def close_db(database: Database) -> None:
    database.dispose()
    logger.info("Ride store closed")


def get_db(request: Request):
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
