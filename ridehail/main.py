import logging
import time
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text as sa_text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from ridehail.db import close_db, get_db, init_db
from ridehail.errors import StoreUnavailable
from ridehail.logging_config import setup_logging
from ridehail.schemas import (
    AcceptRideBody,
    AdvanceStatusBody,
    CancelRideBody,
    DriverLocationBody,
    OkOut,
    RideCreate,
    RideCreated,
    RideOut,
    RideStatusBody,
)
from ridehail.services import lifecycle, views
from ridehail.settings import Settings, settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health(db: Session = Depends(get_db)):
    try:
        db.execute(sa_text("SELECT 1"))
    except OperationalError as exc:
        raise StoreUnavailable() from exc
    return {"ok": True}


# -------------------------
# Mutations
# -------------------------

@router.post("/rides", status_code=201, response_model=RideCreated)
def rides_create(body: RideCreate, request: Request, db: Session = Depends(get_db)):
    cfg: Settings = request.app.state.settings
    ride_id = lifecycle.create_ride(
        db,
        body.requester_id,
        body.pickup,
        body.destination,
        fare=body.fare,
        distance=body.distance,
        duration=body.duration,
        fare_per_km=cfg.FARE_PER_KM,
        minutes_per_km=cfg.MINUTES_PER_KM,
    )
    return RideCreated(id=str(ride_id))


@router.post("/rides/{ride_id}/accept", response_model=OkOut)
def rides_accept(ride_id: str, body: AcceptRideBody, db: Session = Depends(get_db)):
    lifecycle.accept_ride(db, ride_id, body.driver_id)
    return OkOut()


@router.post("/rides/{ride_id}/location", response_model=OkOut)
def rides_driver_location(ride_id: str, body: DriverLocationBody, db: Session = Depends(get_db)):
    lifecycle.update_driver_location(db, ride_id, body.driver_id, body.location)
    return OkOut()


@router.post("/rides/{ride_id}/status", response_model=OkOut)
def rides_status(ride_id: str, body: RideStatusBody, db: Session = Depends(get_db)):
    lifecycle.update_ride_status(db, ride_id, body.status, actor_id=body.actor_id)
    return OkOut()


@router.post("/rides/{ride_id}/advance", response_model=OkOut)
def rides_advance(ride_id: str, body: AdvanceStatusBody, db: Session = Depends(get_db)):
    lifecycle.advance_status(db, ride_id, body.expected_current, body.next, actor_id=body.actor_id)
    return OkOut()


@router.post("/rides/{ride_id}/cancel", response_model=OkOut)
def rides_cancel(ride_id: str, body: CancelRideBody, db: Session = Depends(get_db)):
    lifecycle.cancel_ride(db, ride_id, body.actor_id, body.reason)
    return OkOut()


# -------------------------
# Views
# -------------------------

@router.get("/rides/pending", response_model=list[RideOut])
def rides_pending(db: Session = Depends(get_db)):
    return views.pending_rides(db)


@router.get("/rides/{ride_id}", response_model=RideOut)
def rides_get(ride_id: str, db: Session = Depends(get_db)):
    return views.ride_by_id(db, ride_id)


@router.get("/requesters/{requester_id}/rides", response_model=list[RideOut])
def requester_rides(requester_id: str, db: Session = Depends(get_db)):
    return views.rides_by_requester(db, requester_id)


@router.get("/drivers/{driver_id}/rides", response_model=list[RideOut])
def driver_rides(driver_id: str, db: Session = Depends(get_db)):
    return views.rides_by_driver(db, driver_id)


def create_app(app_settings: Settings | None = None) -> FastAPI:
    cfg = app_settings or settings
    setup_logging(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.database = init_db(cfg.DATABASE_URL, timeout=cfg.STORE_TIMEOUT_SECONDS)
        try:
            yield
        finally:
            close_db(app.state.database)

    app = FastAPI(title="Ride Hailing API", lifespan=lifespan)
    app.state.settings = cfg

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info("%s %s -> %s (%.1fms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": {"error": "INTERNAL_ERROR"}})

    app.include_router(router)
    return app


app = create_app()
