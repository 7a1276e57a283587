import datetime as dt
import uuid

from sqlalchemy import DateTime, Float, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin
from .dbtypes import GUID
from .enums import PENDING, RideStatus


class Ride(Base, TimestampMixin):
    __tablename__ = "rides"
    __table_args__ = (
        Index("ix_rides_status_created_at", "status", "created_at"),
        Index("ix_rides_requester_id", "requester_id"),
        Index("ix_rides_driver_id", "driver_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)

    requester_id: Mapped[str] = mapped_column(Text, nullable=False)
    driver_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    pickup_latitude: Mapped[float] = mapped_column(Float, nullable=False)
    pickup_longitude: Mapped[float] = mapped_column(Float, nullable=False)
    pickup_address: Mapped[str] = mapped_column(Text, nullable=False)

    destination_latitude: Mapped[float] = mapped_column(Float, nullable=False)
    destination_longitude: Mapped[float] = mapped_column(Float, nullable=False)
    destination_address: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[str] = mapped_column(RideStatus, nullable=False, default=PENDING)

    fare: Mapped[float] = mapped_column(Float, nullable=False)
    distance: Mapped[float] = mapped_column(Float, nullable=False)
    duration: Mapped[float] = mapped_column(Float, nullable=False)

    driver_latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    driver_longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    driver_location_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    accepted_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    started_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"Ride({self.id}, {self.status})"
