# fleet/backend/db/models.py

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------- enums (stored as strings) ----------

class MachineStatus(str, enum.Enum):
    Running = "Running"
    Idle = "Idle"
    Maintenance = "Maintenance"
    Error = "Error"


class ModelType(str, enum.Enum):
    Onyx3000 = "Onyx3000"
    Onyx3200 = "Onyx3200"


class TubeType(str, enum.Enum):
    Petrick = "Petrick"
    MXR = "MXR"
    ColorsTW = "ColorsTW"
    ColorsTCu = "ColorsTCu"
    ColorsTAu = "ColorsTAu"
    ColorsTMo = "ColorsTMo"
    ColorsTWMa = "ColorsTWMa"


def _enum_column(enum_cls: type[enum.Enum]) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        length=50,
        validate_strings=True,
    )


# ---------- tables ----------

class User(Base):
    """
    Dashboard account.

    email is stored lowercased; require_password_change is raised by the
    forgot-password flow and cleared by a successful password change.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    email: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        index=True,
    )

    username: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    require_password_change: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )


class Location(Base):
    """
    A (country, city) pair with coordinates for the world map.
    Shared by every machine in that city and never deleted with them.
    """
    __tablename__ = "locations"
    __table_args__ = (
        UniqueConstraint("country", "city", name="uq_locations_country_city"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    machines: Mapped[list["Machine"]] = relationship(back_populates="location")


class Machine(Base):
    __tablename__ = "machines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        index=True,
    )

    model: Mapped[ModelType] = mapped_column(_enum_column(ModelType), nullable=False)

    status: Mapped[MachineStatus] = mapped_column(
        _enum_column(MachineStatus),
        nullable=False,
        index=True,
    )

    plc_version: Mapped[str] = mapped_column(String(100), nullable=False)
    acs_version: Mapped[str] = mapped_column(String(100), nullable=False)
    tubes_number: Mapped[int] = mapped_column(Integer, nullable=False)
    owner: Mapped[str] = mapped_column(String(200), nullable=False)
    teamviewer_name: Mapped[str] = mapped_column(String(200), nullable=False)

    location_id: Mapped[int] = mapped_column(
        ForeignKey("locations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    # stamped in _stamp_machine_updated_at on every flush that modifies the row
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    location: Mapped[Location] = relationship(back_populates="machines")

    tubes: Mapped[list["Tube"]] = relationship(
        back_populates="machine",
        cascade="all, delete-orphan",
        order_by="Tube.tube_index",
    )


class Tube(Base):
    __tablename__ = "tubes"
    __table_args__ = (
        Index("ix_tubes_machine_id_tube_index", "machine_id", "tube_index"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tube_index: Mapped[int] = mapped_column(Integer, nullable=False)
    tube_type: Mapped[TubeType] = mapped_column(_enum_column(TubeType), nullable=False)
    purging_connected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    shutter_exists: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    machine_id: Mapped[int] = mapped_column(
        ForeignKey("machines.id", ondelete="CASCADE"),
        nullable=False,
    )

    machine: Mapped[Machine] = relationship(back_populates="tubes")


@event.listens_for(Session, "before_flush")
def _stamp_machine_updated_at(session: Session, flush_context, instances) -> None:
    now = utcnow()
    for obj in session.dirty:
        if isinstance(obj, Machine) and session.is_modified(obj):
            obj.updated_at = now
