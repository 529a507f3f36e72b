# fleet/client/models.py

"""
View-models used by the dashboard.

They mirror the server DTOs in snake_case and add display-only fields
(efficiency, temperature, history) that the server does not store.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class MachineStatus(str, enum.Enum):
    RUNNING = "Running"
    IDLE = "Idle"
    MAINTENANCE = "Maintenance"
    ERROR = "Error"


class ModelType(str, enum.Enum):
    ONYX_3000 = "Onyx3000"
    ONYX_3200 = "Onyx3200"


class TubeType(str, enum.Enum):
    PETRICK = "Petrick"
    MXR = "MXR"
    COLORS_TW = "ColorsTW"
    COLORS_TCU = "ColorsTCu"
    COLORS_TAU = "ColorsTAu"
    COLORS_TMO = "ColorsTMo"
    COLORS_TWMA = "ColorsTWMa"


@dataclass
class TubeView:
    tube_index: int
    tube_type: TubeType
    purging_connected: bool
    shutter_exists: bool


@dataclass
class LocationView:
    country: str
    city: str
    latitude: float
    longitude: float


@dataclass
class HistoryPoint:
    time: str
    value: float


@dataclass
class Machine:
    id: int
    name: str
    model: ModelType
    image: str
    status: MachineStatus
    plc_version: str
    acs_version: str
    tubes_number: int
    tubes: list[TubeView]
    owner: str
    teamviewer_name: str
    location: LocationView
    efficiency: Optional[float] = None
    temperature: Optional[float] = None
    # for charting only
    history: Optional[list[HistoryPoint]] = None


@dataclass
class AuthUser:
    username: str
    email: str
    is_admin: bool = False
    require_password_change: bool = False

    def to_dict(self) -> dict:
        return {
            "username": self.username,
            "email": self.email,
            "isAdmin": self.is_admin,
            "requirePasswordChange": self.require_password_change,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuthUser":
        """
        Raises KeyError/TypeError on malformed data.
        """
        return cls(
            username=str(data["username"]),
            email=str(data["email"]),
            is_admin=bool(data.get("isAdmin", False)),
            require_password_change=bool(data.get("requirePasswordChange", False)),
        )
