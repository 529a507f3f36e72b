# fleet/backend/schemas/machines.py

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from fleet.backend.db.models import MachineStatus, ModelType, TubeType

from .common import ApiModel


class LocationDto(ApiModel):
    country: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class TubeDto(ApiModel):
    tube_index: int
    tube_type: TubeType
    purging_connected: bool = False
    shutter_exists: bool = False


class MachineDto(ApiModel):
    id: int
    name: str
    model: ModelType
    status: MachineStatus
    plc_version: str
    acs_version: str
    tubes_number: int
    owner: str
    teamviewer_name: str
    location: LocationDto
    tubes: list[TubeDto]
    created_at: datetime
    updated_at: datetime | None = None


class CreateMachineRequest(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    model: ModelType
    status: MachineStatus
    plc_version: str = Field(..., min_length=1, max_length=100)
    acs_version: str = Field(..., min_length=1, max_length=100)
    tubes_number: int = Field(..., ge=0)
    owner: str = Field(..., min_length=1, max_length=200)
    teamviewer_name: str = Field(..., min_length=1, max_length=200)
    location: LocationDto
    tubes: list[TubeDto] = Field(default_factory=list)


class UpdateMachineRequest(ApiModel):
    # every field optional: only the ones sent are applied (PUT and PATCH alike)
    name: str | None = Field(None, min_length=1, max_length=100)
    model: ModelType | None = None
    status: MachineStatus | None = None
    plc_version: str | None = Field(None, max_length=100)
    acs_version: str | None = Field(None, max_length=100)
    tubes_number: int | None = Field(None, ge=0)
    owner: str | None = Field(None, max_length=200)
    teamviewer_name: str | None = Field(None, max_length=200)
    location: LocationDto | None = None
    tubes: list[TubeDto] | None = None
