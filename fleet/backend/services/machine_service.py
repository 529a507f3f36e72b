# fleet/backend/services/machine_service.py

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fleet.backend.db.models import Location, Machine, MachineStatus, Tube
from fleet.backend.db.session import unit_of_work
from fleet.backend.repositories.location_repository import LocationRepository
from fleet.backend.repositories.machine_repository import MachineRepository
from fleet.backend.schemas.machines import (
    CreateMachineRequest,
    LocationDto,
    MachineDto,
    TubeDto,
    UpdateMachineRequest,
)

from .errors import DomainValidationError

logger = logging.getLogger(__name__)

TUBE_COUNT_MESSAGE = "The number of tubes must match the tubes_number value."


def _name_taken_message(name: str) -> str:
    return f"A machine with the name '{name}' already exists."


class MachineService:
    """
    Machines as the API sees them.

    Maps Machine rows (with tubes and location) to MachineDto and enforces:
      - unique machine names;
      - len(tubes) == tubes_number on create and whenever tubes are replaced;
      - locations are resolved by (country, city) and created on demand.
    Every write is a single unit of work.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._machines = MachineRepository(session)
        self._locations = LocationRepository(session)

    # ---- reads ----

    def list_machines(self) -> list[MachineDto]:
        return [self._to_dto(m) for m in self._machines.get_all()]

    def get_by_id(self, machine_id: int) -> Optional[MachineDto]:
        machine = self._machines.get_by_id(machine_id)
        return self._to_dto(machine) if machine is not None else None

    def get_by_name(self, name: str) -> Optional[MachineDto]:
        machine = self._machines.get_by_name(name)
        return self._to_dto(machine) if machine is not None else None

    def get_by_status(self, status: MachineStatus) -> list[MachineDto]:
        return [self._to_dto(m) for m in self._machines.get_by_status(status)]

    def get_by_location(self, country: str, city: str | None = None) -> list[MachineDto]:
        return [self._to_dto(m) for m in self._machines.get_by_location(country, city)]

    # ---- writes ----

    def create(self, body: CreateMachineRequest) -> MachineDto:
        if self._machines.exists_by_name(body.name):
            raise DomainValidationError(_name_taken_message(body.name))

        if len(body.tubes) != body.tubes_number:
            raise DomainValidationError(TUBE_COUNT_MESSAGE)

        try:
            with unit_of_work(self._session):
                location = self._resolve_location(body.location)
                machine = Machine(
                    name=body.name,
                    model=body.model,
                    status=body.status,
                    plc_version=body.plc_version,
                    acs_version=body.acs_version,
                    tubes_number=body.tubes_number,
                    owner=body.owner,
                    teamviewer_name=body.teamviewer_name,
                    location=location,
                    tubes=[self._new_tube(t) for t in body.tubes],
                )
                self._machines.add(machine)
        except IntegrityError:
            raise DomainValidationError(_name_taken_message(body.name))

        logger.info("Machine %r created (id=%s)", machine.name, machine.id)
        return self._to_dto(machine)

    def update(self, machine_id: int, body: UpdateMachineRequest) -> Optional[MachineDto]:
        """
        Apply the fields present in body. Returns None if the machine does not exist.
        Backs both PUT and PATCH.
        """
        machine = self._machines.get_by_id(machine_id)
        if machine is None:
            return None

        # validate everything before touching the row
        if body.name is not None and body.name != machine.name:
            if self._machines.exists_by_name(body.name, exclude_id=machine.id):
                raise DomainValidationError(_name_taken_message(body.name))

        if body.tubes is not None:
            tubes_number = body.tubes_number if body.tubes_number is not None else machine.tubes_number
            if len(body.tubes) != tubes_number:
                raise DomainValidationError(TUBE_COUNT_MESSAGE)
        elif body.tubes_number is not None and body.tubes_number != len(machine.tubes):
            raise DomainValidationError(TUBE_COUNT_MESSAGE)

        try:
            with unit_of_work(self._session):
                if body.name is not None:
                    machine.name = body.name
                if body.model is not None:
                    machine.model = body.model
                if body.status is not None:
                    machine.status = body.status
                if body.plc_version is not None:
                    machine.plc_version = body.plc_version
                if body.acs_version is not None:
                    machine.acs_version = body.acs_version
                if body.owner is not None:
                    machine.owner = body.owner
                if body.teamviewer_name is not None:
                    machine.teamviewer_name = body.teamviewer_name
                if body.tubes_number is not None:
                    machine.tubes_number = body.tubes_number

                if body.location is not None:
                    machine.location = self._resolve_location(body.location)

                if body.tubes is not None:
                    # delete-orphan drops the old rows
                    machine.tubes = [self._new_tube(t) for t in body.tubes]
        except IntegrityError:
            raise DomainValidationError(_name_taken_message(body.name or machine.name))

        return self._to_dto(machine)

    def delete(self, machine_id: int) -> bool:
        machine = self._machines.get_by_id(machine_id)
        if machine is None:
            return False

        with unit_of_work(self._session):
            self._machines.delete(machine)
        return True

    # ---- mapping ----

    def _resolve_location(self, dto: LocationDto) -> Location:
        location = self._locations.get_by_country_and_city(dto.country, dto.city)
        if location is None:
            location = self._locations.create(
                country=dto.country,
                city=dto.city,
                latitude=dto.latitude,
                longitude=dto.longitude,
            )
            logger.info("Location %s/%s created", dto.country, dto.city)
        return location

    @staticmethod
    def _new_tube(dto: TubeDto) -> Tube:
        return Tube(
            tube_index=dto.tube_index,
            tube_type=dto.tube_type,
            purging_connected=dto.purging_connected,
            shutter_exists=dto.shutter_exists,
        )

    @staticmethod
    def _to_dto(machine: Machine) -> MachineDto:
        loc = machine.location
        return MachineDto(
            id=machine.id,
            name=machine.name,
            model=machine.model,
            status=machine.status,
            plc_version=machine.plc_version,
            acs_version=machine.acs_version,
            tubes_number=machine.tubes_number,
            owner=machine.owner,
            teamviewer_name=machine.teamviewer_name,
            location=LocationDto(
                country=loc.country,
                city=loc.city,
                latitude=loc.latitude,
                longitude=loc.longitude,
            ),
            tubes=[
                TubeDto(
                    tube_index=t.tube_index,
                    tube_type=t.tube_type,
                    purging_connected=t.purging_connected,
                    shutter_exists=t.shutter_exists,
                )
                for t in sorted(machine.tubes, key=lambda t: t.tube_index)
            ],
            created_at=machine.created_at,
            updated_at=machine.updated_at,
        )
