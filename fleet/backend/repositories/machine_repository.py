# fleet/backend/repositories/machine_repository.py

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session, selectinload

from fleet.backend.db.models import Location, Machine, MachineStatus


class MachineRepository:
    """
    Data access for machines together with their tubes and location.

      - list / lookups by id, name, status, location
      - add / delete (tubes go with the machine)
      - uniqueness checks on name
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def _query(self):
        return (
            self._session
            .query(Machine)
            .options(selectinload(Machine.tubes), selectinload(Machine.location))
        )

    # ---- reads ----

    def get_all(self) -> list[Machine]:
        return list(self._query().order_by(Machine.name).all())

    def get_by_id(self, machine_id: int) -> Optional[Machine]:
        return self._query().filter(Machine.id == machine_id).one_or_none()

    def get_by_name(self, name: str) -> Optional[Machine]:
        return self._query().filter(Machine.name == name).one_or_none()

    def get_by_status(self, status: MachineStatus) -> list[Machine]:
        return list(
            self._query()
            .filter(Machine.status == status)
            .order_by(Machine.name)
            .all()
        )

    def get_by_location(self, country: str, city: str | None = None) -> list[Machine]:
        q = self._query().join(Machine.location).filter(Location.country == country)
        if city:
            q = q.filter(Location.city == city)
        return list(q.order_by(Machine.name).all())

    def exists_by_name(self, name: str, exclude_id: int | None = None) -> bool:
        q = self._session.query(Machine.id).filter(Machine.name == name)
        if exclude_id is not None:
            q = q.filter(Machine.id != exclude_id)
        return q.first() is not None

    # ---- writes ----

    def add(self, machine: Machine) -> Machine:
        """
        Add a machine (with its tubes) and flush to assign ids.
        Commit outside.
        """
        self._session.add(machine)
        self._session.flush()
        return machine

    def delete(self, machine: Machine) -> None:
        self._session.delete(machine)
