# fleet/backend/repositories/location_repository.py

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from fleet.backend.db.models import Location


class LocationRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_country_and_city(self, country: str, city: str) -> Optional[Location]:
        return (
            self._session
            .query(Location)
            .filter(Location.country == country, Location.city == city)
            .one_or_none()
        )

    def create(
        self,
        *,
        country: str,
        city: str,
        latitude: float,
        longitude: float,
    ) -> Location:
        """
        Add a location and flush so its id is available for the machine FK.
        """
        loc = Location(country=country, city=city, latitude=latitude, longitude=longitude)
        self._session.add(loc)
        self._session.flush()
        return loc
