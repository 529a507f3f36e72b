# fleet/backend/db/seed.py

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from .models import Location, Machine, MachineStatus, ModelType, Tube, TubeType

logger = logging.getLogger(__name__)

# (country, city, latitude, longitude)
SEED_LOCATIONS: list[tuple[str, str, float, float]] = [
    # Israel
    ("Israel", "Migdal Haemek", 32.6744, 35.2397),
    ("Israel", "Tel Aviv", 32.0853, 34.7818),
    # Asia Pacific
    ("Japan", "Tokyo", 35.6762, 139.6503),
    ("China", "Shanghai", 31.2304, 121.4737),
    ("Singapore", "Singapore", 1.3521, 103.8198),
    ("South Korea", "Seoul", 37.5665, 126.9780),
    ("Australia", "Sydney", -33.8688, 151.2093),
    ("India", "Mumbai", 19.0760, 72.8777),
    # Europe
    ("UK", "London", 51.5074, -0.1278),
    ("Germany", "Munich", 48.1351, 11.5820),
    ("Germany", "Berlin", 52.5200, 13.4050),
    ("France", "Paris", 48.8566, 2.3522),
    ("Netherlands", "Amsterdam", 52.3676, 4.9041),
    ("Switzerland", "Zurich", 47.3769, 8.5417),
    # Americas
    ("USA", "Austin", 30.2672, -97.7431),
    ("USA", "New York", 40.7128, -74.0060),
    ("USA", "San Francisco", 37.7749, -122.4194),
    ("Canada", "Toronto", 43.6532, -79.3832),
    ("Brazil", "São Paulo", -23.5505, -46.6333),
    ("Mexico", "Mexico City", 19.4326, -99.1332),
    # Middle East & Africa
    ("UAE", "Dubai", 25.2048, 55.2708),
    ("South Africa", "Johannesburg", -26.2041, 28.0473),
    ("Turkey", "Istanbul", 41.0082, 28.9784),
]


def _tube(index: int, tube_type: TubeType, purging: bool, shutter: bool) -> Tube:
    return Tube(
        tube_index=index,
        tube_type=tube_type,
        purging_connected=purging,
        shutter_exists=shutter,
    )


def seed_database(session: Session) -> bool:
    """
    Fill an empty database with the city list and three sample machines.
    Does nothing (returns False) if any machine already exists.
    """
    if session.query(Machine.id).first() is not None:
        return False

    by_city: dict[tuple[str, str], Location] = {}
    for country, city, lat, lon in SEED_LOCATIONS:
        loc = (
            session.query(Location)
            .filter(Location.country == country, Location.city == city)
            .one_or_none()
        )
        if loc is None:
            loc = Location(country=country, city=city, latitude=lat, longitude=lon)
            session.add(loc)
        by_city[(country, city)] = loc

    machines = [
        Machine(
            name="M15",
            model=ModelType.Onyx3200,
            status=MachineStatus.Running,
            plc_version="Siemens S7-1500 FW 2.9",
            acs_version="ACS SPiiPlus v2.40",
            tubes_number=2,
            owner="Shahar Assenheim",
            teamviewer_name="XRM5000-RIG-01",
            location=by_city[("Israel", "Migdal Haemek")],
            tubes=[
                _tube(1, TubeType.MXR, True, True),
                _tube(2, TubeType.ColorsTW, True, True),
            ],
        ),
        Machine(
            name="M16",
            model=ModelType.Onyx3000,
            status=MachineStatus.Idle,
            plc_version="Siemens S7-1200 FW 2.7",
            acs_version="ACS SPiiPlus v2.35",
            tubes_number=1,
            owner="Dana Cohen",
            teamviewer_name="ONYX3000-IL-02",
            location=by_city[("Japan", "Tokyo")],
            tubes=[_tube(1, TubeType.Petrick, False, True)],
        ),
        Machine(
            name="M17",
            model=ModelType.Onyx3200,
            status=MachineStatus.Maintenance,
            plc_version="Siemens S7-1500 FW 2.9",
            acs_version="ACS SPiiPlus v2.40",
            tubes_number=2,
            owner="Alex Green",
            teamviewer_name="ONYX3200-DE-01",
            location=by_city[("Germany", "Berlin")],
            tubes=[
                _tube(1, TubeType.ColorsTAu, True, False),
                _tube(2, TubeType.ColorsTCu, False, False),
            ],
        ),
    ]
    session.add_all(machines)
    session.commit()

    logger.info("Seeded %d locations and %d machines", len(by_city), len(machines))
    return True
