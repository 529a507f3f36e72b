# fleet/backend/db/base.py

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Declarative base for the fleet tables (users, locations, machines, tubes).
    """
    pass
