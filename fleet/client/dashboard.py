# fleet/client/dashboard.py

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Iterable, List

from .auth_store import AuthStore
from .models import Machine, MachineStatus


@dataclass(frozen=True)
class DashboardStats:
    total: int
    running: int
    idle: int
    maintenance: int
    error: int
    avg_efficiency: int


def compute_stats(machines: Iterable[Machine]) -> DashboardStats:
    """
    Aggregates for the stat cards, derived from the in-memory list.
    Machines without an efficiency reading count as 0.
    """
    machines = list(machines)
    total = len(machines)

    def count(status: MachineStatus) -> int:
        return sum(1 for m in machines if m.status == status)

    # halves round up
    avg = math.floor(sum((m.efficiency or 0) for m in machines) / total + 0.5) if total else 0

    return DashboardStats(
        total=total,
        running=count(MachineStatus.RUNNING),
        idle=count(MachineStatus.IDLE),
        maintenance=count(MachineStatus.MAINTENANCE),
        error=count(MachineStatus.ERROR),
        avg_efficiency=int(avg),
    )


def filter_by_name(machines: Iterable[Machine], term: str) -> List[Machine]:
    needle = term.strip().lower()
    return [m for m in machines if needle in m.name.lower()]


def filter_by_name_or_city(machines: Iterable[Machine], term: str) -> List[Machine]:
    # map view search
    needle = term.strip().lower()
    return [
        m for m in machines
        if needle in m.name.lower() or needle in m.location.city.lower()
    ]


# ---------- top-level view selection ----------

class AuthView(str, enum.Enum):
    LOGIN = "login"
    REGISTER = "register"
    FORGOT = "forgot"


class View(str, enum.Enum):
    LOADING = "loading"
    CHANGE_PASSWORD = "change_password"
    LOGIN = "login"
    REGISTER = "register"
    FORGOT_PASSWORD = "forgot_password"
    DASHBOARD = "dashboard"


_AUTH_VIEWS = {
    AuthView.LOGIN: View.LOGIN,
    AuthView.REGISTER: View.REGISTER,
    AuthView.FORGOT: View.FORGOT_PASSWORD,
}


def select_view(store: AuthStore, auth_view: AuthView = AuthView.LOGIN) -> View:
    """
    loading -> forced password change -> login/register/forgot -> dashboard,
    decided only by token/user presence and the requirePasswordChange flag.
    """
    if store.is_loading:
        return View.LOADING

    if store.is_authenticated and store.user.require_password_change:
        return View.CHANGE_PASSWORD

    if not store.is_authenticated:
        return _AUTH_VIEWS[AuthView(auth_view)]

    return View.DASHBOARD
