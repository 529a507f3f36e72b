from __future__ import annotations

import asyncio
import json
import threading

import pytest
import requests

from fleet.client.auth_store import AuthError, AuthStore
from fleet.client.constants import LOAD_MACHINES_ERROR, NETWORK_ERROR, TOKEN_KEY, USER_KEY
from fleet.client.dashboard import AuthView, View, compute_stats, filter_by_name, filter_by_name_or_city, select_view
from fleet.client.machine_api import MachineApi, MachineApiError, map_api_machine
from fleet.client.models import AuthUser, LocationView, Machine, MachineStatus, ModelType, TubeType
from fleet.client.poller import MachinePoller
from fleet.client.storage import JsonFileStorage, MemoryStorage

BASE = "http://api.test/api"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None, reason="OK"):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else (json.dumps(payload) if payload is not None else "")
        self.reason = reason

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeSession:
    """
    Stands in for requests.Session: canned responses keyed by (method, url).
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, path, response):
        self.routes[(method, f"{BASE}{path}")] = response

    def _handle(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.routes.get((method, url))
        if isinstance(response, Exception):
            raise response
        if response is None:
            return FakeResponse(404, {"message": "not found"}, reason="Not Found")
        return response

    def get(self, url, **kwargs):
        return self._handle("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._handle("POST", url, **kwargs)


def auth_payload(**overrides):
    payload = {
        "token": "tok-123",
        "username": "John Smith",
        "email": "john.smith@rigaku.com",
        "isAdmin": False,
        "requirePasswordChange": False,
        "expiresAt": "2030-01-01T00:00:00Z",
    }
    payload.update(overrides)
    return payload


def machine_payload(**overrides):
    payload = {
        "id": 7,
        "name": "M15",
        "model": "Onyx3200",
        "status": "Running",
        "plcVersion": "S7",
        "acsVersion": "ACS",
        "tubesNumber": 1,
        "owner": "Owner",
        "teamviewerName": "TV-1",
        "location": {"country": "Israel", "city": "Migdal Haemek", "latitude": 32.67, "longitude": 35.24},
        "tubes": [{"tubeIndex": 1, "tubeType": "MXR", "purgingConnected": True, "shutterExists": False}],
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": None,
    }
    payload.update(overrides)
    return payload


def make_machine(name="M1", status=MachineStatus.RUNNING, efficiency=None, city="Berlin"):
    return Machine(
        id=1,
        name=name,
        model=ModelType.ONYX_3000,
        image="/img.png",
        status=status,
        plc_version="p",
        acs_version="a",
        tubes_number=0,
        tubes=[],
        owner="o",
        teamviewer_name="tv",
        location=LocationView(country="Germany", city=city, latitude=0.0, longitude=0.0),
        efficiency=efficiency,
    )


@pytest.fixture
def http():
    return FakeSession()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage, http):
    s = AuthStore(storage, base_url=BASE, session=http)
    s.hydrate()
    return s


# ---------- auth store ----------

def test_hydrate_restores_session(http):
    user = AuthUser(username="John Smith", email="john.smith@rigaku.com")
    storage = MemoryStorage({TOKEN_KEY: "tok", USER_KEY: json.dumps(user.to_dict())})
    store = AuthStore(storage, base_url=BASE, session=http)
    assert store.is_loading is True

    store.hydrate()

    assert store.is_loading is False
    assert store.is_authenticated
    assert store.user == user


@pytest.mark.parametrize(
    "items",
    [
        {TOKEN_KEY: "tok", USER_KEY: "{not json"},
        {TOKEN_KEY: "tok", USER_KEY: "[1, 2]"},
        {TOKEN_KEY: "tok"},
        {USER_KEY: json.dumps({"username": "x", "email": "y"})},
    ],
)
def test_hydrate_clears_broken_state(http, items):
    storage = MemoryStorage(items)
    store = AuthStore(storage, base_url=BASE, session=http)

    store.hydrate()

    assert not store.is_authenticated
    assert storage.get_item(TOKEN_KEY) is None
    assert storage.get_item(USER_KEY) is None


def test_login_persists_token_and_user(store, storage, http):
    http.add("POST", "/auth/login", FakeResponse(200, auth_payload()))

    user = store.login("john.smith@rigaku.com", "Passw0rd1")

    assert user.username == "John Smith"
    assert store.token == "tok-123"
    assert storage.get_item(TOKEN_KEY) == "tok-123"
    assert json.loads(storage.get_item(USER_KEY))["email"] == "john.smith@rigaku.com"
    method, url, kwargs = http.calls[-1]
    assert kwargs["json"] == {"email": "john.smith@rigaku.com", "password": "Passw0rd1"}


def test_login_failure_surfaces_server_message(store, http):
    http.add("POST", "/auth/login", FakeResponse(401, {"message": "Invalid email or password."}))

    with pytest.raises(AuthError, match="Invalid email or password."):
        store.login("john.smith@rigaku.com", "bad")

    assert store.error == "Invalid email or password."
    assert not store.is_authenticated
    assert store.is_loading is False


def test_network_failure_uses_generic_message(store, http):
    http.add("POST", "/auth/register", requests.ConnectionError("down"))

    with pytest.raises(AuthError):
        store.register("john.smith@rigaku.com", "Passw0rd1")
    assert store.error == NETWORK_ERROR


def test_logout_clears_everything(store, storage, http):
    http.add("POST", "/auth/login", FakeResponse(200, auth_payload()))
    store.login("john.smith@rigaku.com", "Passw0rd1")

    store.logout()

    assert store.token is None and store.user is None
    assert storage.get_item(TOKEN_KEY) is None
    assert storage.get_item(USER_KEY) is None


def test_forced_password_change_flow(store, storage, http):
    http.add("POST", "/auth/login", FakeResponse(200, auth_payload(requirePasswordChange=True)))
    http.add("POST", "/auth/change-password", FakeResponse(200, {"message": "Password changed successfully."}))

    store.login("john.smith@rigaku.com", "Temp1234abcd")
    assert select_view(store) is View.CHANGE_PASSWORD

    message = store.change_password("Fresh1Password")

    assert message == "Password changed successfully."
    assert store.user.require_password_change is False
    assert json.loads(storage.get_item(USER_KEY))["requirePasswordChange"] is False
    assert select_view(store) is View.DASHBOARD

    method, url, kwargs = http.calls[-1]
    assert kwargs["headers"]["Authorization"] == "Bearer tok-123"
    assert kwargs["json"] == {"newPassword": "Fresh1Password"}


def test_forgot_password_returns_server_message(store, http):
    http.add("POST", "/auth/forgot-password", FakeResponse(200, {"message": "sent"}))
    assert store.forgot_password("a.b@rigaku.com") == "sent"


def test_select_view_transitions(http):
    store = AuthStore(MemoryStorage(), base_url=BASE, session=http)
    assert select_view(store) is View.LOADING

    store.hydrate()
    assert select_view(store) is View.LOGIN
    assert select_view(store, AuthView.REGISTER) is View.REGISTER
    assert select_view(store, AuthView.FORGOT) is View.FORGOT_PASSWORD

    store.token = "t"
    store.user = AuthUser(username="u", email="e")
    assert select_view(store, AuthView.REGISTER) is View.DASHBOARD


# ---------- machine api ----------

def test_map_api_machine():
    machine = map_api_machine(machine_payload())

    assert machine.id == 7
    assert machine.status is MachineStatus.RUNNING
    assert machine.model is ModelType.ONYX_3200
    assert machine.tubes[0].tube_type is TubeType.MXR
    assert machine.tubes[0].purging_connected is True
    assert machine.location.city == "Migdal Haemek"
    assert machine.image
    assert machine.efficiency is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"status": "Exploded"},
        {"model": "Onyx1"},
        {"tubes": [{"tubeIndex": 1, "tubeType": "Laser", "purgingConnected": True, "shutterExists": True}]},
    ],
)
def test_map_api_machine_rejects_unknown_enums(overrides):
    with pytest.raises(MachineApiError):
        map_api_machine(machine_payload(**overrides))


def test_machine_api_sends_bearer_token(store, http):
    store.token = "tok-xyz"
    store.user = AuthUser(username="u", email="e")
    http.add("GET", "/machines", FakeResponse(200, [machine_payload()]))

    machines = MachineApi(store, base_url=BASE, session=http).get_all()

    assert [m.name for m in machines] == ["M15"]
    assert http.calls[-1][2]["headers"]["Authorization"] == "Bearer tok-xyz"


def test_machine_api_lookups(store, http):
    http.add("GET", "/machines/7", FakeResponse(200, machine_payload()))
    http.add("GET", "/machines/by-name/M%2015", FakeResponse(200, machine_payload(name="M 15")))
    http.add("GET", "/machines/by-status/Idle", FakeResponse(200, []))
    http.add("GET", "/machines/by-location", FakeResponse(200, [machine_payload()]))
    api = MachineApi(store, base_url=BASE, session=http)

    assert api.get_by_id(7).name == "M15"
    assert api.get_by_id(8) is None
    assert api.get_by_name("M 15").name == "M 15"
    assert api.get_by_status(MachineStatus.IDLE) == []

    assert len(api.get_by_location("Israel", "Migdal Haemek")) == 1
    assert http.calls[-1][2]["params"] == {"country": "Israel", "city": "Migdal Haemek"}


def test_machine_api_errors(store, http):
    http.add("GET", "/machines", FakeResponse(500, {"message": "boom"}, reason="Server Error"))
    api = MachineApi(store, base_url=BASE, session=http)

    with pytest.raises(MachineApiError) as info:
        api.get_all()
    assert info.value.status_code == 500
    assert "boom" in str(info.value)

    http.add("GET", "/machines", requests.Timeout("slow"))
    with pytest.raises(MachineApiError, match="Network error"):
        api.get_all()


# ---------- dashboard ----------

def test_compute_stats():
    machines = [
        make_machine("a", MachineStatus.RUNNING, 90),
        make_machine("b", MachineStatus.RUNNING, 81),
        make_machine("c", MachineStatus.IDLE, None),
        make_machine("d", MachineStatus.ERROR, 50),
    ]

    stats = compute_stats(machines)

    assert (stats.total, stats.running, stats.idle, stats.maintenance, stats.error) == (4, 2, 1, 0, 1)
    assert stats.avg_efficiency == 55


@pytest.mark.parametrize(
    "efficiencies, expected",
    [
        ([50, 51], 51),
        ([0, 1], 1),
        ([52, 53], 53),
        ([50, 50.4], 50),
    ],
)
def test_compute_stats_rounds_halves_up(efficiencies, expected):
    machines = [make_machine(f"m{i}", efficiency=e) for i, e in enumerate(efficiencies)]
    assert compute_stats(machines).avg_efficiency == expected


def test_compute_stats_empty():
    stats = compute_stats([])
    assert stats.total == 0
    assert stats.avg_efficiency == 0


def test_filters():
    machines = [make_machine("Onyx-Berlin", city="Berlin"), make_machine("M15", city="Tokyo")]

    assert [m.name for m in filter_by_name(machines, "onyx")] == ["Onyx-Berlin"]
    assert [m.name for m in filter_by_name(machines, "tokyo")] == []
    assert [m.name for m in filter_by_name_or_city(machines, "TOKYO")] == ["M15"]
    assert len(filter_by_name_or_city(machines, "")) == 2


# ---------- storage ----------

def test_json_file_storage(tmp_path):
    path = tmp_path / "state" / "auth.json"
    storage = JsonFileStorage(path)

    assert storage.get_item(TOKEN_KEY) is None
    storage.set_item(TOKEN_KEY, "tok")
    assert JsonFileStorage(path).get_item(TOKEN_KEY) == "tok"

    storage.remove_item(TOKEN_KEY)
    assert storage.get_item(TOKEN_KEY) is None

    path.write_text("{corrupt", encoding="utf-8")
    assert storage.get_item(TOKEN_KEY) is None


# ---------- poller ----------

def test_poller_fetches_and_recovers_from_errors():
    calls = {"n": 0}

    def fetch():
        calls["n"] += 1
        if calls["n"] == 1:
            raise MachineApiError("server down")
        return [make_machine("M1")]

    errors = []

    async def scenario():
        poller = MachinePoller(fetch, interval_sec=60, on_error=errors.append)
        poller.start()
        for _ in range(200):
            if errors:
                break
            await asyncio.sleep(0.01)
        await poller.refresh()
        await poller.stop()
        return poller

    poller = asyncio.run(scenario())

    assert errors == [LOAD_MACHINES_ERROR]
    assert poller.error is None
    assert [m.name for m in poller.machines] == ["M1"]
    assert poller.last_updated is not None
    assert not poller.running


def test_poller_skips_ticks_while_fetch_in_flight():
    release = threading.Event()
    started = {"n": 0}

    def slow_fetch():
        started["n"] += 1
        release.wait(timeout=5)
        return []

    async def scenario():
        poller = MachinePoller(slow_fetch, interval_sec=0.01)
        poller.start()
        await asyncio.sleep(0.2)
        in_flight_calls = started["n"]
        release.set()
        await poller.refresh()
        await poller.stop()
        return poller, in_flight_calls

    poller, in_flight_calls = asyncio.run(scenario())

    assert in_flight_calls == 1
    assert poller.skipped_ticks > 0
