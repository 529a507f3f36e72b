# fleet/client/machine_api.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from .auth_store import AuthStore, error_message
from .constants import API_BASE_URL, DEFAULT_MACHINE_IMAGE, NETWORK_ERROR, REQUEST_TIMEOUT_SEC
from .models import (
    LocationView,
    Machine,
    MachineStatus,
    ModelType,
    TubeType,
    TubeView,
)

logger = logging.getLogger(__name__)


class MachineApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# ---------- server DTO -> view-model ----------

def _parse_enum(enum_cls, value: Any, what: str):
    """
    Unknown values are an error, never silently mapped to a default.
    """
    try:
        return enum_cls(value)
    except ValueError:
        raise MachineApiError(f"Unknown {what} value from server: {value!r}")


def map_api_machine(data: Dict[str, Any]) -> Machine:
    try:
        loc = data["location"]
        return Machine(
            id=int(data["id"]),
            name=data["name"],
            model=_parse_enum(ModelType, data["model"], "model"),
            image=DEFAULT_MACHINE_IMAGE,
            status=_parse_enum(MachineStatus, data["status"], "status"),
            plc_version=data["plcVersion"],
            acs_version=data["acsVersion"],
            tubes_number=int(data["tubesNumber"]),
            tubes=[
                TubeView(
                    tube_index=int(t["tubeIndex"]),
                    tube_type=_parse_enum(TubeType, t["tubeType"], "tube type"),
                    purging_connected=bool(t["purgingConnected"]),
                    shutter_exists=bool(t["shutterExists"]),
                )
                for t in data.get("tubes", [])
            ],
            owner=data["owner"],
            teamviewer_name=data["teamviewerName"],
            location=LocationView(
                country=loc["country"],
                city=loc["city"],
                latitude=float(loc["latitude"]),
                longitude=float(loc["longitude"]),
            ),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise MachineApiError(f"Malformed machine in server response: {e}")


class MachineApi:
    """
    Read-side client for /machines, authenticated with the AuthStore's token.

    Single-item lookups return None on 404; every other failure raises
    MachineApiError.
    """

    def __init__(
        self,
        auth: AuthStore,
        *,
        base_url: str = API_BASE_URL,
        session: requests.Session | None = None,
        timeout: float = REQUEST_TIMEOUT_SEC,
    ) -> None:
        self._auth = auth
        self._base_url = base_url.rstrip("/")
        self._http = session or requests.Session()
        self._timeout = timeout

    # ---- endpoints ----

    def get_all(self) -> List[Machine]:
        return self._get_list("/machines", "Failed to fetch machines")

    def get_by_id(self, machine_id: int) -> Optional[Machine]:
        return self._get_one(f"/machines/{machine_id}", "Failed to fetch machine")

    def get_by_name(self, name: str) -> Optional[Machine]:
        return self._get_one(f"/machines/by-name/{quote(name, safe='')}", "Failed to fetch machine")

    def get_by_status(self, status: MachineStatus) -> List[Machine]:
        return self._get_list(
            f"/machines/by-status/{MachineStatus(status).value}",
            "Failed to fetch machines by status",
        )

    def get_by_location(self, country: str, city: str | None = None) -> List[Machine]:
        params = {"country": country}
        if city:
            params["city"] = city
        return self._get_list("/machines/by-location", "Failed to fetch machines by location", params=params)

    # ---- internals ----

    def _request(self, path: str, params: Dict[str, str] | None = None) -> requests.Response:
        try:
            return self._http.get(
                f"{self._base_url}{path}",
                headers=self._auth.auth_headers(),
                params=params,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error("GET %s failed: %s", path, e)
            raise MachineApiError(NETWORK_ERROR) from e

    def _json(self, response: requests.Response, failure: str) -> Any:
        if not response.ok:
            message = error_message(response, response.reason or "")
            raise MachineApiError(f"{failure}: {message}", status_code=response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise MachineApiError(f"{failure}: invalid JSON", status_code=response.status_code) from e

    def _get_list(self, path: str, failure: str, params: Dict[str, str] | None = None) -> List[Machine]:
        data = self._json(self._request(path, params), failure)
        if not isinstance(data, list):
            raise MachineApiError(f"{failure}: expected a list")
        return [map_api_machine(item) for item in data]

    def _get_one(self, path: str, failure: str) -> Optional[Machine]:
        response = self._request(path)
        if response.status_code == 404:
            return None
        return map_api_machine(self._json(response, failure))
