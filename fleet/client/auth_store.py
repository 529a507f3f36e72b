# fleet/client/auth_store.py

"""
auth_store.py

Client session state: the bearer token and the signed-in user.

The store is an explicit object handed to whatever needs it (machine API,
view selection). Lifecycle:
  - hydrate()  : restore token + user from storage at startup;
  - login() / register() : talk to the server and persist the result;
  - logout() / teardown() : forget everything, in memory and in storage.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import requests

from .constants import API_BASE_URL, NETWORK_ERROR, REQUEST_TIMEOUT_SEC, TOKEN_KEY, USER_KEY
from .models import AuthUser
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Carries the message the server sent back (or a generic one)."""
    pass


def error_message(response: requests.Response, default: str) -> str:
    """
    Pull {"message": ...} out of an error response, falling back to the raw
    text and then to default.
    """
    try:
        data = response.json()
    except ValueError:
        return response.text or default
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.text or default


class AuthStore:
    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        base_url: str = API_BASE_URL,
        session: requests.Session | None = None,
        timeout: float = REQUEST_TIMEOUT_SEC,
    ) -> None:
        self._storage = storage
        self._base_url = base_url.rstrip("/")
        self._http = session or requests.Session()
        self._timeout = timeout

        self.token: Optional[str] = None
        self.user: Optional[AuthUser] = None
        self.error: Optional[str] = None
        # True until hydrate() has run
        self.is_loading: bool = True

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token) and self.user is not None

    # ---- lifecycle ----

    def hydrate(self) -> None:
        token = self._storage.get_item(TOKEN_KEY)
        raw_user = self._storage.get_item(USER_KEY)

        self.token = None
        self.user = None

        if token and raw_user:
            try:
                user = AuthUser.from_dict(json.loads(raw_user))
            except (ValueError, KeyError, TypeError) as e:
                logger.error("Failed to parse stored user data: %s", e)
                self._clear_storage()
            else:
                self.token = token
                self.user = user
        elif token or raw_user:
            # half a session is no session
            self._clear_storage()

        self.is_loading = False

    def logout(self) -> None:
        self.token = None
        self.user = None
        self.error = None
        self._clear_storage()

    teardown = logout

    # ---- server calls ----

    def login(self, email: str, password: str) -> AuthUser:
        return self._authenticate("login", {"email": email, "password": password}, "Login failed")

    def register(self, email: str, password: str) -> AuthUser:
        return self._authenticate("register", {"email": email, "password": password}, "Registration failed")

    def forgot_password(self, email: str) -> str:
        data = self._post("forgot-password", {"email": email}, "Failed to request a password reset")
        return str(data.get("message", ""))

    def change_password(self, new_password: str, current_password: str | None = None) -> str:
        """
        Change the signed-in user's password. After a forced change the local
        requirePasswordChange flag is cleared as well.
        """
        body: Dict[str, Any] = {"newPassword": new_password}
        if current_password is not None:
            body["currentPassword"] = current_password

        data = self._post("change-password", body, "Failed to change password", auth=True)
        if self.user is not None and self.user.require_password_change:
            self.clear_password_change_requirement()
        return str(data.get("message", ""))

    def clear_password_change_requirement(self) -> None:
        """
        Local only: the server already cleared its flag when the change succeeded.
        """
        if self.user is None:
            return
        self.user.require_password_change = False
        self._storage.set_item(USER_KEY, json.dumps(self.user.to_dict()))

    def auth_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    # ---- internals ----

    def _authenticate(self, endpoint: str, body: Dict[str, Any], default_error: str) -> AuthUser:
        self.is_loading = True
        try:
            data = self._post(endpoint, body, default_error)
            try:
                token = str(data["token"])
                user = AuthUser.from_dict(data)
            except (KeyError, TypeError) as e:
                self.error = default_error
                raise AuthError(default_error) from e

            self.token = token
            self.user = user
            self._storage.set_item(TOKEN_KEY, token)
            self._storage.set_item(USER_KEY, json.dumps(user.to_dict()))
            logger.info("%s successful, user: %s", endpoint.capitalize(), user.username)
            return user
        finally:
            self.is_loading = False

    def _post(self, endpoint: str, body: Dict[str, Any], default_error: str, auth: bool = False) -> Dict[str, Any]:
        self.error = None
        headers = self.auth_headers() if auth else {"Content-Type": "application/json"}
        url = f"{self._base_url}/auth/{endpoint}"

        try:
            response = self._http.post(url, json=body, headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            logger.error("%s request failed: %s", endpoint, e)
            self.error = NETWORK_ERROR
            raise AuthError(NETWORK_ERROR) from e

        if not response.ok:
            message = error_message(response, default_error)
            self.error = message
            raise AuthError(message)

        try:
            data = response.json()
        except ValueError as e:
            self.error = default_error
            raise AuthError(default_error) from e
        return data if isinstance(data, dict) else {}

    def _clear_storage(self) -> None:
        self._storage.remove_item(TOKEN_KEY)
        self._storage.remove_item(USER_KEY)
