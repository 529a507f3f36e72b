# fleet/client/constants.py

import os

API_BASE_URL = os.getenv("FLEET_API_URL") or "http://localhost:5001/api"
REQUEST_TIMEOUT_SEC = 30.0

# keys in the persisted client storage
TOKEN_KEY = "auth_token"
USER_KEY = "auth_user"

MACHINES_REFRESH_SEC = 30.0

DEFAULT_MACHINE_IMAGE = "/ONYX-3000.png"

NETWORK_ERROR = "Network error. Please check your connection."
LOAD_MACHINES_ERROR = "Failed to load machines. Please make sure the server is running."
