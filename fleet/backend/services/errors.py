# fleet/backend/services/errors.py

"""
Errors raised by the service layer.

The API layer maps them to HTTP responses:
  DomainValidationError      -> 400
  AuthenticationFailedError  -> 401
  PermissionDeniedError      -> 403
  EmailDeliveryError         -> 500 (generic message, details only in the log)

"Not found" is not an exception here: lookups return None / False and the
routers answer 404 themselves.
"""


class ServiceError(Exception):
    """Base class; str(e) is safe to show to the user."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DomainValidationError(ServiceError):
    """Bad input: domain rule, uniqueness or tube-count violation."""
    pass


class AuthenticationFailedError(ServiceError):
    pass


class PermissionDeniedError(ServiceError):
    pass


class EmailDeliveryError(ServiceError):
    pass
