# fleet/backend/services/email_validation.py

from __future__ import annotations

import logging
from typing import Protocol

from email_validator import EmailNotValidError, validate_email

logger = logging.getLogger(__name__)

# placeholder domains that never receive real mail
INVALID_DOMAINS = frozenset({"test.com", "example.com", "localhost"})
TRUSTED_DOMAINS = frozenset({"rigaku.com"})


class EmailValidator(Protocol):
    def is_valid_email(self, email: str) -> bool:
        ...


class EmailValidationService:
    """
    Decides whether an address can plausibly receive mail:

      1. syntax check;
      2. placeholder domains are rejected;
      3. the company domain is accepted without a lookup;
      4. anything else needs a DNS record (MX, falling back to A/AAAA).
    """

    def __init__(self, dns_timeout: int = 5) -> None:
        self._dns_timeout = dns_timeout

    def is_valid_email(self, email: str) -> bool:
        try:
            info = validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            logger.info("Email syntax rejected for %r: %s", email, e)
            return False

        domain = info.domain.lower()

        if domain in INVALID_DOMAINS:
            return False

        if domain in TRUSTED_DOMAINS:
            return True

        try:
            validate_email(email, check_deliverability=True, timeout=self._dns_timeout)
        except EmailNotValidError as e:
            logger.warning("DNS validation failed for %s: %s", domain, e)
            return False
        return True
