# app/errors.py
from __future__ import annotations
from typing import Iterable, Optional

class InvestorMatchError(Exception):
    """Base class for every error the service raises on purpose"""

class ValidationError(InvestorMatchError):
    """Required record fields are missing. Lists all of them at once."""

    def __init__(self, fields: Iterable[str]):
        self.fields = list(fields)
        super().__init__("Missing required fields: " + ", ".join(self.fields))

class ExternalServiceError(InvestorMatchError):
    """A collaborator (database, text generation, billing) failed"""

    def __init__(self, service: str, message: str, status: Optional[int] = None):
        self.service = service
        self.status = status
        super().__init__(f"{service}: {message}")

class QuotaExceededError(ExternalServiceError):
    """Text generation refused for quota or rate-limit reasons"""

class NotAuthenticatedError(InvestorMatchError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)

class LimitReachedError(InvestorMatchError):
    def __init__(self, action: str, tier: str):
        self.action = action
        self.tier = tier
        super().__init__(f"The {tier} plan limit for '{action}' has been reached")
