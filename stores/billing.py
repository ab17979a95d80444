# file: stores/billing.py
from __future__ import annotations
import asyncio
import logging
from typing import Optional
import aiohttp
from app.config import Settings, get_settings
from app.schema import SubscriptionStatus

log = logging.getLogger("billing")

ACTIVE_STATES = {"active", "trialing"}

class BillingClient:
    """Reads subscription status from the payments backend. Checkout and webhooks live elsewhere."""

    def __init__(self, base_url: Optional[str], timeout: float = 10.0):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "BillingClient":
        s = settings or get_settings()
        return cls(s.billing_api_url, s.billing_timeout)

    def is_configured(self) -> bool:
        return self.base_url is not None

    async def connect(self):
        """Initialize connection"""
        if not self.session:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))

    async def close(self):
        """Close connection"""
        if self.session:
            await self.session.close()
            self.session = None

    async def get_subscription_status(self, user_id: str) -> SubscriptionStatus:
        """Current status, or the default free plan when the backend can't answer"""
        if not self.base_url:
            return SubscriptionStatus()
        if not self.session:
            await self.connect()
        try:
            async with self.session.get(f"{self.base_url}/api/subscription-status/{user_id}") as response:
                response.raise_for_status()
                data = await response.json()
            return SubscriptionStatus.model_validate(data)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            log.warning("Subscription status unavailable for %s, assuming free: %s", user_id, e)
            return SubscriptionStatus()

    async def resolve_tier(self, user_id: str, fallback: str = "free") -> str:
        """Active paid plan from billing if there is one, otherwise the profile's tier"""
        if not self.is_configured():
            return fallback
        status = await self.get_subscription_status(user_id)
        if status.status in ACTIVE_STATES and status.plan != "free":
            return status.plan
        return fallback
