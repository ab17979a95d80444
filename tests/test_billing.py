# file: tests/test_billing.py
import aiohttp
import pytest
from unittest.mock import AsyncMock, patch
from app.schema import SubscriptionStatus
from stores.billing import BillingClient

@pytest.mark.asyncio
async def test_unconfigured_billing_keeps_profile_tier():
    """No billing URL means the profile's tier stands"""
    billing = BillingClient(None)

    assert billing.is_configured() is False
    assert await billing.resolve_tier("user_1", "pro") == "pro"
    assert await billing.get_subscription_status("user_1") == SubscriptionStatus()

@pytest.mark.asyncio
async def test_active_paid_plan_wins():
    """An active or trialing paid subscription overrides the profile"""
    billing = BillingClient("https://billing.example.com/")
    with patch.object(billing, "get_subscription_status", AsyncMock(
        return_value=SubscriptionStatus(plan="premium", status="trialing"),
    )):
        assert await billing.resolve_tier("user_1", "free") == "premium"

@pytest.mark.asyncio
async def test_inactive_plan_falls_back():
    """Cancelled subscriptions do not grant their plan"""
    billing = BillingClient("https://billing.example.com")
    with patch.object(billing, "get_subscription_status", AsyncMock(
        return_value=SubscriptionStatus(plan="pro", status="canceled"),
    )):
        assert await billing.resolve_tier("user_1", "free") == "free"

@pytest.mark.asyncio
async def test_backend_errors_assume_free():
    """Network failures never propagate out of the status lookup"""
    billing = BillingClient("https://billing.example.com")
    with patch.object(aiohttp.ClientSession, "get", side_effect=aiohttp.ClientConnectionError("refused")):
        status = await billing.get_subscription_status("user_1")
    await billing.close()

    assert status.plan == "free"
    assert billing.session is None
