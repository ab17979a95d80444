# file: app/state.py
from __future__ import annotations
import logging
from typing import Dict, Optional
from agents import Curator, Librarian, Scout, Writer
from app.config import Settings, get_settings
from app.errors import ExternalServiceError, LimitReachedError
from app.schema import AuthUser, Company, UsageCounters
from app.services.plans import UsageTracker, resolve_tier
from app.services.session_cache import SessionCache
from app.tools.llm import TextGenerator
from stores.billing import BillingClient
from stores.registry import StoreRegistry

log = logging.getLogger("api")

class AppState:
    """
    Process-wide collaborators, handed to request handlers through dependencies.
    The per-user company snapshot changes only through remember_company / forget_user.
    """

    def __init__(
        self,
        registry: StoreRegistry,
        llm: TextGenerator,
        billing: BillingClient,
        cache: SessionCache,
        tracker: Optional[UsageTracker] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry
        self.llm = llm
        self.billing = billing
        self.cache = cache
        self.tracker = tracker or UsageTracker()
        self.scout = Scout(registry)
        self.writer = Writer(llm)
        self.curator = Curator(registry)
        self.librarian = Librarian(registry)
        self._companies: Dict[str, Company] = {}

    @classmethod
    async def create(cls, settings: Optional[Settings] = None) -> "AppState":
        s = settings or get_settings()
        registry = await StoreRegistry.connect(s)
        billing = BillingClient.from_settings(s)
        await billing.connect()
        return cls(registry, TextGenerator(s), billing, SessionCache(s.session_cache_path), settings=s)

    async def close(self) -> None:
        await self.billing.close()

    # ---- session ----

    async def authenticate(self, token: str) -> AuthUser:
        return await self.registry.auth.get_user(token)

    # ---- company snapshot ----

    def company_snapshot(self, user_id: str) -> Optional[Company]:
        return self._companies.get(user_id) or self.cache.company(user_id)

    def remember_company(self, user_id: str, company: Company) -> None:
        self._companies[user_id] = company
        self.cache.remember_company(user_id, company)

    def forget_user(self, user_id: str) -> None:
        self._companies.pop(user_id, None)
        self.cache.forget(user_id)

    async def load_company(self, user: AuthUser) -> Optional[Company]:
        """Company from the database, or the last snapshot when it is unreachable"""
        try:
            company = await self.registry.companies.fetch_by_user(user.id)
        except ExternalServiceError:
            cached = self.company_snapshot(user.id)
            if cached is None:
                raise
            log.warning("Company store unavailable, using cached company for %s", user.id)
            return cached
        if company:
            self.remember_company(user.id, company)
        return company

    # ---- plan usage ----

    async def usage_for(self, user: AuthUser) -> tuple[str, UsageCounters]:
        profile = await self.registry.users.profile(user)
        tier = resolve_tier(await self.billing.resolve_tier(user.id, profile.subscription_tier))
        return tier, profile.usage

    async def ensure_allowed(self, user: AuthUser, action: str) -> tuple[str, UsageCounters]:
        tier, usage = await self.usage_for(user)
        if not self.tracker.can_perform_action(tier, action, usage):
            raise LimitReachedError(action, tier)
        return tier, usage

    async def record(self, user: AuthUser, action: str) -> UsageCounters:
        return await self.registry.users.record_usage(user, action)
