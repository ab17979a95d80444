# file: stores/registry.py
from __future__ import annotations
import asyncio
import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar
from pydantic import BaseModel, ValidationError as RecordError
from supabase import AsyncClient, acreate_client
from app.config import Settings, get_settings
from app.errors import ExternalServiceError, NotAuthenticatedError
from app.schema import (
    AuthUser, Company, CompanyIn, FilterSpec, Investor, OutreachMessage,
    ResponseTemplate, TemplateIn, UsageCounters, UserProfile,
)
from app.services.investor_filter import filter_investors
from app.services.plans import ACTION_FIELDS, roll_over

log = logging.getLogger("stores")

R = TypeVar("R", bound=BaseModel)

class TableStore:
    """Base store over one table of the hosted database"""

    table: str = ""

    def __init__(self, client: AsyncClient):
        self.client = client

    def query(self):
        return self.client.table(self.table)

    async def execute(self, request, action: str) -> List[Dict[str, Any]]:
        """Run a request; every failure becomes ExternalServiceError"""
        try:
            response = await request.execute()
        except Exception as e:
            log.warning("%s.%s failed: %s", self.table, action, e)
            raise ExternalServiceError("database", f"{self.table}.{action} failed: {e}") from e
        data = getattr(response, "data", None)
        if data is None:
            return []
        return data if isinstance(data, list) else [data]

    def to_records(self, rows: List[Dict[str, Any]], model: Type[R]) -> List[R]:
        """Validate rows at the boundary; malformed rows are logged and skipped"""
        records = []
        for row in rows:
            try:
                records.append(model.model_validate(row))
            except RecordError as e:
                log.warning("Skipping malformed %s row: %s", self.table, e)
        return records

    def first(self, rows: List[Dict[str, Any]], model: Type[R], action: str) -> R:
        records = self.to_records(rows[:1], model)
        if not records:
            raise ExternalServiceError("database", f"{self.table}.{action} returned no valid row")
        return records[0]

class InvestorStore(TableStore):
    table = "investors"
    columns = "*,investment_criteria(*)"

    async def fetch_all(self, filters: Optional[FilterSpec] = None) -> List[Investor]:
        rows = await self.execute(self.query().select(self.columns).order("name"), "fetch_all")
        investors = self.to_records(rows, Investor)
        return filter_investors(investors, filters) if filters else investors

    async def fetch_by_id(self, investor_id: str) -> Optional[Investor]:
        request = self.query().select(self.columns).eq("investor_id", investor_id).limit(1)
        records = self.to_records(await self.execute(request, "fetch_by_id"), Investor)
        return records[0] if records else None

class CompanyStore(TableStore):
    table = "companies"

    async def fetch_by_user(self, user_id: str) -> Optional[Company]:
        request = self.query().select("*").eq("user_id", user_id).limit(1)
        records = self.to_records(await self.execute(request, "fetch_by_user"), Company)
        return records[0] if records else None

    async def create(self, user_id: str, data: CompanyIn) -> Company:
        payload = {**data.model_dump(), "user_id": user_id}
        rows = await self.execute(self.query().insert(payload), "create")
        return self.first(rows, Company, "create")

    async def update(self, company_id: str, data: CompanyIn) -> Company:
        request = self.query().update(data.model_dump()).eq("company_id", company_id)
        rows = await self.execute(request, "update")
        return self.first(rows, Company, "update")

class OutreachStore(TableStore):
    table = "outreach_messages"

    async def create(self, data: Dict[str, Any]) -> OutreachMessage:
        payload = {**data, "status": "draft"}
        rows = await self.execute(self.query().insert(payload), "create")
        return self.first(rows, OutreachMessage, "create")

    async def fetch_by_user(self, user_id: str) -> List[OutreachMessage]:
        request = (
            self.query()
            .select("*,investors(name,firm)")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
        )
        return self.to_records(await self.execute(request, "fetch_by_user"), OutreachMessage)

    async def update(self, message_id: str, user_id: str, data: Dict[str, Any]) -> Optional[OutreachMessage]:
        request = self.query().update(data).eq("message_id", message_id).eq("user_id", user_id)
        records = self.to_records(await self.execute(request, "update"), OutreachMessage)
        return records[0] if records else None

class TemplateStore(TableStore):
    table = "response_templates"

    async def fetch_all(self) -> List[ResponseTemplate]:
        rows = await self.execute(self.query().select("*").order("name"), "fetch_all")
        return self.to_records(rows, ResponseTemplate)

    async def create(self, data: TemplateIn, user_id: Optional[str] = None) -> ResponseTemplate:
        payload = data.model_dump()
        if user_id:
            payload["user_id"] = user_id
        rows = await self.execute(self.query().insert(payload), "create")
        return self.first(rows, ResponseTemplate, "create")

def utc_today() -> date:
    return datetime.now(timezone.utc).date()

class UserStore(TableStore):
    table = "users"

    def __init__(self, client: AsyncClient, clock: Callable[[], date] = utc_today):
        super().__init__(client)
        self.clock = clock
        # serializes read-increment-write per user within this process
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def fetch_by_id(self, user_id: str) -> Optional[UserProfile]:
        request = self.query().select("*").eq("user_id", user_id).limit(1)
        records = self.to_records(await self.execute(request, "fetch_by_id"), UserProfile)
        return records[0] if records else None

    async def profile(self, user: AuthUser) -> UserProfile:
        """
        Stored profile with counters for the current day and month, or a fresh
        zero-usage one for users without a row yet
        """
        found = await self.fetch_by_id(user.id)
        if not found:
            found = UserProfile(id=user.id, email=user.email, subscription_tier=user.subscription_tier)
        return found.model_copy(update={"usage": roll_over(found.usage, self.clock())})

    async def record_usage(self, user: AuthUser, action: str) -> UsageCounters:
        counter, _ = ACTION_FIELDS[action]
        async with self._locks[user.id]:
            current = (await self.profile(user)).usage
            counters = current.model_copy(update={counter: getattr(current, counter) + 1})
            payload = {"user_id": user.id, "email": user.email, **counters.model_dump(mode="json")}
            await self.execute(self.query().upsert(payload, on_conflict="user_id"), "record_usage")
        return counters

class AuthGateway:
    """Verifies bearer tokens with the hosted auth provider"""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def get_user(self, token: str) -> AuthUser:
        try:
            response = await self.client.auth.get_user(token)
        except Exception as e:
            log.info("Token rejected: %s", e)
            raise NotAuthenticatedError("Invalid or expired session") from e
        user = getattr(response, "user", None)
        if user is None:
            raise NotAuthenticatedError("Invalid or expired session")
        metadata = getattr(user, "user_metadata", None) or {}
        return AuthUser(
            id=user.id,
            email=getattr(user, "email", None),
            subscription_tier=metadata.get("subscription_tier", "free"),
        )

class StoreRegistry:
    """Central registry for all database collaborators"""

    def __init__(self, client: AsyncClient):
        self.client = client
        self.investors = InvestorStore(client)
        self.companies = CompanyStore(client)
        self.outreach = OutreachStore(client)
        self.templates = TemplateStore(client)
        self.users = UserStore(client)
        self.auth = AuthGateway(client)

    @classmethod
    async def connect(cls, settings: Optional[Settings] = None) -> "StoreRegistry":
        s = settings or get_settings()
        if not s.supabase_url or not s.supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
        client = await acreate_client(s.supabase_url, s.supabase_key)
        return cls(client)

    async def health_check(self) -> Dict[str, str]:
        """Check each table is reachable"""
        status = {}
        for name, store in [
            ("investors", self.investors),
            ("companies", self.companies),
            ("outreach", self.outreach),
            ("templates", self.templates),
            ("users", self.users),
        ]:
            try:
                await store.execute(store.query().select("*").limit(1), "health")
                status[name] = "healthy"
            except ExternalServiceError as e:
                status[name] = f"unhealthy: {e}"
        return status

    def get_investor_store(self) -> InvestorStore:
        return self.investors

    def get_outreach_store(self) -> OutreachStore:
        return self.outreach

    def get_template_store(self) -> TemplateStore:
        return self.templates