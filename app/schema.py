# file: app/schema.py
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from email_validator import EmailNotValidError, validate_email
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic import ValidationError as RecordError

log = logging.getLogger("stores")

ALL = "all"

MessageType = Literal["initial", "follow_up", "response"]
FollowUpType = Literal["gentle", "urgent", "update", "meeting"]
OutreachStatus = Literal["draft", "sent", "responded", "archived"]
TemplateType = Literal["response", "followup"]
ActionType = Literal["outreach", "search", "template"]

class Record(BaseModel):
    """Immutable record; database column names are accepted as aliases"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

# ---- investors ----

class Criterion(Record):
    industry: str
    location: str
    stage: Optional[str] = None

    @field_validator("industry", "location")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("criterion labels must not be empty")
        return v

class Investor(Record):
    id: str = Field(validation_alias=AliasChoices("id", "investor_id", "investorId"))
    name: str = ""
    firm: str = ""
    website: Optional[str] = None
    investment_thesis: str = ""
    stage_focus: str = ""
    check_size: str = ""
    contact_email: Optional[EmailStr] = None
    linkedin_profile: Optional[str] = None
    criteria: List[Criterion] = Field(
        default_factory=list,
        validation_alias=AliasChoices("criteria", "investment_criteria"),
    )

    @field_validator("contact_email", mode="before")
    @classmethod
    def _blank_bad_email(cls, v: Any) -> Any:
        # a bad contact address must not hide the investor
        if v is None or isinstance(v, str) and not v.strip():
            return None
        try:
            validate_email(str(v), check_deliverability=False)
        except EmailNotValidError as e:
            log.warning("Dropping invalid contact email %r: %s", v, e)
            return None
        return v

    @field_validator("criteria", mode="before")
    @classmethod
    def _skip_bad_criteria(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return v
        kept = []
        for item in v:
            try:
                kept.append(item if isinstance(item, Criterion) else Criterion.model_validate(item))
            except RecordError as e:
                log.warning("Skipping malformed investment criterion %r: %s", item, e)
        return kept

class FilterSpec(BaseModel):
    industry: Optional[str] = ALL
    stage: Optional[str] = ALL
    location: Optional[str] = ALL
    query: Optional[str] = None

# ---- companies ----

class CompanyIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    industry: Optional[str] = None
    stage: Optional[str] = None
    funding_ask: Optional[str] = None

class Company(Record):
    id: str = Field(validation_alias=AliasChoices("id", "company_id", "companyId"))
    user_id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    industry: Optional[str] = None
    stage: Optional[str] = None
    funding_ask: Optional[str] = None
    created_at: Optional[datetime] = None

# ---- outreach ----

class OutreachMessage(Record):
    id: str = Field(validation_alias=AliasChoices("id", "message_id", "messageId"))
    user_id: str
    investor_id: str
    subject: str
    body: str
    message_type: MessageType = "initial"
    status: OutreachStatus = "draft"
    created_at: Optional[datetime] = None
    investor_name: Optional[str] = None
    investor_firm: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_investor(cls, data: Any) -> Any:
        # rows joined with investors(name, firm)
        if isinstance(data, dict) and isinstance(data.get("investors"), dict):
            data = dict(data)
            joined = data.pop("investors")
            data.setdefault("investor_name", joined.get("name"))
            data.setdefault("investor_firm", joined.get("firm"))
        return data

class SaveOutreachRequest(BaseModel):
    investor_id: str
    subject: str = Field(min_length=1)
    body: str = Field(min_length=1)
    message_type: MessageType = "initial"

class StatusUpdate(BaseModel):
    status: OutreachStatus

# ---- templates ----

class ResponseTemplate(Record):
    id: str = Field(validation_alias=AliasChoices("id", "template_id", "templateId"))
    name: str
    type: TemplateType = "response"
    content: str

class TemplateIn(BaseModel):
    name: str = Field(min_length=1)
    type: TemplateType = "response"
    content: str = Field(min_length=1)

# ---- plans & usage ----

class UsageCounters(Record):
    outreach_this_month: int = Field(default=0, ge=0)
    searches_today: int = Field(default=0, ge=0)
    templates_created: int = Field(default=0, ge=0)
    # periods the daily and monthly counters belong to; None means never stamped
    usage_day: Optional[date] = None
    usage_month: Optional[str] = None

class PlanLimits(Record):
    outreach_per_month: int
    investor_searches: int
    templates: int

class Plan(Record):
    id: str
    name: str
    price: int
    interval: str = "month"
    features: List[str] = Field(default_factory=list)
    limits: PlanLimits
    stripe_price_id: Optional[str] = None

class SubscriptionStatus(Record):
    plan: str = "free"
    status: str = "active"
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False

class UserProfile(Record):
    id: str = Field(validation_alias=AliasChoices("id", "user_id", "userId"))
    email: Optional[str] = None
    subscription_tier: str = "free"
    usage: UsageCounters = Field(default_factory=UsageCounters)

    @model_validator(mode="before")
    @classmethod
    def _collect_counters(cls, data: Any) -> Any:
        # users rows keep the counters as flat columns
        if isinstance(data, dict) and "usage" not in data:
            data = dict(data)
            usage = {
                k: data.pop(k) or 0
                for k in ("outreach_this_month", "searches_today", "templates_created")
                if k in data
            }
            usage.update({k: data.pop(k) for k in ("usage_day", "usage_month") if k in data})
            data["usage"] = usage
        return data

class AuthUser(Record):
    id: str
    email: Optional[str] = None
    subscription_tier: str = "free"

# ---- generation ----

class GenerateRequest(BaseModel):
    investor_id: str
    notes: str = ""
    message_type: MessageType = "initial"
    previous_message: Optional[str] = None
    follow_up_type: FollowUpType = "gentle"
    new_updates: Optional[str] = None
    inquiry_type: Optional[str] = None
    questions: List[str] = Field(default_factory=list)
    attachments: List[str] = Field(default_factory=list)

class GenerationResult(BaseModel):
    message: str
    subject: str
    usage: Optional[Dict[str, Any]] = None
