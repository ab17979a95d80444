# file: app/services/plans.py
from __future__ import annotations
import logging
from datetime import date
from typing import Dict, List, Optional
from app.config import Settings, UNLIMITED, get_settings
from app.schema import Plan, PlanLimits, UsageCounters

log = logging.getLogger("api")

TIERS = ("free", "pro", "premium")
DEFAULT_TIER = "free"

# action -> (usage counter, plan ceiling)
ACTION_FIELDS = {
    "outreach": ("outreach_this_month", "outreach_per_month"),
    "search": ("searches_today", "investor_searches"),
    "template": ("templates_created", "templates"),
}

def build_plans(settings: Optional[Settings] = None) -> Dict[str, Plan]:
    s = settings or get_settings()
    plans = {
        "free": Plan(
            id="free", name="Free", price=0,
            features=[
                f"{s.max_outreach_free} outreach messages per month",
                "10 investor searches",
                "3 response templates",
                "Basic analytics",
            ],
            limits=PlanLimits(outreach_per_month=s.max_outreach_free, investor_searches=10, templates=3),
        ),
        "pro": Plan(
            id="pro", name="Pro", price=29, stripe_price_id="price_pro_monthly",
            features=[
                f"{s.max_outreach_pro} outreach messages per month",
                "100 investor searches",
                "10 response templates",
                "Advanced analytics",
                "Follow-up scheduling",
                "Email support",
            ],
            limits=PlanLimits(outreach_per_month=s.max_outreach_pro, investor_searches=100, templates=10),
        ),
        "premium": Plan(
            id="premium", name="Premium", price=79, stripe_price_id="price_premium_monthly",
            features=[
                "Unlimited outreach messages",
                "Unlimited investor searches",
                "Unlimited response templates",
                "Advanced analytics & insights",
                "Follow-up scheduling",
                "CRM integration",
                "Priority support",
                "Custom templates",
            ],
            limits=PlanLimits(
                outreach_per_month=s.max_outreach_premium,
                investor_searches=UNLIMITED,
                templates=UNLIMITED,
            ),
        ),
    }
    _check_monotonic(plans)
    return plans

def _check_monotonic(plans: Dict[str, Plan]) -> None:
    for _, ceiling in ACTION_FIELDS.values():
        values = [getattr(plans[t].limits, ceiling) for t in TIERS]
        if any(lo > hi for lo, hi in zip(values, values[1:])):
            raise ValueError(f"Plan ceilings for {ceiling} must not decrease across tiers: {values}")

def resolve_tier(label: Optional[str]) -> str:
    tier = (label or "").strip().lower()
    return tier if tier in TIERS else DEFAULT_TIER

def month_stamp(day: date) -> str:
    return day.strftime("%Y-%m")

def roll_over(usage: UsageCounters, today: date) -> UsageCounters:
    """
    Zero the counters whose period has ended and stamp the current periods.
    Searches are counted per day, outreach per calendar month; templates never reset.
    Unstamped counters are treated as belonging to a past period.
    """
    update = {}
    if usage.usage_day != today:
        update.update(searches_today=0, usage_day=today)
    if usage.usage_month != month_stamp(today):
        update.update(outreach_this_month=0, usage_month=month_stamp(today))
    return usage.model_copy(update=update) if update else usage

class UsageTracker:
    """Pure decisions over supplied usage counters. Never stores or increments anything."""

    def __init__(self, plans: Optional[Dict[str, Plan]] = None):
        self.plans = plans or build_plans()

    def get_plan(self, tier: Optional[str]) -> Plan:
        return self.plans[resolve_tier(tier)]

    def get_plan_limits(self, tier: Optional[str]) -> PlanLimits:
        return self.get_plan(tier).limits

    def can_perform_action(self, tier: Optional[str], action: str, usage: UsageCounters) -> bool:
        fields = ACTION_FIELDS.get(action)
        if fields is None:
            log.warning("Unknown action type %r; refusing", action)
            return False
        counter, ceiling = fields
        return getattr(usage, counter) < getattr(self.get_plan_limits(tier), ceiling)

    @staticmethod
    def get_usage_percentage(current: int, limit: int) -> float:
        if limit >= UNLIMITED:
            return 0.0
        if limit <= 0:
            return 100.0
        return min(current / limit * 100, 100.0)

    def report(self, tier: Optional[str], usage: UsageCounters) -> Dict[str, dict]:
        limits = self.get_plan_limits(tier)
        out = {}
        for action, (counter, ceiling) in ACTION_FIELDS.items():
            used = getattr(usage, counter)
            limit = getattr(limits, ceiling)
            out[action] = {
                "used": used,
                "limit": limit,
                "unlimited": limit >= UNLIMITED,
                "percentage": self.get_usage_percentage(used, limit),
                "allowed": used < limit,
            }
        return out

    def remaining(self, tier: Optional[str], action: str, usage: UsageCounters) -> Optional[int]:
        """Actions left this period, None when the ceiling is unlimited"""
        counter, ceiling = ACTION_FIELDS[action]
        limit = getattr(self.get_plan_limits(tier), ceiling)
        if limit >= UNLIMITED:
            return None
        return max(limit - getattr(usage, counter), 0)

# ---- pricing helpers ----

def format_price(price: int) -> str:
    if price == 0:
        return "Free"
    return f"${price:,}"

def plan_comparison(plans: Optional[Dict[str, Plan]] = None) -> List[dict]:
    plans = plans or build_plans()
    return [
        {**plans[t].model_dump(), "formatted_price": format_price(plans[t].price)}
        for t in TIERS
    ]

def recommended_plan(monthly_outreach: int) -> str:
    if monthly_outreach <= 5:
        return "free"
    if monthly_outreach <= 50:
        return "pro"
    return "premium"
