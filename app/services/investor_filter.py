# file: app/services/investor_filter.py
from __future__ import annotations
from typing import Iterable, List, Optional
from app.schema import ALL, FilterSpec, Investor

def _active(value: Optional[str]) -> Optional[str]:
    """Return the lowered filter value, or None when the filter is not applied"""
    if value is None:
        return None
    v = value.strip().lower()
    if not v or v == ALL:
        return None
    return v

def matches_industry(investor: Investor, industry: str) -> bool:
    needle = industry.lower()
    if any(needle in c.industry.lower() for c in investor.criteria):
        return True
    return needle in (investor.investment_thesis or "").lower()

def matches_stage(investor: Investor, stage: str) -> bool:
    return (investor.stage_focus or "").lower() == stage.lower()

def matches_location(investor: Investor, location: str) -> bool:
    needle = location.lower()
    return any(needle in c.location.lower() for c in investor.criteria)

def matches_query(investor: Investor, query: str) -> bool:
    needle = query.lower()
    haystacks = (investor.name, investor.firm, investor.investment_thesis)
    return any(needle in (h or "").lower() for h in haystacks)

def filter_investors(investors: Iterable[Investor], filters: Optional[FilterSpec] = None) -> List[Investor]:
    """
    Keep the investors that satisfy every applied criterion, in input order.
      industry: substring of any criterion industry or of the thesis
      stage:    exact match on stage_focus
      location: substring of any criterion location
      query:    substring of name, firm or thesis
    Matching is case-insensitive; "all", blank and None are no-ops
    (query has no "all" sentinel, only blank and None).
    """
    filters = filters or FilterSpec()
    checks = []
    industry = _active(filters.industry)
    if industry:
        checks.append(lambda inv: matches_industry(inv, industry))
    stage = _active(filters.stage)
    if stage:
        checks.append(lambda inv: matches_stage(inv, stage))
    location = _active(filters.location)
    if location:
        checks.append(lambda inv: matches_location(inv, location))
    query = (filters.query or "").strip()
    if query:
        checks.append(lambda inv: matches_query(inv, query))

    return [inv for inv in investors if all(check(inv) for check in checks)]
