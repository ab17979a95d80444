# file: app/services/templates.py
from __future__ import annotations
import re
from typing import Dict, Iterable, List, Optional
from app.schema import ALL, ResponseTemplate

_PLACEHOLDER = re.compile(r"\[([^\[\]\n]+)\]")

def filter_templates(
    templates: Iterable[ResponseTemplate],
    search: Optional[str] = "",
    template_type: Optional[str] = ALL,
) -> List[ResponseTemplate]:
    """Match on name or content (case-insensitive) and on type"""
    needle = (search or "").strip().lower()
    wanted = (template_type or ALL).strip().lower()
    out = []
    for t in templates:
        if needle and needle not in t.name.lower() and needle not in t.content.lower():
            continue
        if wanted != ALL and t.type != wanted:
            continue
        out.append(t)
    return out

def placeholders(content: str) -> List[str]:
    """Bracketed tokens in first-seen order, e.g. ["COMPANY_NAME", "FOUNDER_NAME"]"""
    seen: List[str] = []
    for token in _PLACEHOLDER.findall(content or ""):
        if token not in seen:
            seen.append(token)
    return seen

def fill_placeholders(content: str, values: Dict[str, str]) -> str:
    """Substitute known tokens; unknown tokens stay bracketed for the user to fill in"""
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), content or "")
