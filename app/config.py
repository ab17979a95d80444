# app/config.py
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path

# "Unlimited" ceilings are stored as a large number, not as infinity
UNLIMITED = 999999

def _as_bool(v: str | None, default: bool = False) -> bool:
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")

@dataclass
class Settings:
    app_name: str = os.getenv("APP_NAME", "InvestorMatch AI")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")

    # ---- Supabase (hosted Postgres + auth) ----
    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_key: str = os.getenv("SUPABASE_KEY", "")

    # ---- OpenAI ----
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4")
    openai_max_tokens: int = int(os.getenv("OPENAI_MAX_TOKENS", "1000"))
    openai_temperature: float = float(os.getenv("OPENAI_TEMPERATURE", "0.7"))
    openai_timeout: float = float(os.getenv("OPENAI_TIMEOUT_SECONDS", "30"))
    # When off, every generation renders the local fallback template
    enable_ai_generation: bool = _as_bool(os.getenv("ENABLE_AI_GENERATION"), True)

    # ---- Payments backend (subscription status only) ----
    billing_api_url: str | None = os.getenv("BILLING_API_URL") or None
    billing_timeout: float = float(os.getenv("BILLING_TIMEOUT_SECONDS", "10"))

    # ---- Plan ceilings ----
    max_outreach_free: int = int(os.getenv("MAX_OUTREACH_PER_MONTH_FREE", "5"))
    max_outreach_pro: int = int(os.getenv("MAX_OUTREACH_PER_MONTH_PRO", "50"))
    max_outreach_premium: int = int(os.getenv("MAX_OUTREACH_PER_MONTH_PREMIUM", str(UNLIMITED)))

    # Best-effort snapshot cache used when the database is unreachable
    session_cache_path: Path = Path(os.getenv("SESSION_CACHE_PATH", "data/session_cache.json"))

_settings: Settings | None = None

def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
