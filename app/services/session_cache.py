# file: app/services/session_cache.py
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from app.schema import Company

log = logging.getLogger("cache")

class SessionCache:
    """
    Best-effort JSON snapshot of each user's company, consulted only
    when the database cannot be reached. Not authoritative: I/O problems are
    logged and otherwise ignored.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.entries: Dict[str, Dict[str, Any]] = self._load_json()

    def _load_json(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, ValueError) as e:
            log.warning("Ignoring unreadable session cache %s: %s", self.path, e)
            return {}

    def _save_json(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self.entries, f, indent=2, default=str)
        except OSError as e:
            log.warning("Could not write session cache %s: %s", self.path, e)

    def remember_company(self, user_id: str, company: Company) -> None:
        self.entries.setdefault(user_id, {})["company"] = company.model_dump(mode="json")
        self._save_json()

    def company(self, user_id: str) -> Optional[Company]:
        raw = self.entries.get(user_id, {}).get("company")
        if not raw:
            return None
        try:
            return Company.model_validate(raw)
        except ValueError as e:
            log.warning("Dropping invalid cached company for %s: %s", user_id, e)
            return None

    def forget(self, user_id: str) -> None:
        if self.entries.pop(user_id, None) is not None:
            self._save_json()
