# file: agents/curator.py
from collections import Counter
from typing import List, Optional
from app.schema import OutreachMessage, SaveOutreachRequest

class Curator:
    """Keeps the founder's outreach history"""

    def __init__(self, store_registry):
        self.registry = store_registry
        self.store = store_registry.get_outreach_store()

    async def save_draft(self, user_id: str, request: SaveOutreachRequest) -> OutreachMessage:
        return await self.store.create({**request.model_dump(), "user_id": user_id})

    async def history(self, user_id: str) -> List[OutreachMessage]:
        return await self.store.fetch_by_user(user_id)

    async def set_status(self, user_id: str, message_id: str, status: str) -> Optional[OutreachMessage]:
        """Only the status of a saved message may change"""
        return await self.store.update(message_id, user_id, {"status": status})

    @staticmethod
    def summarize(messages: List[OutreachMessage], outreach_remaining: Optional[int]) -> dict:
        """Dashboard numbers; messages are expected newest first"""
        by_status = Counter(m.status for m in messages)
        total = len(messages)
        return {
            "total_messages": total,
            "investors_contacted": len({m.investor_id for m in messages}),
            "by_status": dict(by_status),
            "response_rate": round(by_status.get("responded", 0) / total * 100, 1) if total else 0.0,
            "recent": [m.model_dump(mode="json") for m in messages[:5]],
            "outreach_remaining": outreach_remaining,
        }
