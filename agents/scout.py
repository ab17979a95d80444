# file: agents/scout.py
import logging
from typing import List, Optional
from app.errors import ExternalServiceError
from app.schema import FilterSpec, Investor
from app.services.investor_filter import filter_investors

log = logging.getLogger("scout")

class Scout:
    """Finds investors matching a filter, over the last good snapshot when the store is down"""

    def __init__(self, store_registry):
        self.registry = store_registry
        self.store = store_registry.get_investor_store()
        self.snapshot: List[Investor] = []

    async def run(self, filters: Optional[FilterSpec] = None) -> List[Investor]:
        try:
            self.snapshot = await self.store.fetch_all()
        except ExternalServiceError as e:
            log.warning("Investor store unavailable, filtering %d cached investors: %s", len(self.snapshot), e)
        return filter_investors(self.snapshot, filters)

    async def get(self, investor_id: str) -> Optional[Investor]:
        try:
            return await self.store.fetch_by_id(investor_id)
        except ExternalServiceError:
            cached = next((inv for inv in self.snapshot if inv.id == investor_id), None)
            if cached is None:
                raise
            log.warning("Investor store unavailable, serving cached investor %s", investor_id)
            return cached
