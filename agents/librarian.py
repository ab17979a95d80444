# file: agents/librarian.py
import logging
from typing import List, Optional
from app.errors import ExternalServiceError
from app.schema import ALL, Company, Investor, ResponseTemplate, TemplateIn
from app.services.templates import fill_placeholders, filter_templates

log = logging.getLogger("librarian")

class Librarian:
    """Lists and creates reusable response templates"""

    def __init__(self, store_registry):
        self.registry = store_registry
        self.store = store_registry.get_template_store()
        self.snapshot: List[ResponseTemplate] = []

    async def run(self, search: str = "", template_type: str = ALL) -> List[ResponseTemplate]:
        try:
            self.snapshot = await self.store.fetch_all()
        except ExternalServiceError as e:
            log.warning("Template store unavailable, using %d cached templates: %s", len(self.snapshot), e)
        return filter_templates(self.snapshot, search, template_type)

    async def get(self, template_id: str) -> Optional[ResponseTemplate]:
        templates = await self.run()
        return next((t for t in templates if t.id == template_id), None)

    async def create(self, data: TemplateIn, user_id: Optional[str] = None) -> ResponseTemplate:
        return await self.store.create(data, user_id)

    @staticmethod
    def prefill(template: ResponseTemplate, company: Optional[Company] = None,
                investor: Optional[Investor] = None) -> str:
        """Fill the placeholders we know; the rest stay for the founder"""
        values = {}
        if company:
            values["COMPANY_NAME"] = company.name
        if investor:
            values["INVESTOR_NAME"] = investor.name
            values["FIRM_NAME"] = investor.firm
        return fill_placeholders(template.content, values)
