# file: agents/writer.py
import asyncio
import logging
import random
from typing import Dict, Optional, Tuple
from app.errors import ExternalServiceError, QuotaExceededError
from app.schema import Company, GenerationResult, Investor
from app.services.prompts import (
    SYSTEM_PROMPTS, build_outreach_prompt, ensure_prompt_inputs,
    generate_subject_line, render_fallback_message,
)
from app.tools.llm import TextGenerator

log = logging.getLogger("writer")

class Writer:
    """Generates investor outreach with the hosted model, or a local template when it can't"""

    def __init__(self, llm: TextGenerator, rng: Optional[random.Random] = None):
        self.llm = llm
        self.rng = rng
        self._in_flight: Dict[Tuple, asyncio.Future] = {}

    async def run(
        self,
        investor: Investor,
        company: Company,
        notes: str = "",
        message_type: str = "initial",
        **context,
    ) -> GenerationResult:
        """Validate, then generate. Identical concurrent requests share one model call."""
        ensure_prompt_inputs(investor, company)

        key = (company.id, investor.id, message_type, (notes or "").strip(), repr(sorted(context.items())))
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._generate(investor, company, notes, message_type, context))
            self._in_flight[key] = task
            task.add_done_callback(lambda _: self._in_flight.pop(key, None))
        else:
            log.info("Joining in-flight generation for %s -> %s", company.name, investor.firm)
        return await asyncio.shield(task)

    async def _generate(self, investor, company, notes, message_type, context) -> GenerationResult:
        system = SYSTEM_PROMPTS.get(message_type, SYSTEM_PROMPTS["initial"])
        prompt = build_outreach_prompt(investor, company, notes, message_type, **context)
        try:
            text, usage = await self.llm.generate(system, prompt)
        except QuotaExceededError as e:
            log.warning("Generation quota exhausted, using fallback template: %s", e)
            return self.fallback(investor, company, notes, message_type)
        except ExternalServiceError as e:
            log.warning("Generation failed, using fallback template: %s", e)
            return self.fallback(investor, company, notes, message_type)

        return GenerationResult(
            message=text,
            subject=generate_subject_line(company, investor, message_type, rng=self.rng),
            usage=usage,
        )

    def fallback(self, investor: Investor, company: Company, notes: str = "", message_type: str = "initial") -> GenerationResult:
        """Terminal error boundary: always returns a result"""
        try:
            return render_fallback_message(investor, company, notes, message_type, rng=self.rng)
        except Exception as e:
            log.exception("Fallback template failed: %s", e)
            return GenerationResult(
                message=f"Hi {investor.name},\n\nI'm the founder of {company.name} and would love to "
                        f"introduce what we're building to {investor.firm}. Would you be open to a brief call?\n\n"
                        f"Best regards,\n[Your Name]",
                subject=f"Introduction: {company.name}",
                usage=None,
            )
