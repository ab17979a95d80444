# app/tools/llm.py
from __future__ import annotations
import logging, time
from typing import Any, Dict, Optional, Tuple
from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError, RateLimitError
from app.config import Settings, get_settings
from app.errors import ExternalServiceError, QuotaExceededError

log = logging.getLogger("llm")

QUOTA_CODES = {"insufficient_quota", "rate_limit_exceeded"}

class TextGenerator:
    """One-shot chat completion against the hosted model. No retries here."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[AsyncOpenAI] = None):
        self.settings = settings or get_settings()
        self._client = client

    def is_configured(self) -> bool:
        return self._client is not None or bool(self.settings.openai_api_key)

    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.settings.openai_api_key:
                raise ExternalServiceError("openai", "OpenAI API key is not configured")
            self._client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.openai_timeout,
                max_retries=0,
            )
        return self._client

    async def generate(
        self,
        system: str,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Tuple[str, Optional[Dict[str, Any]]]:
        """Return (text, usage). Raises QuotaExceededError or ExternalServiceError."""
        s = self.settings
        if not s.enable_ai_generation:
            raise ExternalServiceError("openai", "AI generation is disabled")

        t0 = time.time()
        try:
            completion = await self.client().chat.completions.create(
                model=s.openai_model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens or s.openai_max_tokens,
                temperature=s.openai_temperature if temperature is None else temperature,
            )
        except RateLimitError as e:
            raise QuotaExceededError("openai", str(e), status=429) from e
        except APIStatusError as e:
            if getattr(e, "code", None) in QUOTA_CODES:
                raise QuotaExceededError("openai", str(e), status=e.status_code) from e
            raise ExternalServiceError("openai", str(e), status=e.status_code) from e
        except (APIConnectionError, OpenAIError) as e:
            raise ExternalServiceError("openai", str(e)) from e

        choices = getattr(completion, "choices", None) or []
        text = (choices[0].message.content or "").strip() if choices else ""
        if not text:
            raise ExternalServiceError("openai", "No message generated")

        usage = completion.usage.model_dump() if getattr(completion, "usage", None) else None
        log.info("LLM generate chars=%d latency=%.2fs", len(text), time.time() - t0)
        return text, usage
