import json
import logging
import re
from typing import Optional

from anthropic import AsyncAnthropic
from pydantic import ValidationError

from ledger_assistant.ai_query.intent import RawIntent
from ledger_assistant.core.config import settings

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.S | re.I)
_BARE_JSON = re.compile(r"\{.*\}", re.S)


class LanguageModel:
    """Thin async wrapper over the Anthropic messages API."""

    def __init__(self, client: Optional[AsyncAnthropic] = None):
        self.client = client or AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)
        self.model = settings.AI_MODEL
        self.max_tokens = settings.AI_MAX_TOKENS

    async def complete(self, prompt: str, system: Optional[str] = None) -> str:
        kwargs = {}
        if system:
            kwargs["system"] = system
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        return "".join(
            block.text for block in response.content if block.type == "text"
        ).strip()


_model: Optional[LanguageModel] = None


def get_language_model() -> LanguageModel:
    """FastAPI dependency; one client per process."""
    global _model
    if _model is None:
        _model = LanguageModel()
    return _model


def parse_raw_intent(text: str) -> Optional[RawIntent]:
    """
    Pull the JSON object out of the model's reply.
    Accepts a bare object or one wrapped in a ```json fence.
    Returns None when there is nothing usable.
    """
    if not text:
        return None
    match = _FENCED_JSON.search(text) or _BARE_JSON.search(text)
    if not match:
        return None
    candidate = match.group(1) if match.re is _FENCED_JSON else match.group(0)

    try:
        payload = json.loads(candidate)
        if not isinstance(payload, dict):
            return None
        return RawIntent.model_validate(payload)
    except (json.JSONDecodeError, ValidationError) as error:
        logger.info("could not parse model output as intent: %s", error)
        return None
