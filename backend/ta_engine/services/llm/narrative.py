"""
LLM Narrative Annotator

Turns a computed analysis into plain-English text. Only the text and a
confidence hint are taken from the model; prices are never read back.
"""

import asyncio
import json
import logging
import re
from typing import Optional

from pydantic import ValidationError

from ta_engine.schemas.analysis import Narrative, NarrativeContext
from ta_engine.services.base import CircuitBreaker, NarrativeUnavailableError
from ta_engine.services.collaborators import NarrativeAnnotator
from ta_engine.services.llm.client import LLMClient, get_llm_client
from ta_engine.services.llm.prompts import NARRATIVE_SYSTEM_PROMPT, format_narrative_prompt

logger = logging.getLogger(__name__)

SERVICE_NAME = "NarrativeAnnotator"
_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)


def parse_narrative(content: str) -> Narrative:
    """
    Parse the model reply.

    Accepts bare JSON, JSON wrapped in prose or code fences, or plain text
    (used verbatim, no confidence hint).
    """
    content = content.strip()
    if not content:
        raise ValueError("empty LLM response")

    match = _JSON_BLOCK.search(content)
    if match is None:
        return Narrative(text=content)

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return Narrative(text=content)

    text = str(data.get("text") or data.get("analysis") or "").strip()
    if not text:
        raise ValueError("LLM response has no text field")

    hint = data.get("confidence")
    try:
        hint = float(hint) if hint is not None else None
    except (TypeError, ValueError):
        hint = None
    if hint is not None and not 0 <= hint <= 100:
        hint = None

    return Narrative(text=text, confidence_hint=hint)


class LLMNarrativeAnnotator(NarrativeAnnotator):
    """
    NarrativeAnnotator backed by the LLM client.

    Consecutive failures open this instance's circuit breaker; while open,
    explain() fails fast without calling the model.
    """

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.llm_client = llm_client or get_llm_client()
        self.breaker = breaker or CircuitBreaker()

    async def explain(self, context: NarrativeContext) -> Narrative:
        if not self.breaker.allow():
            raise NarrativeUnavailableError(SERVICE_NAME, "Circuit open, skipping LLM call")

        try:
            response = await self.llm_client.generate(
                system_prompt=NARRATIVE_SYSTEM_PROMPT,
                user_prompt=format_narrative_prompt(context),
            )
            narrative = parse_narrative(response.content)
        except asyncio.CancelledError:
            # caller timed out waiting on the model
            self.breaker.record_failure()
            raise
        except (ValueError, ValidationError) as e:
            self.breaker.record_failure()
            raise NarrativeUnavailableError(SERVICE_NAME, f"Unusable LLM response: {e}") from e
        except Exception as e:
            self.breaker.record_failure()
            logger.warning(f"LLM narrative call failed for {context.symbol}: {e}")
            raise NarrativeUnavailableError(SERVICE_NAME, f"LLM error: {e}") from e

        self.breaker.record_success()
        logger.info(f"Narrative generated for {context.symbol}")
        return narrative
