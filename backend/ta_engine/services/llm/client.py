"""
LLM Client Abstraction

Provides a unified interface for Google Gemini and Anthropic Claude.
Handles provider switching and fallback.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"


@dataclass
class LLMConfig:
    """Configuration for LLM client."""

    provider: LLMProvider
    gemini_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    anthropic_model: str = "claude-3-5-haiku-latest"
    max_tokens: int = 1024
    temperature: float = 0.3


@dataclass
class LLMResponse:
    """Response from LLM."""

    content: str
    model: str
    provider: LLMProvider
    usage: dict


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Generate a response from the LLM."""
        pass


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client implementation."""

    def __init__(self, config: LLMConfig):
        self.config = config
        self._client = None

    def _get_client(self):
        """Lazy initialization of Anthropic client."""
        if self._client is None:
            try:
                import anthropic
            except ImportError as e:
                raise RuntimeError(
                    "anthropic package not installed. Run: pip install anthropic"
                ) from e
            self._client = anthropic.AsyncAnthropic(api_key=self.config.anthropic_api_key)
        return self._client

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Generate response using Claude."""
        client = self._get_client()
        model = self.config.anthropic_model

        temp = temperature if temperature is not None else self.config.temperature
        tokens = max_tokens if max_tokens is not None else self.config.max_tokens

        try:
            response = await client.messages.create(
                model=model,
                max_tokens=tokens,
                temperature=temp,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except Exception as e:
            logger.error(f"Anthropic API error: {e}")
            raise

        return LLMResponse(
            content=response.content[0].text,
            model=model,
            provider=LLMProvider.ANTHROPIC,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
        )


class GeminiClient(BaseLLMClient):
    """Google Gemini client implementation."""

    def __init__(self, config: LLMConfig):
        self.config = config
        self._model = None

    def _get_model(self):
        """Lazy initialization of the Gemini model."""
        if self._model is None:
            try:
                import google.generativeai as genai
            except ImportError as e:
                raise RuntimeError(
                    "google-generativeai package not installed. "
                    "Run: pip install google-generativeai"
                ) from e
            genai.configure(api_key=self.config.gemini_api_key)
            self._model = genai.GenerativeModel(self.config.gemini_model)
        return self._model

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Generate response using Gemini."""
        model = self._get_model()

        temp = temperature if temperature is not None else self.config.temperature
        tokens = max_tokens if max_tokens is not None else self.config.max_tokens

        # Gemini takes a single prompt
        full_prompt = f"{system_prompt}\n\n---\n\n{user_prompt}"
        generation_config = {
            "temperature": temp,
            "max_output_tokens": tokens,
            "response_mime_type": "application/json",
        }

        try:
            # generate_content is synchronous
            loop = asyncio.get_running_loop()
            response = await loop.run_in_executor(
                None,
                lambda: model.generate_content(
                    full_prompt,
                    generation_config=generation_config,
                ),
            )
        except Exception as e:
            logger.error(f"Gemini API error: {e}")
            raise

        usage = getattr(response, "usage_metadata", None)
        return LLMResponse(
            content=response.text,
            model=self.config.gemini_model,
            provider=LLMProvider.GEMINI,
            usage={
                "prompt_tokens": getattr(usage, "prompt_token_count", 0),
                "completion_tokens": getattr(usage, "candidates_token_count", 0),
            },
        )


class LLMClient:
    """
    Unified LLM client with provider switching and fallback.

    Primary provider is tried first.
    Falls back to the other provider on failure.
    """

    def __init__(self, config: LLMConfig):
        self.config = config
        self._primary: Optional[BaseLLMClient] = None
        self._fallback: Optional[BaseLLMClient] = None
        self._setup_clients()

    def _setup_clients(self):
        """Setup primary and fallback clients based on config."""
        gemini = GeminiClient(self.config) if self.config.gemini_api_key else None
        anthropic = AnthropicClient(self.config) if self.config.anthropic_api_key else None

        if self.config.provider == LLMProvider.ANTHROPIC:
            self._primary, self._fallback = anthropic, gemini
        else:
            self._primary, self._fallback = gemini, anthropic

        if self._primary is None and self._fallback is None:
            logger.warning("No LLM API keys configured. Narratives disabled.")

    @property
    def is_configured(self) -> bool:
        return self._primary is not None or self._fallback is not None

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """
        Generate LLM response with automatic fallback.

        Tries primary provider first, falls back to secondary on failure.
        """
        if not self.is_configured:
            raise RuntimeError("No LLM providers configured")

        if self._primary:
            try:
                return await self._primary.generate(
                    system_prompt=system_prompt,
                    user_prompt=user_prompt,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
            except Exception as e:
                logger.warning(f"Primary LLM failed: {e}, trying fallback...")
                if self._fallback is None:
                    raise

        return await self._fallback.generate(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
        )


# Singleton instance management
_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get or create LLM client singleton."""
    global _llm_client
    if _llm_client is None:
        from ta_engine.core.config import settings

        config = LLMConfig(
            provider=LLMProvider(settings.llm_primary_provider),
            gemini_api_key=settings.gemini_api_key,
            anthropic_api_key=settings.anthropic_api_key,
            gemini_model=settings.llm_explanation_model,
            anthropic_model=settings.llm_anthropic_model,
        )
        _llm_client = LLMClient(config)
    return _llm_client
