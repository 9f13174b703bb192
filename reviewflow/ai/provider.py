"""AI provider client for response drafts.

Wraps an OpenAI-compatible chat completions endpoint with a per-attempt
timeout, the backoff policy and output normalization. Provider exceptions
are classified and re-raised as TransientProviderError or
PermanentProviderError; callers never see raw ``openai`` errors.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from ..config import AISettings, RetrySettings, get_settings
from ..errors import PermanentProviderError, TransientProviderError
from ..logging.config import get_logger
from .backoff import BackoffPolicy, Sleeper
from .prompts import (
    BrandVoiceConfig,
    ResponseTone,
    ReviewContext,
    build_system_prompt,
    build_user_prompt,
    truncate_response,
)

logger = get_logger(__name__)

# 529 is the "overloaded" status used by several providers.
TRANSIENT_STATUS_CODES = frozenset({408, 409, 429, 529})


@dataclass(frozen=True)
class GeneratedText:
    """Normalized provider output."""

    text: str
    model: str
    truncated: bool = False


def is_transient_error(exc: BaseException) -> bool:
    """True for rate limiting, overload, timeouts and connection failures."""
    if isinstance(exc, (openai.APITimeoutError, openai.APIConnectionError)):
        return True
    if isinstance(exc, (openai.RateLimitError, openai.InternalServerError)):
        return True
    if isinstance(exc, openai.APIStatusError):
        return exc.status_code in TRANSIENT_STATUS_CODES or exc.status_code >= 500
    return False


def _retry_after_from(exc: BaseException, default: int) -> int:
    """Use the provider's Retry-After header when it sends one."""
    response = getattr(exc, "response", None)
    if response is None:
        return default
    value = response.headers.get("retry-after")
    try:
        return max(int(float(value)), 1) if value else default
    except ValueError:
        return default


class AIProviderClient:
    """Generates response drafts through an OpenAI-compatible API."""

    def __init__(
        self,
        settings: AISettings | None = None,
        retry: RetrySettings | None = None,
        client: AsyncOpenAI | None = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        """Initialize the client.

        Args:
            settings: Provider settings. Defaults to the application settings.
            retry: Backoff settings. Defaults to the application settings.
            client: Pre-built OpenAI client (tests pass a double here).
            sleep: Async sleeper used between retries.
        """
        if settings is None or retry is None:
            app_settings = get_settings()
            settings = settings or app_settings.ai
            retry = retry or app_settings.retry

        self.settings = settings
        self.retry_settings = retry
        self._client = client
        self.policy = BackoffPolicy(
            max_attempts=retry.max_attempts,
            base_delay=retry.base_delay_seconds,
            max_delay=retry.max_delay_seconds,
            is_retryable=is_transient_error,
            sleep=sleep,
        )

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create the OpenAI client.

        The SDK's own retries are disabled; the backoff policy owns retrying.
        """
        if self._client is None:
            if not self.settings.api_key:
                raise PermanentProviderError("AI provider API key is not configured")
            self._client = AsyncOpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                timeout=self.settings.timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def generate(
        self,
        review: ReviewContext,
        brand_voice: BrandVoiceConfig,
        tone_override: ResponseTone | None = None,
    ) -> GeneratedText:
        """Generate a response draft for a review.

        Args:
            review: Review text and platform context.
            brand_voice: Account brand voice configuration.
            tone_override: Tone replacing the configured one for this call only.

        Returns:
            The draft, truncated to ``max_response_chars``.

        Raises:
            TransientProviderError: Retries were exhausted on transient errors.
            PermanentProviderError: The request was rejected or misconfigured.
        """
        client = self.client
        messages = [
            {
                "role": "system",
                "content": build_system_prompt(
                    brand_voice,
                    language=review.language,
                    max_chars=self.settings.max_response_chars,
                    max_samples=self.settings.max_sample_responses,
                    tone_override=tone_override,
                ),
            },
            {"role": "user", "content": build_user_prompt(review)},
        ]

        async def _call():
            return await client.chat.completions.create(
                model=self.settings.model,
                messages=messages,
                max_tokens=self.settings.max_tokens,
                temperature=self.settings.temperature,
                timeout=self.settings.timeout_seconds,
            )

        try:
            completion = await self.policy.run(_call)
        except openai.OpenAIError as e:
            if is_transient_error(e):
                retry_after = _retry_after_from(
                    e, self.retry_settings.retry_after_hint_seconds
                )
                logger.warning(
                    "AI provider unavailable after retries",
                    attempts=self.policy.max_attempts,
                    error_type=type(e).__name__,
                    retry_after=retry_after,
                )
                raise TransientProviderError(
                    "AI service temporarily unavailable. Please try again shortly.",
                    retry_after_seconds=retry_after,
                ) from e

            logger.error(
                "AI provider rejected request",
                error_type=type(e).__name__,
                error=str(e),
            )
            raise PermanentProviderError(f"AI provider rejected the request: {e}") from e

        if not completion.choices or not completion.choices[0].message.content:
            raise PermanentProviderError("AI provider returned an empty response")

        raw = completion.choices[0].message.content.strip()
        if not raw:
            raise PermanentProviderError("AI provider returned an empty response")

        text = truncate_response(
            raw,
            max_chars=self.settings.max_response_chars,
            window=self.settings.truncation_window,
        )
        model = completion.model or self.settings.model

        logger.info(
            "Response draft generated",
            model=model,
            length=len(text),
            truncated=len(text) < len(raw),
            tone=tone_override.value if tone_override else ResponseTone.DEFAULT.value,
        )
        return GeneratedText(text=text, model=model, truncated=len(text) < len(raw))


# Singleton instance
_provider: AIProviderClient | None = None


def get_ai_provider() -> AIProviderClient:
    """Get or create the AI provider client singleton."""
    global _provider
    if _provider is None:
        _provider = AIProviderClient()
    return _provider
