"""AI provider access: prompts, backoff and the response draft client."""

from .backoff import BackoffPolicy
from .prompts import (
    BrandVoiceConfig,
    ResponseTone,
    ReviewContext,
    build_system_prompt,
    build_user_prompt,
    describe_formality,
    truncate_response,
)
from .provider import (
    AIProviderClient,
    GeneratedText,
    get_ai_provider,
    is_transient_error,
)

__all__ = [
    "AIProviderClient",
    "BackoffPolicy",
    "BrandVoiceConfig",
    "GeneratedText",
    "ResponseTone",
    "ReviewContext",
    "build_system_prompt",
    "build_user_prompt",
    "describe_formality",
    "get_ai_provider",
    "is_transient_error",
    "truncate_response",
]
