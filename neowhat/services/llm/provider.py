"""LLM Provider using LiteLLM for multi-provider abstraction."""

import time
from dataclasses import dataclass, field
from typing import Any

import litellm
import structlog
from tenacity import retry, stop_after_attempt, wait_exponential

from neowhat.core.config import settings
from neowhat.core.credentials import ResolvedCredential
from neowhat.core.exceptions import LLMError

logger = structlog.get_logger()

# Configure LiteLLM
litellm.set_verbose = settings.app_debug


@dataclass
class LLMResponse:
    """Response from LLM completion."""

    content: str
    model: str
    tokens_input: int = 0
    tokens_output: int = 0
    finish_reason: str = "stop"
    latency_ms: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def tokens_used(self) -> int:
        return self.tokens_input + self.tokens_output


class LLMProvider:
    """Chat completion client routed through OpenRouter by default.

    Uses LiteLLM so the model string alone selects the upstream provider.
    """

    def __init__(
        self,
        primary_model: str | None = None,
        fallback_models: list[str] | None = None,
        default_temperature: float | None = None,
        site_url: str | None = None,
        app_title: str | None = None,
    ) -> None:
        self.primary_model = primary_model or settings.llm_model
        if fallback_models is None:
            fallback_models = [settings.llm_fallback_model] if settings.llm_fallback_model else []
        self.fallback_models = fallback_models
        self.default_temperature = (
            default_temperature if default_temperature is not None else settings.llm_temperature
        )
        self.extra_headers = {
            "HTTP-Referer": site_url or settings.site_url,
            "X-Title": app_title or settings.app_title,
        }

        logger.info(
            "LLM Provider initialized",
            primary=self.primary_model,
            fallbacks=self.fallback_models,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _acompletion(self, model: str, messages: list[dict[str, str]], **kwargs: Any) -> Any:
        return await litellm.acompletion(model=model, messages=messages, **kwargs)

    async def complete(
        self,
        messages: list[dict[str, str]],
        api_key: ResolvedCredential,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion for an already assembled message list.

        Args:
            messages: List of message dicts with 'role' and 'content'
            api_key: Tenant key or the global default
            temperature: Sampling temperature, defaults to the configured value
            max_tokens: Optional output cap

        Raises:
            LLMError: when no key is available or every model failed
        """
        if not api_key.available:
            raise LLMError("LLM API key not configured", provider=self.primary_model)

        kwargs: dict[str, Any] = {
            "temperature": temperature if temperature is not None else self.default_temperature,
            "api_key": api_key.value,
            "extra_headers": self.extra_headers,
        }
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        last_error: Exception | None = None
        for model in [self.primary_model, *self.fallback_models]:
            start_time = time.perf_counter()
            try:
                response = await self._acompletion(model, messages, **kwargs)
            except Exception as e:
                last_error = e
                logger.warning("LLM completion failed", model=model, error=str(e))
                continue

            latency_ms = (time.perf_counter() - start_time) * 1000

            usage = getattr(response, "usage", None)
            tokens_input = getattr(usage, "prompt_tokens", 0) or 0
            tokens_output = getattr(usage, "completion_tokens", 0) or 0

            content = response.choices[0].message.content or ""
            finish_reason = response.choices[0].finish_reason or "stop"

            logger.info(
                "LLM completion successful",
                model=model,
                tokens_in=tokens_input,
                tokens_out=tokens_output,
                latency_ms=round(latency_ms, 2),
                key_source=api_key.source.value,
            )

            return LLMResponse(
                content=content,
                model=model,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                finish_reason=finish_reason,
                latency_ms=latency_ms,
                metadata={"raw_response_id": getattr(response, "id", None)},
            )

        raise LLMError(f"All LLM providers failed: {last_error}", provider=self.primary_model)


# Singleton instance
_llm_provider: LLMProvider | None = None


def get_llm_provider() -> LLMProvider:
    """Get or create the LLM provider singleton."""
    global _llm_provider
    if _llm_provider is None:
        _llm_provider = LLMProvider()
    return _llm_provider
