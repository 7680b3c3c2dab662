"""LiteLLM client wrapper for the generation service.

The pipeline depends only on the GenerationService protocol: submit one
prompt, receive text plus an optional token count. LiteLLMService is the
production implementation. Transport retries default to zero because retry
policy belongs to whoever re-invokes the pipeline.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Protocol

import litellm

from chunksmith.errors import GenerationTimeout

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def provider_of(model: str) -> str:
    """Return the provider prefix of a 'provider/model' string (default openai)."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = provider_of(model)
    env_var = _PROVIDER_ENV.get(provider, f"{provider.upper()}_API_KEY")

    if env_var is None:
        return  # No key required (e.g. ollama)

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


@dataclass
class Completion:
    text: str
    tokens_used: int | None = None


class GenerationService(Protocol):
    def complete(self, prompt: str, *, timeout: float | None = None) -> Completion:
        ...


class LiteLLMService:
    """GenerationService backed by litellm.completion().

    Args:
        model:       LiteLLM model string (provider/model format).
        max_tokens:  Maximum output tokens per call.
        temperature: Sampling temperature.
        num_retries: Transport-level retries inside litellm (0 = none).
        system_prompt: Optional system message sent before every prompt.
    """

    def __init__(
        self,
        model: str,
        max_tokens: int = 16_000,
        temperature: float = 0.0,
        num_retries: int = 0,
        system_prompt: str | None = None,
    ) -> None:
        self.model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._num_retries = num_retries
        self._system_prompt = system_prompt

    def complete(self, prompt: str, *, timeout: float | None = None) -> Completion:
        """Submit *prompt* and return the reply text and token usage.

        Raises:
            GenerationTimeout: If *timeout* seconds elapse first.
            litellm.exceptions.APIError: On transport, quota or auth failure.
        """
        messages: list[dict] = []
        if self._system_prompt:
            messages.append({"role": "system", "content": self._system_prompt})
        messages.append({"role": "user", "content": prompt})

        logger.debug("Calling %s (%d prompt chars, timeout=%s)", self.model, len(prompt), timeout)
        try:
            response = litellm.completion(
                model=self.model,
                messages=messages,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                num_retries=self._num_retries,
                timeout=timeout,
            )
        except litellm.exceptions.Timeout as exc:
            raise GenerationTimeout(f"{self.model} timed out after {timeout}s") from exc

        text = response.choices[0].message.content or ""
        return Completion(text=text, tokens_used=_total_tokens(response))


def _total_tokens(response: object) -> int | None:
    usage = getattr(response, "usage", None)
    if usage is None:
        return None
    total = getattr(usage, "total_tokens", None)
    return total if isinstance(total, int) else None


def count_tokens(model: str, text: str) -> int:
    """Count tokens in *text* for *model* using LiteLLM's provider-aware counter.

    Falls back to character-based approximation (4 chars ≈ 1 token) if the model
    is not supported by litellm.token_counter().
    """
    try:
        return litellm.token_counter(model=model, text=text)
    except Exception:
        return max(1, len(text) // 4)
