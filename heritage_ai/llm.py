"""
Text generation providers for the Heritage AI gateway.
Provides a unified interface for OpenAI, Anthropic, Google Gemini, and Ollama.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import httpx

from heritage_ai.config import Config, ProviderSettings, SUPPORTED_PROVIDERS, normalize_provider_name

logger = logging.getLogger(__name__)

MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0


class ProviderError(Exception):
    """A generation call failed for a reason we could not classify."""

    kind = "unknown"

    def __init__(self, message: str = "Text generation failed"):
        self.message = message
        super().__init__(message)


class ProviderUnavailable(ProviderError):
    """The vendor could not be reached or is not serving requests."""
    kind = "unavailable"


class ProviderQuotaExceeded(ProviderError):
    """The account's usage quota is exhausted."""
    kind = "quota_exceeded"


class ProviderRateLimited(ProviderError):
    """Too many requests in a short period."""
    kind = "rate_limited"


class ProviderContextTooLong(ProviderError):
    """The prompt does not fit in the model's context window."""
    kind = "context_too_long"


_QUOTA_MARKERS = ("insufficient_quota", "quota")
_RATE_LIMIT_MARKERS = ("rate_limit", "rate limit", "resource_exhausted", "too many requests")
_CONTEXT_MARKERS = (
    "context_length_exceeded",
    "maximum context length",
    "prompt is too long",
    "too many tokens",
    "input token count",
)


def _error_text(exc: Exception) -> str:
    parts = [str(exc)]
    for attr in ("code", "status", "type"):
        value = getattr(exc, attr, None)
        if isinstance(value, str):
            parts.append(value)
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict):
            parts.extend(str(v) for v in error.values() if isinstance(v, str))
    return " ".join(parts).lower()


def _status_code(exc: Exception) -> Optional[int]:
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    # google-genai APIError carries the HTTP status in ``code``
    code = getattr(exc, "code", None)
    if isinstance(code, int):
        return code
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status
    return None


def translate_error(exc: Exception) -> ProviderError:
    """
    Map a vendor SDK or transport exception onto the provider taxonomy.

    The vendors disagree on how errors are shaped, so this looks at the
    HTTP status, error codes, and message text rather than exception types.
    """
    if isinstance(exc, ProviderError):
        return exc

    text = _error_text(exc)
    status = _status_code(exc)
    detail = str(exc) or exc.__class__.__name__

    if any(marker in text for marker in _CONTEXT_MARKERS):
        return ProviderContextTooLong(detail)

    if "insufficient_quota" in text:
        return ProviderQuotaExceeded(detail)

    if status == 429 or any(marker in text for marker in _RATE_LIMIT_MARKERS):
        if any(marker in text for marker in _QUOTA_MARKERS):
            return ProviderQuotaExceeded(detail)
        return ProviderRateLimited(detail)

    if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError)):
        return ProviderUnavailable(detail)

    name = exc.__class__.__name__
    if "Connection" in name or "Timeout" in name:
        return ProviderUnavailable(detail)

    if status in (502, 503, 504, 529):
        return ProviderUnavailable(detail)

    return ProviderError(detail)


@dataclass
class TokenUsage:
    """Token usage information from a generation call."""
    prompt: int = 0
    completion: int = 0
    total: int = 0


@dataclass
class GenerationResult:
    """Generated text plus token usage."""
    content: str
    usage: TokenUsage = field(default_factory=TokenUsage)


class TextGenerationProvider(ABC):
    """Abstract base class for text generation providers."""

    name: str = ""

    def __init__(self, settings: ProviderSettings):
        self.settings = settings
        self.model = settings.model
        self.default_temperature = settings.temperature
        self.default_max_tokens = settings.max_tokens

    def describe(self) -> dict:
        return {"provider": self.name, "model": self.model}

    def _resolve(
        self,
        temperature: Optional[float],
        max_tokens: Optional[int],
    ) -> tuple[float, int]:
        if temperature is None:
            temperature = self.default_temperature
        if max_tokens is None:
            max_tokens = self.default_max_tokens
        if not MIN_TEMPERATURE <= temperature <= MAX_TEMPERATURE:
            raise ValueError(
                f"temperature must be between {MIN_TEMPERATURE} and {MAX_TEMPERATURE}"
            )
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        return temperature, max_tokens

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        history: Optional[list[dict[str, str]]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> GenerationResult:
        """
        Generate a reply.

        Args:
            system_prompt: Instructions describing the assistant's role.
            user_prompt: The request text.
            history: Optional prior turns as dicts with 'role' and 'content'.
            temperature: Override default temperature (0-2).
            max_tokens: Override default max tokens (> 0).

        Returns:
            GenerationResult with the text and token usage.

        Raises:
            ValueError: For out-of-range sampling parameters.
            ProviderError: When the vendor call fails.
        """
        temperature, max_tokens = self._resolve(temperature, max_tokens)
        try:
            return await self._complete(
                system_prompt,
                user_prompt,
                list(history or []),
                temperature,
                max_tokens,
            )
        except Exception as exc:
            error = translate_error(exc)
            logger.warning("%s generation failed (%s): %s", self.name, error.kind, exc)
            raise error from exc

    @abstractmethod
    async def _complete(
        self,
        system_prompt: str,
        user_prompt: str,
        history: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> GenerationResult:
        """Perform the vendor call with resolved parameters."""
        pass


class OpenAIProvider(TextGenerationProvider):
    """OpenAI chat completions."""

    name = "openai"

    def __init__(self, settings: ProviderSettings):
        super().__init__(settings)
        from openai import AsyncOpenAI

        self.client = AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
        )

    async def _complete(
        self,
        system_prompt: str,
        user_prompt: str,
        history: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> GenerationResult:
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": m["role"], "content": m["content"]} for m in history)
        messages.append({"role": "user", "content": user_prompt})

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        content = response.choices[0].message.content or ""
        usage = TokenUsage()
        if response.usage:
            usage = TokenUsage(
                prompt=response.usage.prompt_tokens or 0,
                completion=response.usage.completion_tokens or 0,
                total=response.usage.total_tokens or 0,
            )
        return GenerationResult(content=content, usage=usage)


class AnthropicProvider(TextGenerationProvider):
    """Anthropic Claude messages API."""

    name = "anthropic"

    def __init__(self, settings: ProviderSettings):
        super().__init__(settings)
        from anthropic import AsyncAnthropic

        self.client = AsyncAnthropic(api_key=settings.api_key)

    async def _complete(
        self,
        system_prompt: str,
        user_prompt: str,
        history: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> GenerationResult:
        messages = [{"role": m["role"], "content": m["content"]} for m in history]
        messages.append({"role": "user", "content": user_prompt})

        response = await self.client.messages.create(
            model=self.model,
            system=system_prompt,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        content = "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )
        usage = TokenUsage()
        if getattr(response, "usage", None):
            prompt = getattr(response.usage, "input_tokens", 0) or 0
            completion = getattr(response.usage, "output_tokens", 0) or 0
            usage = TokenUsage(prompt=prompt, completion=completion, total=prompt + completion)
        return GenerationResult(content=content, usage=usage)


class GoogleProvider(TextGenerationProvider):
    """Google Gemini via the google-genai SDK."""

    name = "google"

    def __init__(self, settings: ProviderSettings):
        super().__init__(settings)
        from google import genai
        from google.genai import types

        self.client = genai.Client(api_key=settings.api_key)
        self.types = types

    async def _complete(
        self,
        system_prompt: str,
        user_prompt: str,
        history: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> GenerationResult:
        # Gemini calls the assistant role "model"
        contents = []
        for msg in history:
            role = "user" if msg["role"] == "user" else "model"
            contents.append(self.types.Content(
                role=role,
                parts=[self.types.Part(text=msg["content"])],
            ))
        contents.append(self.types.Content(
            role="user",
            parts=[self.types.Part(text=user_prompt)],
        ))

        config = self.types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=temperature,
            max_output_tokens=max_tokens,
        )

        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=config,
        )
        usage = TokenUsage()
        um = getattr(response, "usage_metadata", None)
        if um:
            usage = TokenUsage(
                prompt=getattr(um, "prompt_token_count", 0) or 0,
                completion=getattr(um, "candidates_token_count", 0) or 0,
                total=getattr(um, "total_token_count", 0) or 0,
            )
        return GenerationResult(content=response.text or "", usage=usage)


class OllamaProvider(TextGenerationProvider):
    """Ollama local models over HTTP."""

    name = "ollama"

    def __init__(self, settings: ProviderSettings):
        super().__init__(settings)
        self.base_url = (settings.base_url or "http://localhost:11434").rstrip("/")
        self.client = httpx.AsyncClient(timeout=120.0)

    async def _complete(
        self,
        system_prompt: str,
        user_prompt: str,
        history: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> GenerationResult:
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": m["role"], "content": m["content"]} for m in history)
        messages.append({"role": "user", "content": user_prompt})

        response = await self.client.post(
            f"{self.base_url}/api/chat",
            json={
                "model": self.model,
                "messages": messages,
                "stream": False,
                "options": {
                    "temperature": temperature,
                    "num_predict": max_tokens,
                },
            },
        )
        response.raise_for_status()
        data = response.json()
        prompt = data.get("prompt_eval_count", 0) or 0
        completion = data.get("eval_count", 0) or 0
        return GenerationResult(
            content=data.get("message", {}).get("content", ""),
            usage=TokenUsage(prompt=prompt, completion=completion, total=prompt + completion),
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()


# Provider registry
_providers: dict[str, type[TextGenerationProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "google": GoogleProvider,
    "ollama": OllamaProvider,
}


def provider_config_error(settings: ProviderSettings) -> Optional[str]:
    """Return why ``settings`` cannot produce a provider, or None."""
    name = normalize_provider_name(settings.provider)
    if name not in SUPPORTED_PROVIDERS or name not in _providers:
        return f"Unsupported AI provider: {settings.provider or 'none'}"
    if name != "ollama" and not settings.api_key:
        return f"No API key configured for {name}"
    return None


def create_provider(settings: ProviderSettings) -> Optional[TextGenerationProvider]:
    """
    Build the configured provider once at startup.

    Returns None when the provider is unsupported, lacks credentials, or
    its client fails to initialise. The caller keeps that None for the
    life of the process and reports the service as unavailable.
    """
    error = provider_config_error(settings)
    if error:
        logger.warning("AI service disabled: %s", error)
        return None

    name = normalize_provider_name(settings.provider)
    try:
        provider = _providers[name](settings)
    except Exception as e:
        logger.error("Failed to initialize AI provider %s: %s", name, e)
        return None

    logger.info(f"Initialized AI provider: {name} ({settings.model})")
    return provider


def get_configured_provider() -> Optional[TextGenerationProvider]:
    """Build the provider named by AI_PROVIDER, or None in degraded mode."""
    try:
        settings = Config.get_provider_settings()
    except ValueError as e:
        logger.warning("AI service disabled: %s", e)
        return None
    return create_provider(settings)
