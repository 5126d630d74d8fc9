import json
from abc import ABC, abstractmethod
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import httpx

from learnpath.core.errors import ProviderFailure
from learnpath.core.logging import DOMAIN_GENERATION, get_domain_logger
from learnpath.core.resilience import get_breaker, retry_with_backoff
from learnpath.core.settings import settings

logger = get_domain_logger(__name__, DOMAIN_GENERATION)

_TRANSPORT_ERRORS = (httpx.HTTPError, TimeoutError, ConnectionError)


def _estimate_tokens(text: str) -> int:
    # Lightweight deterministic estimate used for observability without provider-specific token APIs.
    return max(1, len((text or "").strip()) // 4)


class BaseLLMProvider(ABC):
    """Generative text provider consumed by every journey agent.

    ``complete`` returns the generated text or raises ProviderFailure; it never
    returns an empty string.
    """

    provider_name: str
    model_name: str = "none"

    @abstractmethod
    async def complete(
        self,
        system_instruction: str,
        user_prompt: str,
        temperature: float,
        max_output_tokens: int,
    ) -> str:
        raise NotImplementedError

    def _log_usage(self, system_instruction: str, user_prompt: str, text: str) -> None:
        prompt_tokens = _estimate_tokens(system_instruction) + _estimate_tokens(user_prompt)
        completion_tokens = _estimate_tokens(text)
        logger.info(
            json.dumps(
                {
                    "type": "llm_usage",
                    "provider": self.provider_name,
                    "model": self.model_name,
                    "prompt_tokens_estimate": prompt_tokens,
                    "completion_tokens_estimate": completion_tokens,
                    "total_tokens_estimate": prompt_tokens + completion_tokens,
                }
            )
        )

    async def _guarded(self, call) -> str:
        breaker = get_breaker(f"llm:{self.provider_name}:{self.model_name}")
        if not breaker.can_execute():
            raise ProviderFailure("circuit open", provider=self.provider_name, reason="circuit_open")
        try:
            text = await retry_with_backoff(call)
        except _TRANSPORT_ERRORS as exc:
            breaker.record_failure()
            resp = getattr(exc, "response", None)
            status = getattr(resp, "status_code", None)
            raise ProviderFailure(
                f"{self.provider_name} request failed: {exc}",
                provider=self.provider_name,
                reason=f"http_{status}" if status else "transport_error",
            ) from exc
        except Exception as exc:
            # A 200 response whose body does not have the expected shape.
            breaker.record_failure()
            raise ProviderFailure(
                f"{self.provider_name} returned a malformed response: {type(exc).__name__}",
                provider=self.provider_name,
                reason="malformed_response",
            ) from exc
        breaker.record_success()
        if not text:
            raise ProviderFailure("empty completion", provider=self.provider_name, reason="empty_completion")
        return text


class GeminiLLMProvider(BaseLLMProvider):
    provider_name = "gemini"

    def __init__(self, model_name: str | None = None, api_key: str | None = None, timeout: float | None = None):
        self.model_name = model_name or settings.llm_model
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.timeout = timeout or settings.llm_timeout_seconds

    @staticmethod
    def _sanitize_url(raw_url: str) -> str:
        parsed = urlparse(raw_url)
        if not parsed.query:
            return raw_url
        filtered = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k.lower() != "key"]
        return urlunparse(parsed._replace(query=urlencode(filtered)))

    def _api_url(self) -> str:
        api_url = settings.gemini_api_url.strip()
        if not api_url:
            api_url = (
                f"https://generativelanguage.googleapis.com/v1beta/models/"
                f"{self.model_name}:generateContent"
            )
        return self._sanitize_url(api_url)

    @staticmethod
    def _extract_text(data: dict) -> str:
        candidates = data.get("candidates", [])
        if not candidates:
            return ""
        parts = candidates[0].get("content", {}).get("parts", [])
        return "\n".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()

    async def complete(
        self,
        system_instruction: str,
        user_prompt: str,
        temperature: float,
        max_output_tokens: int,
    ) -> str:
        if not self.api_key:
            raise ProviderFailure("Gemini API key is not configured", provider=self.provider_name, reason="missing_api_key")

        payload = {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "generationConfig": {"temperature": temperature, "maxOutputTokens": max_output_tokens},
        }
        api_url = self._api_url()

        async def _call() -> str:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    api_url,
                    json=payload,
                    headers={"x-goog-api-key": self.api_key},
                )
                response.raise_for_status()
                return self._extract_text(response.json())

        text = await self._guarded(_call)
        self._log_usage(system_instruction, user_prompt, text)
        return text


class OllamaLLMProvider(BaseLLMProvider):
    provider_name = "ollama"

    def __init__(self, model_name: str | None = None, base_url: str | None = None, timeout: float | None = None):
        self.model_name = model_name or settings.ollama_model
        self.base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self.timeout = timeout or settings.llm_timeout_seconds

    async def complete(
        self,
        system_instruction: str,
        user_prompt: str,
        temperature: float,
        max_output_tokens: int,
    ) -> str:
        payload = {
            "model": self.model_name,
            "system": system_instruction,
            "prompt": user_prompt,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_output_tokens},
        }

        async def _call() -> str:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}/api/generate", json=payload)
                response.raise_for_status()
                return (response.json().get("response") or "").strip()

        text = await self._guarded(_call)
        self._log_usage(system_instruction, user_prompt, text)
        return text


class NullLLMProvider(BaseLLMProvider):
    provider_name = "none"

    async def complete(
        self,
        system_instruction: str,
        user_prompt: str,
        temperature: float,
        max_output_tokens: int,
    ) -> str:
        raise ProviderFailure("no generative provider configured", provider=self.provider_name, reason="unsupported_provider")


def get_llm_provider(name: str | None = None) -> BaseLLMProvider:
    provider = (name or settings.llm_provider or "").lower()
    if provider == "gemini":
        return GeminiLLMProvider()
    if provider == "ollama":
        return OllamaLLMProvider()
    return NullLLMProvider()
