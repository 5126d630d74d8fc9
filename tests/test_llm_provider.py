from __future__ import annotations

import json
import logging
import uuid

import httpx
import pytest

from learnpath.agents.answer_evaluator import AnswerEvaluator
from learnpath.core import llm_provider as llm_module
from learnpath.core.errors import ProviderFailure
from learnpath.core.llm_provider import GeminiLLMProvider, NullLLMProvider, OllamaLLMProvider, get_llm_provider
from learnpath.core.logging import SecretRedactionFilter, redact_secrets
from learnpath.core.resilience import CircuitBreaker, CircuitState, retry_with_backoff
from learnpath.core.settings import settings
from learnpath.journey.models import Step


def _mock_transport(monkeypatch, handler):
    real_client = httpx.AsyncClient
    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(llm_module.httpx, "AsyncClient", lambda **kwargs: real_client(transport=transport, **kwargs))
    monkeypatch.setattr(settings, "llm_retry_base_delay_seconds", 0)


def _model() -> str:
    # Unique per test so circuit breakers never leak between tests.
    return f"test-model-{uuid.uuid4().hex[:8]}"


@pytest.mark.asyncio
async def test_gemini_sends_system_instruction_and_generation_config(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": '{"ok": true}'}]}}]})

    _mock_transport(monkeypatch, handler)
    provider = GeminiLLMProvider(model_name=_model(), api_key="secret-key")

    text = await provider.complete("system rules", "user prompt", 0.6, 2000)

    assert text == '{"ok": true}'
    assert seen["key"] == "secret-key"
    assert "key=" not in seen["url"]
    assert seen["body"]["systemInstruction"]["parts"][0]["text"] == "system rules"
    assert seen["body"]["generationConfig"] == {"temperature": 0.6, "maxOutputTokens": 2000}


@pytest.mark.asyncio
async def test_gemini_without_key_fails_fast():
    with pytest.raises(ProviderFailure) as excinfo:
        await GeminiLLMProvider(model_name=_model(), api_key="").complete("s", "u", 0.5, 10)
    assert excinfo.value.reason == "missing_api_key"


@pytest.mark.asyncio
async def test_http_error_becomes_provider_failure(monkeypatch):
    _mock_transport(monkeypatch, lambda request: httpx.Response(500, json={"error": "boom"}))

    with pytest.raises(ProviderFailure) as excinfo:
        await GeminiLLMProvider(model_name=_model(), api_key="k").complete("s", "u", 0.5, 10)
    assert excinfo.value.reason == "http_500"
    assert excinfo.value.provider == "gemini"


@pytest.mark.asyncio
async def test_empty_candidates_are_a_failure(monkeypatch):
    _mock_transport(monkeypatch, lambda request: httpx.Response(200, json={"candidates": []}))

    with pytest.raises(ProviderFailure) as excinfo:
        await GeminiLLMProvider(model_name=_model(), api_key="k").complete("s", "u", 0.5, 10)
    assert excinfo.value.reason == "empty_completion"


@pytest.mark.asyncio
async def test_transport_errors_are_retried_then_fail(monkeypatch):
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError("refused", request=request)

    _mock_transport(monkeypatch, handler)
    monkeypatch.setattr(settings, "llm_max_retries", 3)

    with pytest.raises(ProviderFailure) as excinfo:
        await OllamaLLMProvider(model_name=_model(), base_url="http://ollama.test").complete("s", "u", 0.5, 10)
    assert excinfo.value.reason == "transport_error"
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_ollama_payload(monkeypatch):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "  true  "})

    _mock_transport(monkeypatch, handler)

    text = await OllamaLLMProvider(model_name="qwen-test", base_url="http://ollama.test/").complete("sys", "ask", 0.1, 10)

    assert text == "true"
    assert seen["url"] == "http://ollama.test/api/generate"
    assert seen["body"]["system"] == "sys"
    assert seen["body"]["options"] == {"temperature": 0.1, "num_predict": 10}


@pytest.mark.asyncio
async def test_null_provider_always_fails():
    with pytest.raises(ProviderFailure) as excinfo:
        await NullLLMProvider().complete("s", "u", 0.5, 10)
    assert excinfo.value.reason == "unsupported_provider"


def test_provider_factory():
    assert isinstance(get_llm_provider("gemini"), GeminiLLMProvider)
    assert isinstance(get_llm_provider("OLLAMA"), OllamaLLMProvider)
    assert isinstance(get_llm_provider("something-else"), NullLLMProvider)


@pytest.mark.asyncio
async def test_retry_does_not_retry_non_transient_errors():
    calls = []

    async def _fail():
        calls.append(1)
        raise ValueError("bad")

    with pytest.raises(ValueError):
        await retry_with_backoff(_fail, max_retries=3, base_delay_seconds=0)
    assert len(calls) == 1


def test_circuit_breaker_opens_and_recovers(monkeypatch):
    breaker = CircuitBreaker(name="test", failure_threshold=2, recovery_timeout_seconds=10)
    now = [100.0]
    monkeypatch.setattr("learnpath.core.resilience.time.monotonic", lambda: now[0])

    breaker.record_failure()
    assert breaker.can_execute()
    breaker.record_failure()
    assert breaker.state == CircuitState.OPEN
    assert not breaker.can_execute()

    now[0] += 11
    assert breaker.can_execute()
    assert breaker.state == CircuitState.HALF_OPEN
    breaker.record_success()
    assert breaker.state == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_open_breaker_short_circuits(monkeypatch):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    _mock_transport(monkeypatch, handler)
    monkeypatch.setattr(settings, "breaker_failure_threshold", 2)
    provider = GeminiLLMProvider(model_name=_model(), api_key="k")

    for _ in range(2):
        with pytest.raises(ProviderFailure):
            await provider.complete("s", "u", 0.5, 10)
    with pytest.raises(ProviderFailure) as excinfo:
        await provider.complete("s", "u", 0.5, 10)

    assert excinfo.value.reason == "circuit_open"
    assert len(calls) == 2


def test_secrets_are_redacted_from_logs():
    assert redact_secrets("GET https://x.test/v1?key=abc123&alt=json") == "GET https://x.test/v1?key=[REDACTED]&alt=json"
    assert "sk-999" not in redact_secrets("api_key=sk-999 failed")
    assert "tok" not in redact_secrets("Authorization: Bearer tok")

    record = logging.LogRecord("t", logging.INFO, __file__, 1, "x-goog-api-key: %s", ("hunter2",), None)
    SecretRedactionFilter().filter(record)
    assert record.getMessage() == "x-goog-api-key: [REDACTED]"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"candidates": ["blocked"]},
        {"candidates": [{"content": "not an object"}]},
        ["not", "an", "object"],
    ],
)
async def test_malformed_gemini_body_is_a_provider_failure(monkeypatch, body):
    _mock_transport(monkeypatch, lambda request: httpx.Response(200, json=body))
    monkeypatch.setattr(settings, "breaker_failure_threshold", 1)
    provider = GeminiLLMProvider(model_name=_model(), api_key="k")

    with pytest.raises(ProviderFailure) as excinfo:
        await provider.complete("s", "u", 0.5, 10)
    assert excinfo.value.reason == "malformed_response"

    # The failure counts against the breaker.
    with pytest.raises(ProviderFailure) as excinfo:
        await provider.complete("s", "u", 0.5, 10)
    assert excinfo.value.reason == "circuit_open"


@pytest.mark.asyncio
async def test_non_json_ollama_body_is_a_provider_failure(monkeypatch):
    _mock_transport(monkeypatch, lambda request: httpx.Response(200, text="<html>proxy error</html>"))

    with pytest.raises(ProviderFailure) as excinfo:
        await OllamaLLMProvider(model_name=_model(), base_url="http://ollama.test").complete("s", "u", 0.5, 10)
    assert excinfo.value.reason == "malformed_response"


@pytest.mark.asyncio
async def test_agents_mask_malformed_provider_bodies(monkeypatch):
    _mock_transport(monkeypatch, lambda request: httpx.Response(200, json={"candidates": ["blocked"]}))
    evaluator = AnswerEvaluator(GeminiLLMProvider(model_name=_model(), api_key="k"))
    step = Step(step_number=1, title="Lava", content="Lava is molten rock.", question="What is lava?")

    assert await evaluator.check_relevance("hot rock", "What is lava?", "Volcanoes") is True
    result = await evaluator.evaluate("hot rock", step, "Volcanoes", "8-10")
    assert result.source == "default"
    assert result.score == 75
    assert result.is_correct is True
