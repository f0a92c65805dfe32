"""
Pytest configuration and shared fixtures for LLM Gateway tests.
"""
import pytest
import time
from typing import List, Optional, Tuple

from llm_gateway.config import ModelConfig, ProviderConfig, Settings
from llm_gateway.errors import ProviderError
from llm_gateway.metrics import UsageCollector
from llm_gateway.models import ChatCompletionRequest, ChatCompletionResponse, Choice, Message, Usage
from llm_gateway.provider_service import ProviderAdapter
from llm_gateway.registry import ModelCatalog, ProviderRegistry
from llm_gateway.router_service import RouterService


def make_response(model: str, prompt: int = 10, completion: int = 12, total: Optional[int] = None) -> ChatCompletionResponse:
    """Build a chat completion response with the given token counts."""
    return ChatCompletionResponse(
        id="chatcmpl-123",
        object="chat.completion",
        created=int(time.time()),
        model=model,
        choices=[
            Choice(
                index=0,
                message=Message(role="assistant", content="Hello! How can I help you today?"),
                finish_reason="stop"
            )
        ],
        usage=Usage(
            prompt_tokens=prompt,
            completion_tokens=completion,
            total_tokens=prompt + completion if total is None else total
        )
    )


class FakeProvider(ProviderAdapter):
    """Provider that either always fails or always returns a fixed response."""

    def __init__(self, provider_id: str, response: Optional[ChatCompletionResponse] = None,
                 error: Optional[Exception] = None, call_log: Optional[List[Tuple[str, str]]] = None):
        super().__init__(provider_id)
        self.response = response
        self.error = error
        self.requests: List[ChatCompletionRequest] = []
        self.call_log = call_log if call_log is not None else []

    async def chat_completion(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        self.requests.append(request)
        self.call_log.append((self.provider_id, request.model))
        if self.error is not None:
            raise self.error
        if self.response is None:
            raise ProviderError(self.provider_id, "no response configured")
        return self.response


class RecordingUsageCollector(UsageCollector):
    """Usage collector that keeps every increment in a list."""

    def __init__(self):
        self.increments: List[Tuple[str, str, str, int]] = []

    def add_prompt_tokens(self, model: str, provider: str, count: int) -> None:
        self.increments.append(("prompt", model, provider, count))

    def add_completion_tokens(self, model: str, provider: str, count: int) -> None:
        self.increments.append(("completion", model, provider, count))

    def add_total_tokens(self, model: str, provider: str, count: int) -> None:
        self.increments.append(("total", model, provider, count))

    def totals(self, model: str, provider: str) -> Tuple[int, int, int]:
        sums = {"prompt": 0, "completion": 0, "total": 0}
        for kind, m, p, count in self.increments:
            if (m, p) == (model, provider):
                sums[kind] += count
        return sums["prompt"], sums["completion"], sums["total"]


@pytest.fixture
def call_log():
    """Shared, ordered log of (provider_id, upstream model) calls."""
    return []


@pytest.fixture
def usage_collector():
    """Recording usage collector."""
    return RecordingUsageCollector()


@pytest.fixture
def test_settings():
    """Settings isolated from the environment."""
    return Settings(
        _env_file=None,
        config_path="does-not-exist.yml",
        request_timeout=30,
        openai_api_key=None,
        cerebras_api_key=None
    )


@pytest.fixture
def sample_chat_request():
    """Sample chat completion request."""
    return ChatCompletionRequest(
        model="A",
        messages=[
            Message(role="user", content="Hello, how are you?")
        ],
        max_tokens=100,
        temperature=0.7
    )


@pytest.fixture
def fallback_catalog():
    """Model A on p1 falling back to model B on p2."""
    return ModelCatalog([
        ModelConfig(id="A", name="model-a", provider="p1", fallback=["B"]),
        ModelConfig(id="B", name="B", provider="p2"),
    ])


@pytest.fixture
def failing_then_working_router(fallback_catalog, usage_collector, call_log):
    """Router whose p1 always fails and whose p2 always answers as model B."""
    registry = ProviderRegistry({
        "p1": FakeProvider("p1", error=ProviderError("p1", "boom", status_code=500), call_log=call_log),
        "p2": FakeProvider("p2", response=make_response("B", prompt=2, completion=3, total=5), call_log=call_log),
    })
    return RouterService(fallback_catalog, registry, usage_collector)


@pytest.fixture
def sample_provider_configs():
    """Provider configurations covering every kind."""
    return [
        ProviderConfig(id="dummy-1", kind="dummy"),
        ProviderConfig(id="openai-main", kind="openai", api_key="test-openai-key", timeout=30),
        ProviderConfig(id="local", kind="ollama"),
        ProviderConfig(id="custom", kind="openai_compatible", base_url="http://llm.internal:8000"),
    ]


@pytest.fixture
def mock_successful_payload():
    """Upstream chat completion body."""
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1234567890,
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "Test response"},
                "finish_reason": "stop"
            }
        ],
        "usage": {
            "prompt_tokens": 10,
            "completion_tokens": 5,
            "total_tokens": 15
        }
    }
