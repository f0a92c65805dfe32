# LLM Gateway - OpenAI API compatible gateway with model fallback
# Copyright (C) 2025
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Provider adapters that forward chat completions to upstream backends.

Supports any OpenAI-compatible HTTP API (OpenAI, Cerebras, Ollama, custom)
and a dummy provider that answers locally without network access.
"""
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

import httpx
from pydantic import ValidationError

from .errors import ConfigurationError, ProviderError
from .models import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    Choice,
    Message,
    Usage
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URLS: Dict[str, str] = {
    "openai": "https://api.openai.com",
    "cerebras": "https://api.cerebras.ai",
    "ollama": "http://localhost:11434",
}

KINDS_REQUIRING_API_KEY = ("openai", "cerebras")


class ProviderAdapter(ABC):
    """A single upstream chat completion endpoint."""

    def __init__(self, provider_id: str):
        self.provider_id = provider_id

    @abstractmethod
    async def chat_completion(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """
        Run one chat completion against the upstream.

        Raises:
            ProviderError: On any upstream failure. Adapters never retry.
        """

    def get_info(self) -> Dict[str, Any]:
        """Get provider information."""
        return {"provider_id": self.provider_id}


class OpenAICompatibleProvider(ProviderAdapter):
    """Provider for OpenAI-compatible HTTP APIs."""

    def __init__(
        self,
        provider_id: str,
        kind: str,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 60
    ):
        """
        Initialize the OpenAI-compatible provider.

        Args:
            provider_id: Identifier of the provider in the gateway config
            kind: Provider kind (openai_compatible, openai, cerebras, ollama)
            base_url: Base URL of the API, /v1/chat/completions is appended
            api_key: API key (not required for local servers)
            timeout: Request timeout in seconds

        Raises:
            ConfigurationError: If a required credential or URL is missing
        """
        super().__init__(provider_id)
        self.kind = kind
        self.api_key = api_key
        self.timeout = timeout

        base_url = base_url or DEFAULT_BASE_URLS.get(kind)
        if not base_url:
            raise ConfigurationError(f"Provider '{provider_id}' ({kind}) requires an api_url")
        self.base_url = base_url.rstrip('/')  # Remove trailing slash

        if kind in KINDS_REQUIRING_API_KEY and not api_key:
            raise ConfigurationError(f"Provider '{provider_id}': {kind} backend requires an API key")

    def _get_headers(self) -> Dict[str, str]:
        """Get headers for API requests."""
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"LLM-Gateway/1.0.0 ({self.kind})"
        }

        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        return headers

    def _get_endpoint_url(self, endpoint: str) -> str:
        """Get the full URL for an endpoint."""
        endpoint = endpoint.lstrip('/')
        return f"{self.base_url}/{endpoint}"

    async def chat_completion(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """Forward chat completion request to the backend API."""
        payload = request.model_dump(exclude_none=True)

        if self.kind == "ollama":
            # Ollama rejects some OpenAI-only parameters
            payload.pop("logit_bias", None)
            payload.pop("user", None)

        url = self._get_endpoint_url("v1/chat/completions")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    url,
                    json=payload,
                    headers=self._get_headers()
                )
            except httpx.TimeoutException as e:
                raise ProviderError(self.provider_id, f"Request to {url} timed out") from e
            except httpx.RequestError as e:
                raise ProviderError(self.provider_id, f"Connection error to {url}: {str(e)}") from e

        if response.status_code != 200:
            raise ProviderError(
                self.provider_id,
                f"API returned non-200 status: {response.status_code}, body: {response.text}",
                status_code=response.status_code,
                body=response.text
            )

        try:
            return ChatCompletionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ProviderError(
                self.provider_id,
                f"Failed to decode response body: {str(e)}",
                status_code=response.status_code,
                body=response.text
            ) from e

    def get_info(self) -> Dict[str, Any]:
        """Get provider information."""
        return {
            "provider_id": self.provider_id,
            "kind": self.kind,
            "base_url": self.base_url,
            "has_api_key": bool(self.api_key),
            "timeout": self.timeout
        }


class DummyProvider(ProviderAdapter):
    """Provider that fabricates a fixed answer, for development and testing."""

    CONTENT = "Hello! This is a dummy response."

    def __init__(self, provider_id: str, latency: float = 0.1):
        super().__init__(provider_id)
        self.latency = latency

    async def chat_completion(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        if self.latency > 0:
            await asyncio.sleep(self.latency)

        prompt_tokens = len(request.messages) * 5
        completion_tokens = 10

        return ChatCompletionResponse(
            id=f"dummy-cmpl-{time.time_ns()}",
            object="chat.completion",
            created=int(time.time()),
            model=request.model,
            choices=[
                Choice(
                    index=0,
                    message=Message(role="assistant", content=self.CONTENT),
                    finish_reason="stop"
                )
            ],
            usage=Usage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens
            )
        )

    def get_info(self) -> Dict[str, Any]:
        return {"provider_id": self.provider_id, "kind": "dummy", "latency": self.latency}
