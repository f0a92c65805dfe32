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
Router service that resolves models to providers and falls back on failure.
"""
import time
import logging
from typing import Dict, Any, List

from .errors import ModelNotFoundError, ProviderError, ProvidersExhaustedError
from .metrics import UsageCollector
from .models import ChatCompletionRequest, ChatCompletionResponse
from .registry import ModelCatalog, ProviderRegistry

logger = logging.getLogger(__name__)


class RouterService:
    """Dispatches chat completions through a model's fallback chain."""

    def __init__(self, catalog: ModelCatalog, registry: ProviderRegistry, usage_collector: UsageCollector):
        """
        Initialize the router.

        Args:
            catalog: Model catalog built from the gateway config
            registry: Provider registry built from the gateway config
            usage_collector: Receives token counts of successful completions
        """
        self.catalog = catalog
        self.registry = registry
        self.usage_collector = usage_collector

        # Operator stats, independent of the usage counters
        self.request_count = 0
        self.failover_count = 0
        self.provider_stats: Dict[str, Dict[str, int]] = {
            provider_id: {"requests": 0, "failures": 0} for provider_id in registry.ids()
        }

    async def chat_completion(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """
        Execute a chat completion with model fallback.

        Tries the requested model first and then each configured fallback,
        once each and strictly in order. The first successful response is
        returned as is.

        Raises:
            ModelNotFoundError: If the requested model is not configured
            ProvidersExhaustedError: If every candidate failed or was skipped
        """
        if self.catalog.lookup(request.model) is None:
            logger.warning(f"Requested model '{request.model}' not found in config")
            raise ModelNotFoundError(request.model)

        self.request_count += 1
        candidates = self.catalog.candidates(request.model)
        logger.info(f"Candidates for model '{request.model}': {candidates}")

        for attempt_number, model_id in enumerate(candidates, start=1):
            if attempt_number > 1:
                self.failover_count += 1

            model_config = self.catalog.lookup(model_id)
            if model_config is None:
                logger.warning(f"Fallback model '{model_id}' not found in config, skipping")
                continue

            provider_id = model_config.provider
            provider = self.registry.lookup(provider_id)
            if provider is None:
                logger.warning(f"Provider '{provider_id}' not found for model '{model_id}', skipping")
                continue

            attempt_request = request.for_model(model_config.name)
            stats = self.provider_stats.setdefault(provider_id, {"requests": 0, "failures": 0})
            stats["requests"] += 1

            logger.info(
                f"Sending request to provider '{provider_id}' with model '{model_config.name}' "
                f"(attempt {attempt_number}/{len(candidates)})"
            )
            start_time = time.time()
            try:
                response = await provider.chat_completion(attempt_request)
            except ProviderError as e:
                stats["failures"] += 1
                logger.error(f"❌ Provider '{provider_id}' failed for model '{model_config.name}': {str(e)}")
                continue
            except Exception as e:
                stats["failures"] += 1
                logger.error(
                    f"❌ Provider '{provider_id}' failed with unexpected error for model "
                    f"'{model_config.name}': {type(e).__name__}: {str(e)}"
                )
                continue

            duration = time.time() - start_time
            logger.info(f"✅ Success with provider '{provider_id}' using model '{model_config.name}' in {duration:.2f}s")

            self._record_usage(response, provider_id)
            return response

        logger.error(f"🚨 All {len(candidates)} candidates failed for model '{request.model}'")
        raise ProvidersExhaustedError(attempts=len(candidates))

    def _record_usage(self, response: ChatCompletionResponse, provider_id: str) -> None:
        """Add the response's token counts to the usage counters, skipping zero counts."""
        usage = response.usage
        if usage is None:
            return

        if usage.prompt_tokens > 0:
            self.usage_collector.add_prompt_tokens(response.model, provider_id, usage.prompt_tokens)
        if usage.completion_tokens > 0:
            self.usage_collector.add_completion_tokens(response.model, provider_id, usage.completion_tokens)
        if usage.total_tokens > 0:
            self.usage_collector.add_total_tokens(response.model, provider_id, usage.total_tokens)

    def list_models(self) -> List[Dict[str, Any]]:
        """List catalog models in OpenAI format."""
        created = int(time.time())
        return [
            {"id": model.id, "object": "model", "created": created, "owned_by": model.provider}
            for model in self.catalog
        ]

    def get_stats(self) -> Dict[str, Any]:
        """Get router statistics."""
        return {
            "total_requests": self.request_count,
            "total_failovers": self.failover_count,
            "failover_rate": round(self.failover_count / max(self.request_count, 1) * 100, 2),
            "configured_models": len(self.catalog),
            "configured_providers": len(self.registry),
            "provider_stats": {name: dict(stats) for name, stats in self.provider_stats.items()},
        }

    def get_health(self) -> Dict[str, Any]:
        """Get health status of all configured providers."""
        health_status = {
            "overall_status": "healthy",
            "providers": {}
        }

        unhealthy_count = 0

        for provider_id in self.registry.ids():
            stats = self.provider_stats.get(provider_id, {"requests": 0, "failures": 0})
            total_requests = stats["requests"]
            failures = stats["failures"]

            if total_requests == 0:
                status = "unknown"
                failure_rate = 0.0
            else:
                failure_rate = failures / total_requests
                if failure_rate < 0.1:  # Less than 10% failure rate
                    status = "healthy"
                elif failure_rate < 0.5:  # Less than 50% failure rate
                    status = "degraded"
                else:
                    status = "unhealthy"
                    unhealthy_count += 1

            health_info = {
                "status": status,
                "requests": total_requests,
                "failures": failures,
                "failure_rate": round(failure_rate * 100, 2),
            }
            health_info.update(self.registry.lookup(provider_id).get_info())
            health_status["providers"][provider_id] = health_info

        if len(self.registry) and unhealthy_count == len(self.registry):
            health_status["overall_status"] = "unhealthy"
        elif unhealthy_count > 0:
            health_status["overall_status"] = "degraded"

        return health_status

    def __repr__(self) -> str:
        return f"RouterService(models={len(self.catalog)}, providers={len(self.registry)}, requests={self.request_count})"
