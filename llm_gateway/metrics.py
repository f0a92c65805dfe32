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
Token usage and request metrics.

The router only talks to the UsageCollector interface, so tests can pass
a recording fake. The Prometheus collector keeps its own registry, which
lets several instances coexist in one process.
"""
from abc import ABC, abstractmethod
from typing import Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest


class UsageCollector(ABC):
    """Receives token counts after each successful dispatch."""

    @abstractmethod
    def add_prompt_tokens(self, model: str, provider: str, count: int) -> None:
        ...

    @abstractmethod
    def add_completion_tokens(self, model: str, provider: str, count: int) -> None:
        ...

    @abstractmethod
    def add_total_tokens(self, model: str, provider: str, count: int) -> None:
        ...


class PrometheusUsageCollector(UsageCollector):
    """Usage counters labelled by model and provider, exported in Prometheus format."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.prompt_tokens = Counter(
            "llm_gateway_prompt_tokens_total",
            "Total number of prompt tokens used",
            ["model", "provider"],
            registry=self.registry,
        )
        self.completion_tokens = Counter(
            "llm_gateway_completion_tokens_total",
            "Total number of completion tokens used",
            ["model", "provider"],
            registry=self.registry,
        )
        self.total_tokens = Counter(
            "llm_gateway_total_tokens_total",
            "Total number of tokens used (prompt + completion)",
            ["model", "provider"],
            registry=self.registry,
        )
        self.http_requests = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            ["method", "path"],
            registry=self.registry,
        )

    def add_prompt_tokens(self, model: str, provider: str, count: int) -> None:
        self.prompt_tokens.labels(model=model, provider=provider).inc(count)

    def add_completion_tokens(self, model: str, provider: str, count: int) -> None:
        self.completion_tokens.labels(model=model, provider=provider).inc(count)

    def add_total_tokens(self, model: str, provider: str, count: int) -> None:
        self.total_tokens.labels(model=model, provider=provider).inc(count)

    def record_http_request(self, method: str, path: str) -> None:
        self.http_requests.labels(method=method, path=path).inc()

    def get_sample(self, name: str, model: str, provider: str) -> float:
        """Current value of a token counter, 0 if never incremented."""
        value = self.registry.get_sample_value(name, {"model": model, "provider": provider})
        return value or 0.0

    def export(self) -> bytes:
        """Render all metrics in the Prometheus text exposition format."""
        return generate_latest(self.registry)
