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
Provider registry and model catalog.

Both are built once at startup from the gateway config and are read-only
afterwards, so concurrent requests share them without locking.
"""
import logging
from typing import Callable, Dict, Iterator, List, Optional

from .config import ModelConfig, ProviderConfig
from .errors import ConfigurationError
from .provider_service import DummyProvider, OpenAICompatibleProvider, ProviderAdapter

logger = logging.getLogger(__name__)


def _build_openai_compatible(config: ProviderConfig) -> ProviderAdapter:
    return OpenAICompatibleProvider(
        provider_id=config.id,
        kind=config.kind,
        base_url=config.base_url,
        api_key=config.api_key,
        timeout=config.timeout or 60
    )


def _build_dummy(config: ProviderConfig) -> ProviderAdapter:
    return DummyProvider(provider_id=config.id)


# Map provider kind -> adapter factory
PROVIDER_FACTORIES: Dict[str, Callable[[ProviderConfig], ProviderAdapter]] = {
    "dummy": _build_dummy,
    "openai_compatible": _build_openai_compatible,
    "openai": _build_openai_compatible,
    "cerebras": _build_openai_compatible,
    "ollama": _build_openai_compatible,
}


def create_provider(config: ProviderConfig) -> ProviderAdapter:
    """
    Create the adapter for a provider config.

    Raises:
        ConfigurationError: If the kind is unknown or its parameters are invalid
    """
    factory = PROVIDER_FACTORIES.get(config.kind)
    if factory is None:
        raise ConfigurationError(
            f"Unknown provider kind '{config.kind}'. Supported kinds: {list(PROVIDER_FACTORIES)}"
        )
    return factory(config)


class ProviderRegistry:
    """Holds one adapter per configured provider."""

    def __init__(self, providers: Optional[Dict[str, ProviderAdapter]] = None):
        self._providers: Dict[str, ProviderAdapter] = dict(providers or {})

    @classmethod
    def from_configs(cls, configs: List[ProviderConfig]) -> "ProviderRegistry":
        """
        Build every adapter eagerly.

        Args:
            configs: Provider configurations from the gateway file

        Returns:
            A populated ProviderRegistry

        Raises:
            ConfigurationError: On duplicate ids or invalid provider settings
        """
        providers: Dict[str, ProviderAdapter] = {}
        for config in configs:
            if config.id in providers:
                raise ConfigurationError(f"Duplicate provider id '{config.id}'")
            providers[config.id] = create_provider(config)
            logger.info(f"Initialized provider '{config.id}' ({config.kind})")
        return cls(providers)

    def lookup(self, provider_id: str) -> Optional[ProviderAdapter]:
        return self._providers.get(provider_id)

    def ids(self) -> List[str]:
        return list(self._providers)

    def __contains__(self, provider_id: str) -> bool:
        return provider_id in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    def __repr__(self) -> str:
        return f"ProviderRegistry(providers={self.ids()})"


class ModelCatalog:
    """Maps caller facing model ids to their provider and fallback chain."""

    def __init__(self, models: List[ModelConfig]):
        self._models: Dict[str, ModelConfig] = {}
        for model in models:
            if model.id in self._models:
                raise ConfigurationError(f"Duplicate model id '{model.id}'")
            self._models[model.id] = model

    def lookup(self, model_id: str) -> Optional[ModelConfig]:
        return self._models.get(model_id)

    def candidates(self, model_id: str) -> List[str]:
        """
        Get the ordered list of model ids to try for a request.

        The requested model comes first, then its configured fallbacks.
        Repeats are kept, so the list is exactly as long as configured.

        Args:
            model_id: Model requested by the caller

        Returns:
            Candidate model ids, or an empty list if the model is unknown
        """
        model = self._models.get(model_id)
        if model is None:
            return []
        return [model.id] + list(model.fallback)

    def find_problems(self, registry: ProviderRegistry) -> List[str]:
        """
        Describe configuration inconsistencies that will cause skipped candidates.

        None of these are fatal: the router skips the affected candidate.
        """
        problems = []
        for model in self._models.values():
            if model.provider not in registry:
                problems.append(f"model '{model.id}' uses unknown provider '{model.provider}'")
            for fallback_id in model.fallback:
                if fallback_id not in self._models:
                    problems.append(f"model '{model.id}' has unknown fallback model '{fallback_id}'")
            candidates = self.candidates(model.id)
            repeated = sorted({c for c in candidates if candidates.count(c) > 1})
            if repeated:
                problems.append(f"model '{model.id}' fallback chain repeats {repeated}")
        return problems

    def __iter__(self) -> Iterator[ModelConfig]:
        return iter(self._models.values())

    def __contains__(self, model_id: str) -> bool:
        return model_id in self._models

    def __len__(self) -> int:
        return len(self._models)
