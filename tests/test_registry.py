"""
Tests for the provider registry and the model catalog.
"""
import pytest

from llm_gateway.config import ModelConfig, ProviderConfig
from llm_gateway.errors import ConfigurationError
from llm_gateway.provider_service import DummyProvider, OpenAICompatibleProvider
from llm_gateway.registry import ModelCatalog, ProviderRegistry, create_provider


@pytest.mark.unit
class TestProviderRegistry:
    """Test ProviderRegistry construction and lookup."""

    def test_from_configs_builds_every_provider(self, sample_provider_configs):
        """Test that each config yields the adapter for its kind."""
        registry = ProviderRegistry.from_configs(sample_provider_configs)

        assert len(registry) == 4
        assert registry.ids() == ["dummy-1", "openai-main", "local", "custom"]
        assert isinstance(registry.lookup("dummy-1"), DummyProvider)
        assert isinstance(registry.lookup("openai-main"), OpenAICompatibleProvider)
        assert registry.lookup("openai-main").timeout == 30
        assert registry.lookup("custom").base_url == "http://llm.internal:8000"

    def test_lookup_unknown_returns_none(self, sample_provider_configs):
        """Test that an unknown provider id is simply absent."""
        registry = ProviderRegistry.from_configs(sample_provider_configs)

        assert registry.lookup("missing") is None
        assert "missing" not in registry

    def test_missing_credentials_fail_fast(self):
        """Test that a provider without its required key aborts construction."""
        configs = [
            ProviderConfig(id="dummy-1", kind="dummy"),
            ProviderConfig(id="openai-main", kind="openai"),
        ]

        with pytest.raises(ConfigurationError, match="requires an API key"):
            ProviderRegistry.from_configs(configs)

    def test_duplicate_provider_ids(self):
        """Test that duplicate provider ids are rejected."""
        configs = [ProviderConfig(id="p", kind="dummy"), ProviderConfig(id="p", kind="dummy")]

        with pytest.raises(ConfigurationError, match="Duplicate provider id 'p'"):
            ProviderRegistry.from_configs(configs)

    def test_create_provider_uses_default_timeout(self):
        """Test that a provider without timeout gets 60 seconds."""
        provider = create_provider(ProviderConfig(id="local", kind="ollama"))

        assert provider.timeout == 60


@pytest.mark.unit
class TestModelCatalog:
    """Test ModelCatalog lookups and validation."""

    def test_candidates_primary_first(self):
        """Test that the primary model precedes its fallbacks in order."""
        catalog = ModelCatalog([
            ModelConfig(id="A", name="a", provider="p1", fallback=["C", "B"]),
            ModelConfig(id="B", name="b", provider="p2"),
            ModelConfig(id="C", name="c", provider="p3"),
        ])

        assert catalog.candidates("A") == ["A", "C", "B"]
        assert catalog.candidates("B") == ["B"]

    def test_candidates_keep_repeats(self):
        """Test that cycles are not deduplicated."""
        catalog = ModelCatalog([
            ModelConfig(id="A", name="a", provider="p1", fallback=["B", "A", "B"]),
            ModelConfig(id="B", name="b", provider="p1"),
        ])

        assert catalog.candidates("A") == ["A", "B", "A", "B"]

    def test_candidates_unknown_model(self):
        """Test that an unknown model has no candidates."""
        assert ModelCatalog([]).candidates("nope") == []

    def test_duplicate_model_ids(self):
        """Test that duplicate model ids are rejected."""
        with pytest.raises(ConfigurationError, match="Duplicate model id 'A'"):
            ModelCatalog([
                ModelConfig(id="A", name="a", provider="p1"),
                ModelConfig(id="A", name="a2", provider="p1"),
            ])

    def test_find_problems(self):
        """Test that inconsistencies are reported without raising."""
        registry = ProviderRegistry.from_configs([ProviderConfig(id="p1", kind="dummy")])
        catalog = ModelCatalog([
            ModelConfig(id="A", name="a", provider="p1", fallback=["ghost"]),
            ModelConfig(id="B", name="b", provider="nowhere"),
            ModelConfig(id="X", name="x", provider="p1", fallback=["X"]),
        ])

        problems = catalog.find_problems(registry)

        assert "model 'A' has unknown fallback model 'ghost'" in problems
        assert "model 'B' uses unknown provider 'nowhere'" in problems
        assert "model 'X' fallback chain repeats ['X']" in problems
        assert len(problems) == 3

    def test_catalog_iteration(self):
        """Test iteration order and membership."""
        catalog = ModelCatalog([
            ModelConfig(id="B", name="b", provider="p1"),
            ModelConfig(id="A", name="a", provider="p1"),
        ])

        assert [m.id for m in catalog] == ["B", "A"]
        assert "A" in catalog
        assert len(catalog) == 2
