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
Configuration management for the LLM gateway.

Process level settings come from the environment (and an optional .env
file). Providers and models come from a YAML gateway file whose path is
given by CONFIG_PATH.
"""
import logging
import os
from typing import Optional, Literal, List, Dict, Any, get_args

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ProviderKind = Literal["dummy", "openai_compatible", "openai", "cerebras", "ollama"]

PROVIDER_KINDS = get_args(ProviderKind)


class ProviderConfig(BaseModel):
    """Configuration for a single upstream provider."""
    id: str = Field(..., min_length=1, description="Unique provider identifier")
    kind: ProviderKind = Field(..., description="Adapter implementation to use")
    api_key: Optional[str] = Field(None, description="Bearer token sent upstream")
    base_url: Optional[str] = Field(None, description="Upstream base URL, without /v1")
    timeout: Optional[float] = Field(None, gt=0, description="Request timeout in seconds")

    model_config = {"frozen": True}

    def __repr__(self) -> str:
        return f"ProviderConfig(id='{self.id}', kind='{self.kind}', has_api_key={bool(self.api_key)})"


class ModelConfig(BaseModel):
    """Configuration for a logical model exposed to callers."""
    id: str = Field(..., min_length=1, description="Caller facing model identifier")
    name: str = Field(..., min_length=1, description="Model name sent to the upstream provider")
    provider: str = Field(..., min_length=1, description="Identifier of the provider serving this model")
    fallback: List[str] = Field(default_factory=list, description="Model ids to try, in order, when this one fails")

    model_config = {"frozen": True}


class GatewayConfig(BaseModel):
    """Providers and models loaded from the gateway file."""
    providers: List[ProviderConfig] = Field(default_factory=list)
    models: List[ModelConfig] = Field(default_factory=list)

    model_config = {"frozen": True}


class Settings(BaseSettings):
    """Application settings."""

    # Server configuration
    host: str = Field("0.0.0.0", description="Host to bind the server to")
    port: int = Field(8080, description="Port to bind the server to")
    log_level: str = Field("info", description="Log level: debug, info, warning or error")

    # Gateway file with providers and models
    config_path: str = Field("config.yml", description="Path to the YAML gateway configuration")

    # API configuration
    api_title: str = Field("LLM Gateway", description="API title")
    api_description: str = Field(
        "OpenAI compatible gateway that routes models to providers with fallback",
        description="API description"
    )
    api_version: str = Field("1.0.0", description="API version")

    # Default upstream request timeout
    request_timeout: float = Field(60, description="Request timeout in seconds")

    # Credentials used when a provider entry of that kind has no api_key
    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    cerebras_api_key: Optional[str] = Field(None, description="Cerebras API key")

    def default_api_key(self, kind: str) -> Optional[str]:
        """Get the environment supplied API key for a provider kind, if any."""
        return getattr(self, f"{kind}_api_key", None)

    def get_log_level(self) -> int:
        """Resolve log_level to a logging constant, defaulting to INFO."""
        levels = {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warn": logging.WARNING,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }
        return levels.get(self.log_level.strip().lower(), logging.INFO)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }


def _parse_provider(entry: Any, settings: Settings) -> ProviderConfig:
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Provider entry must be a mapping, got {type(entry).__name__}")

    provider_id = entry.get("id")
    if not provider_id:
        raise ConfigurationError("provider id is required")

    kind = entry.get("provider")
    if kind not in PROVIDER_KINDS:
        raise ConfigurationError(
            f"Unknown provider kind {kind!r} for provider '{provider_id}'. "
            f"Supported kinds: {list(PROVIDER_KINDS)}"
        )

    params = entry.get("config") or {}
    if not isinstance(params, dict):
        raise ConfigurationError(f"config for provider '{provider_id}' must be a mapping")

    try:
        return ProviderConfig(
            id=provider_id,
            kind=kind,
            api_key=params.get("api_key") or settings.default_api_key(kind),
            base_url=params.get("api_url"),
            timeout=params.get("timeout", settings.request_timeout),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config for provider '{provider_id}': {e}") from e


def _parse_model(entry: Any) -> ModelConfig:
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Model entry must be a mapping, got {type(entry).__name__}")
    try:
        return ModelConfig(
            id=entry.get("id"),
            name=entry.get("name") or entry.get("id"),
            provider=entry.get("provider"),
            fallback=entry.get("fallback") or [],
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid model entry {entry.get('id')!r}: {e}") from e


def parse_gateway_config(data: Optional[Dict[str, Any]], settings: Settings) -> GatewayConfig:
    """
    Build a GatewayConfig from an already decoded YAML document.

    Args:
        data: Decoded document, or None for an empty file
        settings: Settings supplying default credentials and timeout

    Returns:
        Validated GatewayConfig

    Raises:
        ConfigurationError: If the document is malformed
    """
    if data is None:
        return GatewayConfig()
    if not isinstance(data, dict):
        raise ConfigurationError("Gateway config must be a mapping at the top level")

    providers = [_parse_provider(entry, settings) for entry in data.get("providers") or []]
    models = [_parse_model(entry) for entry in data.get("models") or []]
    return GatewayConfig(providers=providers, models=models)


def load_gateway_config(path: str, settings: Optional[Settings] = None) -> GatewayConfig:
    """
    Load providers and models from a YAML file.

    A missing file is not an error: the gateway starts with no models.

    Args:
        path: Path to the YAML gateway file
        settings: Settings to use, read from the environment when omitted

    Returns:
        Validated GatewayConfig

    Raises:
        ConfigurationError: If the file cannot be read or is invalid
    """
    settings = settings or Settings()

    if not os.path.exists(path):
        logger.warning(f"Gateway config file '{path}' not found, starting with no models")
        return GatewayConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read gateway config '{path}': {e}") from e

    config = parse_gateway_config(data, settings)
    logger.info(f"Loaded {len(config.providers)} providers and {len(config.models)} models from '{path}'")
    return config


# Global settings instance
settings = Settings()
