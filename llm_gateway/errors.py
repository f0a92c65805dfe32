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
Exception types raised by the gateway.

Every error that can reach an HTTP caller derives from GatewayError and
carries the status code and error type used to render the OpenAI style
error body.
"""
from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base class for gateway errors that map onto an HTTP response."""

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(self, message: str, status_code: Optional[int] = None, error_type: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_type is not None:
            self.error_type = error_type

    def to_dict(self) -> Dict[str, Any]:
        """Render the error in OpenAI API format."""
        return {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.status_code
            }
        }


class ConfigurationError(GatewayError):
    """Invalid gateway configuration. Raised at startup only."""

    error_type = "configuration_error"


class ModelNotFoundError(GatewayError):
    """The requested model is not present in the model catalog."""

    status_code = 404
    error_type = "not_found_error"

    def __init__(self, model: str):
        super().__init__(f"Model '{model}' not found in config")
        self.model = model


class ProvidersExhaustedError(GatewayError):
    """Every candidate model failed or was skipped."""

    status_code = 500
    error_type = "internal_error"

    def __init__(self, attempts: int = 0):
        super().__init__("failed to get completion from any provider")
        self.attempts = attempts


class ProviderError(Exception):
    """
    A single upstream call failed.

    Never shown to API callers; the router logs it and moves on to the
    next candidate.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None
    ):
        super().__init__(f"[{provider}] {message}")
        self.provider = provider
        self.status_code = status_code
        self.body = body
