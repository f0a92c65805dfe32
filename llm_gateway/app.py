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
FastAPI application exposing the OpenAI chat completions API on top of the router.
"""
import logging
from contextlib import asynccontextmanager
from typing import Dict, Any, Optional

from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .config import Settings, settings, load_gateway_config
from .errors import GatewayError
from .metrics import PrometheusUsageCollector
from .models import ChatCompletionRequest, ChatCompletionResponse, ModelListResponse
from .registry import ModelCatalog, ProviderRegistry
from .router_service import RouterService

# Configure logging
logging.basicConfig(level=settings.get_log_level())
logger = logging.getLogger(__name__)

# Global instances (cached)
_router_instance: Optional[RouterService] = None
_usage_collector: Optional[PrometheusUsageCollector] = None


def get_usage_collector() -> PrometheusUsageCollector:
    """Get the process wide usage collector."""
    global _usage_collector

    if _usage_collector is None:
        _usage_collector = PrometheusUsageCollector()

    return _usage_collector


def build_router_service(app_settings: Settings, usage_collector: PrometheusUsageCollector) -> RouterService:
    """
    Load the gateway file and build the router.

    Raises:
        ConfigurationError: If the gateway configuration is invalid
    """
    gateway_config = load_gateway_config(app_settings.config_path, app_settings)
    registry = ProviderRegistry.from_configs(gateway_config.providers)
    catalog = ModelCatalog(gateway_config.models)

    for problem in catalog.find_problems(registry):
        logger.warning(f"Config inconsistency: {problem}")

    return RouterService(catalog, registry, usage_collector)


def get_router_service() -> RouterService:
    """Get router service instance."""
    global _router_instance

    if _router_instance is None:
        _router_instance = build_router_service(settings, get_usage_collector())
        logger.info(f"Initialized {_router_instance!r}")

    return _router_instance


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Invalid configuration aborts startup here rather than on the first request
    get_router_service()
    yield


# Create FastAPI app
app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def count_requests(request: Request, call_next):
    """Count HTTP requests by method and route template, except metric scrapes."""
    response = await call_next(request)
    if request.url.path != "/metrics":
        # Label by template so path parameters cannot grow the series count
        route = request.scope.get("route")
        path = getattr(route, "path", None) or "unmatched"
        get_usage_collector().record_http_request(request.method, path)
    return response


@app.get("/health", summary="Health check")
async def health_check(router: RouterService = Depends(get_router_service)) -> Dict[str, Any]:
    """Health check endpoint."""
    health = router.get_health()
    return {
        "status": health["overall_status"],
        "details": health
    }


@app.get("/router/stats", summary="Router statistics")
async def router_stats(router: RouterService = Depends(get_router_service)) -> Dict[str, Any]:
    """Get router statistics."""
    return router.get_stats()


@app.get("/metrics", summary="Prometheus metrics", include_in_schema=False)
async def metrics() -> Response:
    """Expose token usage and request counters in Prometheus format."""
    collector = get_usage_collector()
    return Response(content=collector.export(), media_type=collector.content_type)


@app.post(
    "/v1/chat/completions",
    response_model=ChatCompletionResponse,
    response_model_exclude_none=True,
    summary="Create chat completion",
    description="Creates a model response for the given chat conversation."
)
async def create_chat_completion(
    request: ChatCompletionRequest,
    router: RouterService = Depends(get_router_service)
) -> ChatCompletionResponse:
    """
    Create a chat completion using the router.

    This endpoint is compatible with OpenAI's chat completions API.
    """
    logger.info(f"Received chat completion request for model: {request.model}")
    logger.debug(f"Request: {request}")

    try:
        response = await router.chat_completion(request)
    except GatewayError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in chat completion: {type(e).__name__}: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail={
                "error": {
                    "message": "Internal server error",
                    "type": "internal_error"
                }
            }
        )

    logger.info(f"Successfully processed chat completion for model: {request.model}")
    return response


@app.get(
    "/v1/models",
    response_model=ModelListResponse,
    summary="List models",
    description="Lists the models configured in the gateway."
)
async def list_models(router: RouterService = Depends(get_router_service)) -> Dict[str, Any]:
    """List configured models. Compatible with OpenAI's models API."""
    return {"object": "list", "data": router.list_models()}


@app.get(
    "/v1/models/{model_id}",
    summary="Retrieve model",
    description="Retrieves a model instance."
)
async def get_model(model_id: str, router: RouterService = Depends(get_router_service)) -> Dict[str, Any]:
    """Get information about a specific model."""
    for model in router.list_models():
        if model["id"] == model_id:
            return model

    raise HTTPException(
        status_code=404,
        detail={
            "error": {
                "message": f"Model '{model_id}' not found",
                "type": "not_found_error"
            }
        }
    )


@app.exception_handler(GatewayError)
async def gateway_exception_handler(request: Request, exc: GatewayError):
    """Render gateway errors without upstream details."""
    logger.error(f"Failed to execute request: status={exc.status_code} message={exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reject malformed request bodies with an OpenAI style error."""
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "message": "Invalid request body",
                "type": "invalid_request_error",
                "details": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()
                ]
            }
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Custom exception handler for HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.detail if isinstance(exc.detail, dict) else {"error": {"message": str(exc.detail)}}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Custom exception handler for general exceptions."""
    logger.error(f"Unhandled exception: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "message": "Internal server error",
                "type": "internal_error"
            }
        }
    )
