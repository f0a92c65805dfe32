"""
Entry point for running the gateway with ``python -m llm_gateway``.
"""
import logging

import uvicorn
from .config import settings

if __name__ == "__main__":
    uvicorn.run(
        "llm_gateway.app:app",
        host=settings.host,
        port=settings.port,
        log_level=logging.getLevelName(settings.get_log_level()).lower()
    )
