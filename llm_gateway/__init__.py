"""
LLM Gateway - OpenAI API compatible endpoint with model fallback.

A FastAPI-based application that maps caller facing model names to
configured providers, falls back to alternate models when a provider
fails, and exports token usage as Prometheus metrics.
"""

__version__ = "1.0.0"
__author__ = "LLM Gateway Team"
