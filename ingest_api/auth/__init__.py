"""Autenticación de endpoints por API key."""

from .api_key import require_api_key

__all__ = ["require_api_key"]
