"""
HTTP adapters for the Lightrate API.
"""

from .api_client import LightrateApiClient

__all__ = ["LightrateApiClient"]
