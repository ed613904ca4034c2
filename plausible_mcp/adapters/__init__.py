"""Upstream API adapters."""

from .plausible import PlausibleAPIError, PlausibleClient

__all__ = ["PlausibleAPIError", "PlausibleClient"]
