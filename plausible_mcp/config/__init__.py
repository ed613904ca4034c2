"""Configuration models."""

from .models import EnvSettings

__all__ = ["EnvSettings"]
