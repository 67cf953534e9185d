"""Configuration module."""
from bmcsync.config.settings import settings

__all__ = ["settings"]
